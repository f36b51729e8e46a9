"""Request-scoped context for canonical log lines.

RequestTimingMiddleware creates one dict per request; routes and services add
fields to it; the middleware emits it as a single ``request.completed`` line.

Usage:
    from core.wide_event import set_wide_event_fields

    set_wide_event_fields(webhook_event_type="user.updated", webhook_user_id=uid)
"""

from contextvars import ContextVar
from typing import Any

_wide_event: ContextVar[dict[str, Any]] = ContextVar("wide_event")


def init_wide_event() -> dict[str, Any]:
    """Start a fresh wide event for the current async context."""
    event: dict[str, Any] = {}
    _wide_event.set(event)
    return event


def get_wide_event() -> dict[str, Any]:
    """Current wide event, or an empty dict outside a request."""
    try:
        return _wide_event.get()
    except LookupError:
        return {}


def set_wide_event_fields(**kwargs: Any) -> None:
    """Add fields to the current wide event.

    No-op outside request context (scripts, tests without the fixture).
    """
    try:
        event = _wide_event.get()
    except LookupError:
        return
    event.update(kwargs)


def clear_wide_event() -> None:
    _wide_event.set({})
