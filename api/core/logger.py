"""structlog setup shared by the API process and scripts.

Console rendering is the default for local runs. LOG_FORMAT=json (or an
Application Insights connection string) switches to one JSON object per line.
stdlib records from uvicorn and SQLAlchemy go through the same processors.

Usage:
    from core import get_logger
    logger = get_logger(__name__)
    logger.info("webhook.user.synced", user_id="user_123", email_count=2)
"""

import logging
import os
import sys

import structlog
from structlog.types import EventDict, Processor

_TELEMETRY_ENABLED = bool(os.getenv("APPLICATIONINSIGHTS_CONNECTION_STRING"))

# Per-request access lines and driver chatter
_QUIET_LOGGERS = ("uvicorn.access", "aiosqlite")

bind_contextvars = structlog.contextvars.bind_contextvars
clear_contextvars = structlog.contextvars.clear_contextvars


def _add_trace_ids(
    _logger: logging.Logger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Attach the active trace/span ids so log lines join up with traces."""
    if not _TELEMETRY_ENABLED:
        return event_dict

    try:
        from opentelemetry import trace

        ctx = trace.get_current_span().get_span_context()
        if ctx.is_valid:
            event_dict["trace_id"] = format(ctx.trace_id, "032x")
            event_dict["span_id"] = format(ctx.span_id, "016x")
    except Exception:
        # Logging must keep working when the telemetry SDK misbehaves
        pass

    return event_dict


def _log_level_from_env() -> int:
    level = logging.getLevelName(os.environ.get("LOG_LEVEL", "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def _wants_json() -> bool:
    match os.environ.get("LOG_FORMAT", "").lower():
        case "json":
            return True
        case "console":
            return False
        case _:
            return _TELEMETRY_ENABLED


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        _add_trace_ids,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer() -> Processor:
    if _wants_json():
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=True, exception_formatter=structlog.dev.plain_traceback
    )


def configure_logging() -> None:
    """Route structlog and stdlib logging to one stdout handler.

    Safe to call more than once: the root logger's handlers are replaced,
    not appended to.
    """
    shared = _shared_processors()

    structlog.configure(
        processors=shared
        + [
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info,
                _renderer(),
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(_log_level_from_env())

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Example:
        logger = get_logger(__name__)
        logger.warning("webhook.payload.invalid", violation_count=2)
    """
    return structlog.stdlib.get_logger(name)
