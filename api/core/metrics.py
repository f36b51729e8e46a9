"""Business metrics for Clerk user sync.

Instruments come from ``opentelemetry.metrics.get_meter()``. Without a
configured ``MeterProvider`` the API hands out no-op instruments, so
recording is always safe.

Usage in services::

    from core.metrics import WEBHOOK_PROCESSED_COUNTER

    WEBHOOK_PROCESSED_COUNTER.add(1, {"event_type": "user.created", "action": "synced"})
"""

from __future__ import annotations

from opentelemetry import metrics

_meter = metrics.get_meter("clerk_user_sync")

# ── Webhook metrics ───────────────────────────────────────────────────

WEBHOOK_PROCESSED_COUNTER = _meter.create_counter(
    name="webhook.processed",
    description="Clerk webhook events applied to the database",
    unit="{event}",
)

WEBHOOK_REJECTED_COUNTER = _meter.create_counter(
    name="webhook.rejected",
    description="Clerk webhook events rejected before or during persistence",
    unit="{event}",
)
