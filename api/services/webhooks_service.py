"""Webhook handler service for Clerk user sync events."""

from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from core import get_logger
from core.metrics import WEBHOOK_PROCESSED_COUNTER
from core.telemetry import add_custom_attribute, track_operation
from repositories.user_repository import UserRepository
from schemas import FieldViolation
from services.user_sync_service import normalize_clerk_user, persist_canonical_user
from services.webhook_validation_service import (
    validate_deleted_payload,
    validate_webhook_payload,
)

logger = get_logger(__name__)

USER_DELETED = "user.deleted"


class InvalidWebhookPayloadError(Exception):
    """Raised when a webhook body fails schema validation."""

    def __init__(self, violations: list[FieldViolation]):
        self.violations = violations
        super().__init__(f"Invalid webhook payload ({len(violations)} violations)")


@dataclass(frozen=True)
class WebhookOutcome:
    event_type: str
    user_id: str
    action: str  # "synced" or "deleted"


def _event_type_of(raw_event: Any) -> str | None:
    if isinstance(raw_event, dict):
        event_type = raw_event.get("type")
        if isinstance(event_type, str):
            return event_type
    return None


async def sync_user_from_event(
    db: AsyncSession,
    raw_event: Any,
    *,
    default_oauth_provider: str | None = None,
) -> WebhookOutcome:
    """Validate, normalize and upsert the user carried by an event.

    Nothing is written unless the payload validates and has a primary email.

    Raises:
        InvalidWebhookPayloadError: Payload does not match the user schema.
        NoPrimaryEmailError: Payload validated but holds no email address.
        PersistenceError: A write failed.
    """
    validation = validate_webhook_payload(raw_event)
    if not validation.is_valid or validation.event is None:
        raise InvalidWebhookPayloadError(validation.violations)

    event = validation.event
    user, emails = normalize_clerk_user(
        event.data, default_oauth_provider=default_oauth_provider
    )
    await persist_canonical_user(db, user, emails)

    logger.info(
        "webhook.user.synced",
        user_id=user.id,
        event_type=event.type,
        email_count=len(emails),
        oauth_provider=user.oauth_provider,
    )
    return WebhookOutcome(event_type=event.type, user_id=user.id, action="synced")


async def delete_user_from_event(db: AsyncSession, raw_event: Any) -> WebhookOutcome:
    """Hard delete the user named by a user.deleted event.

    Email rows go with it via ON DELETE CASCADE. Unknown IDs are not an error,
    so redelivered deletions succeed.
    """
    validation = validate_deleted_payload(raw_event)
    if not validation.is_valid or validation.event is None:
        raise InvalidWebhookPayloadError(validation.violations)

    user_id = validation.event.data.id
    deleted = await UserRepository(db).delete(user_id)
    logger.info("webhook.user.deleted", user_id=user_id, existed=deleted)
    return WebhookOutcome(event_type=USER_DELETED, user_id=user_id, action="deleted")


@track_operation("webhook_processing")
async def handle_clerk_event(
    db: AsyncSession,
    raw_event: Any,
    *,
    default_oauth_provider: str | None = None,
) -> WebhookOutcome:
    """Dispatch a decoded Clerk event.

    user.deleted removes the user; every other event type carries a full
    user object and is upserted.
    """
    event_type = _event_type_of(raw_event)
    add_custom_attribute("webhook.event_type", event_type or "unknown")

    if event_type == USER_DELETED:
        outcome = await delete_user_from_event(db, raw_event)
    else:
        outcome = await sync_user_from_event(
            db, raw_event, default_oauth_provider=default_oauth_provider
        )

    WEBHOOK_PROCESSED_COUNTER.add(
        1, {"event_type": outcome.event_type, "action": outcome.action}
    )
    return outcome
