"""Clerk webhook endpoints."""

import json

from fastapi import APIRouter, HTTPException, Request

from core import get_logger
from core.config import get_settings
from core.database import DbSession
from core.metrics import WEBHOOK_REJECTED_COUNTER
from core.wide_event import set_wide_event_fields
from repositories.errors import (
    ForeignKeyViolationError,
    InvalidReferenceError,
    PersistenceError,
    UniqueConstraintViolationError,
)
from schemas import WebhookResponse
from services.user_sync_service import NoPrimaryEmailError
from services.webhooks_service import InvalidWebhookPayloadError, handle_clerk_event

logger = get_logger(__name__)

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])

# Checked in order against the raised error's class hierarchy
PERSISTENCE_ERROR_RESPONSES: dict[type[PersistenceError], tuple[int, str]] = {
    UniqueConstraintViolationError: (409, "Resource already exists"),
    InvalidReferenceError: (400, "Invalid ID provided"),
    ForeignKeyViolationError: (400, "Foreign key constraint failed"),
}


def persistence_error_response(error: PersistenceError) -> tuple[int, str]:
    for error_class in type(error).__mro__:
        if error_class in PERSISTENCE_ERROR_RESPONSES:
            return PERSISTENCE_ERROR_RESPONSES[error_class]
    return 500, "Database error occurred"


@router.post(
    "/clerk",
    response_model=WebhookResponse,
    summary="Handle Clerk webhooks",
    description=(
        "Receives Clerk user events and upserts the user and their email "
        "addresses. user.deleted removes the user."
    ),
    responses={
        400: {"description": "Missing, malformed or invalid payload"},
        409: {"description": "Unique constraint conflict"},
        500: {"description": "Unclassified failure"},
    },
)
async def clerk_webhook(request: Request, db: DbSession) -> WebhookResponse:
    settings = get_settings()
    payload = await request.body()

    if not payload:
        raise HTTPException(status_code=400, detail="Missing request body")

    try:
        raw_event = json.loads(payload)
    except ValueError:
        set_wide_event_fields(webhook_error="malformed_json")
        WEBHOOK_REJECTED_COUNTER.add(1, {"reason": "malformed_json"})
        raise HTTPException(status_code=400, detail="Malformed JSON body")

    if settings.log_webhook_payloads:
        logger.debug("webhook.payload.received", payload=raw_event)

    try:
        outcome = await handle_clerk_event(
            db,
            raw_event,
            default_oauth_provider=settings.oauth_provider_fallback,
        )
    except InvalidWebhookPayloadError as e:
        logger.warning(
            "webhook.payload.invalid",
            violation_count=len(e.violations),
            paths=[v.path for v in e.violations],
        )
        set_wide_event_fields(webhook_error="validation_failed")
        WEBHOOK_REJECTED_COUNTER.add(1, {"reason": "validation_failed"})
        raise HTTPException(
            status_code=400,
            detail={
                "error": "Invalid webhook payload",
                "violations": [v.model_dump() for v in e.violations],
            },
        )
    except NoPrimaryEmailError as e:
        set_wide_event_fields(webhook_error="no_primary_email", webhook_user_id=e.user_id)
        WEBHOOK_REJECTED_COUNTER.add(1, {"reason": "no_primary_email"})
        raise HTTPException(status_code=400, detail="No email address found")
    except PersistenceError as e:
        status_code, message = persistence_error_response(e)
        set_wide_event_fields(
            webhook_error="persistence_failed",
            webhook_error_type=type(e).__name__,
            webhook_error_code=e.code,
        )
        WEBHOOK_REJECTED_COUNTER.add(1, {"reason": type(e).__name__})
        raise HTTPException(status_code=status_code, detail=message)

    set_wide_event_fields(
        webhook_event_type=outcome.event_type,
        webhook_user_id=outcome.user_id,
        webhook_action=outcome.action,
    )
    return WebhookResponse(
        message="Webhook processed successfully",
        user_id=outcome.user_id,
        event_type=outcome.event_type,
        action=outcome.action,
    )
