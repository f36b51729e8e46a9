"""Structural validation of untrusted Clerk webhook payloads.

Validation never raises for bad input. It returns a PayloadValidation holding
either the parsed event or the list of per-field violations, and the caller
decides what status to answer with.
"""

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ValidationError

from schemas import ClerkDeletedUserEvent, ClerkWebhookEvent, FieldViolation

ROOT_PATH = "<root>"


@dataclass(frozen=True)
class PayloadValidation[M: BaseModel]:
    """Outcome of validating one payload against a schema."""

    event: M | None = None
    violations: list[FieldViolation] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.event is not None and not self.violations


def _format_path(loc: tuple[int | str, ...]) -> str:
    return ".".join(str(part) for part in loc) or ROOT_PATH


def violations_from_error(error: ValidationError) -> list[FieldViolation]:
    """One FieldViolation per pydantic error, keeping pydantic's order."""
    return [
        FieldViolation(path=_format_path(err["loc"]), reason=err["msg"])
        for err in error.errors(include_url=False)
    ]


def validate_payload[M: BaseModel](model: type[M], raw: Any) -> PayloadValidation[M]:
    """Validate decoded JSON against ``model`` without coercing types."""
    try:
        event = model.model_validate(raw)
    except ValidationError as e:
        return PayloadValidation(violations=violations_from_error(e))
    return PayloadValidation(event=event)


def validate_webhook_payload(raw: Any) -> PayloadValidation[ClerkWebhookEvent]:
    """Validate a user.created / user.updated style event."""
    return validate_payload(ClerkWebhookEvent, raw)


def validate_deleted_payload(raw: Any) -> PayloadValidation[ClerkDeletedUserEvent]:
    """Validate a user.deleted event, which only carries the user ID."""
    return validate_payload(ClerkDeletedUserEvent, raw)
