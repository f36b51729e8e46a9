"""Pydantic schemas for Clerk webhook payloads and API responses.

Webhook payload models use strict leaf types: a number where a string is
expected (or a string where a bool is expected) is a validation failure, not
a silent coercion. Unknown keys are ignored because Clerk sends far more
than we store.
"""

from typing import Annotated

from email_validator import EmailNotValidError, validate_email
from pydantic import (
    AfterValidator,
    AnyUrl,
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictStr,
    TypeAdapter,
    ValidationError,
)

_URL_ADAPTER = TypeAdapter(AnyUrl)


def _check_email_syntax(value: str) -> str:
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValueError(f"invalid email address: {e}") from e
    return value


def _check_url(value: str) -> str:
    try:
        _URL_ADAPTER.validate_python(value)
    except ValidationError as e:
        raise ValueError("invalid URL") from e
    return value


# Column widths in models.py; longer values must fail here, not in the database
ID_MAX_LENGTH = 255
SHORT_MAX_LENGTH = 255
EMAIL_MAX_LENGTH = 320
LABEL_MAX_LENGTH = 50

# Range that datetime can represent: 0001-01-01 to 9999-12-31T23:59:59.999 UTC
MIN_EPOCH_MILLIS = -62_135_596_800_000
MAX_EPOCH_MILLIS = 253_402_300_799_999

# Both keep the original string; validation must not rewrite stored values
EmailAddress = Annotated[
    StrictStr,
    Field(max_length=EMAIL_MAX_LENGTH),
    AfterValidator(_check_email_syntax),
]
Url = Annotated[StrictStr, AfterValidator(_check_url)]
IdStr = Annotated[StrictStr, Field(min_length=1, max_length=ID_MAX_LENGTH)]
ShortStr = Annotated[StrictStr, Field(max_length=SHORT_MAX_LENGTH)]
LabelStr = Annotated[StrictStr, Field(max_length=LABEL_MAX_LENGTH)]
# Accepts ints too, never bools, strings, NaN or infinities
EpochMillis = Annotated[
    StrictFloat,
    Field(allow_inf_nan=False, ge=MIN_EPOCH_MILLIS, le=MAX_EPOCH_MILLIS),
]


# =============================================================================
# Clerk webhook payloads
# =============================================================================


class ClerkVerification(BaseModel):
    status: LabelStr
    strategy: LabelStr


class ClerkEmailAddress(BaseModel):
    id: IdStr
    email_address: EmailAddress
    verification: ClerkVerification


class ClerkExternalAccount(BaseModel):
    """A linked OAuth identity (only the fields we read)."""

    approved_scopes: StrictStr
    email_address: EmailAddress | None = None
    given_name: ShortStr | None = None
    family_name: ShortStr | None = None
    picture: Url | None = None
    provider: LabelStr | None = None  # e.g. "oauth_google"
    provider_user_id: ShortStr | None = None
    google_id: ShortStr | None = None


class ClerkUserData(BaseModel):
    """Clerk user object as sent in user.created / user.updated events."""

    id: IdStr
    email_addresses: list[ClerkEmailAddress] = Field(min_length=1)
    external_accounts: list[ClerkExternalAccount] | None = None
    first_name: ShortStr | None = None
    last_name: ShortStr | None = None
    image_url: Url | None = None
    created_at: EpochMillis
    updated_at: EpochMillis
    banned: StrictBool
    external_id: ShortStr | None = None


class ClerkWebhookEvent(BaseModel):
    type: StrictStr
    data: ClerkUserData


class ClerkDeletedUserData(BaseModel):
    id: IdStr
    deleted: StrictBool | None = None


class ClerkDeletedUserEvent(BaseModel):
    type: StrictStr
    data: ClerkDeletedUserData


# =============================================================================
# API responses
# =============================================================================


class FieldViolation(BaseModel):
    """One failed check in a webhook payload."""

    model_config = ConfigDict(frozen=True)

    path: str
    reason: str


class WebhookResponse(BaseModel):
    """Response for webhook processing."""

    message: str
    user_id: str | None = None
    event_type: str | None = None
    action: str | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str
