"""Map Clerk user payloads to canonical records and persist them.

normalize_clerk_user is pure: the same ClerkUserData always yields equal
records, with no I/O. persist_canonical_user performs the writes, one user
upsert followed by one upsert per email in payload order.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from core import get_logger
from repositories.errors import classify_db_error
from repositories.user_email_repository import UserEmailRepository
from repositories.user_repository import UserRepository
from schemas import ClerkExternalAccount, ClerkUserData

logger = get_logger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_OAUTH_PROVIDER_PREFIX = "oauth_"
VERIFIED_STATUS = "verified"


class NoPrimaryEmailError(Exception):
    """Raised when a user payload carries no email address at all."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"No email address found for user {user_id}")


@dataclass(frozen=True)
class CanonicalUser:
    id: str
    email_address: str
    first_name: str | None
    last_name: str | None
    image_url: str | None
    email_verified: bool
    created_at_clerk: datetime
    updated_at_clerk: datetime
    banned: bool
    external_id: str | None
    oauth_provider: str | None
    oauth_id: str | None
    oauth_scopes: str | None


@dataclass(frozen=True)
class CanonicalEmail:
    id: str
    user_id: str
    email_address: str
    verification_status: str
    verification_strategy: str


def epoch_millis_to_datetime(value: float) -> datetime:
    """Convert Clerk's epoch milliseconds to an aware UTC datetime."""
    return _EPOCH + timedelta(milliseconds=value)


def _first_not_none[T](*values: T | None) -> T | None:
    # Only None falls through: "" is a real value
    for value in values:
        if value is not None:
            return value
    return None


def resolve_oauth_provider(
    account: ClerkExternalAccount, default: str | None = None
) -> str | None:
    """Name of the provider behind a linked account.

    Clerk's "oauth_google" becomes "google". Accounts without a provider
    field fall back to "google" when they carry a google_id, then to
    ``default``.
    """
    if account.provider:
        return account.provider.removeprefix(_OAUTH_PROVIDER_PREFIX)
    if account.google_id is not None:
        return "google"
    return default


def normalize_clerk_user(
    data: ClerkUserData, *, default_oauth_provider: str | None = None
) -> tuple[CanonicalUser, tuple[CanonicalEmail, ...]]:
    """Build the canonical user and its email records from a Clerk user.

    Native Clerk fields win over values from the first linked external
    account; when both are missing the result is None.

    Raises:
        NoPrimaryEmailError: If data.email_addresses is empty.
    """
    if not data.email_addresses:
        raise NoPrimaryEmailError(data.id)
    primary_email = data.email_addresses[0]

    account = data.external_accounts[0] if data.external_accounts else None

    user = CanonicalUser(
        id=data.id,
        email_address=primary_email.email_address,
        first_name=_first_not_none(
            data.first_name, account.given_name if account else None
        ),
        last_name=_first_not_none(
            data.last_name, account.family_name if account else None
        ),
        image_url=_first_not_none(data.image_url, account.picture if account else None),
        email_verified=primary_email.verification.status == VERIFIED_STATUS,
        created_at_clerk=epoch_millis_to_datetime(data.created_at),
        updated_at_clerk=epoch_millis_to_datetime(data.updated_at),
        banned=data.banned,
        external_id=data.external_id,
        oauth_provider=(
            resolve_oauth_provider(account, default_oauth_provider)
            if account
            else None
        ),
        oauth_id=(
            _first_not_none(account.google_id, account.provider_user_id)
            if account
            else None
        ),
        oauth_scopes=account.approved_scopes if account else None,
    )

    emails = tuple(
        CanonicalEmail(
            id=email.id,
            user_id=data.id,
            email_address=email.email_address,
            verification_status=email.verification.status,
            verification_strategy=email.verification.strategy,
        )
        for email in data.email_addresses
    )
    return user, emails


async def persist_canonical_user(
    db: AsyncSession,
    user: CanonicalUser,
    emails: tuple[CanonicalEmail, ...] | list[CanonicalEmail],
) -> None:
    """Upsert the user, then each email in order.

    The first failure stops the sequence and propagates. Nothing already
    written is undone here; the caller's transaction decides.

    Raises:
        PersistenceError: A classified database failure (see repositories.errors).
    """
    user_repo = UserRepository(db)
    email_repo = UserEmailRepository(db)

    try:
        await user_repo.upsert(
            user.id,
            email_address=user.email_address,
            first_name=user.first_name,
            last_name=user.last_name,
            image_url=user.image_url,
            email_verified=user.email_verified,
            created_at_clerk=user.created_at_clerk,
            updated_at_clerk=user.updated_at_clerk,
            banned=user.banned,
            external_id=user.external_id,
            oauth_provider=user.oauth_provider,
            oauth_id=user.oauth_id,
            oauth_scopes=user.oauth_scopes,
        )
        for email in emails:
            await email_repo.upsert(
                email.id,
                user_id=email.user_id,
                email_address=email.email_address,
                verification_status=email.verification_status,
                verification_strategy=email.verification_strategy,
            )
    except DBAPIError as e:
        error = classify_db_error(e)
        logger.warning(
            "webhook.persistence.failed",
            user_id=user.id,
            error_class=type(error).__name__,
            error_code=error.code,
        )
        raise error from e
