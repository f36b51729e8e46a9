"""User repository for database operations."""

from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from models import User, utcnow
from repositories.utils import log_slow_query, upsert_on_conflict

# Every column owned by Clerk; all of them are overwritten on each event
_SYNCED_FIELDS = [
    "email_address",
    "first_name",
    "last_name",
    "image_url",
    "email_verified",
    "created_at_clerk",
    "updated_at_clerk",
    "banned",
    "external_id",
    "oauth_provider",
    "oauth_id",
    "oauth_scopes",
]


class UserRepository:
    """Repository for User database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, user_id: str) -> User | None:
        """Get a user by their ID."""
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    @log_slow_query("user.upsert")
    async def upsert(
        self,
        user_id: str,
        *,
        email_address: str,
        first_name: str | None,
        last_name: str | None,
        image_url: str | None,
        email_verified: bool,
        created_at_clerk: datetime,
        updated_at_clerk: datetime,
        banned: bool,
        external_id: str | None,
        oauth_provider: str | None,
        oauth_id: str | None,
        oauth_scopes: str | None,
    ) -> User:
        """Insert or overwrite a user keyed by ID.

        No field is merged with the stored row: a None argument clears the column.
        """
        now = utcnow()
        values = {
            "id": user_id,
            "email_address": email_address,
            "first_name": first_name,
            "last_name": last_name,
            "image_url": image_url,
            "email_verified": email_verified,
            "created_at_clerk": created_at_clerk,
            "updated_at_clerk": updated_at_clerk,
            "banned": banned,
            "external_id": external_id,
            "oauth_provider": oauth_provider,
            "oauth_id": oauth_id,
            "oauth_scopes": oauth_scopes,
            "created_at": now,
            "updated_at": now,
        }
        return await upsert_on_conflict(
            self.db,
            User,
            values,
            index_elements=["id"],
            update_fields=[*_SYNCED_FIELDS, "updated_at"],
        )

    @log_slow_query("user.delete")
    async def delete(self, user_id: str) -> bool:
        """Delete a user by ID. Email rows cascade.

        Returns:
            True if a row was deleted.
        """
        result = await self.db.execute(delete(User).where(User.id == user_id))
        return bool(result.rowcount)
