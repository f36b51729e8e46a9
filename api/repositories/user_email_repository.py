"""Repository for a user's Clerk email addresses."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import UserEmail, utcnow
from repositories.utils import log_slow_query, upsert_on_conflict


class UserEmailRepository:
    """Repository for UserEmail database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_for_user(self, user_id: str) -> list[UserEmail]:
        """All email rows linked to a user, ordered by email ID."""
        result = await self.db.execute(
            select(UserEmail)
            .where(UserEmail.user_id == user_id)
            .order_by(UserEmail.id)
        )
        return list(result.scalars().all())

    @log_slow_query("user_email.upsert")
    async def upsert(
        self,
        email_id: str,
        *,
        user_id: str,
        email_address: str,
        verification_status: str,
        verification_strategy: str,
    ) -> UserEmail:
        """Insert or overwrite an email row keyed by Clerk's email ID.

        user_id is overwritten too, so an address Clerk moved to another
        user follows it.
        """
        now = utcnow()
        values = {
            "id": email_id,
            "user_id": user_id,
            "email_address": email_address,
            "verification_status": verification_status,
            "verification_strategy": verification_strategy,
            "created_at": now,
            "updated_at": now,
        }
        return await upsert_on_conflict(
            self.db,
            UserEmail,
            values,
            index_elements=["id"],
            update_fields=[
                "user_id",
                "email_address",
                "verification_status",
                "verification_strategy",
                "updated_at",
            ],
        )
