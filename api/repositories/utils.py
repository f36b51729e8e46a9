"""Repository utility functions for common database operations."""

import time
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, ParamSpec, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.logger import get_logger
from core.wide_event import set_wide_event_fields

logger = get_logger(__name__)

# Threshold for logging slow queries (milliseconds)
SLOW_QUERY_THRESHOLD_MS = 500

P = ParamSpec("P")
R = TypeVar("R")


def log_slow_query(
    operation_name: str,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Decorator recording slow or failing repository operations on the wide event.

    Exceptions are re-raised unchanged.

    Usage:
        @log_slow_query("user.upsert")
        async def upsert(self, user_id: str, **fields) -> User:
            ...
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            start_time = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                set_wide_event_fields(
                    db_query_error=True,
                    db_operation=operation_name,
                    db_duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                    db_error_type=type(e).__name__,
                )
                raise
            duration_ms = (time.perf_counter() - start_time) * 1000
            if duration_ms > SLOW_QUERY_THRESHOLD_MS:
                logger.warning(
                    "db.query.slow",
                    operation=operation_name,
                    duration_ms=round(duration_ms, 2),
                )
                set_wide_event_fields(
                    db_slow_query=True,
                    db_operation=operation_name,
                    db_duration_ms=round(duration_ms, 2),
                )
            return result

        return wrapper

    return decorator


async def upsert_on_conflict[T](
    db: AsyncSession,
    model: type[T],
    values: dict[str, Any],
    index_elements: list[str],
    update_fields: list[str],
) -> T:
    """Insert a row or overwrite ``update_fields`` when ``index_elements`` match.

    Uses INSERT ... ON CONFLICT DO UPDATE on PostgreSQL and SQLite, and a
    get-then-write fallback elsewhere. Returns the row as stored.

    Note:
        Does NOT commit. Caller owns the transaction.

    Warning:
        Column.onupdate triggers are NOT applied during ON CONFLICT DO UPDATE.
        Include 'updated_at' in both `values` and `update_fields` yourself.
    """
    update_set = {field: values[field] for field in update_fields if field in values}
    if not update_set:
        raise ValueError(
            f"No valid update fields: update_fields={update_fields} "
            f"but values only contains keys {list(values.keys())}"
        )

    bind = db.get_bind()
    dialect = bind.dialect.name if bind else ""

    if dialect in ("postgresql", "sqlite"):
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        else:
            from sqlalchemy.dialects.sqlite import insert

        stmt = (
            insert(model)
            .values(**values)
            .on_conflict_do_update(index_elements=index_elements, set_=update_set)
        )
        await db.execute(stmt)
    else:
        key = {name: values[name] for name in index_elements}
        existing = await db.get(model, tuple(key.values()))
        if existing is None:
            db.add(model(**values))
        else:
            for field, value in update_set.items():
                setattr(existing, field, value)
        await db.flush()

    # Re-read so objects already in the identity map reflect the new row
    conditions = [getattr(model, name) == values[name] for name in index_elements]
    result = await db.execute(
        select(model).where(*conditions).execution_options(populate_existing=True)
    )
    return result.scalar_one()
