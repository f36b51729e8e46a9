"""Repository layer for database operations.

Repositories encapsulate all database statements, keeping services free of
SQL and routes free of both. They never commit; the request session does.
"""

from repositories.errors import (
    ForeignKeyViolationError,
    InvalidReferenceError,
    PersistenceError,
    UniqueConstraintViolationError,
    UnknownPersistenceError,
    classify_db_error,
)
from repositories.user_email_repository import UserEmailRepository
from repositories.user_repository import UserRepository
from repositories.utils import log_slow_query

__all__ = [
    "ForeignKeyViolationError",
    "InvalidReferenceError",
    "PersistenceError",
    "UniqueConstraintViolationError",
    "UnknownPersistenceError",
    "UserEmailRepository",
    "UserRepository",
    "classify_db_error",
    "log_slow_query",
]
