"""Classification of database write failures.

Driver errors are mapped by their stable codes (PostgreSQL SQLSTATE, SQLite
extended result codes), never by message text. Register additional codes
with ``register_persistence_error``.
"""

from sqlalchemy.exc import DBAPIError


class PersistenceError(Exception):
    """Base class for classified database write failures."""

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.code = code


class UniqueConstraintViolationError(PersistenceError):
    """A unique column already holds the value being written."""


class InvalidReferenceError(PersistenceError):
    """A value (usually a key) is malformed or missing where one is required."""


class ForeignKeyViolationError(PersistenceError):
    """A referenced row does not exist."""


class UnknownPersistenceError(PersistenceError):
    """Any database failure without a known classification."""


_ERROR_CODES: dict[str, type[PersistenceError]] = {
    # PostgreSQL SQLSTATE
    "23505": UniqueConstraintViolationError,  # unique_violation
    "23503": ForeignKeyViolationError,  # foreign_key_violation
    "23502": InvalidReferenceError,  # not_null_violation
    "22P02": InvalidReferenceError,  # invalid_text_representation
    # SQLite extended result codes
    "2067": UniqueConstraintViolationError,  # SQLITE_CONSTRAINT_UNIQUE
    "1555": UniqueConstraintViolationError,  # SQLITE_CONSTRAINT_PRIMARYKEY
    "787": ForeignKeyViolationError,  # SQLITE_CONSTRAINT_FOREIGNKEY
    "1299": InvalidReferenceError,  # SQLITE_CONSTRAINT_NOTNULL
}


def register_persistence_error(code: str, error_class: type[PersistenceError]) -> None:
    """Map an additional driver error code to a persistence error class."""
    _ERROR_CODES[code] = error_class


def extract_error_code(error: DBAPIError) -> str | None:
    """Pull the driver's error code out of a wrapped DBAPI exception.

    asyncpg errors surface ``sqlstate`` on the SQLAlchemy adapter exception
    or on its ``__cause__``; sqlite3 exposes ``sqlite_errorcode``.
    """
    orig = error.orig
    for candidate in (orig, getattr(orig, "__cause__", None)):
        if candidate is None:
            continue
        for attr in ("sqlstate", "pgcode", "sqlite_errorcode"):
            value = getattr(candidate, attr, None)
            if value is not None:
                return str(value)
    return None


def classify_db_error(error: DBAPIError) -> PersistenceError:
    """Translate a SQLAlchemy DBAPI error into a PersistenceError."""
    code = extract_error_code(error)
    error_class = _ERROR_CODES.get(code or "", UnknownPersistenceError)
    return error_class(type(error.orig).__name__, code=code)
