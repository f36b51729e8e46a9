"""Tests for database error classification."""

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from repositories.errors import (
    _ERROR_CODES,
    ForeignKeyViolationError,
    InvalidReferenceError,
    PersistenceError,
    UniqueConstraintViolationError,
    UnknownPersistenceError,
    classify_db_error,
    extract_error_code,
    register_persistence_error,
)

pytestmark = pytest.mark.unit


class FakeDriverError(Exception):
    def __init__(self, message: str = "driver error", **attrs):
        super().__init__(message)
        for name, value in attrs.items():
            setattr(self, name, value)


def _wrap(orig: Exception) -> IntegrityError:
    return IntegrityError("INSERT INTO users ...", {}, orig)


class TestExtractErrorCode:
    def test_reads_sqlstate(self):
        assert extract_error_code(_wrap(FakeDriverError(sqlstate="23505"))) == "23505"

    def test_reads_pgcode(self):
        assert extract_error_code(_wrap(FakeDriverError(pgcode="23503"))) == "23503"

    def test_reads_sqlite_errorcode_as_string(self):
        error = _wrap(FakeDriverError(sqlite_errorcode=2067))

        assert extract_error_code(error) == "2067"

    def test_reads_code_from_cause(self):
        orig = FakeDriverError("adapter error")
        orig.__cause__ = FakeDriverError("asyncpg error", sqlstate="23502")

        assert extract_error_code(_wrap(orig)) == "23502"

    def test_returns_none_without_code(self):
        assert extract_error_code(_wrap(FakeDriverError())) is None


class TestClassifyDbError:
    @pytest.mark.parametrize(
        ("attrs", "expected"),
        [
            ({"sqlstate": "23505"}, UniqueConstraintViolationError),
            ({"sqlstate": "23503"}, ForeignKeyViolationError),
            ({"sqlstate": "23502"}, InvalidReferenceError),
            ({"sqlstate": "22P02"}, InvalidReferenceError),
            ({"sqlite_errorcode": 2067}, UniqueConstraintViolationError),
            ({"sqlite_errorcode": 1555}, UniqueConstraintViolationError),
            ({"sqlite_errorcode": 787}, ForeignKeyViolationError),
            ({"sqlite_errorcode": 1299}, InvalidReferenceError),
        ],
    )
    def test_known_codes(self, attrs, expected):
        result = classify_db_error(_wrap(FakeDriverError(**attrs)))

        assert type(result) is expected
        assert isinstance(result, PersistenceError)

    def test_unknown_code(self):
        result = classify_db_error(_wrap(FakeDriverError(sqlstate="40001")))

        assert type(result) is UnknownPersistenceError
        assert result.code == "40001"

    def test_no_code(self):
        error = OperationalError("SELECT 1", {}, FakeDriverError("connection reset"))

        result = classify_db_error(error)

        assert type(result) is UnknownPersistenceError
        assert result.code is None

    def test_message_names_driver_error_not_its_text(self):
        error = _wrap(FakeDriverError("Key (email)=(ada@example.com)", sqlstate="23505"))

        result = classify_db_error(error)

        assert str(result) == "FakeDriverError"
        assert "ada@example.com" not in str(result)


class TestRegisterPersistenceError:
    @pytest.fixture(autouse=True)
    def _restore_registry(self):
        saved = dict(_ERROR_CODES)
        yield
        _ERROR_CODES.clear()
        _ERROR_CODES.update(saved)

    def test_registered_code_is_classified(self):
        register_persistence_error("23514", InvalidReferenceError)

        result = classify_db_error(_wrap(FakeDriverError(sqlstate="23514")))

        assert type(result) is InvalidReferenceError

    def test_registration_overrides_existing_code(self):
        register_persistence_error("23503", InvalidReferenceError)

        result = classify_db_error(_wrap(FakeDriverError(sqlstate="23503")))

        assert type(result) is InvalidReferenceError
