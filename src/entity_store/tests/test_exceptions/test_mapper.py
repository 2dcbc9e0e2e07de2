import logging
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from entity_store.exceptions.base import (
    BadRequestError,
    ErrorKind,
    InternalError,
    NotFoundError,
    StoreError,
    is_store_error,
)
from entity_store.exceptions.integrity_classifier import (
    ConstraintKind,
    classify_integrity_error,
    extract_columns,
)
from entity_store.exceptions.mapper import (
    service_error_boundary,
    store_error_boundary,
    translate_adapter_error,
    translate_service_error,
)


class TestStoreErrors:

    def test_kinds_and_statuses(self):
        assert BadRequestError("x").kind is ErrorKind.BAD_REQUEST
        assert NotFoundError().kind is ErrorKind.NOT_FOUND
        assert InternalError("x").kind is ErrorKind.INTERNAL
        assert [e.http_status() for e in (BadRequestError("x"), NotFoundError(), InternalError("x"))] == [400, 404, 500]

    def test_payload_omits_empty_details(self):
        assert NotFoundError("Author: gone").to_payload() == {"detail": "Author: gone", "code": "not_found"}
        assert BadRequestError("bad", details=[{"field": "name"}]).to_payload()["details"] == [{"field": "name"}]

    def test_is_store_error(self):
        assert is_store_error(InternalError("x"))
        assert not is_store_error(ValueError("x"))
        assert not is_store_error(None)


class TestTranslation:

    @pytest.mark.parametrize("error", [BadRequestError("a"), NotFoundError("b"), InternalError("c")])
    def test_structured_errors_pass_through_both_layers(self, error):
        assert translate_adapter_error(error, "Author") is error
        assert translate_service_error(error, "Author") is error

    def test_statement_failure_is_internal_with_driver_message(self):
        exc = OperationalError("SELECT 1", {}, Exception("database is locked"))

        translated = translate_adapter_error(exc, "Author")

        assert isinstance(translated, InternalError)
        assert str(translated) == "Author: database is locked"
        assert translated.details is None

    def test_integrity_error_carries_classification(self):
        exc = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: authors.name"))

        translated = translate_adapter_error(exc, "Author")

        assert isinstance(translated, InternalError)
        assert translated.details == {"constraint_kind": "unique", "constraint": None, "fields": ["name"]}

    def test_unknown_error_is_bad_request_at_adapter_and_internal_at_service(self):
        exc = TypeError("unsupported operand")

        adapter = translate_adapter_error(exc, "Book")
        service = translate_service_error(exc, "Book")

        assert isinstance(adapter, BadRequestError)
        assert isinstance(service, InternalError)
        assert str(adapter) == str(service) == "Book: unsupported operand"


class TestIntegrityClassifier:

    @pytest.mark.parametrize(
        "message, kind",
        [
            ("UNIQUE constraint failed: authors.name", ConstraintKind.UNIQUE),
            ("NOT NULL constraint failed: books.title", ConstraintKind.NOT_NULL),
            ("FOREIGN KEY constraint failed", ConstraintKind.FOREIGN_KEY),
            ("CHECK constraint failed: positive_price", ConstraintKind.CHECK),
            ("something else entirely", ConstraintKind.UNKNOWN),
        ],
    )
    def test_sqlite_messages(self, message, kind):
        exc = IntegrityError("stmt", {}, Exception(message))

        assert classify_integrity_error(exc).constraint_kind is kind

    def test_postgres_sqlstate_wins_over_message(self):
        class PgError(Exception):
            sqlstate = "23503"
            diag = type("Diag", (), {"constraint_name": "fk_books_author_id_authors"})()

        exc = IntegrityError("stmt", {}, PgError("duplicate key value violates unique constraint"))

        diagnostic = classify_integrity_error(exc)

        assert diagnostic.constraint_kind is ConstraintKind.FOREIGN_KEY
        assert diagnostic.constraint == "fk_books_author_id_authors"

    @pytest.mark.parametrize(
        "message, columns",
        [
            ('null value in column "title" violates not-null constraint', ["title"]),
            ("DETAIL:  Key (email, name)=(a@b.c, x) already exists.", ["email", "name"]),
            ("UNIQUE constraint failed: authors.name, authors.email", ["name", "email"]),
            ("no columns here", None),
            ("", None),
        ],
    )
    def test_extract_columns(self, message, columns):
        assert extract_columns(message) == columns


@pytest.mark.asyncio
class TestErrorBoundaries:

    async def test_store_boundary_rolls_back_on_statement_failure(self):
        db = AsyncMock()

        with pytest.raises(InternalError) as exc_info:
            async with store_error_boundary(db, "Author", "find_one_by_id"):
                raise OperationalError("SELECT", {}, Exception("no such table: authors"))

        db.rollback.assert_awaited_once()
        assert isinstance(exc_info.value.__cause__, OperationalError)

    async def test_store_boundary_does_not_roll_back_for_caller_errors(self):
        db = AsyncMock()
        db.is_active = True

        with pytest.raises(BadRequestError):
            async with store_error_boundary(db, "Author"):
                raise ValueError("bad filter")

        db.rollback.assert_not_awaited()

    async def test_store_boundary_rolls_back_caller_error_that_left_transaction_inactive(self):
        """
        Behavior:
                - A non-statement failure (e.g. a bind TypeError during flush) leaves the session inactive.
                - The boundary still reports BadRequest, but rolls the session back first.
        """
        db = AsyncMock()
        db.is_active = False

        with pytest.raises(BadRequestError):
            async with store_error_boundary(db, "Author", "save"):
                raise TypeError("SQLite DateTime type only accepts Python datetime")

        db.rollback.assert_awaited_once()

    async def test_service_boundary_logs_unexpected_errors(self, caplog):
        caplog.set_level(logging.ERROR, logger="entity_store.exceptions.mapper")

        with pytest.raises(InternalError):
            async with service_error_boundary("Author", "save"):
                raise RuntimeError("kaput")

        assert any(record.levelno == logging.ERROR and "Author.save" in record.getMessage() for record in caplog.records)

    async def test_service_boundary_reraises_store_errors_unchanged(self):
        original = StoreError("Author: custom", kind=ErrorKind.NOT_FOUND)

        with pytest.raises(StoreError) as exc_info:
            async with service_error_boundary("Author", "find_one_by_id"):
                raise original

        assert exc_info.value is original
        assert exc_info.value.kind is ErrorKind.NOT_FOUND
