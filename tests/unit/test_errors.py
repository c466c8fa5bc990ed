"""Unit tests for error translation and configuration helpers."""
import pytest

from tableside.api.errors import http_error
from tableside.core.errors import (
    EmptyCartError,
    InvalidTransitionError,
    OrderConflictError,
    OrderNotFoundError,
    OrderingError,
    StorageError,
)
from tableside.db.database import async_database_url


class TestHttpError:
    """Domain errors map to HTTP status codes."""

    @pytest.mark.parametrize(
        "error, status_code",
        [
            (EmptyCartError(), 422),
            (OrderNotFoundError(1), 404),
            (InvalidTransitionError("ready", "pending"), 409),
            (OrderConflictError(1, 1, 2), 409),
            (StorageError("down"), 503),
            (OrderingError("other"), 400),
            (RuntimeError("bug"), 500),
        ],
    )
    def test_status_codes(self, error, status_code):
        assert http_error("TEST", error).status_code == status_code

    def test_validation_detail_lists_errors(self):
        exc = http_error("TEST", EmptyCartError())

        assert exc.detail == {"message": "Cart is empty", "errors": ["Cart is empty"]}


class TestDatabaseUrl:
    @pytest.mark.parametrize(
        "url, expected",
        [
            ("postgresql://u:p@db/tableside", "postgresql+asyncpg://u:p@db/tableside"),
            ("sqlite:///./tableside.db", "sqlite+aiosqlite:///./tableside.db"),
            ("sqlite+aiosqlite:///:memory:", "sqlite+aiosqlite:///:memory:"),
        ],
    )
    def test_async_driver(self, url, expected):
        assert async_database_url(url) == expected
