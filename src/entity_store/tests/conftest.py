"""
Core pytest configuration for the entire test suite.

Provides the database engine/session fixtures and installs the package logging
configuration. Domain fixtures (repositories, services, sample entities) live in
tests/test_fixtures/ and are imported at the bottom of this module so every test
can use them without importing.
"""

from __future__ import annotations

# -------------------------------
# Standard library imports
# -------------------------------
import logging
from typing import AsyncGenerator

# -------------------------------
# Early logging tuning (IMPORTANT)
# -------------------------------
# Silence noisy third-party loggers before anything imports them.
NOISY_LOGGERS = (
    "faker",
    "faker.factory",
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.engine.Engine",
    "aiosqlite",
    "asyncio",
)
for _name in NOISY_LOGGERS:
    logging.getLogger(_name).setLevel(logging.WARNING)

# -------------------------------
# Third-party / project imports
# -------------------------------
import pytest
from pytest import FixtureRequest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from entity_store.config import Settings
from entity_store.core.logging.builder import setup_logging
from entity_store.database.base import Base
from entity_store.database.session import create_session_factory
from .test_fixtures import models  # noqa: F401 - registers Author/Book on Base.metadata

# In-memory SQLite shared by every connection of one engine (StaticPool).
TEST_DATABASE_URL = "sqlite+aiosqlite://"

settings = Settings(ENV="testing", DATABASE_URL=TEST_DATABASE_URL, LOG_FORMAT="text", LOG_TO_STDOUT=True)

logger = logging.getLogger(__name__)


@pytest.fixture(scope="session", autouse=True)
def configure_logging(request: FixtureRequest):
    """
    Install the package logging configuration for the whole session.

    dictConfig replaces root handlers, so pytest's capture handler is re-attached
    afterwards to keep `caplog.records` populated.
    """
    setup_logging(settings)

    caplog_plugin = request.config.pluginmanager.getplugin("logging-plugin")
    handler = getattr(caplog_plugin, "caplog_handler", None)
    if handler is not None:
        logging.getLogger().addHandler(handler)

    yield


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# ------------------------------------------------------------------------------------------------
# DATABASE FIXTURES
# ------------------------------------------------------------------------------------------------


@pytest.fixture()
async def async_engine() -> AsyncGenerator[AsyncEngine, None]:
    """
    A fresh in-memory database per test, schema created from Base.metadata.
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture()
async def db_session(async_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """
    Session from the package's own session factory (expire_on_commit=False).
    Anything left uncommitted is rolled back at teardown.
    """
    session_factory = create_session_factory(async_engine)
    async with session_factory() as session:
        yield session
        await session.rollback()


# Repository / service test fixtures
from .test_fixtures.repository_fixtures import (  # noqa: E402
    author_repo,
    book_repo,
    sample_author_data,
    create_author,
    created_author,
    multiple_authors,
    author_with_books,
    hook_calls,
    recording_hooks,
    author_service,
)
