"""Shared test fixtures for all test modules."""

import contextlib
import os
import tempfile

import pytest
from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool
from starlette.testclient import TestClient

import hookcatch.models  # noqa: F401  (registers tables on Base.metadata)
from hookcatch.core import database as db_module
from hookcatch.core.background import BackgroundTaskRunner
from hookcatch.core.config import Settings
from hookcatch.core.context import AppContext
from hookcatch.core.database import Base, enable_sqlite_foreign_keys, get_db
from hookcatch.services.embeddings import HashingEmbedder
from hookcatch.services.object_store import LocalObjectStore

# Background persistence and indexing write from worker threads while
# requests read on the event loop, so every session gets its own connection
# to a throwaway database file. WAL lets readers and the writer overlap.
_test_db_path = os.path.join(tempfile.mkdtemp(prefix="hookcatch-tests-"), "test.db")
_test_engine = create_engine(
    f"sqlite:///{_test_db_path}",
    connect_args={"check_same_thread": False, "timeout": 30},
    poolclass=NullPool,
)
enable_sqlite_foreign_keys(_test_engine)


@event.listens_for(_test_engine, "connect")
def _use_wal(dbapi_connection, connection_record):  # type: ignore[no-untyped-def]
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


_TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_test_engine)

TEST_BASE_URL = "http://testserver"
TEST_PRESIGN_SECRET = "test-presign-secret"
TEST_EMBEDDING_DIMENSIONS = 64


@pytest.fixture(autouse=True)
def setup_database():
    """Create tables before each test and truncate all data after.

    Patches the module-level engine and SessionLocal so all application code
    uses the test database. Clears data after each test.
    """
    # Patch module-level engine and session factory
    original_engine = db_module.engine
    original_session = db_module.SessionLocal
    db_module.engine = _test_engine
    db_module.SessionLocal = _TestSessionLocal

    Base.metadata.create_all(bind=_test_engine)

    yield
    with _test_engine.connect() as conn:
        conn.execute(text("PRAGMA foreign_keys = OFF"))
        for table in reversed(Base.metadata.sorted_tables):
            with contextlib.suppress(OperationalError):
                conn.execute(table.delete())
        conn.execute(text("PRAGMA foreign_keys = ON"))
        conn.commit()

    # Restore originals
    db_module.engine = original_engine
    db_module.SessionLocal = original_session


@pytest.fixture
def db_session():
    gen = get_db()
    db = next(gen)
    try:
        yield db
    finally:
        for _ in gen:
            pass


@pytest.fixture
def test_settings(tmp_path):
    return Settings(
        APP_BASE_URL=TEST_BASE_URL,
        STORAGE_BACKEND="local",
        STORAGE_LOCAL_ROOT=str(tmp_path / "objects"),
        PRESIGN_SECRET=TEST_PRESIGN_SECRET,
        EMBEDDING_BACKEND="hashing",
        EMBEDDING_DIMENSIONS=TEST_EMBEDDING_DIMENSIONS,
        INDEXING_QUEUE="local",
        SHUTDOWN_DRAIN_TIMEOUT_SECONDS=5.0,
    )


@pytest.fixture
def object_store(test_settings):
    return LocalObjectStore(
        test_settings.STORAGE_LOCAL_ROOT,
        presign_secret=TEST_PRESIGN_SECRET,
        base_url=TEST_BASE_URL,
    )


@pytest.fixture
def embedder():
    return HashingEmbedder(TEST_EMBEDDING_DIMENSIONS)


@pytest.fixture
def app_context(test_settings, object_store, embedder):
    return AppContext(
        settings=test_settings,
        object_store=object_store,
        embedder=embedder,
        tasks=BackgroundTaskRunner("test"),
    )


@contextlib.contextmanager
def running_app(context: AppContext):
    """Start the app with ``context``; background work is drained on exit."""
    from hookcatch.main import app

    app.state.context = context
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.state.context = None


@pytest.fixture
def client(app_context):
    with running_app(app_context) as test_client:
        yield test_client


@pytest.fixture
def drain(client, app_context):
    """Wait for background work submitted by earlier requests to finish."""

    def _drain() -> int:
        return client.portal.call(app_context.tasks.drain, 5.0)

    return _drain
