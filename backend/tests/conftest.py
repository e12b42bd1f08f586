"""Pytest fixtures configuring an isolated transactional database layer.

Each test runs inside a SAVEPOINT-backed transaction against an in-memory
SQLite database so data changes never leak between cases. Code under test may
``commit()``/``rollback()`` freely: the session joins the outer transaction
with ``create_savepoint`` so those calls only release or roll back a
SAVEPOINT.
"""

from __future__ import annotations

import os
from datetime import timedelta

import pytest
from sqlalchemy import event
from sqlalchemy.orm import scoped_session, sessionmaker

from campus_auth.core.config import TestingConfig
from campus_auth.core.extensions import db as _db
from campus_auth.factory import create_app
from campus_auth.infra.jwt.pyjwt_token_codec import JWTTokenCodec
from campus_auth.services._shared.ports import InMemoryRefreshTokenStore

ACCESS_SECRET = "test-access-secret-0123456789abcdef"
REFRESH_SECRET = "test-refresh-secret-0123456789abcdef"


class TestConfig(TestingConfig):
    """Testing configuration for creating the Flask app.

    Notes
    -----
    - Uses an in-memory SQLite database for speed.
    - Fixed, distinct signing secrets.
    - Rate limiting off so suites can log in repeatedly.
    """

    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    JWT_ACCESS_SECRET = ACCESS_SECRET
    JWT_REFRESH_SECRET = REFRESH_SECRET
    JWT_ISSUER = None
    JWT_ACCESS_TTL = "15m"
    JWT_REFRESH_TTL = "14d"
    AUTH_REVOKE_CHAIN_ON_REUSE = False
    RATELIMIT_ENABLED = False
    LOG_LEVEL = "WARNING"


def _enable_sqlite_savepoints(engine) -> None:
    """Let pysqlite honour SAVEPOINT by emitting BEGIN ourselves."""

    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def _do_connect(dbapi_connection, connection_record):  # pragma: no cover - driver hook
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _do_begin(conn):  # pragma: no cover - driver hook
        conn.exec_driver_sql("BEGIN")


@pytest.fixture(scope="session")
def app():
    """Create a Flask application configured for testing."""
    # Ensure env-based config does not leak into tests
    os.environ.pop("DATABASE_URL", None)
    app = create_app(TestConfig)
    app.logger.setLevel("WARNING")
    return app


@pytest.fixture(scope="session")
def db(app):
    """Create database tables once per test session."""
    with app.app_context():
        _enable_sqlite_savepoints(_db.engine)
        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope="session")
def connection(db):
    """Keep a dedicated connection open for the whole session."""
    conn = db.engine.connect()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="function")
def session(db, connection):
    """Provide a scoped session joined to a per-test outer transaction.

    ``db.session`` is swapped for the scoped session so services, Units of
    Work and repositories all run on it; everything is rolled back at the end.
    """
    top_trans = connection.begin()

    SessionFactory = sessionmaker(bind=connection, join_transaction_mode="create_savepoint")
    scoped = scoped_session(SessionFactory)

    original_session = db.session
    db.session = scoped

    try:
        yield scoped
    finally:
        scoped.remove()
        db.session = original_session
        top_trans.rollback()


@pytest.fixture(scope="session")
def faker():
    """Provide a :class:`faker.Faker` instance seeded for deterministic tests."""
    from faker import Faker

    fk = Faker()
    Faker.seed(1337)
    return fk


# -- Hook up Factory Boy to pytest SQLAlchemy session --------------------------
@pytest.fixture(autouse=True)
def _factories_session(request):
    """Wire Factory Boy's session helper to the transactional session fixture."""
    from tests.factories import SQLAlchemySession

    if "session" in request.fixturenames:
        SQLAlchemySession.set(request.getfixturevalue("session"))
    yield
    SQLAlchemySession.set(None)


# -- Session engine building blocks ------------------------------------------


@pytest.fixture()
def codec() -> JWTTokenCodec:
    """Codec with the test secrets."""
    return JWTTokenCodec(access_secret=ACCESS_SECRET, refresh_secret=REFRESH_SECRET)


@pytest.fixture()
def memory_store() -> InMemoryRefreshTokenStore:
    """Fresh in-memory refresh store."""
    return InMemoryRefreshTokenStore()


@pytest.fixture()
def ttl() -> timedelta:
    return timedelta(days=14)


@pytest.fixture()
def client(app, session):
    """Flask test client running on the transactional session."""
    return app.test_client()
