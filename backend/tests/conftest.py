"""Pytest fixtures configuring an isolated transactional database layer.

Each test runs inside a SAVEPOINT-backed transaction against an in-memory
SQLite database so data changes never leak between cases. Service commits
release a SAVEPOINT; the outer transaction is rolled back at teardown.
"""

from __future__ import annotations

import os

import pytest
from sqlalchemy import event
from sqlalchemy.orm import scoped_session, sessionmaker

from frends.core.config import TestingConfig
from frends.core.extensions import db as _db
from frends.factory import create_app
from frends.services._shared.ports import InMemoryMailer


@pytest.fixture(scope="session")
def app():
    """Create a Flask application configured for testing.

    Returns
    -------
    flask.Flask
        Application instance with :class:`TestingConfig` applied and logging
        noise reduced.
    """
    # Ensure env-based config does not leak into tests
    os.environ.pop("DATABASE_URL", None)
    app = create_app(TestingConfig)
    app.logger.setLevel("WARNING")
    return app


@pytest.fixture(scope="session")
def db(app):
    """Create database tables once per test session.

    Notes
    -----
    pysqlite does not emit ``BEGIN`` itself, which breaks SAVEPOINT nesting.
    The listeners below hand transaction control to SQLAlchemy.
    """
    with app.app_context():
        engine = _db.engine

        @event.listens_for(engine, "connect")
        def _disable_pysqlite_begin(dbapi_connection, connection_record):  # pragma: no cover
            dbapi_connection.isolation_level = None

        @event.listens_for(engine, "begin")
        def _emit_begin(conn):  # pragma: no cover
            conn.exec_driver_sql("BEGIN")

        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope="session")
def connection(db):
    """Keep a dedicated DBAPI connection open for the whole session."""
    conn = db.engine.connect()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="function")
def session(db, connection):
    """Provide a SQLAlchemy session wrapped in a nested transaction.

    Yields
    ------
    sqlalchemy.orm.scoping.scoped_session
        Scoped session bound to the shared connection; every ``commit()``
        issued by application code only releases a SAVEPOINT, and the outer
        transaction is rolled back after the test.
    """
    # 1) Top-level transaction
    top_trans = connection.begin()

    # 2) Scoped session joined to it through SAVEPOINTs
    SessionFactory = sessionmaker(
        bind=connection,
        autoflush=False,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )
    scoped = scoped_session(SessionFactory)

    # 3) Monkey-patch db.session so app code uses this scoped session
    original_session = db.session
    db.session.remove()
    db.session = scoped

    try:
        yield scoped
    finally:
        scoped.remove()
        db.session = original_session
        top_trans.rollback()


# -- Hook up Factory Boy to pytest SQLAlchemy session --------------------------
@pytest.fixture(autouse=True)
def _factories_session(session):
    """Wire Factory Boy's session helper to the transactional session fixture."""
    from tests.factories import SQLAlchemySession

    SQLAlchemySession.set(session)
    yield


@pytest.fixture()
def mailer(app):
    """Swap the application mailer for an in-memory outbox."""
    original = app.extensions["mailer"]
    outbox = InMemoryMailer()
    app.extensions["mailer"] = outbox
    try:
        yield outbox
    finally:
        app.extensions["mailer"] = original


@pytest.fixture()
def client(app):
    """Flask test client that only sends the cookies a test passes explicitly."""
    return app.test_client(use_cookies=False)


@pytest.fixture()
def freeze_time():
    """Factory returning :func:`freezegun.freeze_time`.

    Examples
    --------
    >>> def test_with_frozen_time(freeze_time):
    ...     with freeze_time("2026-01-01 12:00:00") as frozen:
    ...         frozen.tick(60)
    """
    from freezegun import freeze_time as _freeze_time

    def _factory(target: str | None = None):
        return _freeze_time(target or "2026-01-01 12:00:00")

    return _factory
