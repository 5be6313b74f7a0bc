"""Extension singletons shared by the app factory, services and CLI."""

from __future__ import annotations

import logging

import redis  # type: ignore[import-untyped]
from flask import Flask
from flask_jwt_extended import JWTManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import MetaData

log = logging.getLogger(__name__)

# Constraint names must be deterministic for batch migrations on SQLite.
NAMING_CONVENTION = {
    "pk": "pk_%(table_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
}

db = SQLAlchemy(
    metadata=MetaData(naming_convention=NAMING_CONVENTION),
    session_options={"autoflush": False},
)
migrate = Migrate(render_as_batch=True)
jwt = JWTManager()
# Storage and on/off switch come from RATELIMIT_* config keys.
limiter = Limiter(key_func=get_remote_address, headers_enabled=True)

_redis: redis.Redis | None = None


def init_app(app: Flask) -> None:
    """
    Bind every extension to ``app``.

    ``frends.models`` is imported here so the metadata is complete before
    Flask-Migrate inspects it.

    :raises RuntimeError: ``REDIS_URL`` is set but the server does not answer.
    """
    db.init_app(app)
    from frends import models  # noqa: F401

    migrate.init_app(app, db)
    jwt.init_app(app)
    limiter.init_app(app)
    _connect_redis(app)


def _connect_redis(app: Flask) -> None:
    global _redis

    url = app.config.get("REDIS_URL")
    if not url:
        _redis = None
        app.extensions.pop("redis_client", None)
        return

    client = redis.Redis.from_url(
        url, socket_timeout=float(app.config.get("REDIS_SOCKET_TIMEOUT", 2.0))
    )
    try:
        client.ping()
    except RedisError as exc:
        raise RuntimeError(f"Redis at {url!r} is unreachable") from exc
    log.info("redis.connected", extra={"event": "redis.connected"})
    _redis = client
    app.extensions["redis_client"] = client


def get_redis() -> redis.Redis:
    """Return the client opened by :func:`init_app`."""
    if _redis is None:
        raise RuntimeError("Redis is not configured; set REDIS_URL.")
    return _redis
