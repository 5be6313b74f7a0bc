"""Health check endpoint."""

from __future__ import annotations

from flask import Blueprint, current_app
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from frends.api.deps import json_response, timing
from frends.core.extensions import db

bp = Blueprint("health", __name__)


@bp.get("/health")
@timing
def healthcheck():
    """Return application, database and Redis health information."""

    db_status = "ok"
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError:  # pragma: no cover - depends on DB backend
        current_app.logger.exception("healthcheck.db_error")
        db_status = "fail"

    redis_status = "disabled"
    client = current_app.extensions.get("redis_client")
    if client is not None:
        try:
            client.ping()
            redis_status = "ok"
        except RedisError:  # pragma: no cover - depends on Redis availability
            current_app.logger.exception("healthcheck.redis_error")
            redis_status = "fail"

    payload = {
        "status": "ok" if "fail" not in (db_status, redis_status) else "degraded",
        "db": db_status,
        "redis": redis_status,
        "refresh_store": current_app.config.get("REFRESH_TOKEN_STORE", "sql"),
        "version": current_app.config.get("APP_VERSION", "dev"),
    }
    return json_response(payload)
