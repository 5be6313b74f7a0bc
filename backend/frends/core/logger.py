"""
JSON logging for the auth backend.

Every record carries the request id and, once the Authorization Gate has run,
the id of the authenticated actor. Tokens and passwords never reach the log:
only whitelisted ``extra=`` attributes are rendered.
"""

from __future__ import annotations

import json
import logging
import re
import sys
import time
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from flask import Flask, g, has_request_context, request

REQUEST_ID_HEADER = "X-Request-ID"
INBOUND_ID_HEADERS = ("X-Request-ID", "X-Correlation-ID")

# Client supplied ids are echoed into logs and headers; keep them printable.
_SAFE_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")

EXTRA_KEYS = (
    "event",
    "user_id",
    "actor_id",
    "revoked",
    "endpoint",
    "elapsed_ms",
    "method",
    "path",
    "status",
)


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(
                timespec="milliseconds"
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        payload.update(
            {key: getattr(record, key) for key in EXTRA_KEYS if hasattr(record, key)}
        )
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class RequestContextFilter(logging.Filter):
    """Stamp records with the request id and the authenticated actor."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not has_request_context():
            record.request_id = None
            return True
        record.request_id = ensure_request_id()
        identity = g.get("identity")
        if identity is not None and not hasattr(record, "actor_id"):
            record.actor_id = identity.user_id
        return True


def ensure_request_id() -> str:
    """
    Return the id correlating the current request's log lines.

    An inbound ``X-Request-ID``/``X-Correlation-ID`` is reused when it looks
    sane; otherwise a UUID4 is minted. Outside a request a fresh id is
    returned each call.
    """
    if not has_request_context():
        return str(uuid4())
    current = g.get("request_id")
    if current:
        return current
    inbound = next(
        (request.headers[h] for h in INBOUND_ID_HEADERS if request.headers.get(h)), None
    )
    g.request_id = inbound if inbound and _SAFE_REQUEST_ID.match(inbound) else str(uuid4())
    return g.request_id


def configure_logging(level: str | int = "INFO") -> None:
    """Route the root logger to stdout through :class:`JSONFormatter`."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(RequestContextFilter())

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)


def init_app(app: Flask) -> None:
    """Install request id propagation and a one-line access log per request."""
    access_log = logging.getLogger("frends.access")
    app.logger.addFilter(RequestContextFilter())

    @app.before_request
    def _start_request() -> None:
        g.pop("request_id", None)
        ensure_request_id()
        g.request_started = time.perf_counter()

    @app.after_request
    def _finish_request(response):
        response.headers.setdefault(REQUEST_ID_HEADER, ensure_request_id())
        started = g.get("request_started")
        # Route templates keep emailed tokens out of the log.
        path = request.url_rule.rule if request.url_rule is not None else request.path
        access_log.info(
            "%s %s %s",
            request.method,
            path,
            response.status_code,
            extra={
                "method": request.method,
                "path": path,
                "status": response.status_code,
                "elapsed_ms": round((time.perf_counter() - started) * 1000, 2)
                if started is not None
                else None,
            },
        )
        return response


__all__ = ["JSONFormatter", "configure_logging", "ensure_request_id", "init_app"]
