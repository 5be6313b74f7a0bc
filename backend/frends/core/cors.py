"""CORS policy for the credentialed API surface."""

from __future__ import annotations

from flask import Flask
from flask_cors import CORS

ALLOWED_HEADERS = ("Authorization", "Content-Type", "X-Request-ID")


def parse_origins(raw: str | None) -> list[str] | None:
    """
    Split a comma separated ``CORS_ORIGINS`` value.

    :returns: The explicit origins, or ``None`` for "any origin" (blank or ``*``).
    """
    origins = [o.strip() for o in (raw or "").split(",") if o.strip()]
    if not origins or origins == ["*"]:
        return None
    return origins


def init_app(app: Flask) -> None:
    """
    Apply CORS to ``/api/*``.

    The refresh cookie is cross-site, so credentials are only enabled for an
    explicit origin list. With a wildcard the API stays reachable but browsers
    will never attach the session cookie.
    """
    origins = parse_origins(app.config.get("CORS_ORIGINS"))
    CORS(
        app,
        resources={r"/api/*": {"origins": origins or "*"}},
        supports_credentials=origins is not None,
        allow_headers=list(ALLOWED_HEADERS),
        expose_headers=["X-Request-ID"],
        max_age=app.config.get("CORS_MAX_AGE", 600),
    )
