"""HTTP surface of the auth backend: one versioned set of blueprints."""

from __future__ import annotations

from flask import Flask


def init_app(app: Flask) -> None:
    """
    Mount every v1 blueprint under ``{API_BASE_PREFIX}/v1``.

    Health mounts at the version root; the others add one path segment
    (``/auth``, ``/users``, ``/dashboard``).
    """
    from frends.api.v1 import API_VERSION, REGISTRY

    root = f"{app.config.get('API_BASE_PREFIX', '/api').rstrip('/')}/{API_VERSION}"
    for bp, segment in REGISTRY:
        app.register_blueprint(bp, url_prefix=root + segment)


__all__ = ["init_app"]
