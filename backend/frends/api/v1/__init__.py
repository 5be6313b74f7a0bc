"""Version 1 routes of the auth backend."""

from __future__ import annotations

from flask import Blueprint

API_VERSION = "v1"

from .auth import bp as auth_bp  # noqa: E402
from .dashboard import bp as dashboard_bp  # noqa: E402
from .health import bp as health_bp  # noqa: E402
from .users import bp as users_bp  # noqa: E402

# (blueprint, path segment appended to /api/v1)
REGISTRY: list[tuple[Blueprint, str]] = [
    (health_bp, ""),
    (auth_bp, "/auth"),
    (users_bp, "/users"),
    (dashboard_bp, "/dashboard"),
]
