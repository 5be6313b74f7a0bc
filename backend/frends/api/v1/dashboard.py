"""Role-gated landing endpoints."""

from __future__ import annotations

from flask import Blueprint

from frends.api.deps import current_identity, json_response, require_roles, timing
from frends.services._shared.policies.roles import LEVEL1, LEVEL3

bp = Blueprint("dashboard", __name__)


@bp.get("/home")
@require_roles(LEVEL1)
@timing
def home():
    identity = current_identity()
    return json_response({"data": {"page": "home", "username": identity.username}})


@bp.get("/admin")
@require_roles(LEVEL3)
@timing
def admin():
    identity = current_identity()
    return json_response({"data": {"page": "admin", "username": identity.username}})
