"""Account administration endpoints."""

from __future__ import annotations

from flask import Blueprint, request

from frends.api.deps import (
    build_account_service,
    current_identity,
    json_response,
    require_auth,
    require_roles,
    timing,
)
from frends.schemas import RolesUpdateSchema, UserSchema
from frends.services._shared.policies.roles import ADMIN_ROLES, LEVEL3

bp = Blueprint("users", __name__)

user_schema = UserSchema()
roles_schema = RolesUpdateSchema()


@bp.get("/<int:user_id>")
@require_auth
@timing
def get_user(user_id: int):
    """Return an account. Owners see themselves; admins see anyone."""

    identity = current_identity()
    service = build_account_service()
    service.ensure_owner_or_roles(identity.user_id, user_id, identity.roles, roles=ADMIN_ROLES)
    return json_response({"data": user_schema.dump(service.get_user(user_id))})


@bp.patch("/<int:user_id>/deactivate")
@require_auth
@timing
def deactivate(user_id: int):
    """Soft-delete an account (self or admin) and close its sessions."""

    identity = current_identity()
    user = build_account_service().deactivate(
        user_id, actor_id=identity.user_id, actor_roles=identity.roles
    )
    return json_response({"data": user_schema.dump(user)})


@bp.patch("/<int:user_id>/reactivate")
@require_roles(LEVEL3)
@timing
def reactivate(user_id: int):
    user = build_account_service().reactivate(user_id)
    return json_response({"data": user_schema.dump(user)})


@bp.put("/<int:user_id>/roles")
@require_roles(LEVEL3)
@timing
def set_roles(user_id: int):
    """Replace the role tags of an account."""

    data = roles_schema.load(request.get_json(silent=True) or {})
    user = build_account_service().set_roles(user_id, data["roles"])
    return json_response({"data": user_schema.dump(user)})
