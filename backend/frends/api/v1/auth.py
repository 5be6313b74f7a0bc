"""Authentication endpoints: session lifecycle, registration and recovery."""

from __future__ import annotations

from flask import Blueprint, Response, after_this_request, current_app, request

from frends.api.cookies import clear_refresh_cookie, read_refresh_cookie, set_refresh_cookie
from frends.api.deps import (
    build_account_service,
    build_auth_service,
    current_identity,
    json_response,
    require_auth,
    timing,
)
from frends.core.errors import Unauthorized
from frends.core.extensions import limiter
from frends.schemas import (
    IdentitySchema,
    LoginSchema,
    PasswordResetRequestSchema,
    PasswordResetSchema,
    RegisterSchema,
    SessionSchema,
    UserSchema,
)
from frends.services.accounts.dto import PasswordResetIn, RegisterIn
from frends.services.auth.dto import LoginIn, LogoutIn, RefreshIn

bp = Blueprint("auth", __name__)

login_schema = LoginSchema()
register_schema = RegisterSchema()
reset_request_schema = PasswordResetRequestSchema()
reset_schema = PasswordResetSchema()
session_schema = SessionSchema()
identity_schema = IdentitySchema()
user_schema = UserSchema()


def _auth_rate_limit() -> str:
    return str(current_app.config.get("AUTH_LOGIN_RATE_LIMIT", "5 per minute"))


def _payload() -> dict:
    return request.get_json(silent=True) or {}


# ------------------------------ Session --------------------------------------


@bp.post("/login")
@limiter.limit(_auth_rate_limit)
@timing
def login():
    """Verify credentials, return an access token and set the session cookie."""

    data = login_schema.load(_payload())
    session = build_auth_service().login(LoginIn(**data))
    response = json_response(session_schema.dump(session))
    return set_refresh_cookie(response, session.refresh_token)


@bp.post("/refresh")
@timing
def refresh():
    """Rotate the session cookie and return a new access token."""

    token = read_refresh_cookie()
    if not token:
        raise Unauthorized("Missing refresh token")

    @after_this_request
    def _drop_rejected_cookie(response: Response) -> Response:
        if response.status_code >= 400:
            clear_refresh_cookie(response)
        return response

    session = build_auth_service().refresh(RefreshIn(refresh_token=token))
    response = json_response(session_schema.dump(session))
    return set_refresh_cookie(response, session.refresh_token)


@bp.post("/logout")
@timing
def logout():
    """End the current session. Idempotent."""

    build_auth_service().logout(LogoutIn(refresh_token=read_refresh_cookie()))
    response = Response(status=204)
    return clear_refresh_cookie(response)


@bp.get("/me")
@require_auth
@timing
def me():
    """Return the identity carried by the bearer token."""

    return json_response({"data": identity_schema.dump(current_identity())})


# --------------------------- Registration ------------------------------------


@bp.post("/register")
@timing
def register():
    """Create an account and mail its verification link."""

    data = register_schema.load(_payload())
    user = build_account_service().register(RegisterIn(**data))
    return json_response({"data": user_schema.dump(user)}, status=201)


@bp.post("/verify-email/<token>")
@timing
def verify_email(token: str):
    user = build_account_service().verify_email(token)
    return json_response({"data": user_schema.dump(user)})


# --------------------------- Password reset ----------------------------------


@bp.post("/password-reset")
@limiter.limit(_auth_rate_limit)
@timing
def request_password_reset():
    """Mail a reset link. The answer never reveals whether the account exists."""

    data = reset_request_schema.load(_payload())
    build_account_service().request_password_reset(data["email"])
    return json_response(
        {"message": "If the address belongs to an account, a reset link has been sent."},
        status=202,
    )


@bp.post("/password-reset/<token>")
@timing
def reset_password(token: str):
    """Set a new password from a mailed link; every session is closed."""

    data = reset_schema.load(_payload())
    build_account_service().reset_password(
        PasswordResetIn(token=token, new_password=data["password"])
    )
    return clear_refresh_cookie(Response(status=204))
