"""Shared API helpers for authorization, service wiring and responses."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from datetime import timedelta
from typing import Any, TypeVar, cast

from flask import Response, current_app, g, jsonify, request
from flask_jwt_extended import get_jwt, verify_jwt_in_request

from frends.core.errors import Forbidden
from frends.core.logger import ensure_request_id
from frends.services._shared.base import ServiceContext
from frends.services._shared.policies.roles import check_roles
from frends.services._shared.ports import Mailer, RefreshTokenStore, TokenProvider
from frends.services.accounts.service import AccountService
from frends.services.auth.dto import AuthIdentity, AuthTokenConfig
from frends.services.auth.issuer import TokenIssuer
from frends.services.auth.service import AuthService

F = TypeVar("F", bound=Callable[..., Any])


# ------------------------------ Authorization --------------------------------


def _identity_from_claims(claims: dict[str, Any]) -> AuthIdentity:
    try:
        user_id = int(claims["sub"])
    except (KeyError, TypeError, ValueError):
        raise Forbidden("Invalid or expired token") from None
    roles = claims.get("roles") or []
    if not isinstance(roles, list):
        raise Forbidden("Invalid or expired token")
    return AuthIdentity(
        user_id=user_id,
        username=str(claims.get("username", "")),
        roles=frozenset(str(r) for r in roles),
    )


def require_auth(func: F) -> F:
    """Authorization Gate.

    Verifies the bearer access token and stores an :class:`AuthIdentity` on
    ``flask.g.identity``. No store lookup happens: the signed claims are
    trusted for the token's short lifetime. Failures are rendered by the
    callbacks in :mod:`frends.core.security`.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        verify_jwt_in_request(optional=False)
        g.identity = _identity_from_claims(get_jwt() or {})
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def require_roles(*allowed: str) -> Callable[[F], F]:
    """Role Check: admit callers holding at least one of ``allowed``.

    Applies the Authorization Gate first, so it can be used on its own.
    """
    allowed_set = frozenset(allowed)

    def decorator(func: F) -> F:
        @functools.wraps(func)
        @require_auth
        def wrapper(*args: Any, **kwargs: Any):
            check_roles(current_identity().roles, allowed_set)
            return func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator


def current_identity() -> AuthIdentity:
    """Return the identity placed by :func:`require_auth`."""
    return cast(AuthIdentity, g.identity)


# ------------------------------ Service wiring -------------------------------


def get_refresh_store() -> RefreshTokenStore:
    return cast(RefreshTokenStore, current_app.extensions["refresh_token_store"])


def get_mailer() -> Mailer:
    return cast(Mailer, current_app.extensions["mailer"])


def get_token_provider() -> TokenProvider:
    return cast(TokenProvider, current_app.extensions["token_provider"])


def token_config() -> AuthTokenConfig:
    """Build the token lifetimes from the application config."""
    cfg = current_app.config
    return AuthTokenConfig(
        access_expires=cfg["JWT_ACCESS_TOKEN_EXPIRES"],
        refresh_expires=cfg["REFRESH_TOKEN_EXPIRES"],
        email_verify_expires=cfg["EMAIL_VERIFY_TOKEN_EXPIRES"],
        password_reset_expires=cfg["PASSWORD_RESET_TOKEN_EXPIRES"],
        reuse_grace=timedelta(seconds=int(cfg.get("REFRESH_REUSE_GRACE_SECONDS", 10))),
    )


def build_issuer() -> TokenIssuer:
    return TokenIssuer(get_token_provider(), token_config())


def _ctx() -> ServiceContext:
    identity = getattr(g, "identity", None)
    return ServiceContext(
        actor_id=identity.user_id if identity else None,
        request_id=ensure_request_id(),
    )


def build_auth_service() -> AuthService:
    return AuthService(issuer=build_issuer(), refresh_store=get_refresh_store(), ctx=_ctx())


def build_account_service() -> AccountService:
    return AccountService(
        issuer=build_issuer(),
        refresh_store=get_refresh_store(),
        mailer=get_mailer(),
        frontend_url=current_app.config.get("FRONTEND_URL", "http://localhost:5173"),
        ctx=_ctx(),
    )


# ------------------------------- Responses -----------------------------------


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            request_endpoint = getattr(request, "endpoint", None)
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request_endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]
