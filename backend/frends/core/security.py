"""flask-jwt-extended callbacks shaping the Authorization Gate responses."""

from __future__ import annotations

import logging
from typing import Any

from flask import Response
from flask_jwt_extended import JWTManager

from frends.core.errors import Forbidden, Unauthorized, problem_response

log = logging.getLogger(__name__)

INVALID_TOKEN_MESSAGE = "Invalid or expired token"


def _unauthorized(reason: str) -> Response:
    log.info("auth.gate.missing_token", extra={"event": "auth.gate.missing_token"})
    return problem_response(Unauthorized("Missing access token").to_problem())


def _forbidden(reason: str) -> Response:
    # The reason is logged, never returned.
    log.info("auth.gate.rejected: %s", reason, extra={"event": "auth.gate.rejected"})
    return problem_response(Forbidden(INVALID_TOKEN_MESSAGE).to_problem())


def register_jwt_callbacks(jwt: JWTManager) -> None:
    """Install the gate's error semantics on a :class:`JWTManager`.

    * A request without a bearer credential is ``401 unauthorized``.
    * A credential that is present but malformed, expired, of the wrong
      type, or signed with another secret is ``403 forbidden``. The client is
      expected to go through the refresh flow.

    :param jwt: Extension instance shared by the application.
    """

    @jwt.unauthorized_loader
    def _missing(reason: str) -> Response:
        return _unauthorized(reason)

    @jwt.invalid_token_loader
    def _invalid(reason: str) -> Response:
        return _forbidden(reason)

    @jwt.expired_token_loader
    def _expired(jwt_header: dict[str, Any], jwt_payload: dict[str, Any]) -> Response:
        return _forbidden("token expired")

    @jwt.token_verification_failed_loader
    def _verification_failed(jwt_header: dict[str, Any], jwt_payload: dict[str, Any]) -> Response:
        return _forbidden("claims verification failed")

    @jwt.user_lookup_error_loader
    def _user_lookup_failed(jwt_header: dict[str, Any], jwt_payload: dict[str, Any]) -> Response:
        return _forbidden("user lookup failed")


def init_app(app: Any) -> None:
    """Bind the gate callbacks to the application's JWT extension."""
    from frends.core.extensions import jwt

    register_jwt_callbacks(jwt)
