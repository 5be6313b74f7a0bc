# frends/infra/jwt/flask_jwt_token_provider.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any, cast
from uuid import uuid4

import jwt as pyjwt

from frends.services._shared.errors import ExpiredTokenError, InvalidTokenError
from frends.services._shared.ports import (
    EMAIL_VERIFY,
    PASSWORD_RESET,
    REFRESH,
    TokenProvider,
)

#: Config key holding the signing secret of each purpose-bound token.
SECRET_KEYS: dict[str, str] = {
    REFRESH: "REFRESH_TOKEN_SECRET",
    EMAIL_VERIFY: "EMAIL_VERIFY_TOKEN_SECRET",
    PASSWORD_RESET: "PASSWORD_RESET_TOKEN_SECRET",
}


@dataclass(slots=True)
class JWTTokenProvider(TokenProvider):
    """
    Adapter signing access tokens with Flask-JWT-Extended and every other
    token with PyJWT.

    Flask-JWT-Extended signs with ``JWT_SECRET_KEY`` (the access secret). The
    refresh and mailed-link tokens each use their own secret so that no
    verifier can accept a token minted for another purpose.

    :param secrets: Optional purpose → secret override. When empty, secrets are
        read from ``current_app.config``.

    .. note::
       Requires an active Flask app context for access tokens and when
       ``secrets`` is not given.
    """

    secrets: dict[str, str] = field(default_factory=dict)
    algorithm: str = "HS256"

    def _secret(self, purpose: str) -> str:
        if purpose in self.secrets:
            return self.secrets[purpose]
        from flask import current_app

        try:
            return cast(str, current_app.config[SECRET_KEYS[purpose]])
        except KeyError:
            raise RuntimeError(f"No signing secret configured for {purpose!r} tokens.") from None

    # ------------------------------ access -----------------------------------

    def create_access_token(
        self,
        *,
        identity: str | int,
        additional_claims: dict[str, Any] | None = None,
        expires_delta: timedelta | None = None,
    ) -> str:
        from flask_jwt_extended import create_access_token as _create_access

        return cast(
            str,
            _create_access(
                identity=str(identity),
                additional_claims=additional_claims or {},
                expires_delta=expires_delta,
            ),
        )

    def decode_access(self, token: str) -> dict[str, Any]:
        from flask_jwt_extended import decode_token
        from flask_jwt_extended.exceptions import JWTExtendedException

        try:
            return cast(dict[str, Any], decode_token(token))
        except pyjwt.ExpiredSignatureError:
            raise ExpiredTokenError() from None
        except (pyjwt.InvalidTokenError, JWTExtendedException):
            raise InvalidTokenError() from None

    # --------------------------- purpose-bound ---------------------------------

    def create_signed_token(
        self,
        *,
        purpose: str,
        identity: int | str,
        expires_delta: timedelta,
        additional_claims: dict[str, Any] | None = None,
    ) -> str:
        now = datetime.now(UTC)
        payload: dict[str, Any] = dict(additional_claims or {})
        payload.update(
            {
                "sub": str(identity),
                "iat": int(now.timestamp()),
                "exp": int((now + expires_delta).timestamp()),
                # Random jti keeps two tokens minted in the same second distinct.
                "jti": uuid4().hex,
                "type": purpose,
            }
        )
        return pyjwt.encode(payload, self._secret(purpose), algorithm=self.algorithm)

    def decode_signed(self, token: str, *, purpose: str) -> dict[str, Any]:
        try:
            payload = pyjwt.decode(
                token,
                self._secret(purpose),
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp", "iat", "jti"]},
            )
        except pyjwt.ExpiredSignatureError:
            raise ExpiredTokenError() from None
        except pyjwt.InvalidTokenError:
            raise InvalidTokenError() from None
        if payload.get("type") != purpose:
            raise InvalidTokenError()
        return cast(dict[str, Any], payload)
