from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any, Protocol
from uuid import uuid4

from frends.services._shared.errors import ExpiredTokenError, InvalidTokenError

#: Purposes of the self-contained tokens signed outside the access-token path.
REFRESH = "refresh"
EMAIL_VERIFY = "email_verify"
PASSWORD_RESET = "password_reset"


class TokenProvider(Protocol):
    """Port for issuing and decoding signed tokens.

    Access tokens and every purpose-bound token are signed with distinct
    secrets. ``decode_signed`` MUST verify signature, expiry and purpose, and
    raise :class:`ExpiredTokenError` or :class:`InvalidTokenError`.
    """

    def create_access_token(
        self,
        *,
        identity: int | str,
        additional_claims: dict[str, Any] | None = None,
        expires_delta: timedelta | None = None,
    ) -> str: ...

    def decode_access(self, token: str) -> dict[str, Any]: ...

    def create_signed_token(
        self,
        *,
        purpose: str,
        identity: int | str,
        expires_delta: timedelta,
        additional_claims: dict[str, Any] | None = None,
    ) -> str: ...

    def decode_signed(self, token: str, *, purpose: str) -> dict[str, Any]: ...


class StubTokenProvider(TokenProvider):
    """Deterministic token provider used in unit tests.

    Tokens are opaque strings mapped to their payloads; expiry is evaluated
    against the wall clock, so freezegun can move it.
    """

    def __init__(self) -> None:
        self._seq = 0
        self._issued: dict[str, dict[str, Any]] = {}

    def _mk(self, *, ttype: str, identity: int | str, exp_delta: timedelta, claims) -> str:
        self._seq += 1
        now = datetime.now(tz=UTC)
        jti = uuid4().hex
        token = f"{ttype}.{identity}.{self._seq}.{jti[:8]}"
        payload: dict[str, Any] = {
            "sub": str(identity),
            "type": ttype,
            "jti": jti,
            "iat": int(now.timestamp()),
            "exp": int((now + exp_delta).timestamp()),
        }
        payload.update(claims or {})
        self._issued[token] = payload
        return token

    def _decode(self, token: str, ttype: str) -> dict[str, Any]:
        payload = self._issued.get(token)
        if payload is None or payload["type"] != ttype:
            raise InvalidTokenError()
        if payload["exp"] <= int(datetime.now(tz=UTC).timestamp()):
            raise ExpiredTokenError()
        return dict(payload)

    def create_access_token(
        self,
        *,
        identity: int | str,
        additional_claims: dict[str, Any] | None = None,
        expires_delta: timedelta | None = None,
    ) -> str:
        return self._mk(
            ttype="access",
            identity=identity,
            exp_delta=expires_delta or timedelta(minutes=5),
            claims=additional_claims,
        )

    def decode_access(self, token: str) -> dict[str, Any]:
        return self._decode(token, "access")

    def create_signed_token(
        self,
        *,
        purpose: str,
        identity: int | str,
        expires_delta: timedelta,
        additional_claims: dict[str, Any] | None = None,
    ) -> str:
        return self._mk(
            ttype=purpose, identity=identity, exp_delta=expires_delta, claims=additional_claims
        )

    def decode_signed(self, token: str, *, purpose: str) -> dict[str, Any]:
        return self._decode(token, purpose)

    def forge(self, token: str, **claims: Any) -> None:
        """Rewrite the payload of an issued token (tamper simulation)."""
        self._issued[token].update(claims)
