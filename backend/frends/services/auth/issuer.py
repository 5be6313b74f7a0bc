"""Token Issuer: mints and decodes the tokens of the session lifecycle."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from frends.models.user import User
from frends.services._shared.errors import InvalidTokenError
from frends.services._shared.ports import (
    EMAIL_VERIFY,
    PASSWORD_RESET,
    REFRESH,
    TokenProvider,
    hash_token,
)
from frends.services.auth.dto import AuthTokenConfig, IssuedRefreshToken, RefreshClaims


def _subject(payload: dict[str, Any]) -> int:
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise InvalidTokenError() from None


class TokenIssuer:
    """
    Issue access, refresh and mailed-link tokens.

    Issuing is a pure function of the user's state and the current time. The
    access token snapshots ``username`` and ``roles``; role changes therefore
    take effect at the next refresh or login. The refresh token carries only
    the subject.

    :param provider: Signing adapter.
    :param config: Lifetimes.
    """

    def __init__(self, provider: TokenProvider, config: AuthTokenConfig | None = None) -> None:
        self.provider = provider
        self.config = config or AuthTokenConfig()

    # ------------------------------ access -----------------------------------

    def issue_access(self, user: User) -> str:
        return self.provider.create_access_token(
            identity=str(user.id),
            additional_claims={"username": user.username, "roles": sorted(user.roles)},
            expires_delta=self.config.access_expires,
        )

    # ------------------------------ refresh ----------------------------------

    def issue_refresh(self, user: User) -> IssuedRefreshToken:
        expires_at = datetime.now(UTC) + self.config.refresh_expires
        token = self.provider.create_signed_token(
            purpose=REFRESH,
            identity=str(user.id),
            expires_delta=self.config.refresh_expires,
        )
        return IssuedRefreshToken(token=token, expires_at=expires_at)

    def decode_refresh(self, token: str) -> RefreshClaims:
        """
        Verify a refresh token.

        :raises ExpiredTokenError: Signature valid but expired.
        :raises InvalidTokenError: Malformed, badly signed or wrong purpose.
        """
        payload = self.provider.decode_signed(token, purpose=REFRESH)
        return RefreshClaims(
            user_id=_subject(payload),
            jti=str(payload.get("jti", "")),
            expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=UTC),
        )

    # ---------------------------- mailed links -------------------------------

    def issue_email_verification(self, user: User) -> str:
        return self.provider.create_signed_token(
            purpose=EMAIL_VERIFY,
            identity=str(user.id),
            expires_delta=self.config.email_verify_expires,
            additional_claims={"email": user.email},
        )

    def decode_email_verification(self, token: str) -> tuple[int, str]:
        """Return ``(user_id, email)`` carried by a verification link."""
        payload = self.provider.decode_signed(token, purpose=EMAIL_VERIFY)
        return _subject(payload), str(payload.get("email", ""))

    def issue_password_reset(self, user: User) -> tuple[str, str]:
        """
        Mint a password-reset token.

        :returns: ``(token, digest)``; the digest is stored on the user so the
            token works only once and only while it is the latest one.
        """
        token = self.provider.create_signed_token(
            purpose=PASSWORD_RESET,
            identity=str(user.id),
            expires_delta=self.config.password_reset_expires,
        )
        return token, hash_token(token)

    def decode_password_reset(self, token: str) -> int:
        return _subject(self.provider.decode_signed(token, purpose=PASSWORD_RESET))
