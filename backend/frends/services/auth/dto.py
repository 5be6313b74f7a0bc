# frends/services/auth/dto.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param identifier: Username or email address.
    :type identifier: str
    :param password: Raw password (to be verified).
    :type password: str
    """

    identifier: str
    password: str = field(repr=False)


@dataclass(frozen=True, slots=True)
class RefreshIn:
    """
    Input DTO for token refresh.

    :param refresh_token: Encoded refresh JWT taken from the session cookie.
    :type refresh_token: str
    """

    refresh_token: str = field(repr=False)


@dataclass(frozen=True, slots=True)
class LogoutIn:
    """
    Input DTO for logout.

    :param refresh_token: Session cookie value, when the client still has one.
    :type refresh_token: str | None
    """

    refresh_token: str | None = field(default=None, repr=False)


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class SessionOut:
    """
    Output DTO of login and refresh.

    :param access_token: Encoded access JWT returned in the body.
    :param refresh_token: Encoded refresh JWT carried by the cookie.
    :param refresh_expires_at: Expiry of ``refresh_token``.
    :param roles: Role tags embedded in ``access_token``.
    """

    access_token: str = field(repr=False)
    refresh_token: str = field(repr=False)
    refresh_expires_at: datetime
    roles: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class AuthIdentity:
    """Identity decoded from a verified access token."""

    user_id: int
    username: str
    roles: frozenset[str]


@dataclass(frozen=True, slots=True)
class IssuedRefreshToken:
    token: str = field(repr=False)
    expires_at: datetime


@dataclass(frozen=True, slots=True)
class RefreshClaims:
    user_id: int
    jti: str
    expires_at: datetime


# ------------------------------ Config DTO -------------------------------- #


@dataclass(frozen=True, slots=True)
class AuthTokenConfig:
    """
    Token emission configuration.

    :param access_expires: Access token lifetime.
    :param refresh_expires: Refresh token lifetime.
    :param email_verify_expires: Lifetime of mailed verification links.
    :param password_reset_expires: Lifetime of mailed reset links.
    :param reuse_grace: Window in which a just-rotated refresh token is
        refused without revoking the account's sessions.
    """

    access_expires: timedelta = timedelta(minutes=5)
    refresh_expires: timedelta = timedelta(minutes=15)
    email_verify_expires: timedelta = timedelta(hours=24)
    password_reset_expires: timedelta = timedelta(minutes=10)
    reuse_grace: timedelta = timedelta(seconds=10)
