# frends/services/accounts/dto.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from frends.models.user import User


@dataclass(frozen=True, slots=True)
class RegisterIn:
    """
    Input DTO for self-service registration.

    :param username: Public handle.
    :param email: Email address (normalized by the model).
    :param password: Raw password.
    :param account_type: ``individual``, ``enterprise`` or ``admin``.
    """

    username: str
    email: str
    password: str = field(repr=False)
    account_type: str = "individual"


@dataclass(frozen=True, slots=True)
class CreateUserIn:
    """Operator-created account (CLI). Skips email verification."""

    username: str
    email: str
    password: str = field(repr=False)
    roles: frozenset[str] = frozenset({"level1"})
    email_verified: bool = True


@dataclass(frozen=True, slots=True)
class PasswordResetIn:
    token: str = field(repr=False)
    new_password: str = field(repr=False)


@dataclass(frozen=True, slots=True)
class UserOut:
    """
    Public projection of an account.

    :param id: User id.
    :param username: Handle.
    :param email: Normalized email.
    :param roles: Sorted role tags.
    :param active: ``False`` once soft-deleted.
    :param email_verified: Verification flag.
    :param deleted_at: Soft deletion instant.
    """

    id: int
    username: str
    email: str
    roles: tuple[str, ...]
    active: bool
    email_verified: bool
    deleted_at: datetime | None = None

    @classmethod
    def from_model(cls, user: User) -> UserOut:
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            roles=tuple(sorted(user.roles)),
            active=user.active,
            email_verified=user.email_verified,
            deleted_at=user.deleted_at,
        )
