"""
Account State Guard.

Consulted after a successful password match and again at every refresh, so a
deactivated account loses its sessions' ability to renew.
"""

from __future__ import annotations

from frends.models.user import User
from frends.services._shared.errors import (
    AccountInactiveError,
    ConflictError,
    EmailNotVerifiedError,
)


def ensure_can_login(user: User) -> None:
    """
    Reject accounts that may not hold a session.

    :param user: Account whose password already matched.
    :raises AccountInactiveError: The account is inactive (soft-deleted).
    :raises EmailNotVerifiedError: The email address was never verified.
    """
    if not user.active:
        raise AccountInactiveError()
    if not user.email_verified:
        raise EmailNotVerifiedError()


def ensure_can_deactivate(user: User) -> None:
    if not user.active:
        raise ConflictError("User", "account is already inactive")


def ensure_can_reactivate(user: User) -> None:
    """Only a soft-deleted account can be reactivated."""
    if not user.is_soft_deleted:
        raise ConflictError("User", "account is not deactivated")
