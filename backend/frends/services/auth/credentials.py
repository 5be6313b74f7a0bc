"""Credential Verifier."""

from __future__ import annotations

import functools

from werkzeug.security import check_password_hash, generate_password_hash

from frends.models.user import User
from frends.repositories.user import UserRepository
from frends.services._shared.errors import InvalidCredentialsError


@functools.cache
def _dummy_hash() -> str:
    return generate_password_hash("frends-dummy-password")


class CredentialVerifier:
    """
    Match an identifier and password against stored accounts.

    The identifier is compared with the username or, case-insensitively, the
    email. An unknown identifier still pays for one hash check, so both failure
    branches take the same time and raise the same error.
    """

    def verify(self, users: UserRepository, identifier: str, password: str) -> User:
        """
        :param users: Repository bound to the caller's unit of work.
        :param identifier: Username or email.
        :param password: Raw password.
        :returns: The matching account.
        :raises InvalidCredentialsError: No account matches, or the password differs.
        """
        user = users.get_by_identifier(identifier) if identifier else None
        if user is None:
            check_password_hash(_dummy_hash(), password or "")
            raise InvalidCredentialsError()
        if not password or not user.verify_password(password):
            raise InvalidCredentialsError()
        return user
