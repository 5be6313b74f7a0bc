"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and never import Flask or HTTP
helpers. They are the stable contract between repositories, policies and
application services.

The translation to HTTP responses (RFC 7807) is handled by
``frends/core/errors.py`` via ``BaseService.translate_exceptions()``.
"""

from __future__ import annotations

from dataclasses import dataclass

# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - They can be safely raised from repositories, policies or services.
    """


# --------------------------------------------------------------------------- #
# Specific domain-level errors
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found in the repository.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param key: Identifier or search key.
    :type key: str | int
    """

    entity: str
    key: str | int

    def __str__(self) -> str:
        return f"{self.entity} not found: {self.key}"


@dataclass(slots=True)
class ConflictError(ServiceError):
    """
    Raised when a unique constraint or business rule conflict occurs.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param detail: Short human-readable explanation.
    :type detail: str
    """

    entity: str
    detail: str

    def __str__(self) -> str:
        return f"Conflict on {self.entity}: {self.detail}"


class ValidationFailedError(ServiceError):
    """Raised when input passes the schema but breaks a domain rule."""

    def __init__(self, message: str = "Validation failed", *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class InvalidCredentialsError(ServiceError):
    """Unknown identifier or wrong password. Both cases look identical."""

    def __init__(self, message: str = "Invalid credentials") -> None:
        super().__init__(message)


class AuthenticationRequiredError(ServiceError):
    """No credential was presented where one is required."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)


class InvalidTokenError(ServiceError):
    """
    A presented token is not accepted.

    Covers malformed, badly signed, wrong-purpose, unknown, rotated-out and
    reused tokens. Callers never learn which of those applied.
    """

    def __init__(self, message: str = "Invalid or expired token") -> None:
        super().__init__(message)


class ExpiredTokenError(InvalidTokenError):
    """The token signature is valid but its ``exp`` has passed."""


class AuthorizationError(ServiceError):
    """The caller is authenticated but lacks the required capability."""

    def __init__(self, message: str = "Insufficient permissions") -> None:
        super().__init__(message)


class AccountStateError(ServiceError):
    """Base for account-lifecycle rejections; ``code`` is exposed to clients."""

    code = "account_state"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class AccountInactiveError(AccountStateError):
    code = "account_inactive"

    def __init__(self, message: str = "Account is inactive") -> None:
        super().__init__(message)


class EmailNotVerifiedError(AccountStateError):
    code = "email_not_verified"

    def __init__(self, message: str = "Email address is not verified") -> None:
        super().__init__(message)
