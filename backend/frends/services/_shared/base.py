# frends/services/_shared/base.py
from __future__ import annotations

from dataclasses import dataclass

from frends.core import errors as api_errors
from frends.services._shared.errors import (
    AccountStateError,
    AuthenticationRequiredError,
    AuthorizationError,
    ConflictError,
    InvalidCredentialsError,
    InvalidTokenError,
    NotFoundError,
    ServiceError,
    ValidationFailedError,
)
from frends.uow.sqlalchemy_uow import (
    SQLAlchemyReadOnlyUnitOfWork,
    SQLAlchemyUnitOfWork,
)


@dataclass(slots=True)
class ServiceContext:
    """
    Carry cross-cutting request-scoped data.

    :param actor_id: Authenticated user identifier.
    :param request_id: Correlation id for logging/tracing.
    """

    actor_id: int | None = None
    request_id: str | None = None


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Provide helpers to run read-only and read-write units of work.
    * Centralize error translation.
    * Keep services thin, orchestration-only, no web/ORM leakage.

    Notes
    -----
    Services must never touch the global session; always use a Unit of Work.
    """

    def __init__(self, *, ctx: ServiceContext | None = None) -> None:
        """
        Initialize the base service.

        :param ctx: Optional request-scoped context (auth, tracing).
        :type ctx: ServiceContext | None
        """
        self.ctx = ctx or ServiceContext()

    # -------------------------- UoW helpers ---------------------------------

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        """
        Create a read-write Unit of Work.

        :returns: Read-write UoW instance.
        :rtype: SQLAlchemyUnitOfWork
        """
        return SQLAlchemyUnitOfWork()

    def ro_uow(self) -> SQLAlchemyReadOnlyUnitOfWork:
        """
        Create a read-only Unit of Work.

        :returns: Read-only UoW instance.
        :rtype: SQLAlchemyReadOnlyUnitOfWork
        """
        return SQLAlchemyReadOnlyUnitOfWork()

    # -------------------------- Error handling ------------------------------

    def translate_exceptions(self, exc: Exception) -> Exception:
        """
        Map domain/service-level errors to API-level (HTTP) errors.

        :param exc: Exception raised within the service.
        :type exc: Exception
        :returns: Translated exception ready to be re-raised.
        :rtype: Exception
        """
        if isinstance(exc, NotFoundError):
            return api_errors.NotFound(str(exc))

        if isinstance(exc, ConflictError):
            return api_errors.Conflict(str(exc))

        if isinstance(exc, ValidationFailedError):
            details = {"errors": {exc.field: [str(exc)]}} if exc.field else None
            return api_errors.BadRequest(str(exc), details=details)

        if isinstance(exc, InvalidCredentialsError):
            return api_errors.Unauthorized(str(exc), code="invalid_credentials")

        if isinstance(exc, AuthenticationRequiredError):
            return api_errors.Unauthorized(str(exc))

        if isinstance(exc, AccountStateError):
            return api_errors.Forbidden(str(exc), code=exc.code)

        # Expired, invalid and reused tokens share one response.
        if isinstance(exc, InvalidTokenError):
            return api_errors.Forbidden("Invalid or expired token")

        if isinstance(exc, AuthorizationError):
            return api_errors.Forbidden(str(exc))

        # Any other ServiceError subclass → 400 Bad Request
        if isinstance(exc, ServiceError):
            return api_errors.APIError(message=str(exc), status_code=400, code="bad_request")

        return exc

    # --------------------------- AuthZ --------------------------------

    def ensure_owner_or_roles(
        self,
        actor_id: int | None,
        owner_id: int,
        actor_roles: frozenset[str],
        *,
        roles: frozenset[str],
        msg: str | None = None,
    ) -> None:
        """
        Ensure the actor owns the resource or holds one of ``roles``.

        :param actor_id: Authenticated user id.
        :param owner_id: Owner of the targeted resource.
        :param actor_roles: Capability tags of the actor.
        :param roles: Tags that bypass the ownership check.
        :param msg: Optional custom error message.
        :raises AuthorizationError: If neither condition holds.
        """
        from frends.services._shared.policies.roles import has_any_role

        if actor_id is not None and actor_id == owner_id:
            return
        if has_any_role(actor_roles, roles):
            return
        raise AuthorizationError(msg or "You can only manage your own account.")
