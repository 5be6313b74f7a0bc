# frends/services/accounts/service.py
from __future__ import annotations

import logging
from collections.abc import Iterable

from frends.models.user import User
from frends.services._shared.base import BaseService, ServiceContext
from frends.services._shared.errors import (
    ConflictError,
    InvalidTokenError,
    NotFoundError,
    ValidationFailedError,
)
from frends.services._shared.policies.account_state import (
    ensure_can_deactivate,
    ensure_can_reactivate,
)
from frends.services._shared.policies.roles import (
    ADMIN_ROLES,
    SELF_SERVICE_ACCOUNT_TYPES,
    normalize_roles,
    roles_for_account_type,
)
from frends.services._shared.ports import (
    Mailer,
    OutgoingMail,
    RefreshTokenStore,
    hash_token,
)
from frends.services.accounts.dto import CreateUserIn, PasswordResetIn, RegisterIn, UserOut
from frends.services.auth.issuer import TokenIssuer

log = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


def _check_password(raw: str) -> None:
    if not raw or len(raw) < MIN_PASSWORD_LENGTH:
        raise ValidationFailedError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters", field="password"
        )


class AccountService(BaseService):
    """
    Account lifecycle: registration, verification, password reset, soft
    deletion, reactivation and role assignment.

    Every transition that should end existing sessions (password reset, soft
    delete) empties the refresh token collection after the database commit.
    """

    def __init__(
        self,
        *,
        issuer: TokenIssuer,
        refresh_store: RefreshTokenStore,
        mailer: Mailer,
        frontend_url: str = "http://localhost:5173",
        ctx: ServiceContext | None = None,
    ) -> None:
        super().__init__(ctx=ctx)
        self.issuer = issuer
        self.refresh_store = refresh_store
        self.mailer = mailer
        self.frontend_url = frontend_url.rstrip("/")

    # ------------------------------------------------------------------ #
    # Registration & verification
    # ------------------------------------------------------------------ #

    def register(self, dto: RegisterIn) -> UserOut:
        """
        Create an unverified account and mail its verification link.

        :raises ConflictError: Username or email already taken.
        :raises ValidationFailedError: Unknown or privileged account type, or
            weak password.
        """
        if dto.account_type not in SELF_SERVICE_ACCOUNT_TYPES:
            raise ValidationFailedError(
                f"Account type not available: {dto.account_type}", field="account_type"
            )
        roles = roles_for_account_type(dto.account_type)
        _check_password(dto.password)
        with self.rw_uow() as uow:
            if uow.users.exists_by_username(dto.username):
                raise ConflictError("User", "username already taken")
            if uow.users.exists_by_email(dto.email):
                raise ConflictError("User", "email already registered")
            user = uow.users.add(
                User(username=dto.username, email=dto.email, password=dto.password, roles=roles)
            )
            token = self.issuer.issue_email_verification(user)
            out = UserOut.from_model(user)

        self.mailer.send(
            OutgoingMail(
                to=out.email,
                subject="Verify your Frends account",
                body=f"Hi {out.username}, confirm your email address to start using Frends.",
                link=f"{self.frontend_url}/verify-email/{token}",
            )
        )
        log.info("accounts.registered", extra={"event": "accounts.registered", "user_id": out.id})
        return out

    def verify_email(self, token: str) -> UserOut:
        """
        Consume a verification link.

        The link is bound to the email it was sent to; changing the email
        invalidates it. Verifying twice is harmless.

        :raises InvalidTokenError: Bad, expired or stale link.
        """
        user_id, email = self.issuer.decode_email_verification(token)
        with self.rw_uow() as uow:
            user = uow.users.get(user_id)
            if user is None or user.email != email:
                raise InvalidTokenError()
            user.email_verified = True
            out = UserOut.from_model(user)
        log.info(
            "accounts.email_verified",
            extra={"event": "accounts.email_verified", "user_id": out.id},
        )
        return out

    def create_user(self, dto: CreateUserIn) -> UserOut:
        """Operator path used by the CLI."""
        roles = normalize_roles(dto.roles)
        _check_password(dto.password)
        with self.rw_uow() as uow:
            if uow.users.exists_by_username(dto.username) or uow.users.exists_by_email(dto.email):
                raise ConflictError("User", "username or email already taken")
            user = uow.users.add(
                User(
                    username=dto.username,
                    email=dto.email,
                    password=dto.password,
                    roles=roles,
                    email_verified=dto.email_verified,
                )
            )
            return UserOut.from_model(user)

    # ------------------------------------------------------------------ #
    # Password reset
    # ------------------------------------------------------------------ #

    def request_password_reset(self, email: str) -> None:
        """
        Mail a reset link when ``email`` belongs to an active account.

        Returns nothing either way so callers cannot probe for accounts.
        """
        with self.rw_uow() as uow:
            user = uow.users.get_by_email(email)
            if user is None or not user.active:
                log.info(
                    "accounts.password_reset.unknown",
                    extra={"event": "accounts.password_reset.unknown"},
                )
                return
            token, digest = self.issuer.issue_password_reset(user)
            user.password_reset_digest = digest
            address, user_id = user.email, user.id

        self.mailer.send(
            OutgoingMail(
                to=address,
                subject="Reset your Frends password",
                body="Use the link below to choose a new password. It expires soon.",
                link=f"{self.frontend_url}/reset-password/{token}",
            )
        )
        log.info(
            "accounts.password_reset.requested",
            extra={"event": "accounts.password_reset.requested", "user_id": user_id},
        )

    def reset_password(self, dto: PasswordResetIn) -> None:
        """
        Set a new password from a reset link and close every session.

        The link works once, and only while it is the most recent one issued.

        :raises InvalidTokenError: Bad, expired, reused or superseded link.
        """
        _check_password(dto.new_password)
        user_id = self.issuer.decode_password_reset(dto.token)
        with self.rw_uow() as uow:
            user = uow.users.get_for_update(user_id)
            if user is None or user.password_reset_digest != hash_token(dto.token):
                raise InvalidTokenError()
            user.password = dto.new_password
            user.password_reset_digest = None

        revoked = self.refresh_store.revoke_all(user_id)
        log.info(
            "accounts.password_reset.completed",
            extra={
                "event": "accounts.password_reset.completed",
                "user_id": user_id,
                "revoked": revoked,
            },
        )

    # ------------------------------------------------------------------ #
    # Lifecycle & roles
    # ------------------------------------------------------------------ #

    def get_user(self, user_id: int) -> UserOut:
        with self.ro_uow() as uow:
            user = uow.users.get(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            return UserOut.from_model(user)

    def deactivate(self, user_id: int, *, actor_id: int, actor_roles: frozenset[str]) -> UserOut:
        """
        Soft-delete an account (self-service or admin) and end its sessions.

        :raises AuthorizationError: Actor is neither the owner nor an admin.
        :raises NotFoundError: Unknown user.
        :raises ConflictError: Already inactive.
        """
        self.ensure_owner_or_roles(actor_id, user_id, actor_roles, roles=ADMIN_ROLES)
        with self.rw_uow() as uow:
            user = uow.users.get_for_update(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            ensure_can_deactivate(user)
            user.soft_delete()
            out = UserOut.from_model(user)

        revoked = self.refresh_store.revoke_all(user_id)
        log.info(
            "accounts.deactivated",
            extra={"event": "accounts.deactivated", "user_id": user_id, "revoked": revoked},
        )
        return out

    def reactivate(self, user_id: int) -> UserOut:
        """
        Restore a soft-deleted account. Admin only (enforced by the route).

        :raises ConflictError: The account is not soft-deleted.
        """
        with self.rw_uow() as uow:
            user = uow.users.get_for_update(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            ensure_can_reactivate(user)
            user.reactivate()
            out = UserOut.from_model(user)
        log.info(
            "accounts.reactivated", extra={"event": "accounts.reactivated", "user_id": user_id}
        )
        return out

    def set_roles(self, user_id: int, roles: Iterable[str]) -> UserOut:
        """
        Replace a user's role tags.

        Outstanding access tokens keep their old snapshot until they expire;
        the next refresh picks up the new tags.
        """
        tags = normalize_roles(roles)
        with self.rw_uow() as uow:
            user = uow.users.get_for_update(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            user.roles = tags
            out = UserOut.from_model(user)
        log.info(
            "accounts.roles_changed: %s",
            ",".join(out.roles),
            extra={"event": "accounts.roles_changed", "user_id": user_id},
        )
        return out
