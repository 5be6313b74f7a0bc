# frends/services/auth/service.py
from __future__ import annotations

import logging

from frends.repositories.user import UserRepository
from frends.services._shared.base import BaseService, ServiceContext
from frends.services._shared.errors import (
    AccountStateError,
    InvalidCredentialsError,
    InvalidTokenError,
    ServiceError,
)
from frends.services._shared.policies.account_state import ensure_can_login
from frends.services._shared.ports.refresh_token_store import RefreshTokenStore
from frends.services.auth.credentials import CredentialVerifier
from frends.services.auth.dto import LoginIn, LogoutIn, RefreshIn, SessionOut
from frends.services.auth.issuer import TokenIssuer

log = logging.getLogger(__name__)


class AuthService(BaseService):
    """
    Session lifecycle service (login / refresh / logout).

    Access tokens are stateless. Refresh tokens live in a per-user collection
    held by a :class:`RefreshTokenStore`; each refresh consumes the presented
    token and appends a new one. Presenting a token that verifies but is no
    longer in the collection is treated as theft: the whole collection is
    emptied.
    """

    def __init__(
        self,
        *,
        issuer: TokenIssuer,
        refresh_store: RefreshTokenStore,
        verifier: CredentialVerifier | None = None,
        ctx: ServiceContext | None = None,
    ) -> None:
        """
        Initialize the service with its dependencies.

        :param issuer: Mints and verifies tokens.
        :param refresh_store: Refresh token collections (atomic removal).
        :param verifier: Credential Verifier; a default one is created when omitted.
        :param ctx: Optional request-scoped context.
        """
        super().__init__(ctx=ctx)
        self.issuer = issuer
        self.refresh_store = refresh_store
        self.verifier = verifier or CredentialVerifier()

    @property
    def reuse_grace(self):
        return self.issuer.config.reuse_grace

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> SessionOut:
        """
        Authenticate credentials and open a new session.

        :param dto: Login input.
        :returns: Access token, refresh token and the roles granted.
        :raises InvalidCredentialsError: Unknown identifier or wrong password.
        :raises AccountStateError: Inactive or unverified account.
        """
        with self.ro_uow() as uow:
            repo: UserRepository = uow.users
            try:
                user = self.verifier.verify(repo, dto.identifier, dto.password)
                ensure_can_login(user)
            except InvalidCredentialsError:
                log.warning("auth.login.failure", extra={"event": "auth.login.failure"})
                raise
            except AccountStateError as exc:
                log.warning(
                    "auth.login.rejected: %s",
                    exc.code,
                    extra={"event": "auth.login.rejected", "user_id": user.id},
                )
                raise

            user_id = user.id
            password_hash = user.password_hash
            roles = tuple(sorted(user.roles))
            access = self.issuer.issue_access(user)
            refresh = self.issuer.issue_refresh(user)

        self.refresh_store.add(user_id, refresh.token, refresh.expires_at)
        self._confirm_session(
            user_id, refresh.token, password_hash, superseded_error=InvalidCredentialsError
        )
        log.info("auth.login.success", extra={"event": "auth.login.success", "user_id": user_id})
        return SessionOut(
            access_token=access,
            refresh_token=refresh.token,
            refresh_expires_at=refresh.expires_at,
            roles=roles,
        )

    # ------------------------------------------------------------------ #
    # Refresh with rotation and reuse detection
    # ------------------------------------------------------------------ #

    def refresh(self, dto: RefreshIn) -> SessionOut:
        """
        Rotate a refresh token and emit a new pair.

        Security
        --------
        - The presented token must be a member of its owner's collection.
        - Removal happens *before* anything is minted; of two concurrent calls
          presenting the same token only the one whose removal succeeded
          continues, the other is refused without revoking anything.
        - Removal leaves a marker for the configured grace window. A retry that
          arrives inside it, whether still racing or just late, is only
          refused.
        - A token that verifies but is absent from every collection and
          carries no marker is a replay: the claimed owner's collection is
          emptied.
        - If a password reset or deactivation lands while the new token is
          being stored, the new token is withdrawn again.

        :raises InvalidTokenError: For every refusal; callers cannot tell a
            replay from a malformed token.
        """
        token = dto.refresh_token
        owner_id = self.refresh_store.find_owner(token)

        if owner_id is None:
            self._handle_unknown_token(token)
            raise InvalidTokenError()

        if not self.refresh_store.remove(token, tombstone_for=self.reuse_grace):
            # Lost the race against a concurrent rotation of the same token.
            log.info(
                "auth.refresh.race_lost",
                extra={"event": "auth.refresh.race_lost", "user_id": owner_id},
            )
            raise InvalidTokenError()

        claims = self.issuer.decode_refresh(token)
        if claims.user_id != owner_id:
            raise InvalidTokenError()

        with self.ro_uow() as uow:
            user = uow.users.get(owner_id)
            if user is None:
                raise InvalidTokenError()
            ensure_can_login(user)
            password_hash = user.password_hash
            roles = tuple(sorted(user.roles))
            access = self.issuer.issue_access(user)
            refresh = self.issuer.issue_refresh(user)

        self.refresh_store.add(owner_id, refresh.token, refresh.expires_at)
        self._confirm_session(
            owner_id, refresh.token, password_hash, superseded_error=InvalidTokenError
        )
        log.info(
            "auth.refresh.rotated", extra={"event": "auth.refresh.rotated", "user_id": owner_id}
        )
        return SessionOut(
            access_token=access,
            refresh_token=refresh.token,
            refresh_expires_at=refresh.expires_at,
            roles=roles,
        )

    def _confirm_session(
        self,
        user_id: int,
        token: str,
        password_hash: str,
        *,
        superseded_error: type[ServiceError],
    ) -> None:
        """
        Withdraw a just-stored token if the account changed while it was minted.

        A password reset or deactivation that empties the collection between
        the account check and :meth:`RefreshTokenStore.add` would otherwise
        leave this token alive.
        """
        state_error: AccountStateError | None = None
        with self.ro_uow() as uow:
            user = uow.users.get_current(user_id)
            superseded = user is None or user.password_hash != password_hash
            if not superseded:
                try:
                    ensure_can_login(user)
                except AccountStateError as exc:
                    state_error = exc

        if not superseded and state_error is None:
            return
        self.refresh_store.remove(token)
        log.warning(
            "auth.session.withdrawn",
            extra={"event": "auth.session.withdrawn", "user_id": user_id},
        )
        if state_error is not None:
            raise state_error
        raise superseded_error()

    def _handle_unknown_token(self, token: str) -> None:
        if self.refresh_store.recently_rotated(token, within=self.reuse_grace):
            log.info("auth.refresh.grace_replay", extra={"event": "auth.refresh.grace_replay"})
            return
        try:
            claims = self.issuer.decode_refresh(token)
        except InvalidTokenError:
            # Undecodable or expired: nothing to revoke.
            return
        revoked = self.refresh_store.revoke_all(claims.user_id)
        log.warning(
            "auth.refresh.reuse_detected",
            extra={
                "event": "auth.refresh.reuse_detected",
                "user_id": claims.user_id,
                "revoked": revoked,
            },
        )

    # ------------------------------------------------------------------ #
    # Logout / revocation
    # ------------------------------------------------------------------ #

    def logout(self, dto: LogoutIn) -> None:
        """
        Drop one refresh token from its collection.

        Always succeeds: an absent, unknown or already removed token is not an
        error.
        """
        if not dto.refresh_token:
            return
        owner_id = self.refresh_store.find_owner(dto.refresh_token)
        if owner_id is not None and self.refresh_store.remove(dto.refresh_token):
            log.info("auth.logout", extra={"event": "auth.logout", "user_id": owner_id})

    def revoke_all_sessions(self, user_id: int) -> int:
        """
        Empty a user's refresh token collection.

        :returns: Number of sessions closed.
        """
        revoked = self.refresh_store.revoke_all(user_id)
        log.info(
            "auth.sessions.revoked",
            extra={"event": "auth.sessions.revoked", "user_id": user_id, "revoked": revoked},
        )
        return revoked
