# frends/infra/sql/sql_refresh_token_store.py
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from frends.services._shared.ports import RefreshTokenStore, hash_token
from frends.uow.sqlalchemy_uow import SQLAlchemyReadOnlyUnitOfWork, SQLAlchemyUnitOfWork


@dataclass(slots=True)
class SQLRefreshTokenStore(RefreshTokenStore):
    """
    Relational refresh token store backed by the ``refresh_tokens`` table.

    Each call runs in its own unit of work and commits immediately. Removal is
    a single conditional ``DELETE`` (or ``UPDATE`` when tombstoning); the
    affected row count tells which of several concurrent callers won.

    :param rw_uow: Factory of read-write units of work.
    :param ro_uow: Factory of read-only units of work.
    """

    rw_uow: Callable[[], SQLAlchemyUnitOfWork] = SQLAlchemyUnitOfWork
    ro_uow: Callable[[], SQLAlchemyReadOnlyUnitOfWork] = SQLAlchemyReadOnlyUnitOfWork

    @staticmethod
    def _now() -> datetime:
        return datetime.now(UTC)

    def add(self, user_id: int, token: str, expires_at: datetime) -> None:
        with self.rw_uow() as uow:
            uow.refresh_tokens.add_digest(user_id, hash_token(token), expires_at)

    def find_owner(self, token: str) -> int | None:
        with self.ro_uow() as uow:
            return uow.refresh_tokens.owner_of(hash_token(token))

    def remove(self, token: str, *, tombstone_for: timedelta | None = None) -> bool:
        digest = hash_token(token)
        with self.rw_uow() as uow:
            if tombstone_for and tombstone_for > timedelta(0):
                return uow.refresh_tokens.mark_rotated(digest, self._now())
            return uow.refresh_tokens.delete_live(digest)

    def recently_rotated(self, token: str, *, within: timedelta) -> bool:
        if within <= timedelta(0):
            return False
        with self.ro_uow() as uow:
            return uow.refresh_tokens.rotated_since(hash_token(token), self._now() - within)

    def revoke_all(self, user_id: int) -> int:
        with self.rw_uow() as uow:
            return uow.refresh_tokens.delete_for_user(user_id)

    def tokens_for(self, user_id: int) -> list[str]:
        with self.ro_uow() as uow:
            return uow.refresh_tokens.digests_for(user_id)

    def purge(self, *, grace: timedelta = timedelta(0)) -> int:
        """Delete expired tokens and tombstones older than ``grace``."""
        now = self._now()
        with self.rw_uow() as uow:
            return uow.refresh_tokens.purge(expired_before=now, rotated_before=now - grace)
