# frends/infra/redis/redis_refresh_token_store.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import cast

import redis  # type: ignore[import-untyped]

from frends.services._shared.ports import RefreshTokenStore, hash_token


def _s(value: bytes | str | None) -> str | None:
    if value is None:
        return None
    return value.decode() if isinstance(value, bytes | bytearray) else str(value)


@dataclass(slots=True)
class RedisRefreshTokenStore(RefreshTokenStore):
    """
    Redis-backed refresh token collections.

    Layout
    ------
    ``rt:u:{user_id}``
        LIST of token digests, oldest first.
    ``rt:t:{digest}``
        Owner id; expires with the token.
    ``rt:gone:{digest}``
        Rotation tombstone; expires after the grace window.

    Removal runs ``LREM`` and ``DEL`` inside one ``MULTI/EXEC``; the ``DEL``
    reply is ``1`` for exactly one caller, which is the winner.

    :param r: A Redis client (already connected).
    """

    r: redis.Redis

    # -------------------- helpers --------------------

    @staticmethod
    def _ku(user_id: int) -> str:
        return f"rt:u:{user_id}"

    @staticmethod
    def _kt(digest: str) -> str:
        return f"rt:t:{digest}"

    @staticmethod
    def _kg(digest: str) -> str:
        return f"rt:gone:{digest}"

    @staticmethod
    def _ttl(expires_at: datetime) -> int:
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        return max(1, int((expires_at - datetime.now(UTC)).total_seconds()))

    # -------------------- API ------------------------

    def add(self, user_id: int, token: str, expires_at: datetime) -> None:
        digest = hash_token(token)
        ttl = self._ttl(expires_at)
        pipe = self.r.pipeline(transaction=True)
        pipe.rpush(self._ku(user_id), digest)
        pipe.set(self._kt(digest), str(user_id), ex=ttl)
        pipe.expire(self._ku(user_id), ttl)
        pipe.execute()

    def find_owner(self, token: str) -> int | None:
        owner = _s(self.r.get(self._kt(hash_token(token))))
        return int(owner) if owner is not None else None

    def remove(self, token: str, *, tombstone_for: timedelta | None = None) -> bool:
        digest = hash_token(token)
        owner = _s(self.r.get(self._kt(digest)))
        if owner is None:
            return False
        with self.r.pipeline(transaction=True) as p:
            p.lrem(self._ku(int(owner)), 0, digest)
            p.delete(self._kt(digest))
            if tombstone_for and tombstone_for > timedelta(0):
                p.set(self._kg(digest), owner, ex=max(1, int(tombstone_for.total_seconds())))
            out = cast(list[int], p.execute())
        return bool(out[1])

    def recently_rotated(self, token: str, *, within: timedelta) -> bool:
        if within <= timedelta(0):
            return False
        return bool(self.r.exists(self._kg(hash_token(token))))

    def revoke_all(self, user_id: int) -> int:
        key_u = self._ku(user_id)
        # Optimistic locking: retry if the list changes between read and delete.
        while True:
            try:
                with self.r.pipeline() as p:
                    p.watch(key_u)
                    digests = [_s(d) for d in p.lrange(key_u, 0, -1)]
                    p.multi()
                    p.delete(key_u)
                    for digest in digests:
                        p.delete(self._kt(cast(str, digest)))
                    p.execute()
                return len(digests)
            except redis.WatchError:
                continue

    def tokens_for(self, user_id: int) -> list[str]:
        key_u = self._ku(user_id)
        digests = [cast(str, _s(d)) for d in self.r.lrange(key_u, 0, -1)]
        if not digests:
            return []
        pipe = self.r.pipeline(transaction=False)
        for digest in digests:
            pipe.exists(self._kt(digest))
        alive = pipe.execute()
        stale = [d for d, ok in zip(digests, alive, strict=True) if not ok]
        if stale:
            # Owner index expired with the token: drop it from the list as well.
            cleanup = self.r.pipeline(transaction=True)
            for digest in stale:
                cleanup.lrem(key_u, 0, digest)
            cleanup.execute()
        return [d for d, ok in zip(digests, alive, strict=True) if ok]
