from __future__ import annotations

import hashlib
import threading
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol


def hash_token(token: str) -> str:
    """Return the hex SHA-256 digest under which a refresh token is stored."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class RefreshTokenStore(Protocol):
    """
    Per-user collection of currently valid refresh tokens.

    Tokens are compared by digest. Every write MUST be atomic against the
    backing store: in particular :meth:`remove` is a conditional "remove if
    present" that returns ``True`` for exactly one of any number of concurrent
    callers presenting the same token.
    """

    def add(self, user_id: int, token: str, expires_at: datetime) -> None:
        """Append ``token`` to the collection of ``user_id``."""

    def find_owner(self, token: str) -> int | None:
        """Return the user whose collection holds ``token``, if any."""

    def remove(self, token: str, *, tombstone_for: timedelta | None = None) -> bool:
        """
        Remove ``token`` from its owner's collection.

        :param tombstone_for: When positive, remember the removal for that long
            so :meth:`recently_rotated` can recognise the token.
        :returns: ``True`` if this call removed it, ``False`` if it was absent.
        """

    def recently_rotated(self, token: str, *, within: timedelta) -> bool:
        """Report whether ``token`` was removed by a rotation within ``within``."""

    def revoke_all(self, user_id: int) -> int:
        """
        Empty the collection of ``user_id``.

        :returns: Number of tokens removed.
        """

    def tokens_for(self, user_id: int) -> list[str]:
        """Digests currently held by ``user_id``, oldest first."""


@dataclass(frozen=True, slots=True)
class _Entry:
    user_id: int
    expires_at: datetime


class InMemoryRefreshTokenStore(RefreshTokenStore):
    """
    In-memory refresh token collections.

    .. note::
       Uses a threading lock to provide atomicity in unit tests. It is never
       shared across processes, so the application factory refuses it.
    """

    def __init__(self) -> None:
        self._by_digest: dict[str, _Entry] = {}
        self._by_user: dict[int, list[str]] = {}
        self._rotated: dict[str, datetime] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _now() -> datetime:
        return datetime.now(UTC)

    def add(self, user_id: int, token: str, expires_at: datetime) -> None:
        digest = hash_token(token)
        with self._lock:
            self._by_digest[digest] = _Entry(user_id=user_id, expires_at=expires_at)
            self._by_user.setdefault(user_id, []).append(digest)

    def find_owner(self, token: str) -> int | None:
        with self._lock:
            entry = self._by_digest.get(hash_token(token))
            return entry.user_id if entry else None

    def remove(self, token: str, *, tombstone_for: timedelta | None = None) -> bool:
        digest = hash_token(token)
        with self._lock:
            entry = self._by_digest.pop(digest, None)
            if entry is None:
                return False
            self._by_user[entry.user_id].remove(digest)
            if tombstone_for and tombstone_for > timedelta(0):
                self._rotated[digest] = self._now()
            return True

    def recently_rotated(self, token: str, *, within: timedelta) -> bool:
        if within <= timedelta(0):
            return False
        with self._lock:
            at = self._rotated.get(hash_token(token))
            return at is not None and self._now() - at <= within

    def revoke_all(self, user_id: int) -> int:
        with self._lock:
            digests = self._by_user.pop(user_id, [])
            for digest in digests:
                self._by_digest.pop(digest, None)
            return len(digests)

    def tokens_for(self, user_id: int) -> list[str]:
        with self._lock:
            return list(self._by_user.get(user_id, []))
