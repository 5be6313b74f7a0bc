"""Repository for refresh-token collection rows.

Every mutating helper is a single conditional statement whose affected row
count is returned, so concurrent callers racing on the same token observe
exactly one winner.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, select, update

from frends.models.refresh_token import RefreshToken
from frends.repositories.base import BaseRepository


class RefreshTokenRepository(BaseRepository[RefreshToken]):
    """Persistence-only access to ``refresh_tokens``."""

    model = RefreshToken

    def add_digest(self, user_id: int, digest: str, expires_at: datetime) -> RefreshToken:
        """Append a digest to the user's collection.

        :param user_id: Owner id.
        :param digest: Hex SHA-256 of the token.
        :param expires_at: Token expiry.
        :returns: The flushed row.
        :rtype: RefreshToken
        """
        return self.add(RefreshToken(user_id=user_id, token_digest=digest, expires_at=expires_at))

    def owner_of(self, digest: str) -> int | None:
        """Return the owner id of a live (not rotated) digest."""
        stmt = select(RefreshToken.user_id).where(
            RefreshToken.token_digest == digest,
            RefreshToken.rotated_at.is_(None),
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def delete_live(self, digest: str) -> bool:
        """Delete a live digest. ``True`` only for the caller whose delete hit."""
        stmt = delete(RefreshToken).where(
            RefreshToken.token_digest == digest,
            RefreshToken.rotated_at.is_(None),
        )
        result = self.session.execute(stmt, execution_options={"synchronize_session": False})
        return result.rowcount == 1

    def mark_rotated(self, digest: str, at: datetime) -> bool:
        """Turn a live digest into a tombstone. ``True`` only for the winner."""
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.token_digest == digest, RefreshToken.rotated_at.is_(None))
            .values(rotated_at=at)
        )
        result = self.session.execute(stmt, execution_options={"synchronize_session": False})
        return result.rowcount == 1

    def rotated_since(self, digest: str, since: datetime) -> bool:
        stmt = select(RefreshToken.id).where(
            RefreshToken.token_digest == digest,
            RefreshToken.rotated_at.is_not(None),
            RefreshToken.rotated_at >= since,
        )
        return self.session.execute(stmt).first() is not None

    def delete_for_user(self, user_id: int) -> int:
        """Drop every row of a user. Returns the number of live tokens removed."""
        live = delete(RefreshToken).where(
            RefreshToken.user_id == user_id, RefreshToken.rotated_at.is_(None)
        )
        removed = self.session.execute(live, execution_options={"synchronize_session": False})
        self.session.execute(
            delete(RefreshToken).where(RefreshToken.user_id == user_id),
            execution_options={"synchronize_session": False},
        )
        return int(removed.rowcount or 0)

    def digests_for(self, user_id: int) -> list[str]:
        """Live digests of a user, oldest first."""
        stmt = (
            select(RefreshToken.token_digest)
            .where(RefreshToken.user_id == user_id, RefreshToken.rotated_at.is_(None))
            .order_by(RefreshToken.id)
        )
        return list(self.session.execute(stmt).scalars())

    def purge(self, *, expired_before: datetime, rotated_before: datetime) -> int:
        """Delete expired tokens and stale tombstones."""
        stmt = delete(RefreshToken).where(
            (RefreshToken.expires_at < expired_before)
            | (RefreshToken.rotated_at.is_not(None) & (RefreshToken.rotated_at < rotated_before))
        )
        result = self.session.execute(stmt, execution_options={"synchronize_session": False})
        return int(result.rowcount or 0)
