"""Persisted refresh-token collection rows."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from frends.core.extensions import db

from .base import PKMixin, ReprMixin


class RefreshToken(PKMixin, ReprMixin, db.Model):
    """
    One member of a user's refresh-token collection.

    Only the SHA-256 digest of the token string is stored. A row whose
    ``rotated_at`` is set is a rotation tombstone: it no longer belongs to the
    collection and only records that the token was rotated out recently.

    Fields
    ------
    user_id : int
        Owner of the session.
    token_digest : str
        Hex SHA-256 of the token string.
    expires_at : datetime
        Expiry of the token itself.
    rotated_at : datetime | None
        Set when the token was consumed by a rotation.
    created_at : datetime
        Insertion time.
    """

    __tablename__ = "refresh_tokens"

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    token_digest: Mapped[str] = mapped_column(String(64), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    rotated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("token_digest", name="uq_refresh_tokens_token_digest"),
        Index("ix_refresh_tokens_user_id", "user_id"),
    )
