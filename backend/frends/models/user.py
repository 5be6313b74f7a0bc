"""User model definition for the Frends social network."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, Boolean, DateTime, Index, String, UniqueConstraint, false, true
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates
from werkzeug.security import check_password_hash, generate_password_hash

from frends.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin, utcnow

if TYPE_CHECKING:  # pragma: no cover
    from .refresh_token import RefreshToken


class User(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    Authentication identity and authorization state of an account.

    Fields
    ------
    username : str
        Public handle. Unique per system.
    email : str
        Login email. Stored normalized (lowercase, trimmed).
    password_hash : str
        Hashed password (write-only setter via ``password``).
    roles : frozenset[str]
        Flat set of capability tags, persisted as a sorted JSON list.
    active : bool
        ``False`` once the account is soft-deleted.
    email_verified : bool
        Set when the mailed verification link is consumed.
    deleted_at : datetime | None
        Soft-deletion instant.
    password_reset_digest : str | None
        Digest of the single outstanding password-reset token.
    refresh_tokens : list[RefreshToken]
        Live refresh tokens (one per session/device), oldest first.
    """

    __tablename__ = "users"

    # Columns
    username: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(254), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(254), nullable=False)
    role_tags: Mapped[list[str]] = mapped_column("roles", JSON, nullable=False, default=list)
    active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )
    email_verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    password_reset_digest: Mapped[str | None] = mapped_column(String(64), nullable=True)

    refresh_tokens: Mapped[list[RefreshToken]] = relationship(
        "RefreshToken",
        primaryjoin="and_(User.id == RefreshToken.user_id, RefreshToken.rotated_at.is_(None))",
        order_by="RefreshToken.id",
        viewonly=True,
    )

    # Constraints & indexes
    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        UniqueConstraint("username", name="uq_users_username"),
        Index("ix_users_email", "email"),
        Index("ix_users_username", "username"),
    )

    # -------------------- Roles --------------------
    @property
    def roles(self) -> frozenset[str]:
        """Capability tags held by the account."""
        return frozenset(self.role_tags or ())

    @roles.setter
    def roles(self, tags: Iterable[str]) -> None:
        self.role_tags = sorted({str(t) for t in tags})

    # -------------------- Password API --------------------
    @property
    def password(self) -> Any:  # pragma: no cover - explicit write-only contract
        """
        Disallow reading passwords.

        :raises AttributeError: Always, to ensure password is write-only.
        """
        raise AttributeError("Password is write-only.")

    @password.setter
    def password(self, raw: str) -> None:
        """
        Hash and set the password.

        :param raw: Plain text password to hash.
        :type raw: str
        """
        if not isinstance(raw, str) or not raw:
            raise ValueError("Password must be a non-empty string.")
        self.password_hash = generate_password_hash(raw)

    def verify_password(self, raw: str) -> bool:
        """
        Verify a password against the stored hash.

        :param raw: Plain text password candidate.
        :type raw: str
        :returns: ``True`` if it matches; otherwise ``False``.
        :rtype: bool
        """
        if not self.password_hash:
            return False
        return bool(check_password_hash(self.password_hash, raw))

    # -------------------- Lifecycle --------------------
    @property
    def is_soft_deleted(self) -> bool:
        """``True`` when the account was deactivated but still exists."""
        return not self.active and self.deleted_at is not None

    def soft_delete(self, *, at: datetime | None = None) -> None:
        """Deactivate the account, keeping the record."""
        self.active = False
        self.deleted_at = at or utcnow()

    def reactivate(self) -> None:
        """Undo a soft delete."""
        self.active = True
        self.deleted_at = None

    # -------------------- Validators --------------------
    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        """
        Normalize and validate email.

        :raises ValueError: If email is missing or malformed.
        """
        if not value or not isinstance(value, str):
            raise ValueError("Email is required.")
        v = value.strip().lower()
        # Minimal sanity check; full validation happens at API layer.
        if "@" not in v or "." not in v.split("@")[-1]:
            raise ValueError("Email format looks invalid.")
        return v

    @validates("username")
    def _normalize_username(self, key: str, value: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Username is required.")
        return value.strip()
