"""User repository for persistence and credential lookups."""

from __future__ import annotations

from typing import cast

from sqlalchemy import func, or_, select

from frends.models.user import User
from frends.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Persistence-only repository for :class:`User`.

    This repository focuses on safe lookup. It NEVER handles tokens or session
    creation.
    """

    model = User

    # ---------------------------- Lookup helpers ----------------------------

    def get_by_identifier(self, identifier: str) -> User | None:
        """Fetch a user whose username OR email matches ``identifier``.

        Username matching is exact; email matching is case-insensitive.

        :param identifier: Username or email address.
        :type identifier: str
        :returns: User instance or ``None`` when not found.
        :rtype: User | None
        """
        value = identifier.strip()
        stmt = select(User).where(
            or_(User.username == value, User.email == value.lower())
        )
        # A username may look like somebody else's email; prefer the exact handle.
        stmt = stmt.order_by((User.username == value).desc(), User.id)
        result = self.session.execute(stmt).scalars().first()
        return cast(User | None, result)

    def get_by_email(self, email: str) -> User | None:
        """Fetch a user by email (case-insensitive).

        :param email: Email address to normalise and search.
        :type email: str
        :returns: User instance or ``None`` when not found.
        :rtype: User | None
        """
        stmt = select(User).where(User.email == email.lower().strip())
        return cast(User | None, self.session.execute(stmt).scalars().first())

    def get_current(self, user_id: int) -> User | None:
        """Re-read a user from the database, overwriting any loaded state."""
        stmt = (
            select(User)
            .where(User.id == user_id)
            .execution_options(populate_existing=True)
        )
        return cast(User | None, self.session.execute(stmt).scalars().first())

    def exists_by_email(self, email: str) -> bool:
        """Return ``True`` when a user with the provided email exists."""
        stmt = select(User.id).where(func.lower(User.email) == email.lower().strip())
        return bool(self.session.execute(stmt).first())

    def exists_by_username(self, username: str) -> bool:
        """Return ``True`` when the handle is taken."""
        stmt = select(User.id).where(User.username == username.strip())
        return bool(self.session.execute(stmt).first())
