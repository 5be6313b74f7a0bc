"""Unit of Work contract used by the services."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from frends.repositories.refresh_token import RefreshTokenRepository
    from frends.repositories.user import UserRepository


class UnitOfWork(ABC):
    """
    One transaction around one use case.

    Repositories hang off the unit so they share its session. Leaving the
    ``with`` block commits; an exception rolls back and propagates.
    """

    users: UserRepository
    refresh_tokens: RefreshTokenRepository

    @abstractmethod
    def __enter__(self) -> UnitOfWork: ...

    @abstractmethod
    def __exit__(self, exc_type, exc, tb) -> None: ...

    @abstractmethod
    def commit(self) -> None: ...

    @abstractmethod
    def rollback(self) -> None: ...
