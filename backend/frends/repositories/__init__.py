"""Repository package exposing persistence-layer access for all domain models."""

from __future__ import annotations

from frends.repositories.base import BaseRepository
from frends.repositories.refresh_token import RefreshTokenRepository
from frends.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    "RefreshTokenRepository",
    "UserRepository",
]
