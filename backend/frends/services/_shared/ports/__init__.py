"""
frends.services._shared.ports
=============================

Collection of *ports* (hexagonal interfaces) that define the contracts for
token management, refresh-token storage and outbound mail.

Modules
-------
- :mod:`token_provider`:
    Defines :class:`~.TokenProvider`, the abstraction for signing and decoding
    tokens, plus a deterministic stub.

- :mod:`refresh_token_store`:
    Defines :class:`~.RefreshTokenStore`, the per-user refresh token collection
    with atomic conditional removal, plus an in-memory double.

- :mod:`mailer`:
    Defines :class:`~.Mailer` and :class:`~.OutgoingMail`.

Concrete adapters (SQL, Redis, logging mailer) live under ``frends.infra``.
"""

from __future__ import annotations

from .mailer import InMemoryMailer, Mailer, OutgoingMail
from .refresh_token_store import InMemoryRefreshTokenStore, RefreshTokenStore, hash_token
from .token_provider import (
    EMAIL_VERIFY,
    PASSWORD_RESET,
    REFRESH,
    StubTokenProvider,
    TokenProvider,
)

__all__ = [
    "TokenProvider",
    "StubTokenProvider",
    "RefreshTokenStore",
    "InMemoryRefreshTokenStore",
    "hash_token",
    "Mailer",
    "InMemoryMailer",
    "OutgoingMail",
    "REFRESH",
    "EMAIL_VERIFY",
    "PASSWORD_RESET",
]
