"""
frends.services
===============

Application services orchestrating repositories, policies and ports.

- :mod:`frends.services.auth`: session lifecycle (login, refresh rotation,
  logout, revocation).
- :mod:`frends.services.accounts`: registration, verification, password reset,
  soft deletion and role assignment.
"""

from __future__ import annotations

from frends.services._shared.base import BaseService, ServiceContext

__all__ = ["BaseService", "ServiceContext"]
