"""Marshmallow schemas for request validation and response serialization."""

from __future__ import annotations

from .auth import (
    IdentitySchema,
    LoginSchema,
    PasswordResetRequestSchema,
    PasswordResetSchema,
    RegisterSchema,
    SessionSchema,
)
from .user import RolesUpdateSchema, UserSchema

__all__ = [
    "IdentitySchema",
    "LoginSchema",
    "PasswordResetRequestSchema",
    "PasswordResetSchema",
    "RegisterSchema",
    "RolesUpdateSchema",
    "SessionSchema",
    "UserSchema",
]
