"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from marshmallow import Schema, fields, validate

from frends.services._shared.policies.roles import SELF_SERVICE_ACCOUNT_TYPES


class RegisterSchema(Schema):
    """Input payload for account registration."""

    username = fields.String(required=True, validate=validate.Length(min=3, max=50))
    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=validate.Length(min=8, max=128))
    account_type = fields.String(
        load_default="individual",
        data_key="accountType",
        validate=validate.OneOf(sorted(SELF_SERVICE_ACCOUNT_TYPES)),
    )


class LoginSchema(Schema):
    """Input payload for authenticating a user by username or email."""

    identifier = fields.String(required=True, validate=validate.Length(min=1, max=254))
    password = fields.String(required=True, validate=validate.Length(min=1, max=128))


class PasswordResetRequestSchema(Schema):
    email = fields.Email(required=True, validate=validate.Length(max=254))


class PasswordResetSchema(Schema):
    password = fields.String(required=True, validate=validate.Length(min=8, max=128))


class SessionSchema(Schema):
    """Response payload of login and refresh."""

    access_token = fields.String(required=True, data_key="accessToken")
    roles = fields.List(fields.String(), required=True)


class IdentitySchema(Schema):
    """Identity decoded from the bearer token."""

    user_id = fields.Integer(required=True, data_key="id")
    username = fields.String(required=True)
    roles = fields.Method("_sorted_roles")

    def _sorted_roles(self, obj) -> list[str]:
        return sorted(obj.roles)
