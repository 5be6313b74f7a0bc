"""User-facing Marshmallow schemas."""

from __future__ import annotations

from marshmallow import Schema, fields, validate


class UserSchema(Schema):
    """Public representation of an account."""

    id = fields.Integer(required=True)
    username = fields.String(required=True)
    email = fields.Email(required=True)
    roles = fields.List(fields.String(), required=True)
    active = fields.Boolean(required=True)
    email_verified = fields.Boolean(required=True, data_key="emailVerified")
    deleted_at = fields.DateTime(allow_none=True, data_key="deletedAt")


class RolesUpdateSchema(Schema):
    """Input payload replacing a user's role tags."""

    roles = fields.List(
        fields.String(validate=validate.Length(min=1, max=32)),
        required=True,
        validate=validate.Length(min=1),
    )
