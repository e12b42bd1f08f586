"""User Marshmallow schemas."""

from __future__ import annotations

from marshmallow import Schema, fields


class UserSchema(Schema):
    """Serialize public user data (``UserPublicOut``)."""

    id = fields.Integer(required=True)
    username = fields.String(required=True)
    email = fields.Email(required=True)
    nickname = fields.String(required=True)
    email_verified = fields.Boolean()
    created_at = fields.DateTime(allow_none=True)
