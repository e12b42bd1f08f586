"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from marshmallow import Schema, fields, validate


class RegisterSchema(Schema):
    """Input payload for account registration."""

    username = fields.String(required=True, validate=validate.Length(min=3, max=50))
    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=validate.Length(min=8, max=128))
    nickname = fields.String(required=True, validate=validate.Length(min=1, max=50))


class LoginSchema(Schema):
    """Input payload for authenticating a user by username or email."""

    login = fields.String(
        required=True,
        data_key="usernameOrEmail",
        validate=validate.Length(min=1, max=254),
    )
    password = fields.String(required=True, validate=validate.Length(min=1, max=128))


class RefreshSchema(Schema):
    """Input payload carrying a raw refresh credential (refresh and logout)."""

    refresh = fields.String(required=True, validate=validate.Length(min=1))


class SessionSchema(Schema):
    """One active refresh session. Never exposes the token hash."""

    id = fields.Integer(required=True)
    created_at = fields.DateTime(allow_none=True)
    expires_at = fields.DateTime(required=True)


class ResendCodeSchema(Schema):
    """Input payload requesting a new email verification code."""

    email = fields.Email(required=True, validate=validate.Length(max=254))


class VerifyEmailSchema(Schema):
    """Input payload redeeming an email verification code."""

    email = fields.Email(required=True, validate=validate.Length(max=254))
    code = fields.String(required=True, validate=validate.Regexp(r"^\d{6}$"))


class VerificationCodeSchema(Schema):
    """Issued code. ``code`` is only dumped when the deployment exposes it."""

    expires_at = fields.DateTime(required=True)
    code = fields.String()
