"""Convenience exports for application schemas."""

from __future__ import annotations

from .auth import (
    LoginSchema,
    RefreshSchema,
    RegisterSchema,
    ResendCodeSchema,
    SessionSchema,
    VerificationCodeSchema,
    VerifyEmailSchema,
)
from .user import UserSchema

__all__ = [
    "LoginSchema",
    "RefreshSchema",
    "RegisterSchema",
    "ResendCodeSchema",
    "SessionSchema",
    "UserSchema",
    "VerificationCodeSchema",
    "VerifyEmailSchema",
]
