"""Repository package exposing persistence-layer access for all domain models."""

from __future__ import annotations

from campus_auth.repositories.base import BaseRepository
from campus_auth.repositories.email_verification import EmailVerificationRepository
from campus_auth.repositories.refresh_token import RefreshTokenRepository
from campus_auth.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    "EmailVerificationRepository",
    "RefreshTokenRepository",
    "UserRepository",
]
