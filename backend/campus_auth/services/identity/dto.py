"""
DTOs for IdentityService.

Data Transfer Objects (DTOs) isolate the service layer from ORM models,
ensuring clear input/output contracts and type safety.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from campus_auth.models.user import User

# --------------------------------------------------------------------------- #
# Input DTOs
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class UserRegisterIn:
    """
    Input DTO for user registration.

    :param username: Login handle.
    :type username: str
    :param email: Login email (normalized to lowercase).
    :type email: str
    :param password: Raw password to be hashed by the model.
    :type password: str
    :param nickname: Public display name.
    :type nickname: str
    """

    username: str
    email: str
    password: str
    nickname: str


# --------------------------------------------------------------------------- #
# Output DTOs
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class UserPublicOut:
    """
    Output DTO representing public-safe user data.

    :param id: User identifier.
    :param username: Username.
    :param email: Email address.
    :param nickname: Display name.
    :param email_verified: Whether the email was confirmed with a code.
    :param created_at: Registration time.
    """

    id: int
    username: str
    email: str
    nickname: str
    email_verified: bool = False
    created_at: datetime | None = None

    @classmethod
    def from_model(cls, user: User) -> UserPublicOut:
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            nickname=user.nickname,
            email_verified=bool(user.email_verified),
            created_at=user.created_at,
        )


@dataclass(frozen=True, slots=True)
class VerificationCodeOut:
    """
    A freshly issued email verification code.

    :param email: Normalized address the code belongs to.
    :param code: Six-digit code to deliver to the owner.
    :param expires_at: When the code stops being accepted.
    """

    email: str
    code: str
    expires_at: datetime
