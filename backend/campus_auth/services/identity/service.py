"""
IdentityService
===============

Aggregate service responsible for the `User` aggregate:
- Registration with uniqueness checks
- Retrieval of public user data
- Email verification codes (issue, redeem once)

Credential issuance lives in :mod:`campus_auth.services.auth`.
"""

from __future__ import annotations

import logging
import secrets
from datetime import timedelta

from sqlalchemy.exc import IntegrityError

from campus_auth.models.base import utcnow
from campus_auth.repositories.email_verification import EmailVerificationRepository
from campus_auth.repositories.user import UserRepository
from campus_auth.services._shared.base import BaseService
from campus_auth.services._shared.errors import (
    ConflictError,
    InvalidVerificationCode,
    NotFoundError,
    violates,
)
from campus_auth.services.identity.dto import UserPublicOut, UserRegisterIn, VerificationCodeOut

log = logging.getLogger(__name__)

VERIFICATION_CODE_TTL = timedelta(minutes=15)


def _six_digit_code() -> str:
    return str(100000 + secrets.randbelow(900000))


class IdentityService(BaseService):
    """
    Application service for the `User` aggregate.

    Responsibilities
    ----------------
    - Register users ensuring username, email and nickname uniqueness.
    - Retrieve user data safely.
    - Issue and redeem single-use email verification codes.
    """

    # --------------------------------------------------------------------- #
    # Registration
    # --------------------------------------------------------------------- #

    def register_user(self, dto: UserRegisterIn) -> UserPublicOut:
        """
        Register a new user.

        :param dto: User registration input DTO.
        :type dto: UserRegisterIn
        :returns: Public-safe user DTO.
        :rtype: UserPublicOut
        :raises ConflictError: When username, email or nickname is taken.
        """
        try:
            with self.rw_uow() as uow:
                repo: UserRepository = uow.users

                clash = repo.find_duplicate(
                    username=dto.username, email=dto.email, nickname=dto.nickname
                )
                if clash is not None:
                    raise ConflictError("User", "user already exists")

                user = repo.model(
                    username=dto.username,
                    email=dto.email,
                    password=dto.password,  # model hashes via setter
                    nickname=dto.nickname,
                )
                repo.add(user)
                out = UserPublicOut.from_model(user)
        except IntegrityError as exc:
            # Lost a race against a concurrent registration
            for constraint, field in (
                ("uq_users_email", "email"),
                ("uq_users_username", "username"),
                ("uq_users_nickname", "nickname"),
            ):
                if violates(exc, constraint):
                    raise ConflictError("User", f"{field} already in use") from exc
            raise
        return out

    # --------------------------------------------------------------------- #
    # Retrieval
    # --------------------------------------------------------------------- #

    def get_user(self, user_id: int) -> UserPublicOut:
        """
        Retrieve a user by identifier.

        :param user_id: User primary key.
        :type user_id: int
        :returns: Public-safe user DTO.
        :rtype: UserPublicOut
        :raises NotFoundError: If user does not exist.
        """
        with self.ro_uow() as uow:
            repo: UserRepository = uow.users
            user = repo.get(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            return UserPublicOut.from_model(user)

    # --------------------------------------------------------------------- #
    # Email verification
    # --------------------------------------------------------------------- #

    def issue_verification_code(
        self, email: str, *, ttl: timedelta = VERIFICATION_CODE_TTL
    ) -> VerificationCodeOut:
        """
        Create a new six-digit code for the account registered under ``email``.

        Earlier unconsumed codes stay valid until they expire.

        :raises NotFoundError: If no account uses ``email``.
        """
        address = email.strip().lower()
        with self.rw_uow() as uow:
            repo: UserRepository = uow.users
            user = repo.get_by_email(address)
            if user is None:
                raise NotFoundError("User", address)

            codes: EmailVerificationRepository = uow.email_verifications
            record = codes.insert(
                email=address,
                code=_six_digit_code(),
                expires_at=utcnow() + ttl,
                user_id=user.id,
            )
            out = VerificationCodeOut(
                email=address, code=record.code, expires_at=record.expires_at
            )
            user_id = user.id

        log.info(
            "Verification code issued",
            extra={"event": "identity.verification.issued", "identity_id": user_id},
        )
        return out

    def verify_email(self, email: str, code: str) -> bool:
        """
        Redeem a code and mark the owning account's email as verified.

        Consumption and the flag update commit together; a code is accepted once.

        :returns: ``True`` once the email is verified.
        :raises InvalidVerificationCode: Unknown, expired or already used code.
        """
        address = email.strip().lower()
        with self.rw_uow() as uow:
            codes: EmailVerificationRepository = uow.email_verifications
            now = utcnow()
            record = codes.find_usable(email=address, code=code.strip(), now=now)
            if record is None or not codes.mark_consumed(record_id=record.id, now=now):
                raise InvalidVerificationCode()
            if record.user_id is not None:
                repo: UserRepository = uow.users
                repo.mark_email_verified(record.user_id)
            user_id = record.user_id

        log.info(
            "Email verified",
            extra={"event": "identity.verification.redeemed", "identity_id": user_id},
        )
        return True
