"""Email verification repository: issued codes and their one-time redemption."""

from __future__ import annotations

from datetime import datetime
from typing import cast

from sqlalchemy import select, update

from campus_auth.models.email_verification import SIGNUP_PURPOSE, EmailVerification
from campus_auth.repositories.base import BaseRepository


class EmailVerificationRepository(BaseRepository[EmailVerification]):
    """Persistence-only repository for :class:`EmailVerification`."""

    model = EmailVerification

    def insert(
        self,
        *,
        email: str,
        code: str,
        expires_at: datetime,
        user_id: int | None,
        purpose: str = SIGNUP_PURPOSE,
    ) -> EmailVerification:
        """Stage and flush a new, unconsumed code."""
        return self.add(
            EmailVerification(
                user_id=user_id,
                email=email,
                code=code,
                purpose=purpose,
                expires_at=expires_at,
            )
        )

    def find_usable(
        self, *, email: str, code: str, now: datetime, purpose: str = SIGNUP_PURPOSE
    ) -> EmailVerification | None:
        """Return the newest unconsumed, unexpired row matching ``email`` and ``code``."""
        stmt = (
            select(EmailVerification)
            .where(
                EmailVerification.email == email,
                EmailVerification.code == code,
                EmailVerification.purpose == purpose,
                EmailVerification.consumed_at.is_(None),
                EmailVerification.expires_at > now,
            )
            .order_by(EmailVerification.id.desc())
        )
        return cast(EmailVerification | None, self.session.execute(stmt).scalars().first())

    def mark_consumed(self, *, record_id: int, now: datetime) -> bool:
        """Consume one code if still unconsumed. :returns: ``True`` if this call won."""
        stmt = (
            update(EmailVerification)
            .where(EmailVerification.id == record_id, EmailVerification.consumed_at.is_(None))
            .values(consumed_at=now)
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).rowcount == 1
