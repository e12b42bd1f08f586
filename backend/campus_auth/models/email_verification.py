"""Email verification model: single-use codes proving control of an address."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from campus_auth.core.extensions import db

from .base import CreatedAtMixin, PKMixin, ReprMixin, as_utc

SIGNUP_PURPOSE = "signup"


class EmailVerification(PKMixin, ReprMixin, CreatedAtMixin, db.Model):
    """
    A short numeric code mailed to an address.

    A code is *usable* while ``consumed_at`` is null and ``expires_at`` is in
    the future. Consuming it is a one-way transition.

    Fields
    ------
    user_id : int | None
        Account the code verifies, when one exists.
    email : str
        Normalized address the code was sent to.
    code : str
        Six decimal digits.
    purpose : str
        What the code proves (``"signup"``).
    expires_at : datetime
        Absolute expiry.
    consumed_at : datetime | None
        Set once, when the code is redeemed.
    """

    __tablename__ = "email_verifications"

    user_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True
    )
    email: Mapped[str] = mapped_column(String(254), nullable=False)
    code: Mapped[str] = mapped_column(String(6), nullable=False)
    purpose: Mapped[str] = mapped_column(String(20), nullable=False, default=SIGNUP_PURPOSE)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    consumed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_email_verifications_email_purpose", "email", "purpose"),
    )

    def is_usable(self, now: datetime) -> bool:
        return self.consumed_at is None and as_utc(self.expires_at) > as_utc(now)
