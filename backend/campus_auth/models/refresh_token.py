"""Refresh token model: one row per issued refresh credential."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from campus_auth.core.extensions import db

from .base import CreatedAtMixin, PKMixin, ReprMixin, as_utc

if TYPE_CHECKING:
    from .user import User


class RefreshToken(PKMixin, ReprMixin, CreatedAtMixin, db.Model):
    """
    Durable record of an issued refresh credential.

    Only the SHA-256 hex digest of the raw token is stored. A record is
    *active* while ``revoked_at`` is null and ``expires_at`` is in the future.
    Rotation sets ``revoked_at`` and points ``replaced_by_id`` at the successor,
    forming a singly linked chain per login session.

    Fields
    ------
    user_id : int
        Owning identity. Never changes after insert.
    token_hash : str
        Hex digest of the raw credential (unique).
    expires_at : datetime
        Absolute expiry mirrored from the credential's lifetime.
    revoked_at : datetime | None
        Set once, on rotation or logout.
    replaced_by_id : int | None
        Successor created by rotation. Unique, so a parent has at most one child.
    """

    __tablename__ = "refresh_tokens"

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    token_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    replaced_by_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("refresh_tokens.id", ondelete="SET NULL"), nullable=True
    )

    user: Mapped[User] = relationship(back_populates="refresh_tokens", lazy="raise")
    replaced_by: Mapped[RefreshToken | None] = relationship(
        remote_side="RefreshToken.id", lazy="raise", post_update=True
    )

    __table_args__ = (
        UniqueConstraint("token_hash", name="uq_refresh_tokens_token_hash"),
        UniqueConstraint("replaced_by_id", name="uq_refresh_tokens_replaced_by_id"),
        CheckConstraint(
            "replaced_by_id IS NULL OR revoked_at IS NOT NULL",
            name="rotated_requires_revoked",
        ),
        Index("ix_refresh_tokens_user_id_revoked_at", "user_id", "revoked_at"),
        Index("ix_refresh_tokens_expires_at", "expires_at"),
    )

    def is_active(self, now: datetime) -> bool:
        """Return ``True`` when the record can still be rotated or validated."""
        return self.revoked_at is None and as_utc(self.expires_at) > as_utc(now)
