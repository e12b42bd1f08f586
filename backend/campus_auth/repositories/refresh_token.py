"""Refresh token repository: hashed-credential rows and their state transitions."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import cast

from sqlalchemy import delete, select, update

from campus_auth.models.refresh_token import RefreshToken
from campus_auth.repositories.base import BaseRepository


class RefreshTokenRepository(BaseRepository[RefreshToken]):
    """Persistence-only repository for :class:`RefreshToken`.

    Every mutating statement is a guarded bulk ``UPDATE``/``DELETE`` whose
    ``WHERE`` clause re-checks the state it expects. The affected row count
    tells the caller whether it won; repositories never decide what a lost
    race means.
    """

    model = RefreshToken

    # ------------------------------ Lookups ------------------------------

    def get_by_hash(self, token_hash: str) -> RefreshToken | None:
        """Fetch the row for a token digest (unique index lookup)."""
        stmt = select(RefreshToken).where(RefreshToken.token_hash == token_hash)
        # populate_existing: never serve a stale identity-map copy of the row
        stmt = stmt.execution_options(populate_existing=True)
        return cast(RefreshToken | None, self.session.execute(stmt).scalars().first())

    def list_active_for_user(self, user_id: int, now: datetime) -> Sequence[RefreshToken]:
        """Return unrevoked, unexpired rows of a user, newest first."""
        stmt = (
            select(RefreshToken)
            .where(
                RefreshToken.user_id == user_id,
                RefreshToken.revoked_at.is_(None),
                RefreshToken.expires_at > now,
            )
            .order_by(RefreshToken.created_at.desc(), RefreshToken.id.desc())
        )
        return self.session.execute(stmt).scalars().all()

    # ------------------------------ Writes -------------------------------

    def insert(self, *, user_id: int, token_hash: str, expires_at: datetime) -> RefreshToken:
        """Stage and flush a new active row."""
        return self.add(
            RefreshToken(
                user_id=user_id,
                token_hash=token_hash,
                expires_at=expires_at,
                revoked_at=None,
                replaced_by_id=None,
            )
        )

    def mark_rotated(self, *, record_id: int, successor_id: int, now: datetime) -> bool:
        """
        Revoke ``record_id`` and link it to ``successor_id`` if still unrevoked.

        :returns: ``True`` when this call performed the transition.
        """
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.id == record_id, RefreshToken.revoked_at.is_(None))
            .values(revoked_at=now, replaced_by_id=successor_id)
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).rowcount == 1

    def mark_revoked(self, *, record_id: int, now: datetime) -> bool:
        """Revoke one row if still unrevoked. :returns: ``True`` if it flipped."""
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.id == record_id, RefreshToken.revoked_at.is_(None))
            .values(revoked_at=now)
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).rowcount == 1

    def revoke_all_for_user(self, *, user_id: int, now: datetime) -> int:
        """Revoke every unrevoked row of ``user_id``. :returns: rows affected."""
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.user_id == user_id, RefreshToken.revoked_at.is_(None))
            .values(revoked_at=now)
            .execution_options(synchronize_session=False)
        )
        return int(self.session.execute(stmt).rowcount or 0)

    def delete_expired(self, now: datetime) -> int:
        """
        Delete rows whose ``expires_at`` has passed.

        Links from surviving parents into deleted rows are cleared first so the
        self-referencing foreign key holds on backends without ``SET NULL``.
        """
        expired_ids = select(RefreshToken.id).where(RefreshToken.expires_at <= now)
        self.session.execute(
            update(RefreshToken)
            .where(RefreshToken.replaced_by_id.in_(expired_ids))
            .values(replaced_by_id=None)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(
            delete(RefreshToken)
            .where(RefreshToken.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        return int(result.rowcount or 0)
