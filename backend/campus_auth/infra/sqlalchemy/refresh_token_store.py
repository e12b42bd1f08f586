# campus_auth/infra/sqlalchemy/refresh_token_store.py
from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError, OperationalError

from campus_auth.models.base import as_utc, utcnow
from campus_auth.models.refresh_token import RefreshToken
from campus_auth.services._shared.errors import RotationConflictError, StoreUnavailableError
from campus_auth.services._shared.ports import RefreshRecordView, RefreshTokenStore, hash_token
from campus_auth.uow import SQLAlchemyReadOnlyUnitOfWork, SQLAlchemyUnitOfWork, UnitOfWork

log = logging.getLogger(__name__)


def _to_view(row: RefreshToken) -> RefreshRecordView:
    return RefreshRecordView(
        id=row.id,
        identity_id=row.user_id,
        token_hash=row.token_hash,
        expires_at=as_utc(row.expires_at),
        revoked_at=as_utc(row.revoked_at) if row.revoked_at is not None else None,
        replaced_by=row.replaced_by_id,
        created_at=as_utc(row.created_at) if row.created_at is not None else None,
    )


class SQLAlchemyRefreshTokenStore(RefreshTokenStore):
    """
    Relational refresh store on the ``refresh_tokens`` table.

    Every write runs in its own read-write Unit of Work. ``rotate`` inserts the
    successor and then flips the parent with a conditional ``UPDATE`` in the
    same transaction, so of two concurrent rotations of one parent exactly one
    commits; the loser rolls back and gets :class:`RotationConflictError`.

    Connectivity failures surface as :class:`StoreUnavailableError`.
    """

    def __init__(
        self,
        *,
        uow_factory: Callable[[], UnitOfWork] = SQLAlchemyUnitOfWork,
        ro_uow_factory: Callable[[], UnitOfWork] = SQLAlchemyReadOnlyUnitOfWork,
    ) -> None:
        self._uow_factory = uow_factory
        self._ro_uow_factory = ro_uow_factory

    @contextmanager
    def _store_errors(self) -> Iterator[None]:
        try:
            yield
        except OperationalError as exc:
            log.error("Refresh store unavailable: %s", exc.__class__.__name__, exc_info=True)
            raise StoreUnavailableError() from exc

    # ------------------------------ Reads ------------------------------

    def find_by_raw(self, raw_refresh: str) -> RefreshRecordView | None:
        with self._store_errors(), self._ro_uow_factory() as uow:
            row = uow.refresh_tokens.get_by_hash(hash_token(raw_refresh))
            return _to_view(row) if row is not None else None

    def list_active(self, identity_id: int) -> Sequence[RefreshRecordView]:
        with self._store_errors(), self._ro_uow_factory() as uow:
            rows = uow.refresh_tokens.list_active_for_user(identity_id, utcnow())
            return [_to_view(r) for r in rows]

    # ------------------------------ Writes -----------------------------

    def put(self, identity_id: int, raw_refresh: str, ttl: timedelta) -> RefreshRecordView:
        with self._store_errors(), self._uow_factory() as uow:
            row = uow.refresh_tokens.insert(
                user_id=identity_id,
                token_hash=hash_token(raw_refresh),
                expires_at=utcnow() + ttl,
            )
            return _to_view(row)

    def rotate(
        self,
        old_record: RefreshRecordView,
        identity_id: int,
        new_raw_refresh: str,
        ttl: timedelta,
    ) -> RefreshRecordView:
        if old_record.identity_id != identity_id:
            raise RotationConflictError(old_record.id)

        now = utcnow()
        try:
            with self._store_errors(), self._uow_factory() as uow:
                successor = uow.refresh_tokens.insert(
                    user_id=identity_id,
                    token_hash=hash_token(new_raw_refresh),
                    expires_at=now + ttl,
                )
                won = uow.refresh_tokens.mark_rotated(
                    record_id=old_record.id, successor_id=successor.id, now=now
                )
                if not won:
                    # Leaving the block with an exception rolls the successor back.
                    raise RotationConflictError(old_record.id)
                view = _to_view(successor)
        except IntegrityError as exc:
            raise RotationConflictError(old_record.id) from exc
        return view

    def revoke(self, record: RefreshRecordView) -> bool:
        with self._store_errors(), self._uow_factory() as uow:
            return uow.refresh_tokens.mark_revoked(record_id=record.id, now=utcnow())

    def revoke_all(self, identity_id: int) -> int:
        with self._store_errors(), self._uow_factory() as uow:
            return uow.refresh_tokens.revoke_all_for_user(user_id=identity_id, now=utcnow())

    def revoke_chain(self, record: RefreshRecordView) -> int:
        now = utcnow()
        count = 0
        with self._store_errors(), self._uow_factory() as uow:
            seen: set[int] = set()
            next_id = record.replaced_by
            if next_id is None:
                row = uow.refresh_tokens.get(record.id)
                next_id = row.replaced_by_id if row is not None else None
            while next_id is not None and next_id not in seen:
                seen.add(next_id)
                if uow.refresh_tokens.mark_revoked(record_id=next_id, now=now):
                    count += 1
                successor = uow.refresh_tokens.get(next_id)
                next_id = successor.replaced_by_id if successor is not None else None
        return count

    def prune_expired(self, now: datetime | None = None) -> int:
        with self._store_errors(), self._uow_factory() as uow:
            return uow.refresh_tokens.delete_expired(now or utcnow())
