from __future__ import annotations

import hashlib
import threading
from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Protocol

from campus_auth.services._shared.errors import RotationConflictError


def hash_token(raw: str) -> str:
    """Return the SHA-256 hex digest stored in place of a raw refresh token."""
    return hashlib.sha256(str(raw).encode("utf-8")).hexdigest()


class RecordStatus(str, Enum):
    """Lifecycle state of a refresh record. Only ``ACTIVE`` is accepted as input."""

    ACTIVE = "active"
    ROTATED = "rotated"
    REVOKED = "revoked"
    EXPIRED = "expired"


@dataclass(frozen=True, slots=True)
class RefreshRecordView:
    """
    Read-model for a refresh record.

    :ivar id: Record identifier.
    :ivar identity_id: Owning identity. Never changes.
    :ivar token_hash: Digest of the raw credential.
    :ivar expires_at: Absolute expiry (UTC).
    :ivar revoked_at: When the record was rotated or revoked, if ever.
    :ivar replaced_by: Successor created by rotation, if any.
    :ivar created_at: Insert time (UTC).
    """

    id: int
    identity_id: int
    token_hash: str
    expires_at: datetime
    revoked_at: datetime | None
    replaced_by: int | None
    created_at: datetime | None = None

    def status(self, now: datetime | None = None) -> RecordStatus:
        if self.revoked_at is not None:
            return RecordStatus.ROTATED if self.replaced_by is not None else RecordStatus.REVOKED
        if self.expires_at <= (now or datetime.now(UTC)):
            return RecordStatus.EXPIRED
        return RecordStatus.ACTIVE

    def is_active(self, now: datetime | None = None) -> bool:
        return self.status(now) is RecordStatus.ACTIVE


class RefreshTokenStore(Protocol):
    """
    Durable store of issued refresh credentials, keyed by their hash.

    Raw token values never reach the backing storage. ``rotate`` MUST be a
    single atomic transition per parent record.
    """

    def put(self, identity_id: int, raw_refresh: str, ttl: timedelta) -> RefreshRecordView:
        """Persist a new active record for ``raw_refresh``."""
        ...

    def find_by_raw(self, raw_refresh: str) -> RefreshRecordView | None:
        """Look a record up by the hash of ``raw_refresh``."""
        ...

    def rotate(
        self,
        old_record: RefreshRecordView,
        identity_id: int,
        new_raw_refresh: str,
        ttl: timedelta,
    ) -> RefreshRecordView:
        """
        Revoke ``old_record``, link it to a new record and insert that record.

        :raises RotationConflictError: If ``old_record`` is no longer unrevoked
            (a concurrent rotation or logout won) or belongs to another identity.
        """
        ...

    def revoke(self, record: RefreshRecordView) -> bool:
        """Revoke one record. :returns: ``True`` if it was still unrevoked."""
        ...

    def revoke_all(self, identity_id: int) -> int:
        """Revoke every unrevoked record of an identity. :returns: rows affected."""
        ...

    def revoke_chain(self, record: RefreshRecordView) -> int:
        """Revoke every still-unrevoked successor of ``record``. :returns: rows affected."""
        ...

    def list_active(self, identity_id: int) -> Sequence[RefreshRecordView]:
        """List active records of an identity, newest first."""
        ...

    def prune_expired(self, now: datetime | None = None) -> int:
        """Delete expired records. :returns: rows deleted."""
        ...


class InMemoryRefreshTokenStore(RefreshTokenStore):
    """
    In-memory refresh store with the same transition rules as the SQL store.

    .. note::
       A single lock serializes every mutation, which makes ``rotate`` atomic
       within one process. Used by unit tests and local tooling only.
    """

    def __init__(self) -> None:
        self._by_id: dict[int, RefreshRecordView] = {}
        self._by_hash: dict[str, int] = {}
        self._seq = 0
        self._lock = threading.Lock()

    # ------------------------- helpers -------------------------

    @staticmethod
    def _now() -> datetime:
        return datetime.now(UTC)

    def _insert(self, identity_id: int, token_hash: str, ttl: timedelta) -> RefreshRecordView:
        if token_hash in self._by_hash:
            raise ValueError("Refresh token hash already stored.")
        self._seq += 1
        now = self._now()
        record = RefreshRecordView(
            id=self._seq,
            identity_id=identity_id,
            token_hash=token_hash,
            expires_at=now + ttl,
            revoked_at=None,
            replaced_by=None,
            created_at=now,
        )
        self._by_id[record.id] = record
        self._by_hash[token_hash] = record.id
        return record

    # -------------------------- API ----------------------------

    def put(self, identity_id: int, raw_refresh: str, ttl: timedelta) -> RefreshRecordView:
        with self._lock:
            return self._insert(identity_id, hash_token(raw_refresh), ttl)

    def find_by_raw(self, raw_refresh: str) -> RefreshRecordView | None:
        with self._lock:
            record_id = self._by_hash.get(hash_token(raw_refresh))
            return None if record_id is None else self._by_id.get(record_id)

    def rotate(
        self,
        old_record: RefreshRecordView,
        identity_id: int,
        new_raw_refresh: str,
        ttl: timedelta,
    ) -> RefreshRecordView:
        with self._lock:
            current = self._by_id.get(old_record.id)
            if current is None or current.revoked_at is not None:
                raise RotationConflictError(old_record.id)
            if current.identity_id != identity_id:
                raise RotationConflictError(old_record.id)
            successor = self._insert(identity_id, hash_token(new_raw_refresh), ttl)
            self._by_id[current.id] = replace(
                current, revoked_at=successor.created_at, replaced_by=successor.id
            )
            return successor

    def revoke(self, record: RefreshRecordView) -> bool:
        with self._lock:
            current = self._by_id.get(record.id)
            if current is None or current.revoked_at is not None:
                return False
            self._by_id[current.id] = replace(current, revoked_at=self._now())
            return True

    def revoke_all(self, identity_id: int) -> int:
        with self._lock:
            now = self._now()
            count = 0
            for record in list(self._by_id.values()):
                if record.identity_id == identity_id and record.revoked_at is None:
                    self._by_id[record.id] = replace(record, revoked_at=now)
                    count += 1
            return count

    def revoke_chain(self, record: RefreshRecordView) -> int:
        with self._lock:
            now = self._now()
            count = 0
            current = self._by_id.get(record.id)
            seen: set[int] = set()
            while current is not None and current.replaced_by is not None:
                if current.replaced_by in seen:
                    break
                seen.add(current.replaced_by)
                successor = self._by_id.get(current.replaced_by)
                if successor is None:
                    break
                if successor.revoked_at is None:
                    successor = replace(successor, revoked_at=now)
                    self._by_id[successor.id] = successor
                    count += 1
                current = successor
            return count

    def list_active(self, identity_id: int) -> Sequence[RefreshRecordView]:
        with self._lock:
            now = self._now()
            rows = [
                r for r in self._by_id.values() if r.identity_id == identity_id and r.is_active(now)
            ]
        return sorted(rows, key=lambda r: r.id, reverse=True)

    def prune_expired(self, now: datetime | None = None) -> int:
        with self._lock:
            cutoff = now or self._now()
            expired = {rid for rid, r in self._by_id.items() if r.expires_at <= cutoff}
            for rid in expired:
                record = self._by_id.pop(rid)
                self._by_hash.pop(record.token_hash, None)
            for rid, record in list(self._by_id.items()):
                if record.replaced_by in expired:
                    self._by_id[rid] = replace(record, replaced_by=None)
            return len(expired)
