"""Unit tests for InMemoryRefreshTokenStore."""

from __future__ import annotations

import threading
from datetime import UTC, datetime, timedelta

import pytest
from freezegun import freeze_time

from campus_auth.services._shared.errors import RotationConflictError
from campus_auth.services._shared.ports import RecordStatus, hash_token


def test_hash_token_is_sha256_hex():
    digest = hash_token("abc")
    assert digest == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
    assert len(digest) == 64


class TestPutAndFind:
    def test_put_stores_hash_not_raw(self, memory_store, ttl):
        record = memory_store.put(1, "raw-1", ttl)

        assert record.token_hash == hash_token("raw-1")
        assert record.identity_id == 1
        assert record.status() is RecordStatus.ACTIVE
        assert memory_store.find_by_raw("raw-1") == record

    def test_find_unknown_returns_none(self, memory_store):
        assert memory_store.find_by_raw("never-issued") is None

    def test_duplicate_hash_rejected(self, memory_store, ttl):
        memory_store.put(1, "raw-1", ttl)
        with pytest.raises(ValueError):
            memory_store.put(2, "raw-1", ttl)


class TestRotate:
    def test_rotate_links_parent_to_successor(self, memory_store, ttl):
        parent = memory_store.put(1, "r1", ttl)

        child = memory_store.rotate(parent, 1, "r2", ttl)

        stored_parent = memory_store.find_by_raw("r1")
        assert stored_parent.replaced_by == child.id
        assert stored_parent.revoked_at is not None
        assert stored_parent.status() is RecordStatus.ROTATED
        assert memory_store.find_by_raw("r2").is_active()

    def test_second_rotation_of_same_parent_conflicts(self, memory_store, ttl):
        parent = memory_store.put(1, "r1", ttl)
        memory_store.rotate(parent, 1, "r2", ttl)

        with pytest.raises(RotationConflictError):
            memory_store.rotate(parent, 1, "r3", ttl)
        assert memory_store.find_by_raw("r3") is None

    def test_rotate_revoked_parent_conflicts(self, memory_store, ttl):
        parent = memory_store.put(1, "r1", ttl)
        memory_store.revoke(parent)

        with pytest.raises(RotationConflictError):
            memory_store.rotate(parent, 1, "r2", ttl)

    def test_rotate_for_other_identity_conflicts(self, memory_store, ttl):
        parent = memory_store.put(1, "r1", ttl)
        with pytest.raises(RotationConflictError):
            memory_store.rotate(parent, 2, "r2", ttl)
        assert memory_store.find_by_raw("r1").is_active()

    def test_concurrent_rotations_have_one_winner(self, memory_store, ttl):
        parent = memory_store.put(1, "r1", ttl)
        barrier = threading.Barrier(8)
        outcomes: list[str] = []
        lock = threading.Lock()

        def worker(i: int) -> None:
            barrier.wait()
            try:
                memory_store.rotate(parent, 1, f"child-{i}", ttl)
                result = "ok"
            except RotationConflictError:
                result = "conflict"
            with lock:
                outcomes.append(result)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert outcomes.count("ok") == 1
        assert outcomes.count("conflict") == 7
        assert len(memory_store.list_active(1)) == 1


class TestRevoke:
    def test_revoke_is_idempotent(self, memory_store, ttl):
        record = memory_store.put(1, "r1", ttl)
        assert memory_store.revoke(record) is True
        assert memory_store.revoke(record) is False
        assert memory_store.find_by_raw("r1").status() is RecordStatus.REVOKED

    def test_revoke_all_only_touches_identity(self, memory_store, ttl):
        memory_store.put(1, "a", ttl)
        memory_store.put(1, "b", ttl)
        memory_store.put(2, "c", ttl)

        assert memory_store.revoke_all(1) == 2
        assert memory_store.revoke_all(1) == 0
        assert memory_store.list_active(1) == []
        assert len(memory_store.list_active(2)) == 1

    def test_revoke_chain_revokes_active_descendants(self, memory_store, ttl):
        r1 = memory_store.put(1, "r1", ttl)
        r2 = memory_store.rotate(r1, 1, "r2", ttl)
        memory_store.rotate(r2, 1, "r3", ttl)

        assert memory_store.revoke_chain(memory_store.find_by_raw("r1")) == 1
        assert memory_store.list_active(1) == []


class TestListAndPrune:
    def test_list_active_newest_first(self, memory_store, ttl):
        first = memory_store.put(1, "a", ttl)
        second = memory_store.put(1, "b", ttl)
        memory_store.revoke(memory_store.put(1, "c", ttl))

        assert [r.id for r in memory_store.list_active(1)] == [second.id, first.id]

    def test_expired_record_reports_expired(self, memory_store):
        with freeze_time("2026-01-01 00:00:00") as frozen:
            record = memory_store.put(1, "short", timedelta(minutes=1))
            frozen.tick(timedelta(minutes=2))
            assert record.status() is RecordStatus.EXPIRED
            assert memory_store.list_active(1) == []

    def test_prune_expired_removes_rows_and_dangling_links(self, memory_store):
        with freeze_time("2026-01-01 00:00:00") as frozen:
            parent = memory_store.put(1, "p", timedelta(days=30))
            memory_store.rotate(parent, 1, "child", timedelta(minutes=1))
            frozen.tick(timedelta(minutes=5))

            assert memory_store.prune_expired() == 1
            assert memory_store.find_by_raw("child") is None
            assert memory_store.find_by_raw("p").replaced_by is None

    def test_prune_with_explicit_cutoff(self, memory_store, ttl):
        memory_store.put(1, "a", ttl)
        future = datetime.now(UTC) + ttl + timedelta(seconds=1)
        assert memory_store.prune_expired(future) == 1
