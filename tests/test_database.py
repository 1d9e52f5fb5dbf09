"""
Behavioural tests for the paste store backends.

Each test runs against both MemoryPasteStore and RedisPasteStore.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from pastestore.errors import DuplicateKey, InvalidArgument
from pastestore.records import PasteMeta


def consume_concurrently(store, paste_id, workers, now_ms=1000):
    """Fire `workers` consuming reads at once and collect the results."""
    barrier = threading.Barrier(workers)

    def read():
        barrier.wait()
        return store.consume(paste_id, now_ms)

    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(read) for _ in range(workers)]
        return [f.result() for f in futures]


class TestCreate:
    """Tests for create"""

    def test_create_sets_absolute_expiry(self, store):
        record = store.create("a", "hello", 1000, ttl_seconds=60)

        assert record.created_at == 1000
        assert record.expires_at == 61000
        assert record.remaining_views is None

    def test_create_without_limits(self, store):
        store.create("a", "hello", 1000)

        meta = store.stats("a")
        assert meta.expires_at is None
        assert meta.remaining_views is None

    def test_duplicate_id_rejected(self, store):
        store.create("a", "first", 1000)

        with pytest.raises(DuplicateKey):
            store.create("a", "second", 2000)

        assert store.stats("a").created_at == 1000

    def test_zero_max_views_is_stored_but_never_served(self, store):
        store.create("a", "hello", 1000, max_views=0)

        assert store.stats("a").remaining_views == 0
        assert store.consume("a", 1000) is None

    @pytest.mark.parametrize("ttl_seconds, max_views", [(0, None), (-5, None), (None, -1)])
    def test_invalid_limits_rejected(self, store, ttl_seconds, max_views):
        with pytest.raises(InvalidArgument):
            store.create("a", "hello", 1000, ttl_seconds=ttl_seconds, max_views=max_views)

        assert store.stats("a") is None


class TestConsume:
    """Tests for the consuming read"""

    def test_single_view_paste(self, store):
        store.create("a", "hello", 1000, max_views=1)

        paste = store.consume("a", 1000)
        assert paste.content == "hello"
        assert paste.remaining_views == 0

        assert store.consume("a", 1000) is None

    def test_missing_paste_not_available(self, store):
        assert store.consume("nope", 1000) is None

    def test_expiry_boundary(self, store):
        store.create("a", "x", 1000, ttl_seconds=60)

        paste = store.consume("a", 60999)
        assert paste is not None
        assert paste.expires_at == 61000

        assert store.consume("a", 61000) is None

    def test_expiry_evaluated_against_supplied_time(self, store):
        store.create("a", "x", 1000, ttl_seconds=1, max_views=5)

        assert store.consume("a", 2000) is None
        assert store.consume("a", 1500) is not None

        # Views are only spent on successful reads.
        assert store.stats("a").remaining_views == 4

    def test_unlimited_views(self, store):
        store.create("a", "y", 1000)

        for now in range(1000, 1200):
            paste = store.consume("a", now)
            assert paste.content == "y"
            assert paste.remaining_views is None

    def test_view_budget_counts_down(self, store):
        store.create("a", "z", 1000, max_views=3)

        seen = [store.consume("a", 1000).remaining_views for _ in range(3)]
        assert seen == [2, 1, 0]
        assert store.consume("a", 1000) is None
        assert store.stats("a").remaining_views == 0

    def test_expiry_and_views_combined(self, store):
        store.create("a", "z", 1000, ttl_seconds=10, max_views=5)

        assert store.consume("a", 5000).remaining_views == 4
        assert store.consume("a", 11000) is None
        assert store.stats("a").remaining_views == 4

    def test_failed_consume_does_not_delete(self, store):
        store.create("a", "z", 1000, ttl_seconds=1)

        assert store.consume("a", 5000) is None
        assert store.stats("a") is not None


class TestConcurrentConsume:
    """Concurrent consuming reads never double-spend a view"""

    def test_three_views_three_winners(self, store):
        store.create("a", "z", 1000, max_views=3)

        results = consume_concurrently(store, "a", workers=3)

        served = [r for r in results if r is not None]
        assert len(served) == 3
        assert sorted(p.remaining_views for p in served) == [0, 1, 2]
        assert store.consume("a", 1000) is None

    @pytest.mark.parametrize("views, workers", [(1, 8), (5, 12), (12, 5)])
    def test_exactly_min_of_readers_and_views_succeed(self, store, views, workers):
        store.create("a", "z", 1000, max_views=views)

        results = consume_concurrently(store, "a", workers=workers)

        served = [r for r in results if r is not None]
        assert len(served) == min(views, workers)
        remaining = sorted(p.remaining_views for p in served)
        assert remaining == list(range(views - len(served), views))
        assert store.stats("a").remaining_views == views - len(served)

    def test_distinct_ids_do_not_interfere(self, store):
        for paste_id in ("a", "b"):
            store.create(paste_id, paste_id, 1000, max_views=2)

        for paste_id in ("a", "b"):
            results = consume_concurrently(store, paste_id, workers=4)
            assert len([r for r in results if r is not None]) == 2


class TestStats:
    """Tests for stats"""

    def test_stats_reports_metadata(self, store):
        store.create("a", "héllo", 1000, ttl_seconds=5, max_views=2)

        assert store.stats("a") == PasteMeta(
            id="a",
            created_at=1000,
            expires_at=6000,
            remaining_views=2,
            content_length=6,
        )

    def test_stats_never_spends_views(self, store):
        store.create("a", "z", 1000, max_views=2)

        for _ in range(5):
            assert store.stats("a").remaining_views == 2
        store.consume("a", 1000)
        for _ in range(5):
            assert store.stats("a").remaining_views == 1

    def test_stats_missing(self, store):
        assert store.stats("nope") is None

    def test_stats_shows_dead_pastes(self, store):
        store.create("a", "z", 1000, ttl_seconds=1)
        store.create("b", "z", 1000, max_views=1)
        store.consume("b", 1000)

        assert store.stats("a").expires_at == 2000
        assert store.stats("b").remaining_views == 0


class TestDelete:
    """Tests for delete"""

    def test_delete_existing(self, store):
        store.create("a", "z", 1000)

        assert store.delete("a") is True
        assert store.stats("a") is None
        assert store.consume("a", 1000) is None

    def test_delete_is_idempotent(self, store):
        store.create("a", "z", 1000)
        store.delete("a")

        assert store.delete("a") is False
        assert store.delete("never") is False

    def test_delete_ignores_state(self, store):
        store.create("a", "z", 1000, max_views=1)
        store.consume("a", 1000)

        assert store.delete("a") is True

    def test_id_reusable_after_delete(self, store):
        store.create("a", "z", 1000)
        store.delete("a")

        store.create("a", "again", 2000)
        assert store.consume("a", 2000).content == "again"


class TestListAll:
    """Tests for list_all"""

    def test_newest_first(self, store):
        for i, paste_id in enumerate(["a", "b", "c"]):
            store.create(paste_id, "z", 1000 + i)

        assert [m.id for m in store.list_all()] == ["c", "b", "a"]

    def test_limit_keeps_the_newest(self, store):
        for i in range(5):
            store.create(f"p{i}", "z", 1000 + i)

        assert [m.id for m in store.list_all(limit=2)] == ["p4", "p3"]

    def test_includes_dead_pastes(self, store):
        store.create("a", "z", 1000, ttl_seconds=1)
        store.create("b", "z", 1001, max_views=0)

        assert {m.id for m in store.list_all()} == {"a", "b"}

    def test_deleted_pastes_drop_out(self, store):
        store.create("a", "z", 1000)
        store.create("b", "z", 1001)
        store.delete("a")

        assert [m.id for m in store.list_all()] == ["b"]

    def test_empty(self, store):
        assert store.list_all() == []


class TestPurge:
    """Tests for purge"""

    def test_purge_removes_only_dead_pastes(self, store):
        store.create("expired", "z", 1000, ttl_seconds=1)
        store.create("exhausted", "z", 1000, max_views=1)
        store.create("alive", "z", 1000, ttl_seconds=100, max_views=3)
        store.create("forever", "z", 1000)
        store.consume("exhausted", 1000)

        assert store.purge(5000) == 2
        assert {m.id for m in store.list_all()} == {"alive", "forever"}

    def test_purge_nothing(self, store):
        store.create("a", "z", 1000)

        assert store.purge(1000) == 0
        assert store.stats("a") is not None

    def test_ping(self, store):
        assert store.ping() is True
