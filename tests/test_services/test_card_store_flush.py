"""
Tests for CardStore persistence timing.

Tests cover:
- Debounce: a burst of mutations produces one write after the quiet period
- Max wait: continuous mutations are still flushed
- Coalescing of flushes requested while one is in flight
- Failure handling, retry and close()
- Retrying a failed debounced flush
"""

import asyncio

from recall.domain.errors import StorageError
from recall.services.srs.snapshot import decode_snapshot


def snapshot_ids(storage):
    return [row.id for row in decode_snapshot(storage.blobs["srs.db"])]


# =============================================================================
# Debounce
# =============================================================================


class TestDebounce:
    """Tests for the debounced flush timer."""

    async def test_burst_of_mutations_is_one_write(self, store, storage):
        for i in range(5):
            await store.upsert(f"c{i}", "a.md", f"Q{i}")

        assert storage.writes == []

        await asyncio.sleep(0.2)

        assert len(storage.writes) == 1
        assert snapshot_ids(storage) == ["c0", "c1", "c2", "c3", "c4"]
        assert store.is_dirty is False

    async def test_each_mutation_restarts_the_quiet_period(self, storage, make_store):
        store = make_store(storage, flush_delay=0.1, flush_max_wait=5.0)
        await store.init()
        try:
            for i in range(4):
                await store.upsert(f"c{i}", "a.md", f"Q{i}")
                await asyncio.sleep(0.05)

            assert storage.writes == []

            await asyncio.sleep(0.15)
            assert len(storage.writes) == 1
        finally:
            await store.close()

    async def test_max_wait_bounds_a_continuous_stream(self, storage, make_store):
        store = make_store(storage, flush_delay=0.2, flush_max_wait=0.3)
        await store.init()
        try:
            for i in range(7):
                await store.upsert(f"c{i}", "a.md", f"Q{i}")
                await asyncio.sleep(0.1)

            # Without the max wait the quiet period would never have elapsed
            assert len(storage.writes) >= 1
        finally:
            await store.close()

    async def test_reads_do_not_schedule_a_flush(self, store, storage):
        await store.get("missing")
        await store.list_due(as_of=0)
        await store.list_tracked_documents()

        await asyncio.sleep(0.1)

        assert storage.writes == []
        assert store.is_dirty is False


# =============================================================================
# Coalescing
# =============================================================================


class TestCoalescing:
    """At most one flush is in flight; extra requests collapse into one."""

    async def test_requests_during_flight_yield_one_follow_up(self, store, storage):
        storage.write_delay = 0.1
        await store.upsert("c1", "a.md", "Q")

        first = asyncio.create_task(store.flush())
        await asyncio.sleep(0.02)
        others = [asyncio.create_task(store.flush()) for _ in range(3)]

        results = await asyncio.gather(first, *others)

        assert results == [True, True, True, True]
        assert len(storage.writes) == 2

    async def test_new_mutation_does_not_cancel_in_flight_flush(self, storage, make_store):
        storage.write_delay = 0.1
        store = make_store(storage, flush_delay=0.01)
        await store.init()
        try:
            await store.upsert("c1", "a.md", "Q1")
            await asyncio.sleep(0.05)  # timer fired, write in progress
            await store.upsert("c2", "a.md", "Q2")

            await asyncio.sleep(0.35)

            assert len(storage.writes) == 2
            assert snapshot_ids(storage) == ["c1", "c2"]
        finally:
            await store.close()


# =============================================================================
# Failures and close
# =============================================================================


class TestFlushFailures:
    """Tests for failed writes, retry and close()."""

    async def test_failed_write_keeps_state_and_recovers(self, store, storage):
        storage.fail_writes = 1
        await store.upsert("c1", "a.md", "Q")

        assert await store.flush() is False
        assert isinstance(store.last_flush_error, StorageError)
        assert store.is_dirty is True
        assert (await store.get("c1")).question == "Q"

        assert await store.flush() is True
        assert store.last_flush_error is None
        assert snapshot_ids(storage) == ["c1"]

    async def test_write_is_retried(self, storage, make_store):
        storage.fail_writes = 1
        store = make_store(storage, flush_delay=10.0, flush_retry_attempts=2)
        await store.init()
        try:
            await store.upsert("c1", "a.md", "Q")
            assert await store.flush() is True
            assert len(storage.writes) == 1
            assert store.flush_count == 1
        finally:
            await store.close()

    async def test_close_flushes_pending_changes(self, storage, make_store):
        store = make_store(storage, flush_delay=10.0)
        await store.init()
        await store.upsert("c1", "a.md", "Q")
        assert storage.writes == []

        await store.close()

        assert snapshot_ids(storage) == ["c1"]
        assert store.is_ready is False

    async def test_close_releases_even_when_write_fails(self, storage, make_store):
        storage.fail_writes = 100
        store = make_store(storage, flush_delay=10.0)
        await store.init()
        await store.upsert("c1", "a.md", "Q")

        await store.close()

        assert store.is_ready is False
        assert isinstance(store.last_flush_error, StorageError)
        assert await store.list_all() == []
        assert "srs.db" not in storage.blobs

    async def test_close_twice_is_safe(self, store):
        await store.close()
        await store.close()
        assert store.is_ready is False

    async def test_unexpected_write_error_is_contained(self, store, storage):
        storage.write_error = RuntimeError("backend exploded")
        await store.upsert("c1", "a.md", "Q")

        assert await store.flush() is False

        assert isinstance(store.last_flush_error, RuntimeError)
        assert store.is_dirty is True
        assert (await store.get("c1")).question == "Q"

        storage.write_error = None
        assert await store.flush() is True
        assert snapshot_ids(storage) == ["c1"]

    async def test_close_contains_unexpected_write_error(self, storage, make_store):
        storage.write_error = RuntimeError("backend exploded")
        store = make_store(storage, flush_delay=10.0)
        await store.init()
        await store.upsert("c1", "a.md", "Q")

        await store.close()

        assert store.is_ready is False
        assert isinstance(store.last_flush_error, RuntimeError)


class TestTimerRetry:
    """A failed debounced flush is retried without another mutation."""

    async def test_failed_timer_flush_is_retried(self, store, storage):
        storage.fail_writes = 1
        await store.upsert("c1", "a.md", "Q")

        await asyncio.sleep(0.3)

        assert storage.write_attempts == 2
        assert snapshot_ids(storage) == ["c1"]
        assert store.is_dirty is False
        assert store.last_flush_error is None

    async def test_timer_retries_only_once(self, store, storage):
        storage.fail_writes = 100
        await store.upsert("c1", "a.md", "Q")

        await asyncio.sleep(0.4)

        assert storage.write_attempts == 2
        assert store.is_dirty is True
        assert isinstance(store.last_flush_error, StorageError)

    async def test_mutation_after_failure_rearms_normally(self, store, storage):
        storage.fail_writes = 2
        await store.upsert("c1", "a.md", "Q1")
        await asyncio.sleep(0.3)
        assert storage.writes == []

        await store.upsert("c2", "a.md", "Q2")
        await asyncio.sleep(0.2)

        assert snapshot_ids(storage) == ["c1", "c2"]
