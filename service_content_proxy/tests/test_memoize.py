"""
Unit tests for the memoizing cache.
"""

import asyncio
import traceback

import pytest

from service_content_proxy.app.caching import (
    CacheEntry,
    LRUStore,
    configure_cache,
    default_hash,
    get_default_store,
    memoize,
)


class Counter:
    """Coroutine stand-in that records its invocations."""

    def __init__(self, result="value", error=None):
        self.calls = []
        self.result = result
        self.error = error

    async def __call__(self, *args):
        self.calls.append(args)
        if self.error is not None:
            raise self.error
        return self.result


def ignore_request_id(fn, coordinate, request_id=None):
    return f"doc:{coordinate}"


class TestMemoize:
    """Test cases for memoize."""

    @pytest.mark.asyncio
    async def test_equal_keys_return_cached_value(self):
        """A second call with an equal key does not invoke the operation."""
        operation = Counter(result="# Read me")
        cached = memoize(operation, hash_fn=ignore_request_id, store=LRUStore())

        first = await cached("adobe/blog/main/index.md", "rid-1")
        second = await cached("adobe/blog/main/index.md", "rid-2")

        assert first == second == "# Read me"
        assert len(operation.calls) == 1

    @pytest.mark.asyncio
    async def test_different_keys_invoke_again(self):
        operation = Counter()
        cached = memoize(operation, store=LRUStore())

        await cached("a")
        await cached("b")

        assert operation.calls == [("a",), ("b",)]

    @pytest.mark.asyncio
    async def test_failures_are_not_cached_by_default(self):
        """Every failing call is retried on its next invocation."""
        operation = Counter(error=RuntimeError("upstream down"))
        cached = memoize(operation, store=LRUStore())

        for _ in range(3):
            with pytest.raises(RuntimeError):
                await cached("key")

        assert len(operation.calls) == 3

    @pytest.mark.asyncio
    async def test_admitted_failure_is_reraised_as_same_object(self):
        error = ValueError("bad mount")
        operation = Counter(error=error)
        cached = memoize(operation, cache_error=lambda exc: True, store=LRUStore())

        with pytest.raises(ValueError) as first:
            await cached("key")
        with pytest.raises(ValueError) as second:
            await cached("key")

        assert first.value is error
        assert second.value is error
        assert len(operation.calls) == 1

    @pytest.mark.asyncio
    async def test_admitted_failure_traceback_does_not_grow(self):
        error = ValueError("bad mount")
        cached = memoize(Counter(error=error), cache_error=lambda exc: True, store=LRUStore())

        depths = []
        for _ in range(5):
            with pytest.raises(ValueError) as raised:
                await cached("key")
            assert raised.value is error
            depths.append(len(traceback.extract_tb(error.__traceback__)))

        # Every hit after the first call raises from the same place
        assert len(set(depths[1:])) == 1

    @pytest.mark.asyncio
    async def test_rejected_result_is_returned_but_not_stored(self):
        operation = Counter(result={"status_code": 404})
        store = LRUStore()
        cached = memoize(operation, cache_result=lambda result: result["status_code"] == 200, store=store)

        assert await cached("key") == {"status_code": 404}
        assert await cached("key") == {"status_code": 404}
        assert len(operation.calls) == 2
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_falsy_results_are_cached(self):
        operation = Counter(result=None)
        cached = memoize(operation, store=LRUStore())

        assert await cached("key") is None
        assert await cached("key") is None
        assert len(operation.calls) == 1

    @pytest.mark.asyncio
    async def test_configure_cache_discards_previous_entries(self):
        """Reconfiguring the shared store turns earlier hits into misses."""
        operation = Counter()
        cached = memoize(operation)

        await cached("key")
        await cached("key")
        assert len(operation.calls) == 1

        configure_cache(max_size=10)
        await cached("key")

        assert len(operation.calls) == 2
        assert get_default_store().max_size == 10

    @pytest.mark.asyncio
    async def test_concurrent_misses_both_invoke_without_coalescing(self):
        release = asyncio.Event()
        calls = []

        async def slow(key):
            calls.append(key)
            await release.wait()
            return key

        cached = memoize(slow, store=LRUStore())
        first = asyncio.ensure_future(cached("key"))
        second = asyncio.ensure_future(cached("key"))
        await asyncio.sleep(0)
        release.set()

        assert await asyncio.gather(first, second) == ["key", "key"]
        assert calls == ["key", "key"]

    @pytest.mark.asyncio
    async def test_coalesce_runs_one_call_per_key(self):
        release = asyncio.Event()
        calls = []

        async def slow(key):
            calls.append(key)
            await release.wait()
            return f"doc:{key}"

        store = LRUStore()
        cached = memoize(slow, store=store, coalesce=True)
        tasks = [asyncio.ensure_future(cached("key")) for _ in range(5)]
        await asyncio.sleep(0)
        assert store.stats()["in_flight"] == 1
        release.set()

        assert await asyncio.gather(*tasks) == ["doc:key"] * 5
        assert calls == ["key"]
        assert store.stats()["in_flight"] == 0

    @pytest.mark.asyncio
    async def test_coalesce_shares_failure_with_waiters(self):
        release = asyncio.Event()
        error = RuntimeError("boom")
        calls = []

        async def failing(key):
            calls.append(key)
            await release.wait()
            raise error

        cached = memoize(failing, store=LRUStore(), coalesce=True)
        tasks = [asyncio.ensure_future(cached("key")) for _ in range(3)]
        await asyncio.sleep(0)
        release.set()

        results = await asyncio.gather(*tasks, return_exceptions=True)
        assert all(result is error for result in results)
        assert calls == ["key"]

        # Not admitted, so the next call runs again
        release.set()
        with pytest.raises(RuntimeError):
            await cached("key")
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_waiters_run_their_own_call_when_leader_is_cancelled(self):
        started = asyncio.Event()
        calls = []

        async def slow(key):
            calls.append(key)
            if len(calls) == 1:
                started.set()
                await asyncio.sleep(10)
            return key

        cached = memoize(slow, store=LRUStore(), coalesce=True)
        leader = asyncio.ensure_future(cached("key"))
        await started.wait()
        waiter = asyncio.ensure_future(cached("key"))
        await asyncio.sleep(0)

        leader.cancel()

        assert await waiter == "key"
        assert len(calls) == 2
        with pytest.raises(asyncio.CancelledError):
            await leader


class TestLRUStore:
    """Test cases for the LRU store."""

    def test_rejects_non_positive_size(self):
        with pytest.raises(ValueError):
            LRUStore(0)

    def test_evicts_least_recently_used(self):
        store = LRUStore(max_size=2)
        store.set("a", CacheEntry.success(1))
        store.set("b", CacheEntry.success(2))
        store.get("a")
        store.set("c", CacheEntry.success(3))

        assert "a" in store
        assert "b" not in store
        assert "c" in store
        assert store.evictions == 1

    def test_max_size_plus_one_keys_drops_oldest(self):
        store = LRUStore(max_size=3)
        for key in ["k0", "k1", "k2", "k3"]:
            store.set(key, CacheEntry.success(key))

        assert len(store) == 3
        assert "k0" not in store

    def test_overwrite_keeps_single_entry(self):
        store = LRUStore(max_size=2)
        store.set("a", CacheEntry.success(1))
        store.set("a", CacheEntry.success(2))

        assert len(store) == 1
        assert store.get("a").value == 2

    def test_stats(self):
        store = LRUStore(max_size=5)
        store.set("a", CacheEntry.success(1))
        store.get("a")
        store.get("missing")

        stats = store.stats()
        assert stats["size"] == 1
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_ratio"] == 0.5

    def test_clear(self):
        store = LRUStore()
        store.set("a", CacheEntry.success(1))
        store.clear()
        assert len(store) == 0


class TestCacheEntry:
    def test_success_unwraps_value(self):
        entry = CacheEntry.success("doc")
        assert entry.ok is True
        assert entry.unwrap() == "doc"

    def test_failure_raises(self):
        error = KeyError("missing")
        entry = CacheEntry.failure(error)
        assert entry.ok is False
        with pytest.raises(KeyError) as raised:
            entry.unwrap()
        assert raised.value is error


def test_default_hash_joins_arguments():
    async def fetch(owner, repo):
        return None

    key = default_hash(fetch, "adobe", "theblog", ref="main")

    assert key.endswith(",adobe,theblog,ref=main")
    assert "fetch" in key
