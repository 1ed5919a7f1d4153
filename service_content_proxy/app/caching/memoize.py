"""
Result memoization for coroutine functions.

``memoize`` wraps any coroutine function that settles with a single result or
exception. Outcomes are kept in a bounded LRU store under a key computed from
the function and its call arguments. Two predicates decide which outcomes are
worth keeping: by default every result is kept and no exception is, so a
failing call is retried on its next invocation while successes stay until
they are evicted.
"""

import asyncio
import functools
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional

from shared.logging import get_logger


DEFAULT_MAX_SIZE = 1000

logger = get_logger("content_proxy.cache")


@dataclass(frozen=True)
class CacheEntry:
    """Settled outcome of a memoized call: either a result or an exception."""

    value: Any = None
    error: Optional[BaseException] = None

    @classmethod
    def success(cls, value: Any) -> "CacheEntry":
        return cls(value=value)

    @classmethod
    def failure(cls, error: BaseException) -> "CacheEntry":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        """Return the stored result or raise the stored exception."""
        if self.error is not None:
            # Same object every time, without the frames of earlier raises
            raise self.error.with_traceback(None)
        return self.value


class LRUStore:
    """
    Entry-count bounded store with least-recently-used eviction.

    Reads refresh recency. Besides settled entries the store tracks pending
    futures for calls that are currently running, which memoized functions
    created with ``coalesce=True`` share between concurrent callers.
    """

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE):
        if max_size < 1:
            raise ValueError("max_size must be a positive integer")
        self.max_size = max_size
        self._entries: "OrderedDict[Hashable, CacheEntry]" = OrderedDict()
        self._pending: Dict[Hashable, asyncio.Future] = {}
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: Hashable) -> Optional[CacheEntry]:
        """Return the entry for ``key`` and mark it most recently used."""
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None
        self._entries.move_to_end(key)
        self.hits += 1
        return entry

    def set(self, key: Hashable, entry: CacheEntry) -> None:
        """Store ``entry`` under ``key``, evicting the oldest keys over capacity."""
        self._entries[key] = entry
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_size:
            evicted, _ = self._entries.popitem(last=False)
            self.evictions += 1
            logger.debug("Evicted cache entry", key=str(evicted))

    def clear(self) -> None:
        self._entries.clear()

    def pending(self, key: Hashable) -> Optional[asyncio.Future]:
        return self._pending.get(key)

    def add_pending(self, key: Hashable, future: asyncio.Future) -> None:
        self._pending[key] = future

    def release_pending(self, key: Hashable, future: asyncio.Future) -> None:
        if self._pending.get(key) is future:
            del self._pending[key]

    def stats(self) -> Dict[str, Any]:
        """Get store statistics."""
        lookups = self.hits + self.misses
        return {
            "size": len(self._entries),
            "max_size": self.max_size,
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "in_flight": len(self._pending),
            "hit_ratio": self.hits / lookups if lookups else 0.0,
        }


# Process-wide store shared by memoized functions without an explicit store
_default_store: Optional[LRUStore] = None


def get_default_store() -> LRUStore:
    """Return the shared store, creating it on first use."""
    global _default_store
    if _default_store is None:
        _default_store = LRUStore(DEFAULT_MAX_SIZE)
    return _default_store


def configure_cache(max_size: int = DEFAULT_MAX_SIZE) -> LRUStore:
    """
    Replace the shared store with an empty one of the given capacity.

    Every memoized function that uses the shared store sees the new store on
    its next call, including functions created before this call.
    """
    global _default_store
    _default_store = LRUStore(max_size)
    logger.info("Configured shared cache", max_size=max_size)
    return _default_store


def _qualified_name(fn: Callable) -> str:
    module = getattr(fn, "__module__", None) or ""
    name = getattr(fn, "__qualname__", None) or repr(fn)
    return f"{module}.{name}" if module else name


def default_hash(fn: Callable, *args, **kwargs) -> str:
    """Join the function name and the stringified arguments."""
    parts = [_qualified_name(fn)]
    parts.extend(str(arg) for arg in args)
    parts.extend(f"{name}={value}" for name, value in sorted(kwargs.items()))
    return ",".join(parts)


def _always(_: Any) -> bool:
    return True


def _never(_: BaseException) -> bool:
    return False


def _consume_exception(future: asyncio.Future) -> None:
    # Futures nobody awaited would otherwise log "exception was never retrieved"
    if not future.cancelled():
        future.exception()


def memoize(
    fn: Callable[..., Awaitable[Any]],
    *,
    hash_fn: Callable[..., Hashable] = default_hash,
    cache_result: Callable[[Any], bool] = _always,
    cache_error: Callable[[BaseException], bool] = _never,
    store: Optional[LRUStore] = None,
    coalesce: bool = False,
) -> Callable[..., Awaitable[Any]]:
    """
    Return a memoized version of the coroutine function ``fn``.

    Args:
        fn: Coroutine function to memoize.
        hash_fn: Called with ``fn`` and the call arguments to build the cache
            key. A good key function discards arguments that do not change the
            outcome (loggers, request ids, credentials).
        cache_result: Predicate on the result; only results it accepts are
            stored. Defaults to storing every result.
        cache_error: Predicate on a raised exception; only exceptions it
            accepts are stored and re-raised on later calls. Defaults to never
            storing exceptions.
        store: Store to use. Defaults to the shared store, looked up on every
            call so that ``configure_cache`` takes effect immediately.
        coalesce: When true, concurrent calls that miss on the same key wait
            for the single call already in flight instead of invoking ``fn``
            again. When false two concurrent misses both invoke ``fn`` and the
            last admitted outcome wins the slot.
    """

    @functools.wraps(fn)
    async def cached(*args, **kwargs):
        lru = store if store is not None else get_default_store()
        key = hash_fn(fn, *args, **kwargs)

        entry = lru.get(key)
        if entry is not None:
            return entry.unwrap()

        future: Optional[asyncio.Future] = None
        if coalesce:
            in_flight = lru.pending(key)
            if in_flight is not None:
                try:
                    return await asyncio.shield(in_flight)
                except asyncio.CancelledError:
                    if not in_flight.cancelled():
                        raise
                    # The call we were waiting on was cancelled; run our own
            future = asyncio.get_running_loop().create_future()
            future.add_done_callback(_consume_exception)
            lru.add_pending(key, future)

        try:
            result = await fn(*args, **kwargs)
        except Exception as error:
            if cache_error(error):
                lru.set(key, CacheEntry.failure(error))
            if future is not None:
                future.set_exception(error)
            raise
        except BaseException:
            if future is not None:
                future.cancel()
            raise
        else:
            if cache_result(result):
                lru.set(key, CacheEntry.success(result))
            if future is not None:
                future.set_result(result)
            return result
        finally:
            if future is not None:
                lru.release_pending(key, future)

    return cached
