"""
Query cache store.

Keyed store of raw fetch results with freshness (``stale_time``) and retention
(``cache_time``) windows, in-flight request deduplication and subscriber
notification. Runs on a single asyncio event loop: every entry mutation
happens synchronously inside one loop turn, so no locks are taken.
"""

import asyncio
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, TYPE_CHECKING

from shared.logging import get_logger
from .keys import KeyTarget, QueryKey, key_matches, key_resource

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.config import BaseConfig
    from shared.metrics import MetricsCollector


Fetcher = Callable[[], Awaitable[Any]]
Listener = Callable[["QueryResult"], None]

DEFAULT_STALE_TIME = 30.0
DEFAULT_CACHE_TIME = 300.0


class QueryStatus(str, Enum):
    """Lifecycle state of a cache entry."""
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class QueryOptions:
    """Per-read options; unset values fall back to the store defaults."""
    stale_time: float = DEFAULT_STALE_TIME
    cache_time: float = DEFAULT_CACHE_TIME
    keep_previous_data: bool = False
    enabled: bool = True
    refetch_on_window_focus: bool = False


@dataclass
class CacheEntry:
    """A cached raw payload. Only the store mutates entries."""
    key: QueryKey
    data: Any = None
    status: QueryStatus = QueryStatus.IDLE
    error: Optional[Exception] = None
    fetched_at: Optional[float] = None
    is_stale: bool = True
    fetcher: Optional[Fetcher] = field(default=None, repr=False)
    stale_time: float = DEFAULT_STALE_TIME
    cache_time: float = DEFAULT_CACHE_TIME
    invalidated: bool = False
    last_accessed: float = 0.0
    generation: int = 0
    subscribers: List["Subscription"] = field(default_factory=list, repr=False)


@dataclass(frozen=True)
class QueryResult:
    """Immutable snapshot of a cache entry handed to callers."""
    key: QueryKey
    data: Any = None
    status: QueryStatus = QueryStatus.IDLE
    error: Optional[Exception] = None
    is_fetching: bool = False
    is_stale: bool = False
    fetched_at: Optional[float] = None
    _refetch: Optional[Callable[[], Awaitable["QueryResult"]]] = field(default=None, repr=False, compare=False)

    @property
    def is_idle(self) -> bool:
        return self.status == QueryStatus.IDLE

    @property
    def is_loading(self) -> bool:
        return self.status == QueryStatus.LOADING

    @property
    def is_success(self) -> bool:
        return self.status == QueryStatus.SUCCESS

    @property
    def is_error(self) -> bool:
        return self.status == QueryStatus.ERROR

    async def refetch(self) -> "QueryResult":
        """Force a new fetch for this key and wait for it to settle."""
        if self._refetch is None:
            return self
        return await self._refetch()


class Subscription:
    """An active observer of one cache key."""

    def __init__(self, store: "QueryCacheStore", key: QueryKey, listener: Listener, options: QueryOptions):
        self._store = store
        self.key = key
        self.listener = listener
        self.options = options
        self.active = True

    def current(self) -> QueryResult:
        """Latest snapshot for the subscribed key."""
        return self._store.peek(self.key) or QueryResult(key=self.key)

    async def refetch(self) -> QueryResult:
        return await self._store.refetch(self.key)

    def unsubscribe(self) -> None:
        """Stop receiving notifications. Fetches already in flight still complete."""
        if not self.active:
            return
        self.active = False
        self._store._detach(self)


@dataclass
class _InFlight:
    generation: int
    task: "asyncio.Task[None]"


class QueryCacheStore:
    """Explicitly constructed query cache; one instance per application root."""

    def __init__(
        self,
        *,
        default_options: Optional[QueryOptions] = None,
        clock: Callable[[], float] = time.monotonic,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.default_options = default_options or QueryOptions()
        self.metrics = metrics
        self.logger = get_logger("data_access.query_cache")
        self._clock = clock
        self._entries: Dict[QueryKey, CacheEntry] = {}
        self._inflight: Dict[QueryKey, _InFlight] = {}
        self._background: Set["asyncio.Task[Any]"] = set()
        self._disposed = False

    @classmethod
    def create(
        cls,
        config: Optional["BaseConfig"] = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        metrics: Optional["MetricsCollector"] = None,
    ) -> "QueryCacheStore":
        """Create a store whose defaults come from configuration."""
        if config is None:
            return cls(clock=clock, metrics=metrics)

        if metrics is None and config.metrics_enabled:
            from shared.metrics import get_metrics_collector
            metrics = get_metrics_collector("query_cache")

        options = QueryOptions(
            stale_time=config.default_stale_time,
            cache_time=config.default_cache_time,
            keep_previous_data=config.keep_previous_data,
            refetch_on_window_focus=config.refetch_on_window_focus,
        )
        return cls(default_options=options, clock=clock, metrics=metrics)

    async def __aenter__(self) -> "QueryCacheStore":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.dispose()

    @property
    def disposed(self) -> bool:
        return self._disposed

    async def dispose(self) -> None:
        """Cancel outstanding fetches, drop all entries and subscribers."""
        if self._disposed:
            return
        self._disposed = True

        tasks = [inflight.task for inflight in self._inflight.values()] + list(self._background)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        for entry in self._entries.values():
            for subscription in entry.subscribers:
                subscription.active = False
        self._inflight.clear()
        self._background.clear()
        self._entries.clear()
        self.logger.info("Query cache disposed", tasks_cancelled=len(tasks))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def read(
        self,
        key: QueryKey,
        fetcher: Fetcher,
        *,
        stale_time: Optional[float] = None,
        cache_time: Optional[float] = None,
        keep_previous_data: Optional[bool] = None,
        enabled: Optional[bool] = None,
    ) -> QueryResult:
        """
        Read a key, fetching through ``fetcher`` when needed.

        Fresh entries are returned as-is. Missing or invalidated entries block
        until the (deduplicated) fetch settles. Entries that merely aged past
        ``stale_time`` trigger a background refetch and return the previous
        data when ``keep_previous_data`` is set, a loading snapshot otherwise.
        """
        self._ensure_open()
        options = self._resolve_options(
            stale_time=stale_time,
            cache_time=cache_time,
            keep_previous_data=keep_previous_data,
            enabled=enabled,
        )
        now = self._clock()
        self.collect_garbage(now)
        resource = key_resource(key)

        entry = self._entries.get(key)
        if not options.enabled:
            self._count("query_cache_requests_total", resource=resource, result="disabled")
            if entry is None:
                return QueryResult(key=key, _refetch=self._refetch_callable(key))
            entry.last_accessed = now
            return self._snapshot(entry)

        if entry is None:
            entry = CacheEntry(key=key)
            self._entries[key] = entry
        self._touch(entry, fetcher, options, now)

        if not entry.is_stale:
            self._count("query_cache_requests_total", resource=resource, result="hit")
            self.logger.debug("Query cache hit", key=key)
            return self._snapshot(entry)

        if entry.fetched_at is None or entry.invalidated:
            result = "dedup" if key in self._inflight else "miss"
            self._count("query_cache_requests_total", resource=resource, result=result)
            self.logger.debug("Query cache blocking fetch", key=key, result=result)
            self._ensure_fetch(entry)
            await self._wait_for(key)
            return self._snapshot(self._entries.get(key, entry))

        self._count("query_cache_requests_total", resource=resource, result="stale")
        self.logger.debug("Query cache stale, refetching in background", key=key)
        self._ensure_fetch(entry)
        if options.keep_previous_data:
            return self._snapshot(entry)
        return replace(self._snapshot(entry), status=QueryStatus.LOADING, data=None, error=None)

    async def refetch(self, key: QueryKey, fetcher: Optional[Fetcher] = None) -> QueryResult:
        """Start a fetch that supersedes any in-flight one and wait for it."""
        self._ensure_open()
        entry = self._entries.get(key)
        if entry is None:
            if fetcher is None:
                raise KeyError(f"No cache entry for {key!r} and no fetcher supplied")
            entry = CacheEntry(key=key, stale_time=self.default_options.stale_time,
                               cache_time=self.default_options.cache_time)
            self._entries[key] = entry
        if fetcher is not None:
            entry.fetcher = fetcher
        entry.last_accessed = self._clock()

        self._ensure_fetch(entry, force=True)
        await self._wait_for(key)
        return self._snapshot(self._entries.get(key, entry))

    def peek(self, key: QueryKey) -> Optional[QueryResult]:
        """Snapshot of an entry without fetching or touching it."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        return self._snapshot(entry)

    def keys(self) -> List[QueryKey]:
        return list(self._entries.keys())

    def is_fetching(self, key: QueryKey) -> bool:
        return key in self._inflight

    def stats(self) -> Dict[str, Any]:
        """Current store statistics."""
        return {
            "entries": len(self._entries),
            "in_flight": len(self._inflight),
            "subscribers": sum(len(entry.subscribers) for entry in self._entries.values()),
            "stale": sum(1 for entry in self._entries.values() if self._is_stale(entry, self._clock())),
        }

    # ------------------------------------------------------------------
    # Writes and invalidation
    # ------------------------------------------------------------------

    def write(self, key: QueryKey, data: Any) -> QueryResult:
        """Seed an entry directly. Supersedes any fetch in flight for the key."""
        self._ensure_open()
        now = self._clock()
        entry = self._entries.get(key)
        if entry is None:
            entry = CacheEntry(key=key, stale_time=self.default_options.stale_time,
                               cache_time=self.default_options.cache_time)
            self._entries[key] = entry

        # A fetch started before this write may carry older data.
        self._retire(self._inflight.pop(key, None))
        entry.generation += 1
        self._commit_success(entry, data, now)
        entry.last_accessed = now
        self.logger.debug("Query cache entry written", key=key)
        self._notify(entry)
        return self._snapshot(entry)

    async def invalidate(self, target: KeyTarget, *, exact: bool = False) -> int:
        """
        Mark matching entries stale.

        ``target`` is a full key, a key prefix, or a bare resource name for
        the whole family. Entries with active subscribers (or a fetch already
        in flight) refetch immediately and this call waits for them; the rest
        refetch on their next read.
        """
        self._ensure_open()
        matched = [entry for key, entry in self._entries.items() if key_matches(key, target, exact=exact)]
        waiting = []
        for entry in matched:
            entry.invalidated = True
            entry.is_stale = True
            self._count("query_cache_invalidations_total", resource=key_resource(entry.key))
            if entry.fetcher is not None and (self._has_active_subscribers(entry) or entry.key in self._inflight):
                self._ensure_fetch(entry, force=True)
                waiting.append(self._wait_for(entry.key))

        self.logger.info(
            "Query cache invalidated",
            target=target,
            exact=exact,
            matched=len(matched),
            refetching=len(waiting),
        )
        if waiting:
            await asyncio.gather(*waiting)
        return len(matched)

    async def refetch_on_focus(self) -> int:
        """Refetch stale entries whose subscribers opted into focus refetching."""
        self._ensure_open()
        now = self._clock()
        waiting = []
        for entry in list(self._entries.values()):
            wants_focus = any(
                sub.active and sub.options.enabled and sub.options.refetch_on_window_focus
                for sub in entry.subscribers
            )
            if not wants_focus or entry.fetcher is None or not self._is_stale(entry, now):
                continue
            self._ensure_fetch(entry)
            waiting.append(self._wait_for(entry.key))

        if waiting:
            await asyncio.gather(*waiting)
        return len(waiting)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(
        self,
        key: QueryKey,
        fetcher: Fetcher,
        listener: Listener,
        **options: Any,
    ) -> Subscription:
        """
        Register an active observer for ``key``.

        The initial read runs in the background; ``listener`` is called with
        a fresh snapshot every time a fetch for the key commits or the entry
        is written. Must be called from a running event loop.
        """
        self._ensure_open()
        resolved = self._resolve_options(**options)
        now = self._clock()
        entry = self._entries.get(key)
        if entry is None:
            entry = CacheEntry(key=key)
            self._entries[key] = entry
        self._touch(entry, fetcher, resolved, now)

        subscription = Subscription(self, key, listener, resolved)
        entry.subscribers.append(subscription)
        if resolved.enabled:
            self._spawn(self.read(
                key,
                fetcher,
                stale_time=resolved.stale_time,
                cache_time=resolved.cache_time,
                keep_previous_data=resolved.keep_previous_data,
            ))
        return subscription

    def _detach(self, subscription: Subscription) -> None:
        entry = self._entries.get(subscription.key)
        if entry is None:
            return
        if subscription in entry.subscribers:
            entry.subscribers.remove(subscription)
        # Retention is counted from the moment the last observer leaves.
        entry.last_accessed = self._clock()

    # ------------------------------------------------------------------
    # Garbage collection
    # ------------------------------------------------------------------

    def collect_garbage(self, now: Optional[float] = None) -> int:
        """Evict entries with no subscribers and no fetch whose cache_time elapsed."""
        now = self._clock() if now is None else now
        expired = [
            key for key, entry in self._entries.items()
            if not entry.subscribers
            and key not in self._inflight
            and now - entry.last_accessed >= entry.cache_time
        ]
        for key in expired:
            del self._entries[key]
            self._count("query_cache_evictions_total", resource=key_resource(key))
        if expired:
            self.logger.debug("Query cache entries evicted", count=len(expired))
        return len(expired)

    # ------------------------------------------------------------------
    # Fetch machinery
    # ------------------------------------------------------------------

    def _ensure_fetch(self, entry: CacheEntry, force: bool = False) -> _InFlight:
        """Attach to the in-flight fetch for the entry, or start a new one."""
        inflight = self._inflight.get(entry.key)
        if inflight is not None and not force:
            return inflight
        if entry.fetcher is None:
            raise RuntimeError(f"No fetcher registered for {entry.key!r}")

        self._retire(inflight)
        entry.generation += 1
        generation = entry.generation
        if entry.fetched_at is None:
            entry.status = QueryStatus.LOADING

        task = asyncio.get_running_loop().create_task(self._run_fetch(entry.key, entry.fetcher, generation))
        inflight = _InFlight(generation=generation, task=task)
        self._inflight[entry.key] = inflight
        self.logger.debug("Query fetch started", key=entry.key, generation=generation, superseding=force)
        return inflight

    async def _run_fetch(self, key: QueryKey, fetcher: Fetcher, generation: int) -> None:
        try:
            data = await fetcher()
        except asyncio.CancelledError:
            self._release(key, generation)
            raise
        except Exception as exc:
            self._settle(key, generation, error=exc)
        else:
            self._settle(key, generation, data=data)

    def _release(self, key: QueryKey, generation: int) -> None:
        inflight = self._inflight.get(key)
        if inflight is not None and inflight.generation == generation:
            del self._inflight[key]

    def _settle(self, key: QueryKey, generation: int, data: Any = None, error: Optional[Exception] = None) -> None:
        """Commit a fetch outcome if it belongs to the most recently started fetch."""
        self._release(key, generation)
        resource = key_resource(key)
        entry = self._entries.get(key)
        if entry is None or self._disposed:
            return
        if generation != entry.generation:
            self._count("query_cache_fetches_total", resource=resource, outcome="superseded")
            self.logger.debug(
                "Discarding superseded fetch result",
                key=key,
                generation=generation,
                current_generation=entry.generation,
            )
            return

        now = self._clock()
        if error is None:
            self._commit_success(entry, data, now)
            self._count("query_cache_fetches_total", resource=resource, outcome="success")
        else:
            entry.status = QueryStatus.ERROR
            entry.error = error
            self._count("query_cache_fetches_total", resource=resource, outcome="error")
            self.logger.warning(
                "Query fetch failed",
                key=key,
                error=str(error),
                error_type=type(error).__name__,
                has_previous_data=entry.fetched_at is not None,
            )
        self._notify(entry)

    def _commit_success(self, entry: CacheEntry, data: Any, now: float) -> None:
        entry.data = data
        entry.status = QueryStatus.SUCCESS
        entry.error = None
        entry.fetched_at = now
        entry.invalidated = False
        entry.is_stale = self._is_stale(entry, now)

    async def _wait_for(self, key: QueryKey) -> None:
        """Wait until no fetch is in flight for the key, following superseding fetches."""
        while True:
            inflight = self._inflight.get(key)
            if inflight is None:
                return
            try:
                # Shielded: a cancelled caller must not cancel the shared fetch.
                await asyncio.shield(inflight.task)
            except asyncio.CancelledError:
                if not inflight.task.cancelled():
                    raise
                if self._disposed:
                    return

    def _notify(self, entry: CacheEntry) -> None:
        if not entry.subscribers:
            return
        snapshot = self._snapshot(entry)
        for subscription in list(entry.subscribers):
            if not subscription.active:
                continue
            try:
                subscription.listener(snapshot)
            except Exception as exc:
                self.logger.error("Query subscriber failed", key=entry.key, error=str(exc))

    def _spawn(self, coro: Awaitable[Any]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background_done)

    def _retire(self, inflight: Optional[_InFlight]) -> None:
        """Track a superseded fetch until it settles."""
        if inflight is None or inflight.task.done():
            return
        self._background.add(inflight.task)
        inflight.task.add_done_callback(self._background_done)

    def _background_done(self, task: "asyncio.Task[Any]") -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.logger.error("Background query read failed", error=str(exc))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _resolve_options(self, **overrides: Any) -> QueryOptions:
        values = {name: value for name, value in overrides.items() if value is not None}
        return replace(self.default_options, **values)

    def _touch(self, entry: CacheEntry, fetcher: Fetcher, options: QueryOptions, now: float) -> None:
        entry.fetcher = fetcher
        entry.stale_time = options.stale_time
        entry.cache_time = options.cache_time
        entry.last_accessed = now
        entry.is_stale = self._is_stale(entry, now)

    def _is_stale(self, entry: CacheEntry, now: float) -> bool:
        if entry.invalidated or entry.fetched_at is None:
            return True
        return now - entry.fetched_at >= entry.stale_time

    def _has_active_subscribers(self, entry: CacheEntry) -> bool:
        return any(sub.active and sub.options.enabled for sub in entry.subscribers)

    def _snapshot(self, entry: CacheEntry) -> QueryResult:
        return QueryResult(
            key=entry.key,
            data=entry.data,
            status=entry.status,
            error=entry.error,
            is_fetching=entry.key in self._inflight,
            is_stale=self._is_stale(entry, self._clock()),
            fetched_at=entry.fetched_at,
            _refetch=self._refetch_callable(entry.key),
        )

    def _refetch_callable(self, key: QueryKey) -> Callable[[], Awaitable[QueryResult]]:
        async def _refetch() -> QueryResult:
            if key not in self._entries:
                return QueryResult(key=key)
            return await self.refetch(key)
        return _refetch

    def _count(self, metric_name: str, **labels: str) -> None:
        if self.metrics is not None:
            self.metrics.increment_counter(metric_name, **labels)

    def _ensure_open(self) -> None:
        if self._disposed:
            raise RuntimeError("QueryCacheStore has been disposed")
