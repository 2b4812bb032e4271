"""
Mutation dispatcher.

Runs a write operation and, only when it succeeds, invalidates the cache keys
it affects so subsequent reads refetch.
"""

import time
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Tuple, Union

from shared.logging import get_logger
from .keys import KeyTarget
from .query_cache import QueryCacheStore

InvalidationTarget = Union[KeyTarget, Callable[[Any], Optional[KeyTarget]]]
CacheWrites = Callable[[Any], Iterable[Tuple[Any, Any]]]


class MutationDispatcher:
    """Dispatches mutations against a query cache store."""

    def __init__(self, store: QueryCacheStore):
        self.store = store
        self.pending = 0
        self.logger = get_logger("data_access.mutations")

    async def mutate(
        self,
        operation: Callable[[], Awaitable[Any]],
        *,
        invalidates: Iterable[InvalidationTarget] = (),
        writes: Optional[CacheWrites] = None,
        name: Optional[str] = None,
    ) -> Any:
        """
        Execute ``operation`` and invalidate ``invalidates`` on success.

        Targets may be full keys, key prefixes, bare resource names, or
        callables that receive the operation result and return one of those
        (or None to skip). ``writes`` may return ``(key, data)`` pairs seeded
        into the store after invalidation. On failure nothing is invalidated
        and the exception propagates unchanged.
        """
        targets = list(invalidates)
        label = name or getattr(operation, "__name__", "mutation")
        start_time = time.perf_counter()
        self.pending += 1
        try:
            result = await operation()
        except Exception as exc:
            self._count("failure")
            self.logger.error(
                "Mutation failed",
                mutation=label,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise
        finally:
            self.pending -= 1

        resolved = self._resolve_targets(targets, result)
        matched = 0
        for target in resolved:
            matched += await self.store.invalidate(target)

        if writes is not None:
            for key, data in writes(result):
                self.store.write(key, data)

        self._count("success")
        self.logger.info(
            "Mutation succeeded",
            mutation=label,
            invalidated_targets=len(resolved),
            invalidated_entries=matched,
            duration=time.perf_counter() - start_time,
        )
        return result

    @staticmethod
    def _resolve_targets(targets: List[InvalidationTarget], result: Any) -> List[KeyTarget]:
        resolved: List[KeyTarget] = []
        for target in targets:
            if callable(target):
                target = target(result)
                if target is None:
                    continue
            resolved.append(target)
        return resolved

    def _count(self, outcome: str) -> None:
        if self.store.metrics is not None:
            self.store.metrics.increment_counter("mutations_total", outcome=outcome)
