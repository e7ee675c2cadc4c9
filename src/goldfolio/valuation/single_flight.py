import asyncio
from collections.abc import Awaitable, Callable, Hashable
from typing import TypeVar

from goldfolio.domain.errors import ComputationSkipped

T = TypeVar("T")


class SingleFlight:
    """At most one in-flight call per key; overlapping calls are dropped, not queued."""

    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = {}

    def in_flight(self, key: Hashable) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    async def run(self, key: Hashable, fn: Callable[[], Awaitable[T]]) -> T:
        """Await ``fn()`` under the key's lock. Raises ComputationSkipped if already running."""
        lock = self._locks.setdefault(key, asyncio.Lock())
        if lock.locked():
            raise ComputationSkipped(f"Computation already in flight for {key!r}")
        try:
            async with lock:
                return await fn()
        finally:
            # Overlapping calls never wait, so a released lock has no other holders
            if self._locks.get(key) is lock and not lock.locked():
                del self._locks[key]
