import asyncio
import contextlib
from typing import AsyncIterator, Hashable


class KeyedLock:
    """One :class:`asyncio.Lock` per key, created on demand.

    Updates for the same user serialise on the same lock while different
    users never wait on each other.  A key's lock is discarded once nobody
    holds or awaits it, so the table only grows with in-flight keys.
    """

    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._holders: dict[Hashable, int] = {}

    @contextlib.asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        """Async context manager that holds the lock for *key*."""
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)
