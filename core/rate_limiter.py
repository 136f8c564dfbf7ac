"""Fixed-window per-user rate limiter.

Each user owns one :class:`RateWindow`.  A window admits up to
``max_requests`` updates until ``window_end``; the first update at or after
``window_end`` replaces it with a fresh window.  Expired windows are swept
every ``sweep_every`` admissions, and the map is capped at ``max_entries``
by evicting the least recently used windows.
"""

import collections
import dataclasses

from core.clock import Clock, now_ms
from core.locks import KeyedLock
from core.logger import QuantaLogger

logger = QuantaLogger.get_logger()


@dataclasses.dataclass(slots=True)
class RateWindow:
    count: int
    window_end: int


class RateLimiter:
    """Fixed-window counter keyed by user id.

    Args:
        window_ms: Window duration ``W`` in milliseconds.
        max_requests: Requests ``M`` admitted per window.
        clock: Millisecond clock used when ``admit`` is called without *now*.
        max_entries: Upper bound on tracked windows.
        sweep_every: Run :meth:`sweep` after this many admissions.
    """

    def __init__(
        self,
        window_ms: int,
        max_requests: int,
        *,
        clock: Clock = now_ms,
        max_entries: int = 10_000,
        sweep_every: int = 1_000,
    ) -> None:
        if window_ms <= 0 or max_requests <= 0:
            raise ValueError("window_ms and max_requests must be positive")
        self.window_ms = window_ms
        self.max_requests = max_requests
        self._clock = clock
        self._max_entries = max_entries
        self._sweep_every = sweep_every
        self._windows: collections.OrderedDict[int, RateWindow] = collections.OrderedDict()
        self._locks = KeyedLock()
        self._since_sweep = 0

    async def admit(self, user_id: int, now: int | None = None) -> bool:
        """Return ``True`` to let the update through, ``False`` to throttle it."""
        if now is None:
            now = self._clock()

        async with self._locks.hold(user_id):
            window = self._windows.get(user_id)
            if window is None or now >= window.window_end:
                self._windows[user_id] = RateWindow(count=1, window_end=now + self.window_ms)
                allowed = True
            elif window.count < self.max_requests:
                window.count += 1
                allowed = True
            else:
                allowed = False
            self._windows.move_to_end(user_id)

        if not allowed:
            logger.warning(
                "Rate limit exceeded",
                extra={"user_id": user_id, "count": window.count, "window_end": window.window_end},
            )

        self._since_sweep += 1
        if self._since_sweep >= self._sweep_every:
            self.sweep(now)
        self._evict()
        return allowed

    def sweep(self, now: int | None = None) -> int:
        """Drop every window that has ended; return how many were removed."""
        if now is None:
            now = self._clock()
        expired = [uid for uid, w in self._windows.items() if now >= w.window_end]
        for uid in expired:
            del self._windows[uid]
        self._since_sweep = 0
        if expired:
            logger.debug("Swept expired rate windows", extra={"removed": len(expired), "remaining": len(self._windows)})
        return len(expired)

    def _evict(self) -> None:
        while len(self._windows) > self._max_entries:
            uid, _ = self._windows.popitem(last=False)
            logger.debug("Evicted rate window", extra={"user_id": uid})

    def window(self, user_id: int) -> RateWindow | None:
        return self._windows.get(user_id)

    def clear(self) -> None:
        self._windows.clear()
        self._since_sweep = 0

    def __len__(self) -> int:
        return len(self._windows)
