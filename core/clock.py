"""Millisecond wall clock shared by the session store and the rate limiter."""

import time
from typing import Callable

Clock = Callable[[], int]


def now_ms() -> int:
    """Return the current time as integer milliseconds since the epoch."""
    return int(time.time() * 1000)
