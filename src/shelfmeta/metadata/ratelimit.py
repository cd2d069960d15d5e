# ABOUTME: Per-source rate limiter enforcing a minimum delay plus random jitter between calls.
# ABOUTME: One instance per external source; concurrent callers serialize through repeated waits.

import asyncio
import random
import time


class RateLimiter:
    """Async minimum-interval limiter with jitter.

    Each `wait()` sleeps until at least `min_delay_ms` has passed since the
    previous call finished waiting, then adds a random jitter in
    `[0, jitter_ms)`. Jitter is applied even when no delay remains so that
    back-to-back callers do not burst.
    """

    def __init__(self, min_delay_ms: float, jitter_ms: float = 0.0) -> None:
        self._min_delay = max(0.0, min_delay_ms) / 1000.0
        self._jitter = max(0.0, jitter_ms) / 1000.0
        self._last_call: float | None = None

    @property
    def min_delay_ms(self) -> float:
        return self._min_delay * 1000.0

    @property
    def jitter_ms(self) -> float:
        return self._jitter * 1000.0

    async def wait(self) -> None:
        remaining = 0.0
        if self._last_call is not None:
            elapsed = time.monotonic() - self._last_call
            remaining = max(0.0, self._min_delay - elapsed)
        jitter = random.random() * self._jitter if self._jitter > 0 else 0.0
        delay = remaining + jitter
        if delay > 0:
            await asyncio.sleep(delay)
        self._last_call = time.monotonic()
