"""In-memory sliding-window rate limiter for the login endpoint."""

import time
from collections import deque


class RateLimiter:
    """Counts attempts per key (client IP) inside a sliding time window.

    Only keys with attempts inside the window are held. Lookups never add
    a key, and once more than ``max_keys`` keys are tracked each new
    attempt also sweeps a batch of stale ones.
    """

    def __init__(
        self,
        max_attempts: int = 5,
        window_seconds: int = 300,
        clock=time.monotonic,
        max_keys: int = 10000,
        sweep_batch: int = 100,
    ):
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.max_keys = max_keys
        self.sweep_batch = sweep_batch
        self._clock = clock
        self._attempts: dict[str, deque[float]] = {}

    def _prune(self, key: str) -> int:
        attempts = self._attempts.get(key)
        if attempts is None:
            return 0
        cutoff = self._clock() - self.window_seconds
        while attempts and attempts[0] <= cutoff:
            attempts.popleft()
        if not attempts:
            del self._attempts[key]
        return len(attempts)

    def _sweep(self) -> None:
        for key in list(self._attempts)[: self.sweep_batch]:
            self._prune(key)

    def is_rate_limited(self, key: str) -> bool:
        return self._prune(key) >= self.max_attempts

    def record_attempt(self, key: str) -> None:
        self._prune(key)
        self._attempts.setdefault(key, deque()).append(self._clock())
        if len(self._attempts) > self.max_keys:
            self._sweep()

    def remaining_attempts(self, key: str) -> int:
        return max(0, self.max_attempts - self._prune(key))

    def reset(self, key: str) -> None:
        self._attempts.pop(key, None)

    def tracked_keys(self) -> int:
        return len(self._attempts)
