"""Tests for the login rate limiter."""

from incidentdesk.utils.rate_limiter import RateLimiter


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestRateLimiter:

    def test_limits_after_max_attempts(self):
        limiter = RateLimiter(max_attempts=3, window_seconds=60, clock=FakeClock())
        for _ in range(3):
            assert not limiter.is_rate_limited("10.0.0.1")
            limiter.record_attempt("10.0.0.1")
        assert limiter.is_rate_limited("10.0.0.1")
        assert limiter.remaining_attempts("10.0.0.1") == 0

    def test_keys_are_independent(self):
        limiter = RateLimiter(max_attempts=1, window_seconds=60, clock=FakeClock())
        limiter.record_attempt("10.0.0.1")
        assert limiter.is_rate_limited("10.0.0.1")
        assert not limiter.is_rate_limited("10.0.0.2")

    def test_window_slides(self):
        clock = FakeClock()
        limiter = RateLimiter(max_attempts=2, window_seconds=60, clock=clock)
        limiter.record_attempt("ip")
        clock.now += 30
        limiter.record_attempt("ip")
        assert limiter.is_rate_limited("ip")

        clock.now += 31
        assert not limiter.is_rate_limited("ip")
        assert limiter.remaining_attempts("ip") == 1

    def test_reset(self):
        limiter = RateLimiter(max_attempts=1, window_seconds=60, clock=FakeClock())
        limiter.record_attempt("ip")
        limiter.reset("ip")
        assert limiter.remaining_attempts("ip") == 1


class TestMemoryBound:

    def test_lookups_do_not_track_keys(self):
        limiter = RateLimiter(max_attempts=3, window_seconds=60, clock=FakeClock())
        for i in range(50_000):
            assert not limiter.is_rate_limited(f"10.{i // 65536}.{i // 256 % 256}.{i % 256}")
            assert limiter.remaining_attempts(f"spoofed-{i}") == 3
        assert limiter.tracked_keys() == 0

    def test_expired_key_dropped_on_lookup(self):
        clock = FakeClock()
        limiter = RateLimiter(max_attempts=3, window_seconds=60, clock=clock)
        limiter.record_attempt("ip")
        assert limiter.tracked_keys() == 1

        clock.now += 61
        assert not limiter.is_rate_limited("ip")
        assert limiter.tracked_keys() == 0

    def test_stale_keys_swept_past_max_keys(self):
        clock = FakeClock()
        limiter = RateLimiter(max_attempts=3, window_seconds=60, clock=clock, max_keys=10, sweep_batch=100)
        for i in range(10):
            limiter.record_attempt(f"old-{i}")
        assert limiter.tracked_keys() == 10

        clock.now += 61
        limiter.record_attempt("fresh")
        assert limiter.tracked_keys() == 1
        assert limiter.remaining_attempts("fresh") == 2

    def test_sweep_keeps_live_keys(self):
        clock = FakeClock()
        limiter = RateLimiter(max_attempts=3, window_seconds=60, clock=clock, max_keys=2)
        limiter.record_attempt("a")
        limiter.record_attempt("b")
        limiter.record_attempt("c")
        assert limiter.tracked_keys() == 3
        assert limiter.remaining_attempts("a") == 2
