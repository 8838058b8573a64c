"""Tests for the per-endpoint rate limiter."""

import pytest

from slack_bridge.rate_limit import RateLimiter, RATE_LIMIT_MAX_REQUESTS, RATE_LIMIT_WINDOW_SECONDS


class FakeClock:
    """Settable stand-in for time.time."""

    def __init__(self, now: float = 1_000_020.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    """Create RateLimiter driven by a fake clock."""
    return RateLimiter(clock=clock)


class TestRateLimiter:
    """Tests for the fixed-window rate limiter."""

    def test_defaults(self, limiter):
        assert limiter.max_requests == RATE_LIMIT_MAX_REQUESTS == 60
        assert limiter.window_seconds == RATE_LIMIT_WINDOW_SECONDS == 60

    def test_allows_under_limit(self, limiter):
        """Requests under limit are allowed."""
        allowed, count = limiter.check_and_record("post_message")
        assert allowed is True
        assert count == 1

    def test_sixty_allowed_sixty_first_blocked(self, limiter):
        """The 61st call in one window is refused."""
        for i in range(60):
            allowed, count = limiter.check_and_record("post_message")
            assert allowed is True
            assert count == i + 1

        allowed, count = limiter.check_and_record("post_message")
        assert allowed is False
        assert count == 60

    def test_next_window_allowed_again(self, limiter, clock):
        """A call in the following window succeeds."""
        for _ in range(60):
            limiter.check_and_record("post_message")
        assert limiter.check_and_record("post_message")[0] is False

        clock.now += 60
        allowed, count = limiter.check_and_record("post_message")
        assert allowed is True
        assert count == 1

    def test_window_is_fixed_not_sliding(self, limiter, clock):
        """Windows start at multiples of the window size."""
        clock.now = 120.0 * 10_000 + 59.5  # last half second of a window
        for _ in range(60):
            limiter.check_and_record("get_users")
        clock.now += 1  # crosses into the next window
        assert limiter.check_and_record("get_users")[0] is True

    def test_per_endpoint(self, limiter):
        """Rate limits are per-endpoint."""
        for _ in range(60):
            limiter.check_and_record("post_message")

        allowed, _ = limiter.check_and_record("post_reply")
        assert allowed is True

    def test_old_windows_pruned(self, limiter, clock):
        """After moving to a new window, no older window keys remain."""
        limiter.check_and_record("post_message")
        limiter.check_and_record("get_users")
        clock.now += 180

        limiter.check_and_record("add_reaction")

        current = int(clock.now // 60)
        keys = limiter.window_keys
        assert keys == [("add_reaction", current)]
        assert all(window >= current for _, window in keys)

    def test_denied_call_not_counted(self, limiter):
        for _ in range(65):
            limiter.check_and_record("post_message")
        assert limiter.check_and_record("post_message") == (False, 60)

    def test_custom_limits(self, clock):
        """Custom limits override defaults."""
        limiter = RateLimiter(max_requests=3, window_seconds=10, clock=clock)
        for _ in range(3):
            limiter.check_and_record("custom_op")

        allowed, _ = limiter.check_and_record("custom_op")
        assert allowed is False
