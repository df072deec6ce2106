"""Tests for the token bucket rate limiter."""

import pytest

from spark.server.rate_limit import TokenBucket


class _Clock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


class TestTokenBucket:
    def test_burst_allows_up_to_capacity(self):
        """Burst capacity messages are allowed immediately."""
        bucket = TokenBucket(rate=1.0, burst=5, clock=_Clock())
        assert all(bucket.consume() for _ in range(5))
        assert bucket.consume() is False

    def test_refill_restores_tokens(self):
        """After time passes, tokens are refilled at the configured rate."""
        clock = _Clock()
        bucket = TokenBucket(rate=10.0, burst=5, clock=clock)
        for _ in range(5):
            bucket.consume()
        assert bucket.consume() is False

        clock.now += 0.5
        assert bucket.tokens == pytest.approx(5.0)
        assert bucket.consume() is True

    def test_refill_capped_at_burst(self):
        """Tokens never exceed burst capacity even after long idle periods."""
        clock = _Clock()
        bucket = TokenBucket(rate=10.0, burst=5, clock=clock)
        clock.now += 100.0
        assert all(bucket.consume() for _ in range(5))
        assert bucket.consume() is False

    def test_sustained_rate_enforcement(self):
        clock = _Clock()
        bucket = TokenBucket(rate=2.0, burst=2, clock=clock)
        bucket.consume()
        bucket.consume()
        assert bucket.consume() is False

        clock.now += 0.5
        assert bucket.consume() is True
        assert bucket.consume() is False

    @pytest.mark.parametrize(("rate", "burst"), [(0, 5), (-1.0, 5), (1.0, 0)])
    def test_invalid_parameters(self, rate, burst):
        with pytest.raises(ValueError, match="rate must be positive"):
            TokenBucket(rate=rate, burst=burst)
