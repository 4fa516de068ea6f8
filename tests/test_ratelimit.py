import pytest

from sdb.ratelimit import RateLimiter


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def test_allows_rate_calls_then_limits():
    clock = FakeClock()
    limiter = RateLimiter(3, clock=clock)
    assert [limiter.limit() for _ in range(3)] == [False, False, False]
    assert limiter.limit() is True


def test_refills_over_time():
    clock = FakeClock()
    limiter = RateLimiter(4, clock=clock)
    for _ in range(4):
        limiter.limit()
    assert limiter.limit() is True
    clock.now += 0.25
    assert limiter.limit() is False
    assert limiter.limit() is True


def test_allowance_is_capped_at_rate():
    clock = FakeClock()
    limiter = RateLimiter(2, clock=clock)
    clock.now += 60
    results = [limiter.limit() for _ in range(3)]
    assert results == [False, False, True]


def test_zero_rate_always_limits():
    limiter = RateLimiter(0, clock=FakeClock())
    assert limiter.limit() is True


@pytest.mark.parametrize("rate, per", [(-1, 1.0), (1, 0), (1, -2.0)])
def test_invalid_arguments(rate, per):
    with pytest.raises(ValueError):
        RateLimiter(rate, per)