import pytest

from linkshortener.ratelimit import FixedWindowRateLimiter


class FakeClock:

    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


def test_allows_up_to_limit_then_blocks(clock):
    limiter = FixedWindowRateLimiter(3, 60, clock=clock)

    results = [limiter.hit('1.2.3.4') for _ in range(4)]

    assert [r.allowed for r in results] == [True, True, True, False]
    assert [r.remaining for r in results] == [2, 1, 0, 0]


def test_keys_are_independent(clock):
    limiter = FixedWindowRateLimiter(1, 60, clock=clock)
    assert limiter.hit('a').allowed
    assert not limiter.hit('a').allowed
    assert limiter.hit('b').allowed


def test_new_window_resets_count(clock):
    clock.now = 1200.0  # start of a 60 s window
    limiter = FixedWindowRateLimiter(1, 60, clock=clock)
    assert limiter.hit('a').allowed
    assert not limiter.hit('a').allowed

    clock.now = 1260.0
    assert limiter.hit('a').allowed


def test_reset_after_counts_down_to_window_end(clock):
    clock.now = 1215.0
    limiter = FixedWindowRateLimiter(1, 60, clock=clock)
    assert limiter.hit('a').reset_after == pytest.approx(45.0)


def test_reset_clears_counters(clock):
    limiter = FixedWindowRateLimiter(1, 60, clock=clock)
    limiter.hit('a')
    limiter.reset()
    assert limiter.hit('a').allowed


@pytest.mark.parametrize('max_requests, window', [(0, 60), (5, 0), (5, -1)])
def test_rejects_bad_configuration(max_requests, window):
    with pytest.raises(ValueError):
        FixedWindowRateLimiter(max_requests, window)
