import random

import pytest

from pagecopy.config import RateLimitSettings
from pagecopy.errors import RateLimitError
from pagecopy.generation.rate_limiter import RateLimiter

from conftest import FakeClock


def test_calls_faster_than_per_second_cap_are_spaced_by_min_interval(clock, limiter):
    waits = [limiter.wait_if_needed() for _ in range(3)]

    assert waits == [0.0, 0.5, 0.5]
    assert clock.sleeps == [0.5, 0.5]
    assert clock.now == pytest.approx(1.0)


def test_spacing_below_noise_threshold_is_skipped(clock):
    limiter = RateLimiter(max_requests_per_second=10, clock=clock, sleep=clock.sleep)

    for _ in range(5):
        limiter.wait_if_needed()

    assert clock.sleeps == []


def test_no_wait_once_the_interval_has_passed(clock, limiter):
    limiter.wait_if_needed()
    clock.now += 2.0

    assert limiter.wait_if_needed() == 0.0


def test_per_minute_budget_waits_for_the_window_to_slide(clock):
    limiter = RateLimiter(max_requests_per_minute=3, max_requests_per_second=1000, clock=clock, sleep=clock.sleep)

    for _ in range(3):
        limiter.wait_if_needed()
    limiter.wait_if_needed()

    assert clock.sleeps == [60.0]
    assert limiter.current_request_count() == 1


def test_current_request_count_prunes_old_timestamps(clock, limiter):
    limiter.wait_if_needed()
    limiter.wait_if_needed()
    assert limiter.current_request_count() == 2

    clock.now += 61
    assert limiter.current_request_count() == 0


def test_backoff_doubles_per_attempt_and_is_capped(clock, limiter):
    error = RateLimitError("429 Too Many Requests")

    delays = [limiter.handle_rate_limit_error(error, "op") for _ in range(6)]

    assert delays == [30.0, 60.0, 120.0, 240.0, 300.0, 300.0]
    assert clock.sleeps == delays
    assert limiter.retry_attempts("op") == 6


def test_backoff_honours_a_longer_retry_after(limiter):
    delay = limiter.handle_rate_limit_error(RateLimitError("slow down", retry_after=90), "op")

    assert delay == 90.0


def test_backoff_counters_are_per_operation(limiter):
    error = RateLimitError("429")
    limiter.handle_rate_limit_error(error, "a")
    limiter.handle_rate_limit_error(error, "a")

    assert limiter.handle_rate_limit_error(error, "b") == 30.0


def test_reset_retry_attempts_restarts_the_backoff(limiter):
    error = RateLimitError("429")
    limiter.handle_rate_limit_error(error, "op")
    limiter.handle_rate_limit_error(error, "op")
    limiter.reset_retry_attempts("op")

    assert limiter.handle_rate_limit_error(error, "op") == 30.0


def test_jitter_stays_within_bounds():
    clock = FakeClock()
    limiter = RateLimiter(clock=clock, sleep=clock.sleep, rng=random.Random(7), max_jitter=1.0)

    delay = limiter.handle_rate_limit_error(RateLimitError("429"), "op")

    assert 30.0 <= delay < 31.0


def test_reset_clears_window_and_counters(clock, limiter):
    limiter.wait_if_needed()
    limiter.handle_rate_limit_error(RateLimitError("429"), "op")

    limiter.reset()

    assert limiter.current_request_count() == 0
    assert limiter.retry_attempts("op") == 0


def test_from_settings_copies_budgets(clock):
    limiter = RateLimiter.from_settings(
        RateLimitSettings(max_requests_per_minute=10, max_requests_per_second=4, base_delay=5, max_jitter=0),
        clock=clock,
        sleep=clock.sleep,
    )

    assert limiter.max_requests_per_minute == 10
    assert limiter.min_interval == 0.25
    assert limiter.handle_rate_limit_error(RateLimitError("429"), "op") == 5.0


@pytest.mark.parametrize("per_minute, per_second", [(0, 2), (50, 0)])
def test_non_positive_limits_are_rejected(per_minute, per_second):
    with pytest.raises(ValueError):
        RateLimiter(per_minute, per_second)
