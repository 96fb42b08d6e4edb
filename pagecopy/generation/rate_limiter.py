"""Process-local throttling and backoff for calls to the generation service."""

from __future__ import annotations

import logging
import random
import time
from collections import deque
from typing import Callable, Deque, Dict, Optional

from pagecopy.config import RateLimitSettings

logger = logging.getLogger(__name__)

_WINDOW_SECONDS = 60.0


class RateLimiter:
    """Sliding-window throttle with per-operation exponential backoff.

    State lives on the instance only: one limiter per orchestrator, nothing
    shared across processes. ``clock``, ``sleep`` and ``rng`` are injectable so
    tests can drive simulated time.
    """

    def __init__(
        self,
        max_requests_per_minute: int = 50,
        max_requests_per_second: float = 2.0,
        *,
        noise_threshold: float = 0.2,
        base_delay: float = 30.0,
        max_delay: float = 300.0,
        backoff_cap: int = 5,
        max_jitter: float = 1.0,
        default_retry_after: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None,
    ) -> None:
        if max_requests_per_minute <= 0 or max_requests_per_second <= 0:
            raise ValueError("rate limits must be positive")
        self.max_requests_per_minute = max_requests_per_minute
        self.max_requests_per_second = max_requests_per_second
        self.noise_threshold = noise_threshold
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.backoff_cap = backoff_cap
        self.max_jitter = max_jitter
        self.default_retry_after = default_retry_after
        self._clock = clock
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._timestamps: Deque[float] = deque()
        self._last_request: Optional[float] = None
        self._retry_attempts: Dict[str, int] = {}

    @classmethod
    def from_settings(cls, settings: RateLimitSettings, **kwargs) -> "RateLimiter":
        return cls(
            settings.max_requests_per_minute,
            settings.max_requests_per_second,
            noise_threshold=settings.noise_threshold,
            base_delay=settings.base_delay,
            max_delay=settings.max_delay,
            backoff_cap=settings.backoff_cap,
            max_jitter=settings.max_jitter,
            default_retry_after=settings.default_retry_after,
            **kwargs,
        )

    @property
    def min_interval(self) -> float:
        return 1.0 / self.max_requests_per_second

    def _prune(self, now: float) -> None:
        while self._timestamps and now - self._timestamps[0] >= _WINDOW_SECONDS:
            self._timestamps.popleft()

    def wait_if_needed(self) -> float:
        """Block until the next request fits both budgets; return seconds slept."""

        slept = 0.0
        now = self._clock()
        self._prune(now)

        if self._last_request is not None:
            pending = self.min_interval - (now - self._last_request)
            # Negligible gaps are not worth compounding across many calls
            if pending > self.noise_threshold:
                logger.debug("Rate limiter: waiting %.0fms before next request", pending * 1000)
                self._sleep(pending)
                slept += pending

        if len(self._timestamps) >= self.max_requests_per_minute:
            now = self._clock()
            pending = _WINDOW_SECONDS - (now - self._timestamps[0])
            if pending > self.noise_threshold:
                logger.info("Rate limiter: per-minute budget reached, waiting %.1fs", pending)
                self._sleep(pending)
                slept += pending
            self._prune(self._clock())

        stamp = self._clock()
        self._timestamps.append(stamp)
        self._last_request = stamp
        return slept

    def retry_attempts(self, operation_id: str) -> int:
        return self._retry_attempts.get(operation_id, 0)

    def handle_rate_limit_error(self, error: BaseException, operation_id: str = "default") -> float:
        """Sleep for the backoff delay of ``operation_id`` and return it.

        Giving up after repeated rate-limit hits is the caller's decision.
        """

        retry_after = getattr(error, "retry_after", None)
        if not isinstance(retry_after, (int, float)) or retry_after < 0:
            retry_after = self.default_retry_after
        attempt = self._retry_attempts.get(operation_id, 0)
        backoff = self.base_delay * (2 ** min(attempt, self.backoff_cap))
        jitter = self._rng.uniform(0.0, self.max_jitter) if self.max_jitter > 0 else 0.0
        delay = min(max(float(retry_after), backoff) + jitter, self.max_delay)
        self._retry_attempts[operation_id] = attempt + 1

        logger.warning(
            "Rate limit hit for %s (attempt %d); waiting %.1fs before retry",
            operation_id,
            attempt + 1,
            delay,
        )
        self._sleep(delay)
        return delay

    def reset_retry_attempts(self, operation_id: str) -> None:
        self._retry_attempts.pop(operation_id, None)

    def reset(self) -> None:
        self._timestamps.clear()
        self._last_request = None
        self._retry_attempts.clear()

    def current_request_count(self) -> int:
        self._prune(self._clock())
        return len(self._timestamps)


__all__ = ["RateLimiter"]
