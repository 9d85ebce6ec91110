"""
Sliding-window rate limiting for the chainfetch client.

The market-data API enforces a hard quota of requests per trailing minute.
SlidingWindowRateLimiter records the instant of every admitted request and
never admits more than `max_requests` inside ANY interval of `time_window`
seconds, not just within fixed calendar buckets.

Stale timestamps are pruned lazily on each admission check; there is no
background task, so an idle limiter costs nothing.

Example:
    >>> from chainfetch._rate_limit import SlidingWindowRateLimiter
    >>> limiter = SlidingWindowRateLimiter(max_requests=200, time_window=60.0)
    >>> limiter.acquire()  # blocks until a slot is free, returns seconds waited
    0.0

Shared limiters (one per endpoint family, process-wide):
    >>> from chainfetch._rate_limit import get_shared_rate_limiter
    >>> limiter = get_shared_rate_limiter("market-data")
"""

import logging
import threading
import time
from collections import deque
from collections.abc import Callable

from chainfetch._config import CHAINFETCH

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================


class ClientSideRateLimitError(Exception):
    """
    Base exception for rate limiting errors raised by the client's own limiter,
    as opposed to the server answering HTTP 429.
    """

    pass


class RateLimitExhaustedError(ClientSideRateLimitError):
    """
    Raised when a caller would wait longer than `max_wait_time` for admission.

    Only raised by limiters configured with a `max_wait_time`. Without one,
    the limiter always admits eventually; it only delays.

    Attributes:
        waited: Seconds the caller already waited before giving up.
        max_wait_time: The configured maximum wait time.

    Example:
        >>> try:
        ...     limiter.acquire()
        ... except RateLimitExhaustedError as e:
        ...     print(f"Gave up after {e.waited:.1f}s")
    """

    def __init__(self, waited: float, max_wait_time: float):
        self.waited = waited
        self.max_wait_time = max_wait_time
        super().__init__(
            f"Rate limit wait exhausted: waited {waited:.2f}s, max_wait_time={max_wait_time:.2f}s"
        )


# =============================================================================
# Sliding Window Limiter
# =============================================================================


class SlidingWindowRateLimiter:
    """
    Thread-safe sliding-window rate limiter.

    The admission check (prune, decide, record) runs atomically under a lock.
    Any sleep happens outside the lock, so a waiting caller never blocks
    callers that were already admitted.

    Admission order is not guaranteed to be FIFO under contention: it is
    whatever order the lock is granted in.

    Args:
        max_requests: Maximum admissions in any trailing time window.
        time_window: Window length in seconds.
        slack: Seconds added to computed waits to avoid boundary races.
        max_wait_time: Maximum seconds `acquire()` may wait in total.
            If None (default), waits as long as needed.
        clock: Monotonic clock returning seconds.
        sleep: Function used to suspend the caller.
    """

    def __init__(
        self,
        max_requests: int = 200,
        time_window: float = 60.0,
        slack: float = 0.1,
        max_wait_time: float | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        assert max_requests is not None, "max_requests cannot be None."
        assert max_requests > 0, "max_requests must be greater than 0."
        assert time_window is not None, "time_window cannot be None."
        assert time_window > 0, "time_window must be greater than 0."
        assert slack is not None and slack >= 0, "slack must be >= 0."
        assert max_wait_time is None or max_wait_time > 0, "max_wait_time must be > 0 or None."

        self.max_requests = max_requests
        self.time_window = time_window
        self.slack = slack
        self.max_wait_time = max_wait_time

        self._clock = clock
        self._sleep = sleep
        self._timestamps: deque[float] = deque()
        self._lock = threading.Lock()

    def _prune(self, now: float) -> None:
        cutoff = now - self.time_window
        while self._timestamps and self._timestamps[0] <= cutoff:
            self._timestamps.popleft()

    def admit(self) -> float:
        """
        Try to admit one request right now.

        Atomically prunes timestamps older than the window, then either records
        the current instant (admitting the request) or computes how long until
        the oldest recorded request leaves the window.

        Returns:
            0.0 if the request was admitted and recorded, otherwise the number
            of seconds to wait before trying again (nothing is recorded).
        """
        with self._lock:
            now = self._clock()
            self._prune(now)

            if len(self._timestamps) >= self.max_requests:
                oldest = self._timestamps[0]
                return max(0.0, self.time_window - (now - oldest) + self.slack)

            self._timestamps.append(now)
            return 0.0

    def acquire(self) -> float:
        """
        Block until the request is admitted.

        After every sleep the admission check runs again from the top, since
        other callers may have taken the slot in the meantime.

        Returns:
            Total seconds spent waiting (0.0 when admitted immediately).

        Raises:
            RateLimitExhaustedError: If max_wait_time is set and would be exceeded.
        """
        waited = 0.0

        while True:
            wait_time = self.admit()
            if wait_time <= 0:
                return waited

            if self.max_wait_time is not None and waited + wait_time > self.max_wait_time:
                raise RateLimitExhaustedError(
                    waited=waited,
                    max_wait_time=self.max_wait_time,
                )

            logger.warning(
                f"⏱️ Rate limit reached ({self.max_requests} req/{self.time_window:g}s), "
                f"waiting {wait_time:.1f}s"
            )
            self._sleep(wait_time)
            waited += wait_time

    def current_usage(self) -> int:
        """Return how many admissions are inside the current window."""
        with self._lock:
            self._prune(self._clock())
            return len(self._timestamps)

    def reset(self) -> None:
        """Forget every recorded admission."""
        with self._lock:
            self._timestamps.clear()

    def __repr__(self) -> str:
        return (
            f"SlidingWindowRateLimiter(max_requests={self.max_requests}, "
            f"time_window={self.time_window}, slack={self.slack})"
        )


# =============================================================================
# Shared Limiters
# =============================================================================


_shared_limiters: dict[str, SlidingWindowRateLimiter] = {}
_shared_limiters_lock = threading.Lock()


def get_shared_rate_limiter(family: str = "default") -> SlidingWindowRateLimiter:
    """
    Return the process-wide limiter for an endpoint family.

    The limiter is created on first use from `CHAINFETCH.config.rate_limit`
    and lives until the process exits (or reset_shared_rate_limiters()).

    Args:
        family: Name of the rate-limited endpoint family.

    Returns:
        The shared SlidingWindowRateLimiter for that family.
    """
    assert family, "family cannot be empty."

    limiter = _shared_limiters.get(family)
    if limiter is None:
        with _shared_limiters_lock:
            limiter = _shared_limiters.get(family)
            if limiter is None:
                rl_config = CHAINFETCH.config.rate_limit
                logger.debug(
                    f"Creating shared rate limiter '{family}' "
                    f"(max_requests={rl_config.max_requests}, time_window={rl_config.time_window}s)."
                )
                limiter = SlidingWindowRateLimiter(
                    max_requests=rl_config.max_requests,
                    time_window=rl_config.time_window,
                    slack=rl_config.slack,
                    max_wait_time=rl_config.max_wait_time,
                )
                _shared_limiters[family] = limiter
    return limiter


def reset_shared_rate_limiters() -> None:
    """Drop every shared limiter; the next lookup rebuilds it from config."""
    with _shared_limiters_lock:
        _shared_limiters.clear()
