"""
Retry policy for the resilient client.

A RetryPolicy is a plain value: it says how many extra attempts a request
gets, how long to wait before the first retry and how fast that delay grows.
The loop that applies it lives in chainfetch._executor.

Example:
    >>> from chainfetch._retry import RetryPolicy
    >>> policy = RetryPolicy(initial_delay=1.0, max_attempts=3)
    >>> policy.next_delay(1.0)
    2.0
    >>> policy.is_retryable_status(503)
    True
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace

import requests

from chainfetch._config import CHAINFETCH

logger = logging.getLogger(__name__)


class TransportFailureError(Exception):
    """
    Raised when a request could not obtain any HTTP response, even after retries.

    This is the only failure the resilient client raises once the attempt
    budget is spent: HTTP error statuses (429, 5xx, ...) are returned to the
    caller as responses instead, because there is a response to hand back.

    Attributes:
        message: Human-readable error message.
        last_exception: The transport exception from the last attempt.
        attempts: Total number of attempts made.

    Example:
        >>> try:
        ...     client.send("https://data.alpaca.markets/v2/clock")
        ... except TransportFailureError as e:
        ...     print(f"Gave up after {e.attempts} attempts: {e.last_exception}")
    """

    def __init__(
        self,
        message: str,
        last_exception: Exception | None = None,
        attempts: int = 0,
    ):
        super().__init__(message)
        self.last_exception = last_exception
        self.attempts = attempts


@dataclass(frozen=True)
class RetryPolicy:
    """
    Per-call retry parameters.

    Attributes:
        initial_delay: Seconds to wait before the first retry (default: 1.0).
        max_attempts: Additional attempts after the first request (default: 3).
            Use 0 to disable retries (single attempt only).
        backoff_multiplier: Growth factor applied to the delay (default: 2.0).
        max_delay: Ceiling in seconds for any single retry delay, including
            Retry-After values. None leaves delays uncapped.
        retry_on_status_codes: HTTP statuses that trigger a retry. None (default)
            means 429 plus every status >= 500.
        retry_on_exceptions: Transport exceptions that trigger a retry, including
            a connection that breaks while the body is read. Other exceptions
            propagate immediately.
    """

    initial_delay: float = 1.0
    max_attempts: int = 3
    backoff_multiplier: float = 2.0
    max_delay: float | None = 60.0
    retry_on_status_codes: frozenset[int] | None = None
    retry_on_exceptions: tuple[type[Exception], ...] = (
        requests.ConnectionError,
        requests.Timeout,
        requests.exceptions.ChunkedEncodingError,
        requests.exceptions.ContentDecodingError,
    )

    def __post_init__(self) -> None:
        assert self.initial_delay is not None, "initial_delay cannot be None"
        assert self.initial_delay >= 0, f"initial_delay must be >= 0, got {self.initial_delay}"
        assert self.max_attempts is not None, "max_attempts cannot be None"
        assert self.max_attempts >= 0, f"max_attempts must be >= 0, got {self.max_attempts}"
        assert self.backoff_multiplier >= 1, f"backoff_multiplier must be >= 1, got {self.backoff_multiplier}"
        assert self.max_delay is None or self.max_delay > 0, f"max_delay must be > 0 or None, got {self.max_delay}"
        assert self.retry_on_exceptions is not None, "retry_on_exceptions cannot be None"

    @classmethod
    def from_config(cls) -> RetryPolicy:
        """Build a policy from `CHAINFETCH.config.retry`."""
        retry_config = CHAINFETCH.config.retry
        return cls(
            initial_delay=retry_config.initial_delay,
            max_attempts=retry_config.max_attempts,
            backoff_multiplier=retry_config.backoff_multiplier,
            max_delay=retry_config.max_delay,
        )

    def with_overrides(
        self,
        initial_delay: float | None = None,
        max_attempts: int | None = None,
    ) -> RetryPolicy:
        """Return a copy with the given per-call values replaced (None keeps the current one)."""
        changes: dict[str, float | int] = {}
        if initial_delay is not None:
            changes["initial_delay"] = initial_delay
        if max_attempts is not None:
            changes["max_attempts"] = max_attempts
        return replace(self, **changes) if changes else self

    def is_retryable_status(self, status_code: int) -> bool:
        """Return True if an HTTP response with this status should be retried."""
        if self.retry_on_status_codes is not None:
            return status_code in self.retry_on_status_codes
        return status_code == 429 or status_code >= 500

    def clamp(self, delay: float) -> float:
        """Bound a delay to [0, max_delay]."""
        delay = max(0.0, delay)
        if self.max_delay is not None:
            return min(delay, self.max_delay)
        return delay

    def next_delay(self, current_delay: float) -> float:
        """Return the delay that follows `current_delay` in the geometric schedule."""
        return self.clamp(current_delay * self.backoff_multiplier)


def parse_retry_after(response: requests.Response) -> float | None:
    """
    Parse the Retry-After header of a response.

    Supports the numeric seconds format only; HTTP-date values are ignored.
    Negative values are treated as "retry now".

    Args:
        response: The HTTP response to inspect.

    Returns:
        The server-requested delay in seconds, or None if absent or invalid.
    """
    header = response.headers.get("Retry-After")
    if not header:
        return None

    try:
        seconds = float(header)
    except (TypeError, ValueError):
        logger.debug(f"Ignoring non-numeric Retry-After header: {header!r}")
        return None

    if not math.isfinite(seconds):
        return None
    return max(0.0, seconds)
