"""
Resilient request execution: rate limiting + retries with backoff.

ResilientHttpClient decorates any HttpClient. Each logical request runs as a
bounded loop:

1. Wait for admission by the sliding-window limiter (every attempt, retries
   included, consumes quota like a fresh request).
2. Issue the transport call.
3. Classify the outcome:
   - 429: wait Retry-After seconds if the server sent one, otherwise the
     current delay times the multiplier; that wait becomes the current delay.
   - other retryable statuses (5xx by default): wait the current delay, then
     multiply it.
   - transport failure: wait the current delay, then multiply it.
   - anything else: return the response.

Once the attempt budget is spent, HTTP failures are returned to the caller
as ordinary responses, while transport failures raise TransportFailureError.

Example:
    >>> from chainfetch._executor import ResilientHttpClient
    >>> from chainfetch._http import RequestsHttpClient
    >>> from chainfetch._rate_limit import SlidingWindowRateLimiter
    >>> client = ResilientHttpClient(
    ...     delegate=RequestsHttpClient(base_url="https://data.alpaca.markets"),
    ...     rate_limiter=SlidingWindowRateLimiter(max_requests=200, time_window=60.0),
    ... )
    >>> response = client.send("/v2/stocks/AAPL/trades/latest")
    >>> if response.status_code != 200:
    ...     print(f"Upstream error {response.status_code}: {response.text}")
"""

import logging
import time
from collections.abc import Callable

import requests
from typing_extensions import override

from chainfetch._http import HttpClient, RequestOptions
from chainfetch._rate_limit import SlidingWindowRateLimiter
from chainfetch._retry import RetryPolicy, TransportFailureError, parse_retry_after

logger = logging.getLogger(__name__)


class ResilientHttpClient(HttpClient):
    """
    HTTP client decorator adding sliding-window rate limiting and retries.

    Thread-safe as long as the delegate is: the only shared state is the
    rate limiter, which serializes its own admission checks. The client keeps
    nothing between attempts besides the request itself.

    Args:
        delegate: The underlying HTTP client performing transport calls.
        rate_limiter: Limiter consulted before every attempt. None disables
            client-side rate limiting.
        policy: Default retry policy. If None, built from CHAINFETCH.config.retry.
        sleep: Function used for backoff waits.
    """

    def __init__(
        self,
        delegate: HttpClient,
        rate_limiter: SlidingWindowRateLimiter | None = None,
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        assert delegate is not None, "Delegate HTTP client is required."

        self.delegate = delegate
        self.rate_limiter = rate_limiter
        self.policy = policy or RetryPolicy.from_config()
        self._sleep = sleep

    def _wait_for_admission(self) -> None:
        if self.rate_limiter is not None:
            self.rate_limiter.acquire()

    def _backoff(self, seconds: float) -> None:
        if seconds > 0:
            self._sleep(seconds)

    @override
    def send(
        self,
        url: str,
        options: RequestOptions | None = None,
        *,
        initial_delay: float | None = None,
        max_attempts: int | None = None,
    ) -> requests.Response:
        """
        Send a request, absorbing throttling and transient failures.

        Args:
            url: The URL to request.
            options: Request options.
            initial_delay: Per-call override of the first retry delay (seconds).
            max_attempts: Per-call override of the additional attempts allowed.

        Returns:
            The final HTTP response. Error statuses are returned, not raised,
            once they are non-retryable or the attempts are exhausted.

        Raises:
            TransportFailureError: If no response was obtained on any attempt.
            RateLimitExhaustedError: If the limiter has a max_wait_time and it is exceeded.
        """
        policy = self.policy.with_overrides(initial_delay=initial_delay, max_attempts=max_attempts)

        remaining = policy.max_attempts
        delay = policy.clamp(policy.initial_delay)
        attempt = 0

        while True:
            attempt += 1
            self._wait_for_admission()

            try:
                response = self.delegate.send(url, options)
            except policy.retry_on_exceptions as e:
                if remaining <= 0:
                    logger.error(
                        f"❌ Network error on {url}, giving up after {attempt} attempt(s): {e}"
                    )
                    raise TransportFailureError(
                        f"No response from {url} after {attempt} attempt(s): {e}",
                        last_exception=e,
                        attempts=attempt,
                    ) from e

                logger.warning(
                    f"🌐 Network error on {url}, retrying in {delay:.1f}s... "
                    f"({remaining} attempts left): {e}"
                )
                self._backoff(delay)
                delay = policy.next_delay(delay)
                remaining -= 1
                continue

            status = response.status_code
            if not policy.is_retryable_status(status):
                return response

            if remaining <= 0:
                logger.error(
                    f"❌ {url} still failing with HTTP {status} after {attempt} attempt(s), returning response"
                )
                return response

            if status == 429:
                retry_after = parse_retry_after(response)
                if retry_after is not None:
                    wait_time = policy.clamp(retry_after)
                else:
                    wait_time = policy.next_delay(delay)

                logger.warning(
                    f"🚦 Received 429 (Too Many Requests) from {url}, retrying in {wait_time:.1f}s... "
                    f"({remaining} attempts left)"
                )
                response.close()
                self._backoff(wait_time)
                delay = wait_time
            else:
                logger.warning(
                    f"🔄 Server error {status} from {url}, retrying in {delay:.1f}s... "
                    f"({remaining} attempts left)"
                )
                response.close()
                self._backoff(delay)
                delay = policy.next_delay(delay)

            remaining -= 1
