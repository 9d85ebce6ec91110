"""
Process-wide default client.

`rate_limited_fetch()` is the drop-in replacement for a direct transport call:
every caller in the process shares one ResilientHttpClient and therefore one
sliding-window quota.

Example:
    >>> from chainfetch import rate_limited_fetch
    >>> response = rate_limited_fetch("/v2/stocks/AAPL/snapshot")
    >>> response.status_code
    200
"""

import logging
import threading

import requests

from chainfetch._config import CHAINFETCH
from chainfetch._executor import ResilientHttpClient
from chainfetch._http import RequestOptions, RequestsHttpClient
from chainfetch._rate_limit import get_shared_rate_limiter

logger = logging.getLogger(__name__)

_default_client: ResilientHttpClient | None = None
_default_client_lock = threading.Lock()


def _create_default_http_client() -> ResilientHttpClient:
    config = CHAINFETCH.config
    transport = RequestsHttpClient(
        base_url=config.http.base_url,
        timeout=config.http.request_timeout,
    )

    rate_limiter = None
    if config.rate_limit.enabled:
        rate_limiter = get_shared_rate_limiter()
    else:
        logger.debug("Client-side rate limiting disabled by configuration.")

    return ResilientHttpClient(delegate=transport, rate_limiter=rate_limiter)


def default_http_client() -> ResilientHttpClient:
    """
    Return the process-wide resilient client, creating it on first use.

    Uses double-checked locking for thread-safe lazy initialization, so
    CHAINFETCH.configure() may be called after import.
    """
    global _default_client

    if _default_client is None:
        with _default_client_lock:
            if _default_client is None:
                _default_client = _create_default_http_client()
    return _default_client


def reset_default_http_client() -> None:
    """Discard the default client so the next call rebuilds it from current config."""
    global _default_client

    with _default_client_lock:
        _default_client = None


def rate_limited_fetch(
    url: str,
    options: RequestOptions | None = None,
    initial_delay: float | None = None,
    max_attempts: int | None = None,
) -> requests.Response:
    """
    Send a request through the shared rate limiter with retries.

    Args:
        url: Absolute URL, or a path relative to CHAINFETCH.config.http.base_url.
        options: Request options.
        initial_delay: Seconds before the first retry. None uses
            CHAINFETCH.config.retry.initial_delay (1.0 unless configured).
        max_attempts: Additional attempts after the first one. None uses
            CHAINFETCH.config.retry.max_attempts (3 unless configured).

    Returns:
        The final HTTP response; callers must check the status code themselves.

    Raises:
        TransportFailureError: If no response was obtained on any attempt.
    """
    return default_http_client().send(
        url,
        options,
        initial_delay=initial_delay,
        max_attempts=max_attempts,
    )
