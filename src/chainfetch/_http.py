"""
HTTP transport abstraction for the chainfetch client.

This module provides the transport interface that the resilient client
decorates, plus the default implementation backed by `requests`.

Available implementations:
    - RequestsHttpClient: Plain transport using `requests`. Returns every HTTP
      response, including error statuses; raises only on transport failures.
    - ResilientHttpClient (chainfetch._executor): Decorator that adds
      sliding-window rate limiting and retries with backoff.

Example:
    >>> from chainfetch._http import RequestsHttpClient, RequestOptions
    >>> client = RequestsHttpClient(base_url="https://data.alpaca.markets")
    >>> response = client.send("/v2/stocks/AAPL/trades/latest")
    >>> response = client.send(
    ...     "/v1beta1/options/snapshots/AAPL",
    ...     RequestOptions(params={"limit": 100}),
    ... )
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Any
from urllib.parse import urljoin

import requests
from typing_extensions import override

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestOptions:
    """
    Options for a single logical request.

    Attributes:
        method: HTTP method (default: GET).
        headers: Additional headers, merged over the client's default headers.
        params: Query string parameters.
        json: JSON-serializable request body.
        timeout: Request timeout in seconds. None uses the client default.

    Example:
        >>> RequestOptions(params={"feed": "indicative"})
        >>> RequestOptions(method="POST", json={"symbols": ["AAPL"]})
    """

    method: str = "GET"
    headers: dict[str, str] | None = None
    params: dict[str, Any] | None = None
    json: Any = None
    timeout: float | None = None

    def with_timeout(self, timeout: float) -> "RequestOptions":
        """Return a copy with the timeout set, unless one was given explicitly."""
        if self.timeout is not None:
            return self
        return replace(self, timeout=timeout)


# =============================================================================
# Abstract Base Class
# =============================================================================


class HttpClient(ABC):
    """
    Abstract base class for HTTP clients.

    Implementations perform a single transport call per `send()`. Cross-cutting
    concerns (rate limiting, retries) are added by decorators that wrap
    another HttpClient.

    Example:
        >>> class MyHttpClient(HttpClient):
        ...     def send(self, url, options=None):
        ...         options = options or RequestOptions()
        ...         return requests.request(options.method, url, params=options.params)
    """

    @abstractmethod
    def send(
        self,
        url: str,
        options: RequestOptions | None = None,
    ) -> requests.Response:
        """
        Execute a request.

        Args:
            url: The URL to request.
            options: Method, headers, params, body and timeout.

        Returns:
            The HTTP response, whatever its status code.

        Raises:
            requests.RequestException: If no response could be obtained.
        """
        pass

    def get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> requests.Response:
        """Execute a GET request."""
        return self.send(url, RequestOptions(method="GET", headers=headers, params=params, timeout=timeout))

    def post(
        self,
        url: str,
        json: Any = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> requests.Response:
        """Execute a POST request with a JSON body."""
        return self.send(url, RequestOptions(method="POST", headers=headers, json=json, timeout=timeout))


# =============================================================================
# Requests Implementation
# =============================================================================


class RequestsHttpClient(HttpClient):
    """
    HTTP client performing plain transport calls with `requests`.

    HTTP error statuses are returned as responses, never raised. Only
    connection-level failures (no response at all) raise, as
    `requests.ConnectionError`, `requests.Timeout` and friends.

    Args:
        base_url: Optional base URL that relative request URLs are joined onto.
        default_headers: Headers sent with every request (per-call headers win).
        timeout: Default timeout in seconds when RequestOptions has none.
        session: Optional `requests.Session` for connection pooling.
    """

    def __init__(
        self,
        base_url: str | None = None,
        default_headers: dict[str, str] | None = None,
        timeout: float = 30,
        session: requests.Session | None = None,
    ):
        assert timeout is not None, "Timeout cannot be None."
        assert timeout > 0, "Timeout must be greater than 0."

        self.base_url = base_url
        self.default_headers = dict(default_headers or {})
        self.timeout = timeout
        self._session = session

    def _resolve_url(self, url: str) -> str:
        if self.base_url and not url.startswith(("http://", "https://")):
            return urljoin(self.base_url.rstrip("/") + "/", url.lstrip("/"))
        return url

    @override
    def send(
        self,
        url: str,
        options: RequestOptions | None = None,
    ) -> requests.Response:
        """
        Execute a single transport call.

        Args:
            url: Absolute URL, or a path relative to base_url.
            options: Request options.

        Returns:
            The HTTP response.

        Raises:
            AssertionError: If url is empty.
            requests.RequestException: If the HTTP request fails without a response.
        """
        assert url, "URL cannot be empty."

        options = (options or RequestOptions()).with_timeout(self.timeout)
        full_url = self._resolve_url(url)
        merged_headers = {**self.default_headers, **(options.headers or {})}

        logger.debug(f"{options.method} {full_url}")
        requester = self._session.request if self._session is not None else requests.request
        response: requests.Response = requester(
            options.method,
            full_url,
            headers=merged_headers,
            params=options.params,
            json=options.json,
            timeout=options.timeout,
        )
        logger.debug(f"{options.method} {full_url} -> {response.status_code}")
        return response
