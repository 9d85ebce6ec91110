"""
chainfetch: resilient, rate-limited HTTP client for market-data APIs.

Guards every outbound call with a sliding-window rate limiter (200 requests
in any trailing minute by default), retries 429/5xx responses and transport
errors with geometric backoff that honors Retry-After, and decodes OSI option
symbols into structured records.

Quick Start:
    >>> from chainfetch import rate_limited_fetch
    >>> response = rate_limited_fetch("https://data.alpaca.markets/v2/stocks/AAPL/snapshot")
    >>> if response.status_code == 200:
    ...     print(response.json())

Symbol Codec:
    >>> from chainfetch import parse_option_symbol
    >>> option = parse_option_symbol("AAPL241206C00225000")
    >>> option.strike_price
    Decimal('225')

Global Configuration:
    >>> from chainfetch import CHAINFETCH
    >>> CHAINFETCH.configure(
    ...     rate_limit={"max_requests": 100, "time_window": 60.0},
    ...     retry={"initial_delay": 0.5, "max_attempts": 5},
    ... )

Main Classes:
    - ResilientHttpClient: HTTP client decorator with rate limiting and retries.
    - RequestsHttpClient: Plain transport backed by `requests`.
    - HttpClient: Abstract base class for HTTP clients.
    - RequestOptions: Method, headers, params, body and timeout of a request.
    - SlidingWindowRateLimiter: Thread-safe sliding-window limiter.
    - RetryPolicy: Per-call retry parameters.
    - OptionIdentifier / ContractKind: Parsed OSI option symbols.

Errors:
    - TransportFailureError: No HTTP response obtained after all retries.
    - ClientSideRateLimitError: Base class for client-side rate limit errors.
    - RateLimitExhaustedError: Limiter max_wait_time exceeded.
    - ConfigEnvVarError / ConfigValidationError: Invalid configuration.
"""

from importlib.metadata import version as _get_version

__version__ = _get_version("chainfetch")

from chainfetch._chain import (
    atm_index,
    centered_strikes,
    find_atm_strike,
    strikes_from_symbols,
)
from chainfetch._config import (
    CHAINFETCH,
    ChainFetchConfig,
    ConfigEntry,
    ConfigEnvVarError,
    ConfigValidationError,
    HttpConfig,
    RateLimitConfig,
    RetryConfig,
)
from chainfetch._executor import ResilientHttpClient
from chainfetch._fetch import (
    default_http_client,
    rate_limited_fetch,
    reset_default_http_client,
)
from chainfetch._http import (
    HttpClient,
    RequestOptions,
    RequestsHttpClient,
)
from chainfetch._rate_limit import (
    ClientSideRateLimitError,
    RateLimitExhaustedError,
    SlidingWindowRateLimiter,
    get_shared_rate_limiter,
    reset_shared_rate_limiters,
)
from chainfetch._retry import (
    RetryPolicy,
    TransportFailureError,
    parse_retry_after,
)
from chainfetch._symbols import (
    ContractKind,
    OptionIdentifier,
    format_option_symbol,
    parse_option_symbol,
)

__all__ = [
    "__version__",
    # Configuration
    "CHAINFETCH",
    "ChainFetchConfig",
    "ConfigEntry",
    "ConfigEnvVarError",
    "ConfigValidationError",
    "RateLimitConfig",
    "RetryConfig",
    "HttpConfig",
    # HTTP Client
    "HttpClient",
    "RequestOptions",
    "RequestsHttpClient",
    "ResilientHttpClient",
    "default_http_client",
    "rate_limited_fetch",
    "reset_default_http_client",
    # Rate Limiting
    "SlidingWindowRateLimiter",
    "ClientSideRateLimitError",
    "RateLimitExhaustedError",
    "get_shared_rate_limiter",
    "reset_shared_rate_limiters",
    # Retry
    "RetryPolicy",
    "TransportFailureError",
    "parse_retry_after",
    # Symbols
    "ContractKind",
    "OptionIdentifier",
    "format_option_symbol",
    "parse_option_symbol",
    # Option chains
    "atm_index",
    "centered_strikes",
    "find_atm_strike",
    "strikes_from_symbols",
]
