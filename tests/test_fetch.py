"""Tests for the process-wide default client and rate_limited_fetch()."""

import threading
from unittest.mock import MagicMock, patch

import requests

from chainfetch import (
    CHAINFETCH,
    RequestOptions,
    RequestsHttpClient,
    ResilientHttpClient,
    default_http_client,
    get_shared_rate_limiter,
    rate_limited_fetch,
    reset_default_http_client,
)


class TestDefaultHttpClient:

    def test_builds_resilient_client_over_requests_transport(self):
        client = default_http_client()

        assert isinstance(client, ResilientHttpClient)
        assert isinstance(client.delegate, RequestsHttpClient)

    def test_uses_shared_rate_limiter(self):
        assert default_http_client().rate_limiter is get_shared_rate_limiter()

    def test_returns_same_instance(self):
        assert default_http_client() is default_http_client()

    def test_transport_settings_from_config(self):
        CHAINFETCH.configure(http={"base_url": "https://paper-api.alpaca.markets", "request_timeout": 7})

        transport = default_http_client().delegate

        assert transport.base_url == "https://paper-api.alpaca.markets"
        assert transport.timeout == 7

    def test_retry_policy_from_config(self):
        CHAINFETCH.configure(retry={"max_attempts": 5, "max_delay": 10.0})

        policy = default_http_client().policy

        assert policy.max_attempts == 5
        assert policy.max_delay == 10.0

    def test_rate_limiting_can_be_disabled(self):
        CHAINFETCH.configure(rate_limit={"enabled": False})

        assert default_http_client().rate_limiter is None

    def test_reset_rebuilds_client(self):
        first = default_http_client()

        reset_default_http_client()

        assert default_http_client() is not first

    def test_concurrent_first_use_creates_single_client(self):
        clients = []
        barrier = threading.Barrier(16)

        def worker():
            barrier.wait()
            clients.append(default_http_client())

        threads = [threading.Thread(target=worker) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len({id(c) for c in clients}) == 1


class TestRateLimitedFetch:

    @patch("chainfetch._fetch.default_http_client")
    def test_leaves_retry_parameters_to_client_policy(self, mock_default_client):
        url = "https://data.alpaca.markets/v2/stocks/AAPL/snapshot"

        rate_limited_fetch(url)

        mock_default_client.return_value.send.assert_called_once_with(
            url, None, initial_delay=None, max_attempts=None,
        )

    @patch("chainfetch._fetch.default_http_client")
    def test_passes_options_and_overrides(self, mock_default_client):
        options = RequestOptions(params={"feed": "indicative"})

        rate_limited_fetch("/v1beta1/options/snapshots/AAPL", options, initial_delay=0.5, max_attempts=0)

        mock_default_client.return_value.send.assert_called_once_with(
            "/v1beta1/options/snapshots/AAPL", options, initial_delay=0.5, max_attempts=0,
        )

    @patch("chainfetch._http.requests.request")
    def test_end_to_end_returns_error_response_after_retries(self, mock_request):
        error_response = MagicMock(spec=requests.Response)
        error_response.status_code = 503
        error_response.headers = {}
        mock_request.return_value = error_response

        sleeps: list[float] = []
        default_http_client()._sleep = sleeps.append

        response = rate_limited_fetch("/v2/clock", max_attempts=2)

        assert response is error_response
        assert mock_request.call_count == 3
        assert sleeps == [1.0, 2.0]
        assert mock_request.call_args.args[1] == "https://data.alpaca.markets/v2/clock"

    @patch("chainfetch._http.requests.request")
    def test_configured_retry_policy_applies_without_overrides(self, mock_request):
        CHAINFETCH.configure(retry={"max_attempts": 5, "initial_delay": 0.01})
        error_response = MagicMock(spec=requests.Response)
        error_response.status_code = 503
        error_response.headers = {}
        mock_request.return_value = error_response

        sleeps: list[float] = []
        default_http_client()._sleep = sleeps.append

        response = rate_limited_fetch("/v2/clock")

        assert response is error_response
        assert mock_request.call_count == 6
        assert sleeps == [0.01, 0.02, 0.04, 0.08, 0.16]
