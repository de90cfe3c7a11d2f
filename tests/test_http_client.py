"""Tests for HTTP client with retry and rate limiting."""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import httpx
import pytest

from upgrade_status.http_client import RetryConfig, SyncHTTPClient, parse_retry_after


class TestRetryConfig:
    """Test retry configuration."""

    def test_default_config(self):
        """Test default retry settings."""
        config = RetryConfig()
        assert config.max_retries == 3
        assert config.base_delay == 1.0
        assert config.max_delay == 60.0
        assert config.exponential_base == 2.0

    def test_delay_is_capped(self):
        config = RetryConfig(base_delay=1.0, max_delay=5.0)
        assert config.delay_for(0) == 1.0
        assert config.delay_for(2) == 4.0
        assert config.delay_for(10) == 5.0


class TestSyncHTTPClient:
    """Test synchronous HTTP client."""

    def test_client_initialization(self):
        """Test client initializes correctly."""
        client = SyncHTTPClient(timeout=15.0)
        assert client.timeout == 15.0
        assert client.retry_config.max_retries == 3
        assert client._client.headers["User-Agent"].startswith("upgrade-status/")
        client.close()

    @patch.object(httpx.Client, "request")
    def test_successful_request(self, mock_request):
        """Test successful GET request."""
        mock_response = MagicMock()
        mock_response.status_code = 200
        mock_request.return_value = mock_response

        with SyncHTTPClient() as client:
            response = client.get("https://example.com")
            assert response.status_code == 200

    @patch.object(httpx.Client, "request")
    def test_post_sends_json(self, mock_request):
        mock_response = MagicMock()
        mock_response.status_code = 202
        mock_request.return_value = mock_response

        with SyncHTTPClient() as client:
            client.post("https://example.com/jobs/run", json={"project": "mine"})

        mock_request.assert_called_once_with(
            "POST", "https://example.com/jobs/run", json={"project": "mine"}, headers=None
        )

    @patch("upgrade_status.http_client.time.sleep")
    @patch.object(httpx.Client, "request")
    def test_retry_on_server_error(self, mock_request, mock_sleep):
        """Test retry on 500 error."""
        error_response = MagicMock()
        error_response.status_code = 500

        success_response = MagicMock()
        success_response.status_code = 200

        mock_request.side_effect = [error_response, success_response]

        with SyncHTTPClient(retry_config=RetryConfig(base_delay=0.01)) as client:
            response = client.get("https://example.com")

        assert response.status_code == 200
        assert mock_request.call_count == 2
        mock_sleep.assert_called_once()

    @patch("upgrade_status.http_client.time.sleep")
    @patch.object(httpx.Client, "request")
    def test_rate_limit_handling(self, mock_request, mock_sleep):
        """Test 429 rate limit response handling."""
        rate_limit_response = MagicMock()
        rate_limit_response.status_code = 429
        rate_limit_response.headers = {"Retry-After": "2"}

        success_response = MagicMock()
        success_response.status_code = 200

        mock_request.side_effect = [rate_limit_response, success_response]

        with SyncHTTPClient() as client:
            response = client.get("https://example.com")

        assert response.status_code == 200
        mock_sleep.assert_called_once_with(2)

    @patch("upgrade_status.http_client.time.sleep")
    @patch.object(httpx.Client, "request")
    def test_gives_up_after_max_retries(self, mock_request, mock_sleep):
        mock_request.side_effect = httpx.ConnectError("refused")

        with SyncHTTPClient(retry_config=RetryConfig(max_retries=2)) as client:
            with pytest.raises(httpx.ConnectError):
                client.get("https://example.com")

        assert mock_request.call_count == 3
        assert mock_sleep.call_count == 2

    @patch("upgrade_status.http_client.time.sleep")
    @patch.object(httpx.Client, "request")
    def test_rate_limit_with_http_date(self, mock_request, mock_sleep):
        rate_limit_response = MagicMock()
        rate_limit_response.status_code = 429
        rate_limit_response.headers = {"Retry-After": "Wed, 21 Oct 2015 07:28:00 GMT"}

        success_response = MagicMock()
        success_response.status_code = 200

        mock_request.side_effect = [rate_limit_response, success_response]

        with SyncHTTPClient() as client:
            response = client.get("https://example.com")

        assert response.status_code == 200
        mock_sleep.assert_called_once_with(0.0)

    @patch("upgrade_status.http_client.time.sleep")
    @patch.object(httpx.Client, "request")
    def test_rate_limit_returns_response_when_retries_run_out(self, mock_request, mock_sleep):
        rate_limit_response = MagicMock()
        rate_limit_response.status_code = 429
        rate_limit_response.headers = {"Retry-After": "soon"}
        mock_request.return_value = rate_limit_response

        with SyncHTTPClient(retry_config=RetryConfig(max_retries=1, max_delay=5.0)) as client:
            response = client.get("https://example.com")

        assert response.status_code == 429
        assert mock_request.call_count == 2
        mock_sleep.assert_called_once_with(5.0)


class TestParseRetryAfter:
    """Test Retry-After header parsing."""

    NOW = datetime(2015, 10, 21, 7, 28, 0, tzinfo=timezone.utc)

    def test_seconds(self):
        assert parse_retry_after("120", default=60.0) == 120.0

    def test_missing_header_uses_default(self):
        assert parse_retry_after(None, default=60.0) == 60.0

    def test_http_date_in_future(self):
        assert parse_retry_after("Wed, 21 Oct 2015 07:28:30 GMT", default=60.0, now=self.NOW) == 30.0

    def test_http_date_in_past(self):
        assert parse_retry_after("Wed, 21 Oct 2015 07:27:00 GMT", default=60.0, now=self.NOW) == 0.0

    def test_garbage_uses_default(self):
        assert parse_retry_after("tomorrow-ish", default=60.0) == 60.0
