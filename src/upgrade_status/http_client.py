"""HTTP client used for release feeds, migration plans and loopback jobs."""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any

import httpx

from upgrade_status import __version__

logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (httpx.TimeoutException, httpx.ConnectError)


@dataclass
class RetryConfig:
    """Backoff settings shared by all requests of one client."""

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    exponential_base: float = 2.0

    def delay_for(self, attempt: int) -> float:
        """Backoff delay before retrying after the given attempt."""
        return min(self.base_delay * self.exponential_base ** attempt, self.max_delay)


def parse_retry_after(value: str | None, default: float, now: datetime | None = None) -> float:
    """Seconds to wait according to a ``Retry-After`` header.

    The header holds either a number of seconds or an HTTP date. Missing or
    unparseable values fall back to ``default``; dates in the past mean no wait.
    """
    if not value:
        return default

    try:
        return max(0.0, float(value))
    except ValueError:
        pass

    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        logger.debug(f"Ignoring unparseable Retry-After header: {value!r}")
        return default

    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return max(0.0, (when - now).total_seconds())


class SyncHTTPClient:
    """Blocking httpx client that retries transient failures.

    Timeouts, refused connections and 5xx responses are retried with
    exponential backoff. A 429 response waits as long as the server asks,
    capped at ``max_delay``. Once retries run out the last error is raised,
    or for 429 the response is returned to the caller.
    """

    def __init__(self, timeout: float = 30.0, retry_config: RetryConfig | None = None) -> None:
        self.timeout = timeout
        self.retry_config = retry_config or RetryConfig()
        self._client = httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": f"upgrade-status/{__version__}"},
        )

    def get(self, url: str, headers: dict[str, str] | None = None, **kwargs: Any) -> httpx.Response:
        return self._request_with_retry("GET", url, headers=headers, **kwargs)

    def post(
        self,
        url: str,
        json: dict | None = None,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        return self._request_with_retry("POST", url, json=json, headers=headers, **kwargs)

    def _request_with_retry(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request, retrying until it succeeds or retries run out.

        Raises:
            httpx.HTTPError: The last transport or server error
        """
        attempt = 0
        while True:
            retries_left = attempt < self.retry_config.max_retries
            try:
                response = self._client.request(method, url, **kwargs)
            except RETRYABLE_ERRORS as e:
                self._backoff_or_raise(url, attempt, e)
                attempt += 1
                continue

            if response.status_code == 429 and retries_left:
                wait = min(
                    parse_retry_after(response.headers.get("Retry-After"), self.retry_config.max_delay),
                    self.retry_config.max_delay,
                )
                logger.warning(f"Rate limited by {url}, waiting {wait:.0f}s")
                time.sleep(wait)
                attempt += 1
                continue

            if response.status_code >= 500:
                error = httpx.HTTPStatusError(
                    f"Server error: {response.status_code}",
                    request=response.request,
                    response=response,
                )
                self._backoff_or_raise(url, attempt, error)
                attempt += 1
                continue

            return response

    def _backoff_or_raise(self, url: str, attempt: int, error: httpx.HTTPError) -> None:
        if attempt >= self.retry_config.max_retries:
            logger.error(f"Request to {url} failed after {attempt + 1} attempts: {error}")
            raise error
        delay = self.retry_config.delay_for(attempt)
        logger.warning(f"Request to {url} failed (attempt {attempt + 1}), retrying in {delay:.1f}s: {error}")
        time.sleep(delay)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "SyncHTTPClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
