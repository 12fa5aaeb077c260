"""
HTTP access for shed with retry logic.

The Go builder resolves versions by querying a Go module proxy, which
answers small JSON documents. This module wraps those requests with:
- Timeout handling
- Retry with exponential backoff on connection errors and 5xx responses
- A distinct error for "not found" answers, which callers treat as a
  normal negative result rather than a failure
"""

import logging
import time
from typing import Any

import requests
from requests.exceptions import ConnectionError, RequestException, Timeout

logger = logging.getLogger(__name__)

# Proxy status codes that mean "no such module or version".
NOT_FOUND_STATUS = (404, 410)


class DownloadError(Exception):
    """Exception raised when a request fails."""

    pass


class RemoteNotFoundError(DownloadError):
    """Exception raised when the server reports the resource does not exist."""

    def __init__(self, url: str, status_code: int, detail: str = ""):
        self.url = url
        self.status_code = status_code
        self.detail = detail
        msg = f"{url}: not found ({status_code})"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


def fetch_json(url: str, timeout: float = 30, max_retries: int = 3) -> Any:
    """
    GET ``url`` and decode the JSON body.

    Args:
        url: URL to request
        timeout: Request timeout in seconds
        max_retries: Maximum number of attempts for transient failures

    Returns:
        Decoded JSON document

    Raises:
        RemoteNotFoundError: If the server answers 404 or 410
        DownloadError: If the request fails after retries or the body is not JSON
        ValueError: If URL is empty
    """
    if not url:
        raise ValueError("URL cannot be empty")

    for attempt in range(max_retries):
        try:
            logger.debug(f"GET {url}")
            response = requests.get(url, timeout=timeout, allow_redirects=True)

            if response.status_code in NOT_FOUND_STATUS:
                raise RemoteNotFoundError(
                    url, response.status_code, response.text.strip()[:200]
                )
            if response.status_code >= 500:
                raise ConnectionError(f"server error {response.status_code}")
            response.raise_for_status()

            try:
                return response.json()
            except ValueError as e:
                raise DownloadError(f"Invalid JSON from {url}: {e}") from e

        except (Timeout, ConnectionError) as e:
            if attempt == max_retries - 1:
                raise DownloadError(
                    f"Request failed after {max_retries} attempts: {url}: {e}"
                ) from e

            backoff_seconds = 2**attempt
            logger.warning(
                f"Request attempt {attempt + 1} failed: {e}. "
                f"Retrying in {backoff_seconds}s..."
            )
            time.sleep(backoff_seconds)

        except DownloadError:
            raise

        except RequestException as e:
            raise DownloadError(f"Request failed: {url}: {e}") from e

    raise DownloadError(f"Request failed for unknown reason: {url}")


__all__ = ["fetch_json", "DownloadError", "RemoteNotFoundError"]
