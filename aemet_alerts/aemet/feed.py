"""
AEMET OpenData client

Fetching CAP warnings is a two-step exchange: the API endpoint answers with
a small JSON document whose 'datos' field is a temporary URL, and that URL
serves the actual resource (raw XML or a tar/gzip/zip container).
Reference: https://opendata.aemet.es/centrodedescargas/inicio
"""

import http.client
import json
import logging
import ssl
import time
import urllib.error
import urllib.request
from typing import Any, Callable, Dict, Optional, Tuple, TypeVar

from ..errors import FetchError

logger = logging.getLogger(__name__)

USER_AGENT = 'aemet-alerts/1.0'

T = TypeVar('T')


def with_retry(fn: Callable[[], T], attempts: int = 2, delay: float = 0.5) -> T:
    """
    Call fn until it succeeds or attempts run out.

    Only FetchError is retried; the last one is re-raised.
    """
    last_error: Optional[FetchError] = None
    for attempt in range(attempts):
        try:
            return fn()
        except FetchError as e:
            last_error = e
            if attempt < attempts - 1:
                logger.warning("Attempt %d/%d failed: %s", attempt + 1, attempts, e)
                time.sleep(delay)
    raise last_error


class AEMETFeedClient:
    """
    Client for the AEMET OpenData CAP warning endpoints.

    Network errors and non-2xx answers surface as FetchError.
    """

    def __init__(
        self,
        api_key: str,
        timeout: float = 12,
        data_timeout: float = 20,
        attempts: int = 2,
        retry_delay: float = 0.6
    ):
        self.api_key = api_key
        self.timeout = timeout
        self.data_timeout = data_timeout
        self.attempts = attempts
        self.retry_delay = retry_delay
        self._ssl_context = ssl.create_default_context()

    def _fetch_url(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None
    ) -> Tuple[bytes, str]:
        """Fetch URL, returning the body and the declared charset."""
        req = urllib.request.Request(url)
        req.add_header('User-Agent', USER_AGENT)

        if headers:
            for key, value in headers.items():
                req.add_header(key, value)

        try:
            with urllib.request.urlopen(
                req,
                timeout=timeout or self.timeout,
                context=self._ssl_context
            ) as response:
                charset = response.headers.get_content_charset() or 'utf-8'
                return response.read(), charset
        except urllib.error.HTTPError as e:
            raise FetchError(f"HTTP {e.code} fetching {url}") from e
        except (OSError, http.client.HTTPException) as e:
            raise FetchError(f"Failed to fetch {url}: {e}") from e

    def _fetch_json(self, url: str) -> Dict[str, Any]:
        body, charset = self._fetch_url(url, headers={
            'api_key': self.api_key,
            'Accept': 'application/json'
        })
        try:
            return json.loads(body.decode(charset, errors='replace'))
        except (json.JSONDecodeError, LookupError) as e:
            raise FetchError(f"Invalid JSON from {url}: {e}") from e

    def get_data_url(self, endpoint: str) -> str:
        """
        Resolve the temporary data URL for a CAP endpoint.

        Args:
            endpoint: OpenData API URL for one area

        Returns:
            URL of the downloadable resource

        Raises:
            FetchError: On network failure or when the answer has no 'datos'
        """
        meta = with_retry(lambda: self._fetch_json(endpoint), self.attempts, self.retry_delay)

        datos = meta.get('datos') if isinstance(meta, dict) else None
        if not datos:
            description = meta.get('descripcion') if isinstance(meta, dict) else None
            raise FetchError(f"Response without 'datos' field: {description or meta!r}")
        return datos

    def fetch_resource(self, url: str) -> bytes:
        """Download the resource behind a data URL."""
        body, _ = with_retry(
            lambda: self._fetch_url(url, timeout=self.data_timeout),
            self.attempts,
            self.retry_delay + 0.2
        )
        return body
