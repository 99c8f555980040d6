"""Authenticated REST client for the Google Docs and Drive APIs."""

import logging
import time
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from auth import AccessTokenProvider

logger = logging.getLogger('gdocs_site.client')


class GoogleApiError(Exception):
    """Non-2xx response from a Google REST API."""

    def __init__(self, message: str, status: int, url: str, payload: Optional[Dict[str, Any]] = None):
        super().__init__(f"HTTP {status} for {url}: {message}")
        self.status = status
        self.url = url
        self.payload = payload or {}


class GoogleApiClient:
    """Issues bearer-authenticated GET requests and decodes JSON bodies."""

    def __init__(
        self,
        token_provider: AccessTokenProvider,
        timeout: float = 30,
        max_retries: int = 0,
        retry_backoff_factor: float = 2.0,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the client.

        Args:
            token_provider: Source of bearer tokens, asked once per request
            timeout: HTTP request timeout in seconds
            max_retries: Transport-level retries for transient errors (0 disables)
            retry_backoff_factor: Exponential backoff factor for retries
            session: Optional pre-built requests session
        """
        self.token_provider = token_provider
        self.timeout = timeout
        self.session = session or requests.Session()

        retry_strategy = Retry(
            total=max_retries,
            backoff_factor=retry_backoff_factor,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["HEAD", "GET", "OPTIONS"],
            raise_on_status=False
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

        logger.debug(f"Client configured with timeout={timeout}s, max_retries={max_retries}")

    @classmethod
    def from_config(cls, config: Dict[str, Any], token_provider: Optional[AccessTokenProvider] = None) -> 'GoogleApiClient':
        """Build a client from the advanced.* configuration section."""
        advanced = config.get('advanced', {})
        return cls(
            token_provider=token_provider or AccessTokenProvider(config),
            timeout=advanced.get('request_timeout', 30),
            max_retries=advanced.get('max_retries', 0),
            retry_backoff_factor=advanced.get('retry_backoff_factor', 2.0)
        )

    def get_json(self, url: str) -> Any:
        """
        GET a URL with a fresh bearer token and return the decoded JSON body.

        Args:
            url: Fully-qualified request URL

        Returns:
            Parsed JSON body

        Raises:
            AuthenticationError: If no token could be obtained
            GoogleApiError: For non-2xx responses
            requests.exceptions.RequestException: For transport errors
        """
        headers = {
            'Authorization': f"Bearer {self.token_provider.get_token()}",
            'Accept': 'application/json'
        }

        start_time = time.time()
        logger.debug(f"API Request: GET {url}")

        try:
            response = self.session.get(url, headers=headers, timeout=self.timeout)
        except requests.exceptions.Timeout:
            logger.error(f"Request timeout after {self.timeout}s: GET {url}")
            raise

        elapsed = time.time() - start_time
        logger.debug(f"API Response: {response.status_code} {url} ({elapsed:.3f}s)")

        if response.status_code >= 400:
            self._raise_for_status(response, url)

        return response.json()

    @staticmethod
    def _raise_for_status(response: requests.Response, url: str) -> None:
        message = response.reason or "request failed"
        payload: Optional[Dict[str, Any]] = None
        try:
            payload = response.json()
            error = payload.get('error') if isinstance(payload, dict) else None
            if isinstance(error, dict) and error.get('message'):
                message = error['message']
        except ValueError:
            text = response.text.strip()
            if text:
                message = text[:500]

        logger.error(f"HTTP Error {response.status_code}: GET {url} - {message}")
        raise GoogleApiError(message, response.status_code, url, payload)

    def close(self) -> None:
        """Close the underlying session."""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


__all__ = ['GoogleApiClient', 'GoogleApiError']
