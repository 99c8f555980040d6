"""Base fetcher with cache-through JSON retrieval shared by the Google fetchers."""

import logging
from typing import Any, Dict, Optional

from google_client import GoogleApiClient
from .cache_manager import CacheManager


class FetcherError(Exception):
    """Base exception for fetcher-related errors."""
    pass


class BaseFetcher:
    """Serves GET requests from the response cache, falling back to the API."""

    def __init__(
        self,
        config: Dict[str, Any],
        client: GoogleApiClient,
        cache_manager: Optional[CacheManager] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize base fetcher with configuration, client and cache.

        Args:
            config: Configuration dictionary
            client: Authenticated API client
            cache_manager: Shared response cache (built from config if omitted)
            logger: Logger instance (optional, uses module logger if not provided)
        """
        self.config = config
        self.client = client
        self.cache_manager = cache_manager or CacheManager(config)
        self.logger = logger or logging.getLogger('gdocs_site.fetcher')
        self.api_calls = 0

    def _get_json(self, url: str) -> Any:
        """
        Return the JSON body for a URL, from cache when fresh.

        Args:
            url: Request URL, also the cache key

        Returns:
            Parsed JSON body
        """
        cached = self.cache_manager.get(url)
        if cached is not None:
            return cached

        self.api_calls += 1
        data = self.client.get_json(url)
        self.cache_manager.set(url, data)
        return data


__all__ = ['BaseFetcher', 'FetcherError']
