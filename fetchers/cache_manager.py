"""Cache manager for Google API responses and remote images with TTL support."""

import hashlib
import json
import logging
import os
import re
import tempfile
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional

logger = logging.getLogger('gdocs_site.fetcher.cache')

DURATION_PATTERN = re.compile(r'^(\d+)\s*([smhdwy])$')
DURATION_UNITS = {
    's': 1,
    'm': 60,
    'h': 60 * 60,
    'd': 24 * 60 * 60,
    'w': 7 * 24 * 60 * 60,
    'y': 365 * 24 * 60 * 60,
}


def parse_duration(duration: Any) -> Optional[float]:
    """
    Convert a cache duration into seconds.

    Accepts plain numbers (seconds) or strings like "30m", "12h", "1d".
    "*" means entries never expire and returns None.

    Raises:
        ValueError: If the duration cannot be parsed
    """
    if isinstance(duration, bool):
        raise ValueError(f"Unsupported cache duration: {duration!r}")
    if isinstance(duration, (int, float)):
        if duration < 0:
            raise ValueError(f"Cache duration cannot be negative: {duration}")
        return float(duration)
    if not isinstance(duration, str):
        raise ValueError(f"Unsupported cache duration: {duration!r}")

    value = duration.strip()
    if value == '*':
        return None

    match = DURATION_PATTERN.match(value)
    if not match:
        raise ValueError(
            f"Unsupported cache duration '{duration}'. Use <number><s|m|h|d|w|y> or '*'"
        )
    amount, unit = match.groups()
    return float(int(amount) * DURATION_UNITS[unit])


class CacheManager:
    """Manages local caching of fetched responses keyed by request URL."""

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize cache manager.

        Args:
            config: Configuration dictionary with advanced.cache settings
        """
        cache_config = config.get('advanced', {}).get('cache', {})

        self.enabled = cache_config.get('enabled', True)
        self.cache_dir = os.path.abspath(cache_config.get('directory', './.cache'))
        self.duration = cache_config.get('duration', '1d')
        self.ttl_seconds = parse_duration(self.duration)

        self.stats = {
            'hits': 0,
            'misses': 0,
            'writes': 0,
            'expired': 0
        }
        self._stats_lock = threading.Lock()

        if self.enabled:
            os.makedirs(self.cache_dir, exist_ok=True)
            logger.info(f"Cache enabled: directory={self.cache_dir}, duration={self.duration}")
        else:
            logger.debug("Cache disabled")

    def get(self, url: str) -> Optional[Any]:
        """
        Retrieve a cached JSON body for a URL if present and not expired.

        Args:
            url: Request URL the body was stored under

        Returns:
            Cached data or None if not found/expired
        """
        if not self.enabled:
            return None

        cache_file = self._get_cache_file_path(url)
        if not os.path.exists(cache_file):
            self._count('misses')
            logger.debug(f"Cache miss: {url}")
            return None

        try:
            with open(cache_file, 'r', encoding='utf-8') as f:
                cache_entry = json.load(f)

            age = self._age_seconds(cache_entry['timestamp'])
            if self._is_expired(age):
                self._count('misses')
                self._count('expired')
                logger.debug(f"Cache expired: {url} (age: {age:.0f}s > {self.ttl_seconds:.0f}s)")
                return None

            self._count('hits')
            logger.debug(f"Cache hit: {url} (age: {age:.0f}s)")
            return cache_entry['data']

        except (json.JSONDecodeError, KeyError, ValueError, OSError) as e:
            self._count('misses')
            logger.warning(f"Cache read error for {url}: {str(e)}")
            self._remove_quietly(cache_file)
            return None

    def set(self, url: str, data: Any) -> bool:
        """
        Store a JSON body for a URL.

        Args:
            url: Request URL used as the cache key
            data: Data to cache (must be JSON serializable)

        Returns:
            True if stored, False otherwise
        """
        if not self.enabled:
            return False

        cache_entry = {
            'url': url,
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'type': 'json',
            'data': data
        }

        try:
            payload = json.dumps(cache_entry, ensure_ascii=False).encode('utf-8')
            self._atomic_write(self._get_cache_file_path(url), payload)
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Cache write error for {url}: {str(e)}")
            return False

        self._count('writes')
        logger.debug(f"Cache stored: {url}")
        return True

    def get_binary(self, url: str) -> Optional[bytes]:
        """
        Retrieve cached binary content (e.g. an image) for a URL.

        Args:
            url: Source URL of the content

        Returns:
            Binary data if cached and valid, None otherwise
        """
        if not self.enabled:
            return None

        binary_file = self._get_binary_cache_path(url)
        metadata_file = self._get_binary_metadata_path(url)

        if not os.path.exists(binary_file) or not os.path.exists(metadata_file):
            self._count('misses')
            logger.debug(f"Binary cache miss: {url}")
            return None

        try:
            with open(metadata_file, 'r', encoding='utf-8') as f:
                metadata = json.load(f)

            age = self._age_seconds(metadata['timestamp'])
            if self._is_expired(age):
                self._count('misses')
                self._count('expired')
                logger.debug(f"Binary cache expired: {url}")
                return None

            with open(binary_file, 'rb') as f:
                binary_data = f.read()

            expected_checksum = metadata.get('checksum')
            if expected_checksum and hashlib.sha256(binary_data).hexdigest() != expected_checksum:
                logger.warning(f"Checksum mismatch for cached binary: {url}")
                self._count('misses')
                return None

            self._count('hits')
            logger.debug(f"Binary cache hit: {url}")
            return binary_data

        except (json.JSONDecodeError, KeyError, ValueError, OSError) as e:
            self._count('misses')
            logger.warning(f"Binary cache read error for {url}: {str(e)}")
            return None

    def set_binary(self, url: str, data: bytes, metadata: Optional[Dict[str, Any]] = None) -> bool:
        """
        Store binary content for a URL with a checksum sidecar.

        Args:
            url: Source URL of the content
            data: Binary data to cache
            metadata: Additional metadata (content type, etc.)

        Returns:
            True if stored, False otherwise
        """
        if not self.enabled:
            return False

        cache_metadata = {
            'url': url,
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'type': 'buffer',
            'checksum': hashlib.sha256(data).hexdigest(),
            'size_bytes': len(data)
        }
        if metadata:
            cache_metadata.update(metadata)

        try:
            self._atomic_write(self._get_binary_cache_path(url), data)
            self._atomic_write(
                self._get_binary_metadata_path(url),
                json.dumps(cache_metadata, ensure_ascii=False).encode('utf-8')
            )
        except OSError as e:
            logger.warning(f"Binary cache write error for {url}: {str(e)}")
            return False

        self._count('writes')
        logger.debug(f"Binary cache stored: {url} ({len(data)} bytes)")
        return True

    def clear(self) -> int:
        """
        Remove every cache entry.

        Returns:
            Number of files removed
        """
        if not os.path.isdir(self.cache_dir):
            return 0

        cleared = 0
        for filename in os.listdir(self.cache_dir):
            if not filename.startswith('gdocs-'):
                continue
            file_path = os.path.join(self.cache_dir, filename)
            try:
                os.remove(file_path)
                cleared += 1
            except OSError as e:
                logger.warning(f"Failed to clear cache file {file_path}: {str(e)}")

        self.reset_stats()
        logger.info(f"Cleared {cleared} cache files from {self.cache_dir}")
        return cleared

    def get_stats(self) -> Dict[str, Any]:
        """
        Get cache statistics for the current run.

        Returns:
            Dictionary with cache statistics
        """
        with self._stats_lock:
            stats = dict(self.stats)

        total_requests = stats['hits'] + stats['misses']
        stats.update({
            'enabled': self.enabled,
            'cache_dir': self.cache_dir,
            'duration': self.duration,
            'hit_rate': stats['hits'] / total_requests if total_requests > 0 else 0.0,
            'api_calls_saved': stats['hits']
        })
        return stats

    def reset_stats(self) -> None:
        """Reset statistics counters."""
        with self._stats_lock:
            self.stats = {
                'hits': 0,
                'misses': 0,
                'writes': 0,
                'expired': 0
            }

    def _count(self, stat: str) -> None:
        with self._stats_lock:
            self.stats[stat] += 1

    def _is_expired(self, age_seconds: float) -> bool:
        if self.ttl_seconds is None:
            return False
        return age_seconds >= self.ttl_seconds

    @staticmethod
    def _age_seconds(timestamp: str) -> float:
        cached_time = datetime.fromisoformat(timestamp)
        if cached_time.tzinfo is None:
            cached_time = cached_time.replace(tzinfo=timezone.utc)
        return (datetime.now(timezone.utc) - cached_time).total_seconds()

    def _atomic_write(self, path: str, payload: bytes) -> None:
        """Write through a temp file so concurrent readers never see partial entries."""
        fd, tmp_path = tempfile.mkstemp(dir=self.cache_dir, prefix='.tmp-')
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(payload)
            os.replace(tmp_path, path)
        except OSError:
            self._remove_quietly(tmp_path)
            raise

    @staticmethod
    def _remove_quietly(path: str) -> None:
        try:
            os.remove(path)
        except OSError:
            pass

    def _get_cache_file_path(self, url: str) -> str:
        """Get file path for a JSON cache entry."""
        return os.path.join(self.cache_dir, f"gdocs-{self.generate_cache_key(url)}.json")

    def _get_binary_cache_path(self, url: str) -> str:
        """Get file path for a binary cache entry."""
        return os.path.join(self.cache_dir, f"gdocs-{self.generate_cache_key(url)}.bin")

    def _get_binary_metadata_path(self, url: str) -> str:
        """Get file path for binary cache metadata."""
        return os.path.join(self.cache_dir, f"gdocs-{self.generate_cache_key(url)}_meta.json")

    @staticmethod
    def generate_cache_key(url: str) -> str:
        """
        Generate a filesystem-safe cache key from a request URL.

        Args:
            url: Request URL

        Returns:
            Short hex digest of the URL
        """
        return hashlib.sha256(url.encode('utf-8')).hexdigest()[:30]
