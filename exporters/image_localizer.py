"""Image localizer for downloading document images into the site asset directory."""

import hashlib
import io
import logging
import os
import tempfile
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests
from bs4 import BeautifulSoup, Tag
from PIL import Image

from exporters.site_builder import prefix_url
from fetchers.cache_manager import CacheManager
from models import ImageAsset


class ImageDownloadError(Exception):
    """Raised when an image referenced by a document cannot be localized."""
    pass


# Output format name -> (Pillow format, file extension)
OUTPUT_FORMATS = {
    'webp': ('WEBP', 'webp'),
    'jpeg': ('JPEG', 'jpeg'),
    'png': ('PNG', 'png'),
    'gif': ('GIF', 'gif'),
    'avif': ('AVIF', 'avif'),
}

PILLOW_FORMAT_NAMES = {
    'JPEG': 'jpeg',
    'MPO': 'jpeg',
    'PNG': 'png',
    'GIF': 'gif',
    'WEBP': 'webp',
    'AVIF': 'avif',
}


class ImageLocalizer:
    """
    Downloads the images of a markup tree and points them at local copies.

    This localizer:
    1. Collects every <img> with a remote src in one synchronous pass
    2. Downloads all of them concurrently (binary cache first)
    3. Writes each image at its natural size as <hash>-<width>.<ext>
    4. Rewrites src attributes only after every download succeeded
    """

    def __init__(
        self,
        config: Dict[str, Any],
        cache_manager: Optional[CacheManager] = None,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the image localizer.

        Args:
            config: Configuration dictionary with images.* settings
            cache_manager: Shared cache for downloaded image bytes
            session: Optional requests session used for downloads
            logger: Logger instance
        """
        self.config = config
        self.logger = logger or logging.getLogger('gdocs_site.exporters.image_localizer')

        image_config = config.get('images', {})
        site_config = config.get('site', {})
        output_dir = image_config.get('output_directory')
        if not output_dir:
            output_dir = os.path.join(site_config.get('output_directory', './_site'), 'img')
        self.output_dir = Path(output_dir)
        self.url_path = image_config.get('url_path', '/img/')
        self.path_prefix = site_config.get('path_prefix', '/') or '/'
        self.format = image_config.get('format', 'webp')
        self.max_workers = image_config.get('max_workers', 8)
        self.timeout = config.get('advanced', {}).get('request_timeout', 30)

        self.cache_manager = cache_manager or CacheManager(config)
        self.session = session or requests.Session()

        self.stats = {
            'images_found': 0,
            'images_localized': 0,
            'images_written': 0,
            'failed': 0
        }
        self._stats_lock = threading.Lock()

    def localize(self, tree: BeautifulSoup) -> List[ImageAsset]:
        """
        Download every remote image in a tree and rewrite its src.

        Args:
            tree: Markup tree, mutated in place

        Returns:
            Assets in document order

        Raises:
            ImageDownloadError: If any download fails (no src is rewritten)
        """
        nodes = [node for node in tree.find_all('img') if self._is_remote(node.get('src'))]
        if not nodes:
            return []

        self._count('images_found', len(nodes))
        self.output_dir.mkdir(parents=True, exist_ok=True)

        # Leaving the executor block waits for every download to settle
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(nodes))) as executor:
            futures = [executor.submit(self.download_image, node['src']) for node in nodes]

        assets: List[ImageAsset] = []
        failures = []
        for node, future in zip(nodes, futures):
            error = future.exception()
            if error is not None:
                self.logger.error(f"Failed to download image {node['src']}: {error}")
                failures.append((node['src'], error))
            else:
                assets.append(future.result())

        if failures:
            self._count('failed', len(failures))
            src, error = failures[0]
            raise ImageDownloadError(
                f"{len(failures)} of {len(nodes)} image(s) failed to download; first: {src}: {error}"
            ) from error

        for node, asset in zip(nodes, assets):
            self._rewrite(node, asset)

        self._count('images_localized', len(assets))
        self.logger.debug(f"Localized {len(assets)} image(s)")
        return assets

    def download_image(self, src: str) -> ImageAsset:
        """
        Fetch one image and store it in the output directory.

        Args:
            src: Remote image URL

        Returns:
            ImageAsset describing the local copy
        """
        data = self.cache_manager.get_binary(src)
        if data is None:
            response = self.session.get(src, timeout=self.timeout)
            response.raise_for_status()
            data = response.content
            self.cache_manager.set_binary(
                src, data, {'content_type': response.headers.get('Content-Type', '')}
            )

        with Image.open(io.BytesIO(data)) as image:
            width, height = image.size
            source_format = PILLOW_FORMAT_NAMES.get(image.format or '', '')

            target_format = self.format
            if target_format == 'auto':
                if not source_format:
                    raise ImageDownloadError(f"Unsupported image format {image.format!r} for {src}")
                target_format = source_format

            pillow_format, extension = OUTPUT_FORMATS[target_format]
            filename = f"{self._hash_source(src, target_format)}-{width}.{extension}"
            output_path = self.output_dir / filename

            if not output_path.exists():
                payload = data if source_format == target_format else self._encode(image, pillow_format)
                self._atomic_write(output_path, payload)
                self._count('images_written')
                self.logger.debug(f"Saved image {src} -> {output_path} ({width}x{height})")
            else:
                self.logger.debug(f"Image already present: {output_path}")

        return ImageAsset(
            source_url=src,
            filename=filename,
            output_path=str(output_path),
            url=prefix_url(self.url_path.rstrip('/') + '/' + filename, self.path_prefix),
            width=width,
            height=height,
            format=target_format
        )

    def _count(self, stat: str, amount: int = 1) -> None:
        with self._stats_lock:
            self.stats[stat] += amount

    @staticmethod
    def _rewrite(node: Tag, asset: ImageAsset) -> None:
        node['src'] = asset.url

    @staticmethod
    def _is_remote(src: Optional[str]) -> bool:
        return bool(src) and src.startswith(('http://', 'https://'))

    @staticmethod
    def _hash_source(src: str, target_format: str) -> str:
        return hashlib.sha256(f"{src}|{target_format}".encode('utf-8')).hexdigest()[:10]

    @staticmethod
    def _encode(image: Image.Image, pillow_format: str) -> bytes:
        """Re-encode an image at its natural size."""
        if pillow_format == 'JPEG' and image.mode not in ('RGB', 'L'):
            image = image.convert('RGB')
        buffer = io.BytesIO()
        image.save(buffer, format=pillow_format)
        return buffer.getvalue()

    def _atomic_write(self, path: Path, payload: bytes) -> None:
        fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), prefix='.tmp-')
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(payload)
            os.replace(tmp_path, path)
        except OSError:
            try:
                os.remove(tmp_path)
            except OSError:
                pass
            raise


__all__ = ['ImageLocalizer', 'ImageDownloadError']
