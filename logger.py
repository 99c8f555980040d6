"""Structured logging infrastructure with verbosity levels and progress tracking."""

import copy
import logging
import logging.handlers
import time
from typing import Any, Dict, Iterable, Iterator, Optional, TypeVar

import colorlog
from tqdm import tqdm

T = TypeVar('T')


def setup_logging(
    verbosity: int = 0,
    log_file: Optional[str] = None,
    log_format: Optional[str] = None,
    date_format: Optional[str] = None,
    level: Optional[str] = None
) -> logging.Logger:
    """
    Set up structured logging with configurable verbosity levels.

    Args:
        verbosity: Verbosity level (0=WARNING, 1=INFO, 2+=DEBUG)
        log_file: Optional path to log file
        log_format: Optional custom log format string
        date_format: Optional custom date format string
        level: Optional explicit log level string

    Returns:
        Configured logger instance
    """
    if level:
        allowed_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        level_upper = level.upper()
        if level_upper not in allowed_levels:
            raise ValueError(
                f"Invalid log level '{level}'. Must be one of: {sorted(allowed_levels)}"
            )
        log_level = getattr(logging, level_upper)
    else:
        if verbosity >= 2:
            log_level = logging.DEBUG
        elif verbosity >= 1:
            log_level = logging.INFO
        else:
            log_level = logging.WARNING

    if log_format is None:
        log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    if date_format is None:
        date_format = '%Y-%m-%d %H:%M:%S'

    # Root stays at WARNING so google-auth and urllib3 stay quiet
    logging.basicConfig(
        level=logging.WARNING,
        format=log_format,
        datefmt=date_format
    )

    logger = logging.getLogger('gdocs_site')
    logger.setLevel(log_level)
    logger.propagate = False
    logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(colorlog.ColoredFormatter(
        fmt='%(log_color)s' + log_format,
        datefmt=date_format,
        log_colors={
            'DEBUG': 'cyan',
            'INFO': 'green',
            'WARNING': 'yellow',
            'ERROR': 'red',
            'CRITICAL': 'red,bg_white',
        }
    ))
    logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5,
                encoding='utf-8'
            )
            file_handler.setLevel(log_level)
            file_handler.setFormatter(logging.Formatter(fmt=log_format, datefmt=date_format))
            logger.addHandler(file_handler)

            logger.info(f"Logging to file: {log_file}")
            logger.info(f"Log level: {logging.getLevelName(log_level)}")
        except OSError as e:
            logger.warning(f"Failed to set up file logging: {str(e)}")
    else:
        logger.debug(f"Console logging only. Level: {logging.getLevelName(log_level)}")

    return logger


class ProgressTracker:
    """Context manager that times one build phase and logs a one-line summary.

    Items can be fed through track(), which also draws a tqdm bar when
    show_bar is set.
    """

    def __init__(self, total_items: int, item_type: str = "items", show_bar: bool = False):
        self.total_items = total_items
        self.item_type = item_type
        self.show_bar = show_bar
        self.succeeded = 0
        self.failed = 0
        self.start_time: Optional[float] = None
        self.logger = logging.getLogger('gdocs_site.progress')

    @property
    def processed(self) -> int:
        return self.succeeded + self.failed

    def __enter__(self) -> 'ProgressTracker':
        self.start_time = time.monotonic()
        self.logger.debug(f"Processing {self.total_items} {self.item_type}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time is None:
            return

        summary = (
            f"{self.item_type.capitalize()}: {self.succeeded}/{self.total_items} done"
            f"{f', {self.failed} failed' if self.failed else ''}"
            f" in {self._format_elapsed(time.monotonic() - self.start_time)}"
        )
        if exc_type is not None:
            self.logger.error(f"{summary} (aborted: {exc_val})")
        elif self.failed:
            self.logger.warning(summary)
        else:
            self.logger.info(summary)

    def track(self, items: Iterable[T]) -> Iterator[T]:
        """Yield items, counting each one as done once the caller moves on."""
        bar = tqdm(items, total=self.total_items, desc=self.item_type.capitalize(),
                   unit=self.item_type.rstrip('s') or 'item', disable=not self.show_bar)
        for item in bar:
            yield item
            self.increment()

    def increment(self, success: bool = True) -> None:
        if success:
            self.succeeded += 1
        else:
            self.failed += 1

    def get_stats(self) -> Dict[str, Any]:
        """Get current progress statistics."""
        elapsed = 0.0 if self.start_time is None else time.monotonic() - self.start_time
        return {
            'total': self.total_items,
            'processed': self.processed,
            'successful': self.succeeded,
            'failed': self.failed,
            'elapsed_time': elapsed,
            'elapsed_time_formatted': self._format_elapsed(elapsed)
        }

    @staticmethod
    def _format_elapsed(seconds: float) -> str:
        if seconds < 60:
            return f"{seconds:.1f}s"
        minutes, seconds = divmod(int(seconds), 60)
        if minutes < 60:
            return f"{minutes}m {seconds}s"
        hours, minutes = divmod(minutes, 60)
        return f"{hours}h {minutes}m {seconds}s"


def log_section(title: str) -> None:
    """
    Log a decorative section header.

    Args:
        title: Section title to display
    """
    logger = logging.getLogger('gdocs_site')

    separator = "=" * 60
    logger.info("")
    logger.info(separator)
    logger.info(f"  {title.upper()}")
    logger.info(separator)
    logger.info("")


def log_config(config: Dict[str, Any]) -> None:
    """
    Log sanitized configuration for debugging.

    Args:
        config: Configuration dictionary to log
    """
    logger = logging.getLogger('gdocs_site')

    sanitized_config = _sanitize_config(config)

    log_section("Configuration")

    google = sanitized_config.get('google', {})
    logger.info(f"Service Account: {google.get('client_email') or 'Not Set'}")
    logger.info("Private Key: ***REDACTED***" if google.get('private_key') else "Private Key: Not Set")
    logger.info(f"Scopes: {', '.join(google.get('scopes') or [])}")

    logger.info("")

    drive = sanitized_config.get('drive', {})
    logger.info(f"Drive Folder: {drive.get('folder_id') or 'Not Set'}")
    logger.info(f"Include Shared Drives: {drive.get('include_shared_drives', False)}")

    logger.info("")

    site = sanitized_config.get('site', {})
    logger.info(f"Output Directory: {site.get('output_directory', './_site')}")
    logger.info(f"Path Prefix: {site.get('path_prefix', '/')}")

    images = sanitized_config.get('images', {})
    image_dir = images.get('output_directory') or f"{site.get('output_directory', './_site')}/img"
    logger.info(f"Image Directory: {image_dir}")
    logger.info(f"Image Format: {images.get('format', 'webp')}")

    cache = sanitized_config.get('advanced', {}).get('cache', {})
    logger.info(f"Cache: {'enabled' if cache.get('enabled', True) else 'disabled'} "
                f"({cache.get('directory', './.cache')}, duration={cache.get('duration', '1d')})")


def _sanitize_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Create a sanitized copy of configuration with sensitive fields masked.

    Args:
        config: Configuration dictionary

    Returns:
        Sanitized configuration copy
    """
    sanitized = copy.deepcopy(config)

    sensitive_fields = {
        'private_key', 'secret', 'access_token', 'auth_header', 'token'
    }

    def mask_sensitive(data: Any) -> Any:
        """Recursively mask sensitive fields."""
        if isinstance(data, dict):
            masked = {}
            for key, value in data.items():
                is_sensitive = (
                    any(sensitive in key.lower() for sensitive in sensitive_fields)
                    and not key.lower().endswith('_uri')
                )

                if is_sensitive and isinstance(value, str):
                    masked[key] = "***REDACTED***"
                else:
                    masked[key] = mask_sensitive(value)

            return masked
        elif isinstance(data, list):
            return [mask_sensitive(item) for item in data]
        else:
            return data

    return mask_sensitive(sanitized)


__all__ = [
    'setup_logging',
    'ProgressTracker',
    'log_section',
    'log_config'
]
