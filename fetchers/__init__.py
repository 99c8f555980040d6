"""Fetchers package for retrieving Google Docs and Drive folder listings."""

from .base_fetcher import BaseFetcher, FetcherError
from .cache_manager import CacheManager, parse_duration
from .document_fetcher import DocumentFetcher
from .folder_lister import FolderLister

__all__ = [
    'BaseFetcher',
    'FetcherError',
    'CacheManager',
    'parse_duration',
    'DocumentFetcher',
    'FolderLister'
]
