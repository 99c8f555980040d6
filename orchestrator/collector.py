"""
Recursive collector that walks a Drive folder tree into document records.

Every folder level lists its entries once, then processes its documents and
recurses into its subfolders concurrently. Blocking HTTP and image work runs in
worker threads via asyncio.to_thread; results keep listing order.
"""

import asyncio
import logging
import re
from typing import Any, Dict, List, Optional, Sequence

from slugify import slugify

from converters import DocumentConverter
from exporters import ImageLocalizer
from fetchers import CacheManager, DocumentFetcher, FolderLister
from google_client import GoogleApiClient
from models import DocumentRecord, DriveEntry

# Applied in order: "HTML5Parser" -> "HTML5 Parser", "getHTTPResponse" ->
# "get HTTP Response", "gettingStarted" -> "getting Started", "XMLHttp" -> "XML Http"
DECAMELIZE_PATTERNS = [
    (re.compile(r'([A-Z]{2,})(\d+)'), r'\1 \2'),
    (re.compile(r'([a-z\d]+)([A-Z]{2,})'), r'\1 \2'),
    (re.compile(r'([a-z\d])([A-Z])'), r'\1 \2'),
    (re.compile(r'([A-Z]+)([A-Z][a-rt-z\d]+)'), r'\1 \2'),
]

CONTRACTION_PATTERN = re.compile(r"([a-zA-Z\d]+)['’]([ts])(\s|$)")

SLUG_REPLACEMENTS = [['&', ' and ']]


def site_path(ancestors: Sequence[DriveEntry], entry: DriveEntry) -> str:
    """
    Compute the site path of a document.

    Args:
        ancestors: Containing folders, root-most first
        entry: The document's listing entry

    Returns:
        Slugified folder names and document name joined with '/'
    """
    return '/'.join(slugify_name(node.name) for node in [*ancestors, entry])


def slugify_name(name: str) -> str:
    """
    Slugify one Drive name into a path segment.

    Splits camelCase words, spells '&' as 'and' and folds contractions such
    as "don't" into "dont" before handing the name to python-slugify.

    Args:
        name: Folder or document name

    Returns:
        Lowercase, dash-separated segment
    """
    for pattern, replacement in DECAMELIZE_PATTERNS:
        name = pattern.sub(replacement, name)
    name = CONTRACTION_PATTERN.sub(r'\1\2\3', name)
    return slugify(name, replacements=SLUG_REPLACEMENTS)


class RecursiveCollector:
    """Collects a flat list of DocumentRecords for a whole folder tree."""

    def __init__(
        self,
        config: Dict[str, Any],
        folder_lister: FolderLister,
        document_fetcher: DocumentFetcher,
        converter: Optional[DocumentConverter] = None,
        image_localizer: Optional[ImageLocalizer] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.config = config
        self.folder_lister = folder_lister
        self.document_fetcher = document_fetcher
        self.logger = logger or logging.getLogger('gdocs_site.orchestrator.collector')
        self.converter = converter or DocumentConverter(logger=self.logger)
        self.image_localizer = image_localizer or ImageLocalizer(config, logger=self.logger)

        self.stats = {
            'folders_listed': 0,
            'documents_collected': 0,
            'entries_skipped': 0,
            'images_localized': 0
        }

    async def collect(self, folder_id: str, ancestors: Sequence[DriveEntry] = ()) -> List[DocumentRecord]:
        """
        Collect every document under a folder, recursively.

        Args:
            folder_id: Drive folder ID to start from
            ancestors: Folders above folder_id, root-most first

        Returns:
            Records for this folder's documents in listing order, followed by
            each subfolder's records in listing order

        Raises:
            Any fetch, conversion or download error; the whole collection aborts
        """
        entries = await asyncio.to_thread(self.folder_lister.list_folder, folder_id)
        self.stats['folders_listed'] += 1

        documents = [entry for entry in entries if entry.is_document]
        folders = [entry for entry in entries if entry.is_folder]
        skipped = len(entries) - len(documents) - len(folders)
        if skipped:
            self.stats['entries_skipped'] += skipped
            self.logger.debug(f"Ignoring {skipped} non-document entries in folder {folder_id}")

        self.logger.debug(
            f"Folder {folder_id}: {len(documents)} document(s), {len(folders)} subfolder(s)"
        )

        # Each subfolder gets its own ancestor list
        results = await asyncio.gather(
            asyncio.gather(*(self._process_document(entry, ancestors) for entry in documents)),
            asyncio.gather(*(self.collect(folder.id, [*ancestors, folder]) for folder in folders)),
        )
        records, nested = results

        flattened: List[DocumentRecord] = list(records)
        for subfolder_records in nested:
            flattened.extend(subfolder_records)
        return flattened

    async def _process_document(self, entry: DriveEntry, ancestors: Sequence[DriveEntry]) -> DocumentRecord:
        """Fetch, convert and localize one document."""
        content = await asyncio.to_thread(self.document_fetcher.fetch_document, entry.id)

        markup = self.converter.to_tree(content)
        images = await asyncio.to_thread(self.image_localizer.localize, markup)
        html = self.converter.to_html(markup)

        record = DocumentRecord(
            id=entry.id,
            title=content.get('title') or entry.name,
            path=site_path(ancestors, entry),
            tree=list(ancestors),
            markup=markup,
            html=html,
            content=content,
            images=images
        )

        self.stats['documents_collected'] += 1
        self.stats['images_localized'] += len(images)
        self.logger.info(f"Collected '{record.title}' -> {record.url}")
        return record


def build_collector(config: Dict[str, Any], logger: Optional[logging.Logger] = None) -> RecursiveCollector:
    """
    Wire a RecursiveCollector from configuration.

    The fetchers and the image localizer share one response cache.
    """
    logger = logger or logging.getLogger('gdocs_site.orchestrator.collector')
    cache_manager = CacheManager(config)
    client = GoogleApiClient.from_config(config)

    return RecursiveCollector(
        config=config,
        folder_lister=FolderLister(config, client, cache_manager, logger=logger),
        document_fetcher=DocumentFetcher(config, client, cache_manager, logger=logger),
        converter=DocumentConverter(logger=logger),
        image_localizer=ImageLocalizer(config, cache_manager=cache_manager, logger=logger),
        logger=logger
    )


async def load_documents(config: Dict[str, Any], logger: Optional[logging.Logger] = None) -> List[DocumentRecord]:
    """
    Page-data provider: every document under drive.folder_id as a flat list.

    Args:
        config: Validated configuration dictionary
        logger: Optional logger instance

    Returns:
        DocumentRecords for the whole folder tree
    """
    folder_id = config.get('drive', {}).get('folder_id')
    if not folder_id:
        raise ValueError("drive.folder_id is not configured")

    collector = build_collector(config, logger)
    try:
        return await collector.collect(folder_id)
    finally:
        collector.document_fetcher.client.close()


__all__ = ['RecursiveCollector', 'site_path', 'build_collector', 'load_documents']
