"""Fetcher for the children of a Google Drive folder."""

from typing import List, Optional
from urllib.parse import quote, urlencode

from models import DriveEntry
from .base_fetcher import BaseFetcher, FetcherError


class FolderLister(BaseFetcher):
    """Lists the files and folders whose parent is a given Drive folder."""

    def listing_url(self, folder_id: str, page_token: Optional[str] = None) -> str:
        """Build the Drive files.list URL for a folder (and optional page)."""
        base_url = self.config.get('google', {}).get('drive_api_url', 'https://www.googleapis.com')
        query = quote(f"'{folder_id}' in parents", safe='')
        url = f"{base_url.rstrip('/')}/drive/v3/files?q={query}"

        extra = {}
        if self.config.get('drive', {}).get('include_shared_drives', False):
            extra['supportsAllDrives'] = 'true'
            extra['includeItemsFromAllDrives'] = 'true'
        if page_token:
            extra['pageToken'] = page_token
        if extra:
            url = f"{url}&{urlencode(extra)}"
        return url

    def list_folder(self, folder_id: str) -> List[DriveEntry]:
        """
        List every entry in a folder, following pagination.

        Args:
            folder_id: Drive folder ID

        Returns:
            Entries in the order the API returned them

        Raises:
            ValueError: If the folder ID is empty
            FetcherError: If the response has no files list
        """
        if not folder_id or not folder_id.strip():
            raise ValueError("folder_id must be a non-empty string")

        entries: List[DriveEntry] = []
        page_token = None
        while True:
            data = self._get_json(self.listing_url(folder_id, page_token))
            if not isinstance(data, dict) or 'files' not in data:
                raise FetcherError(f"Unexpected listing response for folder {folder_id}")

            entries.extend(DriveEntry.from_api(item) for item in data['files'])

            page_token = data.get('nextPageToken')
            if not page_token:
                break

        self.logger.debug(f"Folder {folder_id} has {len(entries)} entries")
        return entries


__all__ = ['FolderLister']
