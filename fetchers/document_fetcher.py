"""Fetcher for the structured JSON representation of Google Docs."""

from typing import Any, Dict
from urllib.parse import quote

from .base_fetcher import BaseFetcher


class DocumentFetcher(BaseFetcher):
    """Retrieves documents from the Google Docs API through the response cache."""

    def document_url(self, document_id: str) -> str:
        """Build the Docs API URL for a document."""
        base_url = self.config.get('google', {}).get('docs_api_url', 'https://docs.googleapis.com')
        return f"{base_url.rstrip('/')}/v1/documents/{quote(document_id, safe='')}"

    def fetch_document(self, document_id: str) -> Dict[str, Any]:
        """
        Fetch a Google Doc as structured JSON.

        Args:
            document_id: Google Doc ID

        Returns:
            Docs API document resource

        Raises:
            ValueError: If the document ID is empty
            GoogleApiError: If the API returns an error status
        """
        if not document_id or not document_id.strip():
            raise ValueError("document_id must be a non-empty string")

        self.logger.debug(f"Fetching document {document_id}")
        return self._get_json(self.document_url(document_id))


__all__ = ['DocumentFetcher']
