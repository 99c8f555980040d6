"""Data models for the Google Drive to static site pipeline."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup
from dateutil.parser import isoparse

logger = logging.getLogger('gdocs_site')


class MimeType:
    """Google Drive MIME types the pipeline understands."""
    DOCUMENT = 'application/vnd.google-apps.document'
    FOLDER = 'application/vnd.google-apps.folder'


@dataclass
class DriveEntry:
    """A file or folder as returned by the Drive files listing."""

    id: str
    name: str
    mime_type: str
    modified_time: Optional[datetime] = None

    @property
    def is_document(self) -> bool:
        """Check if the entry is a Google Doc."""
        return self.mime_type == MimeType.DOCUMENT

    @property
    def is_folder(self) -> bool:
        """Check if the entry is a Drive folder."""
        return self.mime_type == MimeType.FOLDER

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'DriveEntry':
        """Build an entry from a raw Drive API file resource."""
        modified = data.get('modifiedTime')
        return cls(
            id=data['id'],
            name=data.get('name', ''),
            mime_type=data.get('mimeType', ''),
            modified_time=isoparse(modified) if modified else None
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize entry to dictionary."""
        return {
            'id': self.id,
            'name': self.name,
            'mime_type': self.mime_type,
            'modified_time': self.modified_time.isoformat() if self.modified_time else None
        }


@dataclass
class ImageAsset:
    """An image downloaded from a document and stored in the asset directory."""

    source_url: str
    filename: str
    output_path: str
    url: str
    width: int
    height: int
    format: str

    def to_dict(self) -> Dict[str, Any]:
        """Serialize asset to dictionary."""
        return {
            'source_url': self.source_url,
            'filename': self.filename,
            'output_path': self.output_path,
            'url': self.url,
            'width': self.width,
            'height': self.height,
            'format': self.format
        }


@dataclass
class DocumentRecord:
    """A converted Google Doc ready to be rendered as a site page."""

    id: str
    title: str
    path: str
    tree: List[DriveEntry]
    markup: BeautifulSoup
    html: str
    content: Dict[str, Any] = field(default_factory=dict)
    images: List[ImageAsset] = field(default_factory=list)

    @property
    def url(self) -> str:
        """Site-relative URL of the rendered page."""
        return f"/{self.path}/" if self.path else "/"

    @property
    def breadcrumbs(self) -> List[str]:
        """Names of the containing folders, root-most first."""
        return [folder.name for folder in self.tree]

    def to_dict(self) -> Dict[str, Any]:
        """Serialize record to dictionary (the markup tree is left out)."""
        return {
            'id': self.id,
            'title': self.title,
            'path': self.path,
            'url': self.url,
            'tree': [folder.to_dict() for folder in self.tree],
            'html': self.html,
            'images': [image.to_dict() for image in self.images]
        }

    def __eq__(self, other: Any) -> bool:
        """Compare records by document ID and path."""
        if not isinstance(other, DocumentRecord):
            return False
        return self.id == other.id and self.path == other.path

    def __hash__(self) -> int:
        """Hash record by document ID and path."""
        return hash((self.id, self.path))


__all__ = ['MimeType', 'DriveEntry', 'ImageAsset', 'DocumentRecord']
