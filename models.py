"""Data models for the Confluence space export pipeline."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger('confuddlement')


class SkipReason(Enum):
    """Why a listed document produced no exported file."""
    ALREADY_FETCHED = "already_fetched"
    NO_EXPORTABLE_CONTENT = "no_exportable_content"
    EMPTY_BODY = "empty_body"
    BELOW_MIN_LENGTH = "below_min_length"


@dataclass(frozen=True)
class DocumentLinks:
    """Navigation links of a Confluence document as returned by the listing endpoint."""

    self_url: str = ''
    tiny_ui: str = ''
    edit_ui: str = ''
    web_ui: str = ''

    def to_dict(self) -> Dict[str, str]:
        """Serialize links using the Confluence wire names."""
        return {
            'self': self.self_url,
            'tinyui': self.tiny_ui,
            'editui': self.edit_ui,
            'webui': self.web_ui
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'DocumentLinks':
        data = data or {}
        return cls(
            self_url=data.get('self') or '',
            tiny_ui=data.get('tinyui') or '',
            edit_ui=data.get('editui') or '',
            web_ui=data.get('webui') or ''
        )


@dataclass(frozen=True)
class DocumentRef:
    """Identifies one remote document and its navigation links."""

    id: str
    kind: str = 'page'
    status: str = 'current'
    title: str = ''
    links: DocumentLinks = field(default_factory=DocumentLinks)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize reference to the listing result shape."""
        return {
            'id': self.id,
            'type': self.kind,
            'status': self.status,
            'title': self.title,
            '_links': self.links.to_dict()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DocumentRef':
        """Build a reference from one listing result."""
        return cls(
            id=str(data['id']),
            kind=data.get('type') or 'page',
            status=data.get('status') or 'current',
            title=data.get('title') or '',
            links=DocumentLinks.from_dict(data.get('_links'))
        )

    def as_fetched(self) -> 'DocumentRef':
        """Copy of this reference in the form committed to the ingestion state."""
        return DocumentRef(
            id=self.id,
            kind='page',
            status='current',
            title=self.title,
            links=self.links
        )


@dataclass
class ListingCursor:
    """Where the next page of a remote listing should be fetched from.

    An empty ``next_url`` inside a listing envelope means the listing is exhausted;
    an empty cursor in the persisted state means "start of listing".
    """

    base_url: str = ''
    context_path: str = ''
    next_url: str = ''
    self_url: str = ''

    @property
    def has_next(self) -> bool:
        return bool(self.next_url)

    def to_dict(self) -> Dict[str, str]:
        return {
            'base': self.base_url,
            'context': self.context_path,
            'next': self.next_url,
            'self': self.self_url
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'ListingCursor':
        data = data or {}
        return cls(
            base_url=data.get('base') or '',
            context_path=data.get('context') or '',
            next_url=data.get('next') or '',
            self_url=data.get('self') or ''
        )


@dataclass
class ListingPage:
    """One decoded page of a space content listing."""

    refs: List[DocumentRef] = field(default_factory=list)
    cursor: ListingCursor = field(default_factory=ListingCursor)
    start: int = 0
    limit: int = 0
    size: int = 0

    @property
    def next_url(self) -> str:
        return self.cursor.next_url


@dataclass
class IngestionState:
    """Durable resume record persisted to ``<dump_dir>/state.json``.

    ``results`` is an append-only log of every document committed as fetched.
    ``space_cursors`` keeps one listing cursor per configured space.
    """

    cursor: ListingCursor = field(default_factory=ListingCursor)
    size: int = 0
    start: int = 0
    results: List[DocumentRef] = field(default_factory=list)
    space_cursors: Dict[str, str] = field(default_factory=dict)

    def contains(self, document_id: str) -> bool:
        return any(ref.id == document_id for ref in self.results)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize state to its JSON envelope."""
        return {
            '_links': self.cursor.to_dict(),
            'size': self.size,
            'start': self.start,
            'results': [ref.to_dict() for ref in self.results],
            'spaces': {
                space_key: {'next': next_url}
                for space_key, next_url in self.space_cursors.items()
            }
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'IngestionState':
        """Deserialize from the JSON envelope."""
        if not isinstance(data, dict):
            raise ValueError("Ingestion state must be a JSON object")

        results = [DocumentRef.from_dict(item) for item in data.get('results') or []]

        space_cursors = {}
        for space_key, space_data in (data.get('spaces') or {}).items():
            next_url = (space_data or {}).get('next') or ''
            if next_url:
                space_cursors[space_key] = next_url

        return cls(
            cursor=ListingCursor.from_dict(data.get('_links')),
            size=int(data.get('size') or len(results)),
            start=int(data.get('start') or 0),
            results=results,
            space_cursors=space_cursors
        )


@dataclass
class RawDocument:
    """Merged HTML of one document, assembled from its content fragments."""

    id: str
    html: str = ''

    @property
    def is_empty(self) -> bool:
        return not self.html


@dataclass
class ExportedFile:
    """A Markdown file written to the dump directory."""

    path: str
    document_id: str
    title: str
    size_bytes: int = 0


@dataclass
class DocumentOutcome:
    """Result of ingesting one listed document, for reporting."""

    document_id: str
    title: str
    status: str  # "exported", "skipped", "failed"
    reason: Optional[str] = None
    error_message: Optional[str] = None
    path: Optional[str] = None
    timestamp: Optional[str] = None

    def __post_init__(self) -> None:
        """Set timestamp if not provided."""
        if self.timestamp is None:
            self.timestamp = datetime.now(timezone.utc).isoformat()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'document_id': self.document_id,
            'title': self.title,
            'status': self.status,
            'reason': self.reason,
            'error_message': self.error_message,
            'path': self.path,
            'timestamp': self.timestamp
        }


__all__ = [
    'SkipReason',
    'DocumentLinks',
    'DocumentRef',
    'ListingCursor',
    'ListingPage',
    'IngestionState',
    'RawDocument',
    'ExportedFile',
    'DocumentOutcome'
]
