"""Content fetcher retrieving and merging the HTML fragments of one document."""

import logging
from typing import Any, Dict, List, Optional

from confluence_client import ConfluenceClient, ConfluenceError
from models import RawDocument
from .base_fetcher import BaseFetcher, FetcherError, NoExportableContentError
from .state_store import StateStore

EXPAND_FIELDS = [
    'body.storage',
    'metadata',
    'extensions.inlineProperties',
    'metadata.labels',
    'metadata.properties',
    'extensions.tableCells',
]


class ContentFetcher(BaseFetcher):
    """
    Fetches one document by ID and concatenates its fragments.

    Fragment order is fixed: the primary storage body, then every inline-property
    body, then every table-cell body, each in the order the API lists them.
    Recording the document as fetched is left to the caller
    (``StateStore.record_fetched``).
    """

    def __init__(
        self,
        client: ConfluenceClient,
        state_store: StateStore,
        skip_fetched: bool = False,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize content fetcher.

        Args:
            client: Confluence API client
            state_store: State store consulted for already-fetched documents
            skip_fetched: Return without a network call for documents already in state
            logger: Logger instance (optional)
        """
        super().__init__(client, logger or logging.getLogger('confuddlement.fetcher.content'))
        self.state_store = state_store
        self.skip_fetched = skip_fetched

    def fetch_document(self, document_id: str) -> Optional[RawDocument]:
        """
        Fetch the merged HTML of one document.

        Returns:
            RawDocument (possibly with empty html), or None when the document was
            already fetched and skipping is enabled

        Raises:
            NoExportableContentError: When the response is not a content object
            FetcherError: For request, HTTP or decode failures
        """
        if self.skip_fetched and self.state_store.is_fetched(document_id):
            self._log_progress(f"Skipping document {document_id}, already fetched", 'debug')
            return None

        try:
            data = self.client.get_page(document_id, expand=EXPAND_FIELDS)
        except ConfluenceError as e:
            raise FetcherError(f"Failed to fetch document {document_id}: {str(e)}") from e

        if not isinstance(data, dict):
            raise NoExportableContentError(document_id)

        html = self.merge_fragments(data)
        self._log_progress(f"Fetched document {document_id} ({len(html)} characters)", 'debug')
        return RawDocument(id=document_id, html=html)

    @staticmethod
    def merge_fragments(data: Dict[str, Any]) -> str:
        """Concatenate storage, inline-property and table-cell bodies in order."""
        fragments: List[str] = [_storage_value(data)]

        # top-level extension is only a fallback
        inline_properties = (
            _items(_dig(data, 'metadata', 'inlineProperties', 'extensions', 'inlineProperties'))
            or _items(_dig(data, 'extensions', 'inlineProperties'))
        )
        fragments.extend(_storage_value(item) for item in inline_properties)

        table_cells = _items(_dig(data, 'extensions', 'tableCells'))
        fragments.extend(_storage_value(item) for item in table_cells)

        return ''.join(fragments)


def _dig(data: Any, *keys: str) -> Any:
    """Walk nested dictionaries, returning None at the first missing key."""
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def _items(value: Any) -> List[Dict[str, Any]]:
    """Normalize a fragment collection: either a list or a ``{"results": [...]}`` page."""
    if isinstance(value, dict):
        value = value.get('results')
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _storage_value(item: Dict[str, Any]) -> str:
    value = _dig(item, 'body', 'storage', 'value')
    return value if isinstance(value, str) else ''
