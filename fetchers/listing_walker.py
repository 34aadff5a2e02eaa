"""Listing walker retrieving one page of a space content listing at a time."""

from typing import Any, Dict

from models import DocumentRef, ListingCursor, ListingPage
from .base_fetcher import BaseFetcher


class ListingWalker(BaseFetcher):
    """Reads space content listings from ``/rest/api/space/<key>/content``."""

    def fetch_listing(self, url: str) -> ListingPage:
        """
        Fetch one listing page.

        Args:
            url: Fully-qualified listing URL, already carrying the ``limit`` parameter

        Returns:
            Decoded ListingPage with document references in listing order

        Raises:
            ConfluenceAuthorizationError: On HTTP 403
            ConfluenceHttpError: On any other non-200 status
            ConfluenceTransportError, ConfluenceDecodeError: On transport/decode failure
        """
        self._log_progress(f"Fetching listing {url}", 'debug')
        data = self.client.get_json(url)
        page = self.parse_listing(data)
        self._log_progress(
            f"Listing returned {len(page.refs)} documents"
            + (" (more pages follow)" if page.cursor.has_next else "")
        )
        return page

    def parse_listing(self, data: Dict[str, Any]) -> ListingPage:
        """
        Decode a listing envelope.

        The first page of ``/space/<key>/content`` nests pages under ``page``;
        the ``next`` links point at the typed endpoint, which returns results at
        the top level. Both shapes are accepted.
        """
        if not isinstance(data, dict):
            data = {}
        envelope_links = data.get('_links') or {}

        body = data.get('page') if isinstance(data.get('page'), dict) else data
        body_links = body.get('_links') or {}

        base_url = envelope_links.get('base') or body_links.get('base') or self.client.base_url
        next_link = self.client.absolute_url(body_links.get('next') or '', base_url)

        cursor = ListingCursor(
            base_url=base_url,
            context_path=envelope_links.get('context') or body_links.get('context') or '',
            next_url=next_link,
            self_url=body_links.get('self') or envelope_links.get('self') or ''
        )

        refs = [
            DocumentRef.from_dict(item)
            for item in body.get('results') or []
            if isinstance(item, dict) and item.get('id') is not None
        ]

        return ListingPage(
            refs=refs,
            cursor=cursor,
            start=int(body.get('start') or 0),
            limit=int(body.get('limit') or 0),
            size=int(body.get('size') or len(refs))
        )
