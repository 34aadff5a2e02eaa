"""Fetchers package for listing Confluence spaces, fetching documents and tracking resume state."""

from .base_fetcher import BaseFetcher, FetcherError, NoExportableContentError
from .listing_walker import ListingWalker
from .content_fetcher import ContentFetcher, EXPAND_FIELDS
from .state_store import (
    STATE_FILENAME,
    StateCorruptedError,
    StateError,
    StateNotFoundError,
    StateStore
)

__all__ = [
    'BaseFetcher',
    'FetcherError',
    'NoExportableContentError',
    'ListingWalker',
    'ContentFetcher',
    'EXPAND_FIELDS',
    'StateStore',
    'StateError',
    'StateNotFoundError',
    'StateCorruptedError',
    'STATE_FILENAME'
]
