"""Common fetcher exceptions and base class."""

import logging
from typing import Optional

from confluence_client import ConfluenceClient


class FetcherError(Exception):
    """Base exception for fetcher-related errors."""
    pass


class NoExportableContentError(FetcherError):
    """The content item has no storage representation that could be exported."""

    def __init__(self, document_id: str):
        super().__init__(f"No exportable content for document {document_id}")
        self.document_id = document_id


class BaseFetcher:
    """Shared wiring for components that read from the Confluence API."""

    def __init__(self, client: ConfluenceClient, logger: Optional[logging.Logger] = None):
        """
        Initialize base fetcher with an API client and logger.

        Args:
            client: Confluence API client
            logger: Logger instance (optional, uses module logger if not provided)
        """
        self.client = client
        self.logger = logger or logging.getLogger('confuddlement.fetcher')

    def _log_progress(self, message: str, level: str = 'info') -> None:
        """
        Log progress message at specified level.

        Args:
            message: Message to log
            level: Log level (debug, info, warning, error)
        """
        log_method = getattr(self.logger, level, self.logger.info)
        log_method(message)
