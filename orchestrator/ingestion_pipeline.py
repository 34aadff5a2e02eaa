"""
Ingestion pipeline driving every configured space to completion.

For each space the listing is walked page by page. Every listed document is
fetched, committed to the state file, filtered, converted and written. The
space's listing cursor is saved after each page, so an interrupted run resumes
at the first unfinished listing page. The corpus normalizer runs once after
all spaces.
"""

import logging
import os
import shutil
from typing import Callable, Optional

from config_loader import ExportSettings
from confluence_client import ConfluenceClient
from converters import MarkdownConverter
from exporters import CorpusNormalizer, ExportError, MarkdownExporter, strip_vendor_tokens
from fetchers import ContentFetcher, FetcherError, ListingWalker, NoExportableContentError, StateStore
from logger import ProgressTracker, log_section
from models import DocumentRef, ListingPage, SkipReason
from .ingestion_report import IngestionReport


class IngestionPipeline:
    """Sequential, resumable export of Confluence spaces to Markdown files."""

    def __init__(
        self,
        settings: ExportSettings,
        client: ConfluenceClient,
        converter: Optional[Callable[[str], str]] = None,
        logger: Optional[logging.Logger] = None,
        show_progress: bool = True
    ):
        """
        Initialize ingestion pipeline.

        Args:
            settings: Explicit export settings
            client: Confluence API client
            converter: ``HTML -> Markdown`` function (defaults to MarkdownConverter)
            logger: Logger instance (optional)
            show_progress: Show the normalizer progress bar
        """
        self.settings = settings
        self.client = client
        self.logger = logger or logging.getLogger('confuddlement.orchestrator.pipeline')

        if converter is None:
            converter = MarkdownConverter(logger=self.logger).convert_document
        self.converter = converter

        self.state_store = StateStore(
            settings.dump_dir,
            base_url=settings.base_url,
            context_path=settings.context_path
        )
        self.listing_walker = ListingWalker(client)
        self.content_fetcher = ContentFetcher(
            client,
            self.state_store,
            skip_fetched=settings.skip_fetched_pages
        )
        self.exporter = MarkdownExporter(settings.dump_dir, settings.base_url, converter)
        self.normalizer = CorpusNormalizer(
            settings.dump_dir,
            min_length=settings.min_page_length,
            show_progress=show_progress
        )
        self.report = IngestionReport()

    def run(self) -> IngestionReport:
        """
        Ingest every configured space, then normalize the corpus.

        Returns:
            IngestionReport with one outcome per listed document

        Raises:
            ConfluenceError: If a listing page cannot be fetched
            StateError, OSError: If the state file or dump directory cannot be written
        """
        log_section("Export")

        if self.settings.delete_previous_dump:
            self._delete_previous_dump()

        os.makedirs(self.settings.dump_dir, exist_ok=True)

        state = self.state_store.load_or_initialize()
        if self.settings.debug and state.results:
            self.logger.debug(f"Previously fetched documents ({len(state.results)}):")
            for title in self.state_store.fetched_titles():
                self.logger.debug(f"  {title}")

        for space_key in self.settings.spaces:
            self.ingest_space(space_key)

        log_section("Normalize")
        normalization = self.normalizer.normalize()

        self.report.finish(normalization)
        return self.report

    def ingest_space(self, space_key: str) -> None:
        """
        Walk one space's listing until it is exhausted.

        Listing failures propagate and abort the run.
        """
        self.report.start_space(space_key)

        url = self.state_store.cursor_for(space_key)
        if url:
            self.logger.info(f"Resuming space {space_key} from {url}")
        else:
            url = self.client.space_content_url(space_key, self.settings.page_limit)
            self.logger.info(f"Fetching content from space {space_key}")

        while url:
            page = self.listing_walker.fetch_listing(url)
            self.report.record_listing_page(space_key, len(page.refs))

            if self.settings.debug:
                for ref in page.refs:
                    self.logger.debug(f"Listed: {ref.title or ref.id}")

            if self.settings.save_pages_to_local_fs:
                self._ingest_listing_page(page)

            url = page.next_url
            self.state_store.save_cursor(space_key, url)

        self.logger.info(f"Space {space_key} complete")

    def _ingest_listing_page(self, page: ListingPage) -> None:
        with ProgressTracker(total_items=len(page.refs), item_type='documents') as tracker:
            for ref in page.refs:
                succeeded = self.ingest_document(ref)
                tracker.increment(success=succeeded)

    def ingest_document(self, ref: DocumentRef) -> bool:
        """
        Fetch, commit, filter, convert and write one document.

        Returns:
            False if the document failed, True otherwise (including skips)
        """
        label = ref.title or ref.id

        try:
            document = self.content_fetcher.fetch_document(ref.id)
        except NoExportableContentError:
            self.logger.info(f"Skipping page {label}, no exportable content")
            self.report.skipped(ref, SkipReason.NO_EXPORTABLE_CONTENT)
            return True
        except FetcherError as e:
            self.logger.error(f"Failed to fetch page {label}: {str(e)}")
            self.report.failed(ref, e)
            return False

        if document is None:
            self.report.skipped(ref, SkipReason.ALREADY_FETCHED)
            return True

        self.state_store.record_fetched(ref)

        if document.is_empty:
            self.logger.info(f"Skipping empty page {label}")
            self.report.skipped(ref, SkipReason.EMPTY_BODY)
            return True

        html = strip_vendor_tokens(document.html)
        if len(html) < self.settings.min_page_length:
            self.logger.info(
                f"Skipping page {label}, less than {self.settings.min_page_length} characters"
            )
            self.report.skipped(ref, SkipReason.BELOW_MIN_LENGTH)
            return True

        try:
            exported_file = self.exporter.export_document(ref, html)
        except ExportError as e:
            self.logger.error(f"Failed to export page {label}: {str(e)}")
            self.report.failed(ref, e)
            return False

        self.logger.info(f"Saved page {label} to {exported_file.path}")
        self.report.exported(ref, exported_file)
        return True

    def _delete_previous_dump(self) -> None:
        dump_dir = self.settings.dump_dir
        if not os.path.exists(dump_dir):
            return
        self.logger.info(f"Deleting previous dump at {dump_dir}")
        shutil.rmtree(dump_dir)
