"""Markdown exporter writing one converted Confluence document per file."""

import logging
import os
import re
from typing import Callable, Optional

from confluence_client import join_link
from models import DocumentRef, ExportedFile

VENDOR_TOKEN = 'com.atlassian.confluence.'
FOOTER_LINK_TEXT = 'View this page in Confluence'

_UNSAFE_FILENAME_CHARS = re.compile(r'[/\\:*?"<>|]')


class ExportError(Exception):
    """Conversion or filesystem failure while writing one document."""
    pass


def strip_vendor_tokens(html: str) -> str:
    """Remove every occurrence of the internal Confluence namespace prefix."""
    return html.replace(VENDOR_TOKEN, '')


def sanitize_filename(title: str, fallback_id: str) -> str:
    """
    Convert a document title to a filesystem-safe file stem.

    Each of ``/ \\ : * ? " < > |`` becomes ``_``; an empty title falls back
    to the document ID.
    """
    if not title:
        return fallback_id
    return _UNSAFE_FILENAME_CHARS.sub('_', title)


class MarkdownExporter:
    """
    Renders documents to Markdown and writes them to the dump directory.

    Each file holds a level-1 heading with the title, the converted body and a
    footer linking back to the page in Confluence. Files are named after the
    sanitized title and an existing file of the same name is overwritten.
    """

    def __init__(
        self,
        dump_dir: str,
        base_url: str,
        converter: Callable[[str], str],
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the markdown exporter.

        Args:
            dump_dir: Directory receiving the Markdown files
            base_url: Confluence base URL used for footer links
            converter: Pure ``HTML -> Markdown`` function
            logger: Logger instance (optional)
        """
        self.dump_dir = dump_dir
        self.base_url = base_url
        self.converter = converter
        self.logger = logger or logging.getLogger('confuddlement.exporters.markdown_exporter')

        self.stats = {
            'total_files_written': 0,
            'total_bytes_written': 0,
            'total_errors': 0
        }

    def render_markdown(self, ref: DocumentRef, html: str) -> str:
        """Convert the HTML and wrap it with the title heading and source footer."""
        body = self.converter(html)
        title = ref.title or ref.id
        link = join_link(self.base_url, ref.links.web_ui)

        return f"# {title}\n\n{body}\n\n---\n\n[{FOOTER_LINK_TEXT}]({link})\n"

    def export_document(self, ref: DocumentRef, html: str) -> ExportedFile:
        """
        Render one document and write it to ``<dump_dir>/<sanitized title>.md``.

        Args:
            ref: Listing reference of the document
            html: Merged storage HTML, vendor tokens already stripped

        Returns:
            ExportedFile describing the written file

        Raises:
            ExportError: If conversion or writing fails
        """
        try:
            markdown = self.render_markdown(ref, html)
        except Exception as e:
            self.stats['total_errors'] += 1
            raise ExportError(f"Failed to convert document {ref.id}: {str(e)}") from e

        filename = f"{sanitize_filename(ref.title, ref.id)}.md"
        path = os.path.join(self.dump_dir, filename)
        content = markdown.encode('utf-8')

        try:
            os.makedirs(self.dump_dir, exist_ok=True)
            with open(path, 'wb') as f:
                f.write(content)
        except OSError as e:
            self.stats['total_errors'] += 1
            raise ExportError(f"Failed to write {path}: {str(e)}") from e

        self.stats['total_files_written'] += 1
        self.stats['total_bytes_written'] += len(content)
        self.logger.debug(f"Wrote {path} ({len(content)} bytes)")

        return ExportedFile(
            path=path,
            document_id=ref.id,
            title=ref.title,
            size_bytes=len(content)
        )
