"""Markdown converter turning cleaned Confluence HTML into Markdown text."""

import logging
import re
from typing import Optional

from bs4 import BeautifulSoup
from markdownify import MarkdownConverter as MarkdownifyConverter

from .html_cleaner import HtmlCleaner

logger = logging.getLogger('confuddlement.converters.markdownconverter')


class MarkdownConverter(MarkdownifyConverter):
    """
    Pure ``HTML string -> Markdown string`` converter.

    Storage-format markup is cleaned first, then markdownify renders the result
    with ATX headings, ``**`` for strong text and ``-`` bullets. Links are kept
    exactly as they appear in the HTML.
    """

    def __init__(self, logger: Optional[logging.Logger] = None, **kwargs):
        """Initialize markdown converter with logger and markdownify options."""
        markdownify_options = {
            'heading_style': 'ATX',
            'bullets': '-',
            'strong_em_symbol': '*',
            'escape_asterisks': False,
            'escape_underscores': False
        }
        markdownify_options.update(kwargs)

        super().__init__(**markdownify_options)

        self.logger = logger or logging.getLogger('confuddlement.converters.markdownconverter')
        self.html_cleaner = HtmlCleaner(self.logger)

    def convert_document(self, html_content: str) -> str:
        """Convert one HTML document to Markdown."""
        if not html_content:
            return ''

        soup = BeautifulSoup(html_content, 'lxml')
        soup = self.html_cleaner.clean(soup)

        markdown = self.convert_soup(soup)
        return self._final_cleanup(markdown)

    def convert_pre(self, el, text, parent_tags=None, **kwargs):
        """Render preformatted blocks as fenced code."""
        code_el = el.find('code')
        code_text = code_el.get_text() if code_el else el.get_text()
        return f"\n\n```\n{code_text.strip()}\n```\n\n"

    def convert_hr(self, el, text, parent_tags=None, **kwargs):
        return '\n\n---\n\n'

    def _final_cleanup(self, markdown: str) -> str:
        """Final cleanup pass - trim trailing spaces and excessive blank lines."""
        markdown = re.sub(r'[ \t]+\n', '\n', markdown)
        markdown = re.sub(r'\n{3,}', '\n\n', markdown)
        return markdown.strip()
