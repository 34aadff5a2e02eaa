"""Converters package for Confluence storage HTML to Markdown conversion."""

import logging

from .html_cleaner import HtmlCleaner
from .markdown_converter import MarkdownConverter

logger = logging.getLogger('confuddlement.converters')


def convert_html(html, logger=None):
    """
    Convenience function to convert a Confluence storage HTML string to Markdown.

    Args:
        html: Merged storage-format HTML of one document
        logger: Optional logger instance (uses module logger if not provided)

    Returns:
        str: Markdown text

    Example:
        >>> from converters import convert_html
        >>> convert_html('<h2>Setup</h2><p>Run <strong>it</strong></p>')
        '## Setup\\n\\nRun **it**'
    """
    if logger is None:
        logger = logging.getLogger('confuddlement.converters')

    converter = MarkdownConverter(logger=logger)
    return converter.convert_document(html)


__all__ = [
    'convert_html',
    'MarkdownConverter',
    'HtmlCleaner'
]
