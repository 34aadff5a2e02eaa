"""Markdown export package for the Confluence space export pipeline.

Package Structure:
- markdown_exporter: Renders one document (heading, body, source footer) and writes it
- corpus_normalizer: Post-ingestion sweep normalizing characters and pruning short files

Configuration Referenced:
- export.dump_dir: Directory receiving the Markdown files
- export.min_page_length: Threshold below which documents and files are dropped
"""

from .markdown_exporter import (
    ExportError,
    MarkdownExporter,
    sanitize_filename,
    strip_vendor_tokens
)
from .corpus_normalizer import CorpusNormalizer, normalize_text

__all__ = [
    'MarkdownExporter',
    'ExportError',
    'sanitize_filename',
    'strip_vendor_tokens',
    'CorpusNormalizer',
    'normalize_text'
]
