"""
Orchestration package for coordinating the export pipeline.

Sequences listing, fetching, conversion and writing for every configured space,
then normalizes the exported corpus and reports per-document outcomes.
"""

from .ingestion_pipeline import IngestionPipeline
from .ingestion_report import IngestionReport

__all__ = [
    'IngestionPipeline',
    'IngestionReport'
]
