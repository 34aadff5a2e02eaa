"""
Ingestion report accumulating per-document outcomes of an export run.

Outcomes are collected as values instead of only being logged, so callers and
tests can inspect counts and failure kinds directly.
"""

import json
import logging
import time
from collections import Counter
from typing import Any, Dict, List, Optional

from models import DocumentOutcome, DocumentRef, ExportedFile, SkipReason

logger = logging.getLogger('confuddlement.orchestrator.report')

STATUS_EXPORTED = 'exported'
STATUS_SKIPPED = 'skipped'
STATUS_FAILED = 'failed'


class IngestionReport:
    """Result accumulator for one ingestion run."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger('confuddlement.orchestrator.report')
        self.outcomes: List[DocumentOutcome] = []
        self.spaces: Dict[str, Dict[str, int]] = {}
        self.normalization: Dict[str, int] = {}
        self.started_at = time.time()
        self.finished_at: Optional[float] = None

    def start_space(self, space_key: str) -> None:
        self.spaces.setdefault(space_key, {'listing_pages': 0, 'documents': 0})

    def record_listing_page(self, space_key: str, documents: int) -> None:
        self.start_space(space_key)
        self.spaces[space_key]['listing_pages'] += 1
        self.spaces[space_key]['documents'] += documents

    def exported(self, ref: DocumentRef, exported_file: ExportedFile) -> DocumentOutcome:
        """Record a document written to disk."""
        return self._add(DocumentOutcome(
            document_id=ref.id,
            title=ref.title,
            status=STATUS_EXPORTED,
            path=exported_file.path
        ))

    def skipped(self, ref: DocumentRef, reason: SkipReason) -> DocumentOutcome:
        """Record an expected, content-quality skip."""
        return self._add(DocumentOutcome(
            document_id=ref.id,
            title=ref.title,
            status=STATUS_SKIPPED,
            reason=reason.value
        ))

    def failed(self, ref: DocumentRef, error: Exception) -> DocumentOutcome:
        """Record a per-document failure; the failure kind is the exception class name."""
        return self._add(DocumentOutcome(
            document_id=ref.id,
            title=ref.title,
            status=STATUS_FAILED,
            reason=type(error).__name__,
            error_message=str(error)
        ))

    def finish(self, normalization: Optional[Dict[str, int]] = None) -> None:
        self.finished_at = time.time()
        if normalization:
            self.normalization = dict(normalization)

    def _add(self, outcome: DocumentOutcome) -> DocumentOutcome:
        self.outcomes.append(outcome)
        return outcome

    def counts(self) -> Dict[str, int]:
        """Number of outcomes per status."""
        counter = Counter(outcome.status for outcome in self.outcomes)
        return {
            STATUS_EXPORTED: counter.get(STATUS_EXPORTED, 0),
            STATUS_SKIPPED: counter.get(STATUS_SKIPPED, 0),
            STATUS_FAILED: counter.get(STATUS_FAILED, 0)
        }

    def skips_by_reason(self) -> Dict[str, int]:
        return dict(Counter(o.reason for o in self.outcomes if o.status == STATUS_SKIPPED))

    def failures_by_kind(self) -> Dict[str, int]:
        return dict(Counter(o.reason for o in self.outcomes if o.status == STATUS_FAILED))

    @property
    def failures(self) -> List[DocumentOutcome]:
        return [o for o in self.outcomes if o.status == STATUS_FAILED]

    @property
    def has_failures(self) -> bool:
        return any(o.status == STATUS_FAILED for o in self.outcomes)

    @property
    def duration(self) -> float:
        end = self.finished_at if self.finished_at is not None else time.time()
        return end - self.started_at

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the whole report."""
        return {
            'summary': {
                **self.counts(),
                'total': len(self.outcomes),
                'duration_seconds': round(self.duration, 3),
                'duration_formatted': self._format_duration(self.duration)
            },
            'spaces': self.spaces,
            'skips_by_reason': self.skips_by_reason(),
            'failures_by_kind': self.failures_by_kind(),
            'normalization': self.normalization,
            'outcomes': [outcome.to_dict() for outcome in self.outcomes]
        }

    def format_console_report(self) -> str:
        """
        Format report for console display.

        Returns:
            Formatted console string
        """
        counts = self.counts()
        sections = []

        sections.append("=" * 60)
        sections.append("EXPORT REPORT")
        sections.append("=" * 60)
        sections.append("")

        sections.append("Summary:")
        sections.append(f"  Exported:    {counts[STATUS_EXPORTED]}")
        sections.append(f"  Skipped:     {counts[STATUS_SKIPPED]}")
        sections.append(f"  Failed:      {counts[STATUS_FAILED]}")
        sections.append(f"  Duration:    {self._format_duration(self.duration)}")
        sections.append("")

        if self.spaces:
            sections.append("Spaces:")
            sections.append("-" * 60)
            for space_key, space_stats in self.spaces.items():
                sections.append(
                    f"  {space_key}: {space_stats['documents']} documents "
                    f"in {space_stats['listing_pages']} listing pages"
                )
            sections.append("")

        skips = self.skips_by_reason()
        if skips:
            sections.append("Skipped by reason:")
            for reason, count in sorted(skips.items()):
                sections.append(f"  {reason}: {count}")
            sections.append("")

        if self.normalization:
            sections.append("Normalization:")
            sections.append(f"  Files scanned:   {self.normalization.get('files_scanned', 0)}")
            sections.append(f"  Files rewritten: {self.normalization.get('files_rewritten', 0)}")
            sections.append(f"  Files removed:   {self.normalization.get('files_removed', 0)}")
            sections.append("")

        failures = self.failures
        if failures:
            sections.append(f"Failures ({len(failures)}):")
            sections.append("-" * 60)
            for outcome in failures[:10]:
                sections.append(f"  [{outcome.reason}] {outcome.title or outcome.document_id}: {outcome.error_message}")
            if len(failures) > 10:
                sections.append(f"  ... and {len(failures) - 10} more")
            sections.append("")

        sections.append("=" * 60)
        return "\n".join(sections)

    def export_json_report(self, filepath: str) -> None:
        """
        Export report to JSON file.

        Args:
            filepath: Output file path
        """
        try:
            with open(filepath, 'w', encoding='utf-8') as f:
                json.dump(self.to_dict(), f, indent=2, ensure_ascii=False, default=str)

            self.logger.info(f"JSON report exported to {filepath}")

        except OSError as e:
            self.logger.error(f"Failed to export JSON report: {str(e)}")

    @staticmethod
    def _format_duration(seconds: float) -> str:
        if seconds < 60:
            return f"{seconds:.1f}s"
        minutes, secs = divmod(int(seconds), 60)
        if minutes < 60:
            return f"{minutes}m {secs}s"
        hours, minutes = divmod(minutes, 60)
        return f"{hours}h {minutes}m {secs}s"
