"""Post-ingestion sweep that normalizes and prunes the exported Markdown corpus."""

import logging
import os
import re
from pathlib import Path
from typing import Dict, List, Optional

from tqdm import tqdm

# Typographic characters replaced by plain ASCII, applied in order
CHARACTER_REPLACEMENTS = [
    ('\t', '  '),
    ('“', '"'),
    ('”', '"'),
    ('‘', "'"),
    ('’', "'"),
    ('–', '-'),
    ('—', '--'),
    ('…', '...'),
]

_BLANK_LINE_RUNS = re.compile(r'\n{3,}')


def normalize_text(text: str) -> str:
    """Apply the ASCII replacements and collapse runs of blank lines."""
    for old, new in CHARACTER_REPLACEMENTS:
        text = text.replace(old, new)
    return _BLANK_LINE_RUNS.sub('\n\n', text)


class CorpusNormalizer:
    """
    Single pass over every ``*.md`` file in the dump directory.

    Files shorter than the minimum length (in bytes) are deleted; every other
    file is normalized and rewritten in place. Running the pass twice leaves
    the files byte-identical after the first run. Filesystem errors are not
    caught.
    """

    def __init__(
        self,
        dump_dir: str,
        min_length: int = 0,
        logger: Optional[logging.Logger] = None,
        show_progress: bool = True
    ):
        self.dump_dir = Path(dump_dir)
        self.min_length = min_length
        self.logger = logger or logging.getLogger('confuddlement.exporters.corpus_normalizer')
        self.show_progress = show_progress

        self.stats = {
            'files_scanned': 0,
            'files_removed': 0,
            'files_rewritten': 0
        }

    def normalize(self) -> Dict[str, int]:
        """
        Run the sweep.

        Returns:
            Statistics dictionary with scanned, removed and rewritten counts

        Raises:
            OSError: If any file cannot be read, written or removed
        """
        md_files = self._scan_markdown_files()
        self.logger.info(f"Normalizing {len(md_files)} markdown files in {self.dump_dir}")

        with tqdm(total=len(md_files), desc="Normalizing files", unit="file",
                  disable=not self.show_progress) as pbar:
            for file_path in md_files:
                self._normalize_file(file_path)
                pbar.update(1)

        self.logger.info(
            f"Normalization complete: {self.stats['files_rewritten']} rewritten, "
            f"{self.stats['files_removed']} removed"
        )
        return self.stats.copy()

    def _scan_markdown_files(self) -> List[Path]:
        if not self.dump_dir.is_dir():
            self.logger.warning(f"Dump directory {self.dump_dir} does not exist")
            return []
        return sorted(path for path in self.dump_dir.glob('*.md') if path.is_file())

    def _normalize_file(self, file_path: Path) -> None:
        self.stats['files_scanned'] += 1

        raw = file_path.read_bytes()
        if len(raw) < self.min_length:
            self._remove(file_path, len(raw))
            return

        # undecodable bytes pass through unchanged
        text = raw.decode('utf-8', errors='surrogateescape')
        normalized = normalize_text(text).encode('utf-8', errors='surrogateescape')
        if len(normalized) < self.min_length:
            self._remove(file_path, len(normalized))
            return

        file_path.write_bytes(normalized)
        self.stats['files_rewritten'] += 1

    def _remove(self, file_path: Path, size: int) -> None:
        os.remove(file_path)
        self.stats['files_removed'] += 1
        self.logger.debug(f"Removed {file_path.name} ({size} bytes < {self.min_length})")
