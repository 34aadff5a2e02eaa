"""Durable ingestion state stored as JSON next to the exported files."""

import json
import logging
import os
import tempfile
from typing import List, Optional

from models import DocumentRef, IngestionState, ListingCursor

logger = logging.getLogger('confuddlement.fetcher.state')

STATE_FILENAME = 'state.json'


class StateError(Exception):
    """Base exception for state store failures."""
    pass


class StateNotFoundError(StateError):
    """No usable state file exists yet."""
    pass


class StateCorruptedError(StateNotFoundError):
    """The state file exists but could not be decoded."""
    pass


class StateStore:
    """
    Owns ``<dump_dir>/state.json``.

    The file holds the list of documents already fetched plus one listing cursor
    per space. Every save rewrites the whole record, going through a temporary
    file so an interrupted write leaves the previous record intact.
    """

    def __init__(
        self,
        dump_dir: str,
        base_url: str = '',
        context_path: str = '',
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize state store.

        Args:
            dump_dir: Directory holding the state file and exported Markdown
            base_url: Confluence base URL written into every saved envelope
            context_path: Confluence context path written into every saved envelope
            logger: Logger instance (optional)
        """
        self.dump_dir = dump_dir
        self.state_path = os.path.join(dump_dir, STATE_FILENAME)
        self.base_url = base_url
        self.context_path = context_path
        self.logger = logger or logging.getLogger('confuddlement.fetcher.state')
        self._state: Optional[IngestionState] = None

    def load(self) -> IngestionState:
        """
        Read the persisted state.

        Raises:
            StateNotFoundError: If the file is missing or unreadable
            StateCorruptedError: If the file does not contain a valid state record
        """
        try:
            with open(self.state_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise StateNotFoundError(f"No state file at {self.state_path}") from e
        except OSError as e:
            raise StateNotFoundError(f"Cannot read state file {self.state_path}: {str(e)}") from e
        except ValueError as e:
            raise StateCorruptedError(f"State file {self.state_path} is not valid JSON: {str(e)}") from e

        try:
            state = IngestionState.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise StateCorruptedError(f"State file {self.state_path} is malformed: {str(e)}") from e

        self._state = state
        return state

    def load_or_initialize(self) -> IngestionState:
        """
        Load the persisted state, starting fresh when there is none.

        A corrupted file is moved aside to ``state.json.corrupt`` and reported
        as a warning before starting fresh.
        """
        try:
            state = self.load()
            self.logger.info(
                f"Resuming with {len(state.results)} previously fetched documents "
                f"from {self.state_path}"
            )
            return state
        except StateCorruptedError as e:
            backup_path = self.state_path + '.corrupt'
            self.logger.warning(f"{str(e)} - starting fresh, previous file kept at {backup_path}")
            os.replace(self.state_path, backup_path)
        except StateNotFoundError:
            self.logger.info("No previous state found - starting fresh")

        self._state = IngestionState(cursor=self._cursor())
        return self._state

    @property
    def state(self) -> IngestionState:
        """Current in-memory state, loaded on first access."""
        if self._state is None:
            self.load_or_initialize()
        return self._state

    def save(
        self,
        results: List[DocumentRef],
        next_cursor: str = '',
        space_key: Optional[str] = None
    ) -> IngestionState:
        """
        Overwrite the persisted state with a complete new envelope.

        Args:
            results: Every document fetched so far
            next_cursor: Listing URL to resume from ('' = start of listing)
            space_key: Space the cursor belongs to (keeps other spaces' cursors)

        Returns:
            The state that was written
        """
        space_cursors = dict(self._state.space_cursors) if self._state else {}
        if space_key is not None:
            if next_cursor:
                space_cursors[space_key] = next_cursor
            else:
                space_cursors.pop(space_key, None)

        state = IngestionState(
            cursor=self._cursor(next_cursor),
            size=len(results),
            start=0,
            results=list(results),
            space_cursors=space_cursors
        )

        self._write(state)
        self._state = state
        return state

    def record_fetched(self, ref: DocumentRef) -> IngestionState:
        """
        Commit one document as fetched and persist immediately.

        Documents already present are not appended twice.
        """
        current = self.state
        results = list(current.results)
        if not current.contains(ref.id):
            results.append(ref.as_fetched())
        else:
            self.logger.debug(f"Document {ref.id} already recorded")

        return self.save(results, current.cursor.next_url)

    def is_fetched(self, document_id: str) -> bool:
        return self.state.contains(document_id)

    def cursor_for(self, space_key: str) -> str:
        """Saved listing cursor for a space, '' when the space starts from its first page."""
        return self.state.space_cursors.get(space_key, '')

    def save_cursor(self, space_key: str, next_url: str) -> IngestionState:
        """Persist the listing position of a space."""
        return self.save(self.state.results, next_url, space_key=space_key)

    def fetched_titles(self) -> List[str]:
        return [ref.title or ref.id for ref in self.state.results]

    def _cursor(self, next_url: str = '') -> ListingCursor:
        # Base/context always come from configuration, never from the loaded file
        return ListingCursor(
            base_url=self.base_url,
            context_path=self.context_path,
            next_url=next_url,
            self_url=''
        )

    def _write(self, state: IngestionState) -> None:
        """Serialize and atomically replace the state file."""
        os.makedirs(self.dump_dir, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(prefix='.state-', suffix='.json', dir=self.dump_dir)
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(state.to_dict(), f, ensure_ascii=False)
            os.replace(tmp_path, self.state_path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

        logger.debug(f"State saved: {state.size} documents -> {self.state_path}")
