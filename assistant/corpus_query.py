"""Full-text search over the exported corpus and LLM prompts built from it."""

import logging
from pathlib import Path
from typing import Callable, List, Optional

from .llm_client import OllamaClient

logger = logging.getLogger('confuddlement.assistant.query')

SUMMARY_SYSTEM_PROMPT = "Provide very brief, concise summaries of the following content."
QUERY_SYSTEM_PROMPT = (
    "Respond concisely and informatively to the users request. Format your responses "
    "in Markdown. Carefully follow instructions. Think about your answer being responding."
)
DEFAULT_LINE_RANGE = 4


class CorpusSearcher:
    """Case-insensitive substring search across the Markdown files of a dump directory."""

    def __init__(self, dump_dir: str, logger: Optional[logging.Logger] = None):
        self.dump_dir = Path(dump_dir)
        self.logger = logger or logging.getLogger('confuddlement.assistant.query')

    def list_documents(self) -> List[Path]:
        """Markdown files in the dump directory, sorted by name."""
        if not self.dump_dir.is_dir():
            raise FileNotFoundError(f"Dump directory does not exist: {self.dump_dir}")
        return sorted(path for path in self.dump_dir.glob('*.md') if path.is_file())

    def search(self, term: str) -> List[Path]:
        """Documents whose content contains ``term``, ignoring case."""
        documents = self.list_documents()
        self.logger.info(f"Searching for {term} in {len(documents)} files")

        needle = term.lower()
        matches = []
        for path in documents:
            if needle in path.read_text(encoding='utf-8').lower():
                self.logger.info(f"Search matched file {path.name}")
                matches.append(path)
        return matches

    @staticmethod
    def matching_lines(path: Path, term: str, line_range: int = DEFAULT_LINE_RANGE) -> List[str]:
        """Lines among the first ``line_range`` lines of a file that contain ``term``."""
        needle = term.lower()
        lines = path.read_text(encoding='utf-8').split('\n')[:line_range]
        return [line for line in lines if needle in line.lower()]


class DocumentAssistant:
    """Summarises single documents and answers questions over search results."""

    def __init__(self, searcher: CorpusSearcher, llm: OllamaClient, logger: Optional[logging.Logger] = None):
        self.searcher = searcher
        self.llm = llm
        self.logger = logger or logging.getLogger('confuddlement.assistant.query')

    @staticmethod
    def build_summary_prompt(name: str, content: str) -> str:
        return f"Provide a concise summary of the following file {name}:\n\n{content}"

    def build_query_prompt(self, question: str, documents: List[Path], term: str, line_range: int) -> str:
        """Question followed by the matching lines of each document in a fenced block."""
        prompt = question + "\n\nDOCUMENTS:\n\n```markdown\n"
        for path in documents:
            for line in self.searcher.matching_lines(path, term, line_range):
                prompt += f"- {line}\n"
            prompt += "\n"
        prompt += "```\n\nEND OF DOCUMENTS"
        return prompt

    def summarise(self, path: Path, on_token: Optional[Callable[[str], None]] = None) -> str:
        """
        Ask the model for a short summary of one exported file.

        Raises:
            OSError: If the file cannot be read
            LlmError: If the chat request fails
        """
        path = Path(path)
        content = path.read_text(encoding='utf-8')
        self.logger.info(f"Summarising {path.name}")

        prompt = self.build_summary_prompt(path.name, content)
        return self.llm.chat(SUMMARY_SYSTEM_PROMPT, prompt, on_token=on_token)

    def query(
        self,
        term: str,
        question: str,
        line_range: int = DEFAULT_LINE_RANGE,
        on_token: Optional[Callable[[str], None]] = None
    ) -> Optional[str]:
        """
        Answer a question using the documents that mention ``term``.

        Returns:
            The model's reply, or None when no document matches the term
        """
        documents = self.searcher.search(term)
        if not documents:
            self.logger.warning("No files matched the search term.")
            return None

        self.logger.info(f"Querying Ollama with the prompt {question} ...")
        prompt = self.build_query_prompt(question, documents, term, line_range)
        return self.llm.chat(QUERY_SYSTEM_PROMPT, prompt, on_token=on_token)
