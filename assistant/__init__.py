"""Assistant package: search the exported corpus and summarise or query it with Ollama."""

from .llm_client import LlmError, OllamaClient
from .corpus_query import (
    DEFAULT_LINE_RANGE,
    QUERY_SYSTEM_PROMPT,
    SUMMARY_SYSTEM_PROMPT,
    CorpusSearcher,
    DocumentAssistant
)

__all__ = [
    'OllamaClient',
    'LlmError',
    'CorpusSearcher',
    'DocumentAssistant',
    'DEFAULT_LINE_RANGE',
    'SUMMARY_SYSTEM_PROMPT',
    'QUERY_SYSTEM_PROMPT'
]
