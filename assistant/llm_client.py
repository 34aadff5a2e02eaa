"""Ollama chat client used to summarise and query exported documents."""

import json
import logging
from typing import Any, Callable, Dict, Optional

import requests

logger = logging.getLogger('confuddlement.assistant.llm')

DEFAULT_OLLAMA_HOST = 'http://127.0.0.1:11434'
DEFAULT_NUM_CTX = 2048
DEFAULT_NUM_PREDICT = -1


class LlmError(Exception):
    """The chat request failed or returned an unusable response."""
    pass


class OllamaClient:
    """
    Minimal client for the Ollama ``/api/chat`` endpoint.

    Responses are streamed as newline-delimited JSON; each chunk's message
    content is handed to ``on_token`` as it arrives and the full text is returned.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        model: str = '',
        num_ctx: int = DEFAULT_NUM_CTX,
        num_predict: int = DEFAULT_NUM_PREDICT,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize Ollama client.

        Args:
            base_url: Ollama host, with or without scheme (default http://127.0.0.1:11434)
            model: Model name, e.g. "llama3"
            num_ctx: Context window size in tokens
            num_predict: Maximum tokens to generate (-1 = unlimited)
            timeout: HTTP timeout in seconds (None waits indefinitely)
            session: Optional pre-built session (mainly for tests)
        """
        base_url = base_url or DEFAULT_OLLAMA_HOST
        if '://' not in base_url:
            base_url = f"http://{base_url}"

        self.base_url = base_url.rstrip('/')
        self.endpoint = f"{self.base_url}/api/chat"
        self.model = model
        self.num_ctx = num_ctx
        self.num_predict = num_predict
        self.timeout = timeout
        self.session = session or requests.Session()

    def build_payload(self, system_prompt: str, user_prompt: str) -> Dict[str, Any]:
        return {
            'model': self.model,
            'messages': [
                {'role': 'system', 'content': system_prompt},
                {'role': 'user', 'content': user_prompt}
            ],
            'options': {
                'num_predict': self.num_predict,
                'num_ctx': self.num_ctx
            },
            'stream': True
        }

    def chat(
        self,
        system_prompt: str,
        user_prompt: str,
        on_token: Optional[Callable[[str], None]] = None
    ) -> str:
        """
        Send one system + user exchange and return the complete reply.

        Raises:
            LlmError: On transport errors, error statuses or undecodable chunks
        """
        if not self.model:
            raise LlmError("No Ollama model configured (set OLLAMA_MODEL)")

        payload = self.build_payload(system_prompt, user_prompt)
        logger.debug(f"Chat request to {self.endpoint} with model {self.model}")

        try:
            with self.session.post(self.endpoint, json=payload, stream=True, timeout=self.timeout) as response:
                if response.status_code >= 400:
                    raise LlmError(f"Ollama error {response.status_code}: {response.text[:500]}")

                parts = []
                for line in response.iter_lines(decode_unicode=True):
                    if not line:
                        continue
                    token = self._parse_chunk(line)
                    if token:
                        parts.append(token)
                        if on_token is not None:
                            on_token(token)
        except requests.exceptions.RequestException as e:
            raise LlmError(f"Ollama request to {self.endpoint} failed: {str(e)}") from e

        return ''.join(parts)

    @staticmethod
    def _parse_chunk(line: str) -> str:
        try:
            chunk = json.loads(line)
        except ValueError as e:
            raise LlmError(f"Invalid chunk from Ollama: {line[:200]}") from e

        if chunk.get('error'):
            raise LlmError(f"Ollama error: {chunk['error']}")

        message = chunk.get('message') or {}
        return message.get('content') or ''

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'OllamaClient':
        """Initialize client from the ``ollama`` configuration section."""
        ollama_config = config.get('ollama', {})
        return cls(
            base_url=ollama_config.get('base_url'),
            model=ollama_config.get('model') or '',
            num_ctx=ollama_config.get('num_ctx', DEFAULT_NUM_CTX),
            num_predict=ollama_config.get('num_predict', DEFAULT_NUM_PREDICT),
            timeout=ollama_config.get('request_timeout')
        )
