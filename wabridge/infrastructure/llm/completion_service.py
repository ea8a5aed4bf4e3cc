"""
Completion Service - LLM Chat Completion Client
================================================

ARCHITECTURAL DECISION:
- Talks to any OpenAI-compatible /chat/completions endpoint (Groq by default)
- Returns the reply text, or None when the model sent nothing usable
- Raises CompletionServiceError on transport or payload failures;
  the caller decides what the end user sees

EXTENSIBILITY:
- To use a different model: set LLM_MODEL
- To use OpenAI or OpenRouter: set LLM_API_URL and the matching key
"""

import logging
from typing import Dict, List, Optional

import requests

from ..config import get_settings

logger = logging.getLogger(__name__)


class CompletionServiceError(Exception):
    """Base exception for completion backend errors."""
    pass


class CompletionService:
    """
    Chat completion client.

    USAGE:
        service = CompletionService()
        text = service.complete([
            {"role": "system", "content": "You are a helpful assistant."},
            {"role": "user", "content": "fiyat nedir"},
        ])

    A single request is made per call. No retries.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[int] = None,
    ):
        settings = get_settings().llm
        self._api_key = settings.api_key if api_key is None else api_key
        self._api_url = api_url or settings.api_url
        self._model = model or settings.model
        self._timeout = timeout or settings.timeout_seconds

        if not self._api_key:
            logger.warning("No GROQ_API_KEY set. Completion calls will fail.")

    @property
    def model(self) -> str:
        return self._model

    def complete(self, messages: List[Dict[str, str]]) -> Optional[str]:
        """
        Request a completion for an ordered list of {role, content} turns.

        Returns:
            Reply text, or None if the response carried no content.

        Raises:
            CompletionServiceError: network error, HTTP error, or a body
            that is not a chat-completion payload.
        """
        if not self._api_key:
            raise CompletionServiceError("No API key configured for the completion backend")

        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

        payload = {
            "model": self._model,
            "messages": messages,
        }

        try:
            response = requests.post(
                self._api_url,
                headers=headers,
                json=payload,
                timeout=self._timeout,
            )
            response.raise_for_status()
            data = response.json()

        except requests.Timeout as e:
            raise CompletionServiceError(f"Completion API timeout after {self._timeout}s") from e

        except requests.RequestException as e:
            raise CompletionServiceError(f"Completion API error: {e}") from e

        except ValueError as e:
            raise CompletionServiceError(f"Completion API returned invalid JSON: {e}") from e

        return self._extract_response_content(data)

    def _extract_response_content(self, data) -> Optional[str]:
        """Extract text content from API response."""
        if not isinstance(data, dict) or "choices" not in data:
            raise CompletionServiceError(f"Malformed completion payload: {str(data)[:200]}")

        try:
            choices = data.get("choices") or []
            if not choices:
                return None
            message = choices[0].get("message") or {}
            content = message.get("content")
        except (AttributeError, IndexError, TypeError) as e:
            raise CompletionServiceError(f"Malformed completion payload: {e}") from e

        if not isinstance(content, str) or not content.strip():
            logger.debug("Completion returned empty content")
            return None

        logger.debug(f"Completion from {self._model}: {content[:50]}")
        return content
