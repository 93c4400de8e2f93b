"""
Google Gemini implementation of AI provider.
"""

import json
from typing import Dict, Any, Optional, Callable

from .config import AppConfig, GeminiConfig
from .ai_providers import AiProvider, StatusCallback
from .exceptions import EmptyResponseError
from .logging_setup import get_logger

logger = get_logger(__name__)


class GeminiProvider(AiProvider):
    """Gemini generateContent API implementation of AI provider."""

    def __init__(self, config: AppConfig,
                 status_callback: Optional[StatusCallback] = None,
                 sleep: Optional[Callable[[float], None]] = None):
        """
        Initialize the Gemini provider.

        Args:
            config: Application configuration
            status_callback: Optional function receiving status messages
            sleep: Optional replacement for time.sleep used between retries

        Raises:
            ValueError: If config.provider is not a GeminiConfig object
        """
        super().__init__(config, status_callback, sleep)

        if not isinstance(config.provider, GeminiConfig):
            raise ValueError("Provider must be a GeminiConfig instance")

        self.api_url = config.provider.api_url.rstrip('/')
        self.model = config.provider.model

        logger.info(f"Initialized Gemini provider with model: {self.model}")

    @property
    def endpoint(self) -> str:
        return f"{self.api_url}/{self.model}:generateContent"

    def _send_request(self, img_b64: str, mime_type: str, prompt: str, api_key: str) -> str:
        payload = {
            "contents": [{
                "parts": [
                    {"text": prompt},
                    {
                        "inline_data": {
                            "mime_type": mime_type,
                            "data": img_b64
                        }
                    }
                ]
            }]
        }

        logger.debug(f"Calling Gemini API with model: {self.model}")
        response_data = self.post_json(
            self.endpoint,
            payload,
            headers={"Content-Type": "application/json"},
            params={"key": api_key}
        )

        if self.config.debug_mode:
            logger.debug(f"Gemini API response: {json.dumps(response_data, indent=2)[:2000]}")

        return self._extract_text(response_data)

    @staticmethod
    def _extract_text(response_data: Dict[str, Any]) -> str:
        """
        Pull the text of the first candidate out of a generateContent response.

        Raises:
            EmptyResponseError: If the response has no text
        """
        try:
            text = response_data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            text = None

        if not text or not isinstance(text, str):
            block_reason = ""
            if isinstance(response_data, dict):
                feedback = response_data.get("promptFeedback") or {}
                if isinstance(feedback, dict):
                    block_reason = feedback.get("blockReason") or ""
            suffix = f" (blocked: {block_reason})" if block_reason else ""
            raise EmptyResponseError(f"No response from API{suffix}")
        return text
