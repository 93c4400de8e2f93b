"""
OpenRouter API implementation for AI image analysis.
"""

from typing import Any, Optional, Callable

from .config import AppConfig, OpenRouterConfig
from .ai_providers import AiProvider, StatusCallback
from .exceptions import EmptyResponseError
from .logging_setup import get_logger

logger = get_logger(__name__)


class OpenRouterProvider(AiProvider):
    """OpenRouter API implementation of AI provider."""

    def __init__(self, config: AppConfig,
                 status_callback: Optional[StatusCallback] = None,
                 sleep: Optional[Callable[[float], None]] = None):
        """
        Initialize the OpenRouter provider.

        Args:
            config: Application configuration
            status_callback: Optional function receiving status messages
            sleep: Optional replacement for time.sleep used between retries
        """
        super().__init__(config, status_callback, sleep)

        if not isinstance(config.provider, OpenRouterConfig):
            raise ValueError("Provider must be an OpenRouterConfig instance")

        self.provider_config = config.provider

        self.api_url = self.provider_config.api_url
        self.model = self.provider_config.model
        self.site_url = self.provider_config.site_url
        self.title = self.provider_config.title

        logger.info(f"Initialized OpenRouter provider with model: {self.model}")

    def _send_request(self, img_b64: str, mime_type: str, prompt: str, api_key: str) -> str:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
            "HTTP-Referer": self.site_url,
            "X-Title": self.title
        }

        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{img_b64}"}}
                ]
            }
        ]

        payload = {
            "model": self.model,
            "messages": messages,
            "max_tokens": 4000,
            "temperature": 0.2
        }

        logger.debug(f"Calling OpenRouter API with model: {self.model}")
        response_data = self.post_json(self.api_url, payload, headers=headers)

        content = self._extract_content(response_data)
        if not content:
            logger.error("Invalid response format from OpenRouter API")
            raise EmptyResponseError("No response from API")
        return content

    @staticmethod
    def _extract_content(response_data: Any) -> str:
        """
        Pull the message text out of a chat completion response.

        The content may be a string or a list of parts; text parts are joined.
        Returns an empty string when the response has no usable text.
        """
        if not isinstance(response_data, dict):
            return ""
        choices = response_data.get('choices')
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            return ""
        message = choices[0].get('message')
        if not isinstance(message, dict):
            return ""

        content = message.get('content')
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            parts = [
                part.get('text') for part in content
                if isinstance(part, dict) and part.get('type') == 'text' and isinstance(part.get('text'), str)
            ]
            return "\n".join(parts)
        return ""
