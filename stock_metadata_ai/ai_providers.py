"""
AI provider interface and factory.
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, Optional, Callable
import time

import requests

from .config import AppConfig
from .exceptions import (
    ApiError,
    AuthError,
    EmptyResponseError,
    MetadataError,
    TransientOverloadError,
    TransportError,
)
from .filesystem import ImageFile
from .image_processor import ImageProcessor
from .keyword_normalizer import KeywordNormalizer
from .logging_setup import get_logger
from .prompt_templates import get_stock_metadata_prompt
from .response_parser import MetadataResult, parse_response

logger = get_logger(__name__)

StatusCallback = Callable[[str], None]


class AiProvider(ABC):
    """Abstract base class for AI providers."""

    @staticmethod
    def get_provider(config: AppConfig,
                     status_callback: Optional[StatusCallback] = None,
                     sleep: Optional[Callable[[float], None]] = None) -> 'AiProvider':
        """
        Factory method to get the appropriate AI provider based on configuration.

        Args:
            config: Application configuration
            status_callback: Optional function receiving status messages
            sleep: Optional replacement for time.sleep used between retries

        Returns:
            An instance of the appropriate AiProvider subclass
        """
        provider_type = config.provider.provider_type.lower()

        if provider_type == 'gemini':
            from .gemini_provider import GeminiProvider
            return GeminiProvider(config, status_callback, sleep)
        elif provider_type == 'openrouter':
            from .openrouter_provider import OpenRouterProvider
            return OpenRouterProvider(config, status_callback, sleep)
        raise ValueError(f"Unsupported AI provider: {provider_type}")

    def __init__(self, config: AppConfig,
                 status_callback: Optional[StatusCallback] = None,
                 sleep: Optional[Callable[[float], None]] = None):
        """
        Initialize the AI provider.

        Args:
            config: Application configuration
            status_callback: Optional function receiving status messages
            sleep: Optional replacement for time.sleep used between retries
        """
        self.config = config
        self.max_retries = config.max_retries
        self.retry_base_delay = config.retry_base_delay
        self.overload_status_code = config.overload_status_code
        self.timeout = config.request_timeout
        self.status_callback = status_callback
        self.sleep = sleep or time.sleep

        self.normalizer = KeywordNormalizer.from_config(config)
        self.image_processor = ImageProcessor.from_config(config)
        self.prompt = get_stock_metadata_prompt(config.max_keywords)

    def notify(self, message: str) -> None:
        """Forward a status message to the callback, if any."""
        if self.status_callback:
            self.status_callback(message)

    def backoff_delay(self, retry_count: int) -> float:
        """Seconds to wait before retry number retry_count + 1 (1s, 2s, 4s with defaults)."""
        return self.retry_base_delay * (2 ** retry_count)

    def is_overload_message(self, message: str) -> bool:
        """Whether a transport error message signals the same overload as the busy status."""
        return str(self.overload_status_code) in message or 'overloaded' in message.lower()

    def call_with_retries(self, request_func: Callable[[], str]) -> str:
        """
        Call an API function, retrying while the service reports it is overloaded.

        Args:
            request_func: Function performing a single attempt and returning response text

        Returns:
            Response text from the first successful attempt

        Raises:
            ApiError: On a terminal error response, or once the retries are exhausted
            TransportError: On a network failure unrelated to overload
            EmptyResponseError: If a successful response carries no text
        """
        total_attempts = self.max_retries + 1
        retry_count = 0

        while True:
            self.notify(f"Requesting metadata (attempt {retry_count + 1}/{total_attempts})")
            try:
                return request_func()
            except TransientOverloadError as e:
                error = e
            except TransportError as e:
                if not self.is_overload_message(str(e)):
                    raise
                error = e

            if retry_count >= self.max_retries:
                logger.error(f"Failed to get a response after {total_attempts} attempts: {str(error)}")
                detail = getattr(error, 'message', str(error))
                raise ApiError(self.overload_status_code,
                               f"{detail} (gave up after {total_attempts} attempts)")

            delay = self.backoff_delay(retry_count)
            logger.info(f"API overloaded, retrying in {delay:g} seconds (attempt {retry_count + 1}/{self.max_retries})")
            self.notify(f"API is busy. Retrying in {delay:g} seconds... (Attempt {retry_count + 1}/{self.max_retries})")
            self.sleep(delay)
            retry_count += 1

    def post_json(self, url: str, payload: Dict[str, Any],
                  headers: Optional[Dict[str, str]] = None,
                  params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """
        Send one POST request and classify the outcome.

        Args:
            url: Endpoint URL
            payload: JSON body
            headers: Optional request headers
            params: Optional query parameters

        Returns:
            Decoded JSON body of a successful response

        Raises:
            TransportError: If the request could not be completed
            TransientOverloadError: If the service reports it is overloaded
            ApiError: For any other non-success status
            EmptyResponseError: If a successful response body is not JSON
        """
        try:
            response = requests.post(url, json=payload, headers=headers, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportError(str(e)) from e

        status = response.status_code
        if status == self.overload_status_code:
            raise TransientOverloadError(status, self._error_message(response))
        if not 200 <= status < 300:
            raise ApiError(status, self._error_message(response))

        try:
            return response.json()
        except ValueError as e:
            raise EmptyResponseError(f"Response body is not valid JSON: {str(e)}") from e

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        """Build an error message from the status reason and the API's error body."""
        reason = response.reason or ""
        try:
            detail = response.json().get('error', {}).get('message', '')
        except (ValueError, AttributeError):
            detail = ""
        if reason and detail:
            return f"{reason} - {detail}"
        return reason or detail or "Unknown error"

    def generate_one(self, image: ImageFile, api_key: str) -> MetadataResult:
        """
        Generate metadata for one image.

        Args:
            image: Image to analyze
            api_key: Credential for the inference API

        Returns:
            Parsed MetadataResult

        Raises:
            AuthError: If api_key is empty
            ApiError, TransportError, EmptyResponseError: If the API call fails
        """
        if not api_key or not api_key.strip():
            raise AuthError("API key required")

        img_b64, mime_type = self.image_processor.prepare_image(image)

        def make_request() -> str:
            return self._send_request(img_b64, mime_type, self.prompt, api_key)

        response_text = self.call_with_retries(make_request)
        if not isinstance(response_text, str) or not response_text.strip():
            raise EmptyResponseError("No response from API")

        if self.config.debug_mode:
            logger.debug(f"Raw response for {image.name}: {response_text[:500]}")

        return parse_response(response_text, self.normalizer)

    def analyze_image(self, image: ImageFile, api_key: str) -> Optional[MetadataResult]:
        """
        Generate metadata for one image, reporting failures instead of raising.

        Args:
            image: Image to analyze
            api_key: Credential for the inference API

        Returns:
            MetadataResult if successful, None otherwise
        """
        try:
            return self.generate_one(image, api_key)
        except (MetadataError, OSError) as e:
            logger.error(f"Failed to generate metadata for {image.name}: {str(e)}")
            self.notify(f"Error processing {image.name}: {str(e)}")
            return None
        except Exception as e:
            logger.exception(f"Unexpected error generating metadata for {image.name}: {str(e)}")
            self.notify(f"Error processing {image.name}: {str(e)}")
            return None

    @abstractmethod
    def _send_request(self, img_b64: str, mime_type: str, prompt: str, api_key: str) -> str:
        """
        Perform a single API call.

        Args:
            img_b64: Base64-encoded image
            mime_type: MIME type of the encoded image
            prompt: Instruction prompt
            api_key: Credential for the inference API

        Returns:
            Text content of the response

        Raises:
            TransientOverloadError, ApiError, TransportError, EmptyResponseError
        """
        pass
