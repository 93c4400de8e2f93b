"""
Exception types raised while generating metadata for an image.
"""

from typing import Optional


class MetadataError(Exception):
    """Base class for per-image metadata generation failures."""


class AuthError(MetadataError):
    """Raised when no API key is available for the request."""


class ApiError(MetadataError):
    """Non-success response from the inference API."""

    def __init__(self, status: Optional[int], message: str):
        self.status = status
        self.message = message
        super().__init__(f"API Error: {status} - {message}" if status else f"API Error: {message}")


class TransientOverloadError(ApiError):
    """The API reported it is temporarily overloaded and the call may be retried."""


class EmptyResponseError(MetadataError):
    """The API answered successfully but returned no text."""


class TransportError(MetadataError):
    """Network-level failure before a response was received."""
