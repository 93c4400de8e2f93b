"""
Prepare images for AI analysis.
"""

import io
import base64
from typing import Optional, Tuple
from PIL import Image, UnidentifiedImageError

from .filesystem import ImageFile
from .logging_setup import get_logger

logger = get_logger(__name__)


class ImageProcessor:
    """Class to encode images for the inference API."""

    def __init__(self, max_resolution: Optional[int] = None, jpeg_quality: int = 85):
        """
        Initialize the image processor.

        Args:
            max_resolution: Longest side allowed before the image is downscaled (None disables resizing)
            jpeg_quality: JPEG quality used when an image is re-encoded
        """
        self.max_resolution = max_resolution
        self.jpeg_quality = jpeg_quality

    @classmethod
    def from_config(cls, config) -> 'ImageProcessor':
        return cls(config.preview_max_resolution, config.jpeg_quality)

    def _downscale(self, data: bytes) -> Optional[bytes]:
        """
        Re-encode an image as JPEG if it is larger than max_resolution.

        Args:
            data: Original image bytes

        Returns:
            JPEG bytes if the image was resized, None if it already fits
        """
        with Image.open(io.BytesIO(data)) as img:
            if img.width <= self.max_resolution and img.height <= self.max_resolution:
                return None

            img_copy = img.copy()
            img_copy.thumbnail((self.max_resolution, self.max_resolution))
            logger.debug(f"Resized image from {img.width}x{img.height} to {img_copy.width}x{img_copy.height}")

            # Ensure we're saving as JPEG regardless of input format
            if img_copy.mode != 'RGB':
                img_copy = img_copy.convert('RGB')

            buffer = io.BytesIO()
            img_copy.save(buffer, format="JPEG", quality=self.jpeg_quality)
            img_copy.close()
            return buffer.getvalue()

    def prepare_image(self, image: ImageFile) -> Tuple[str, str]:
        """
        Read an image and encode it as base64 for transport.

        Args:
            image: Image to encode

        Returns:
            Tuple of (base64-encoded data, MIME type of the encoded data)
        """
        data = image.read_bytes()
        mime_type = image.mime_type

        if self.max_resolution:
            try:
                resized = self._downscale(data)
            except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
                logger.warning(f"Could not resize {image.name}, sending original: {str(e)}")
                resized = None
            if resized is not None:
                data, mime_type = resized, 'image/jpeg'

        img_b64 = base64.b64encode(data).decode('utf-8')
        logger.debug(f"Prepared {image.name} for AI analysis (base64 size: {len(img_b64)} chars)")
        return img_b64, mime_type
