"""
Locating image files to process.
"""

import mimetypes
import os
from dataclasses import dataclass
from typing import Iterable, List

from .logging_setup import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ImageFile:
    """An image on disk. Bytes are read only when the image is sent to the API."""
    path: str
    name: str
    mime_type: str
    size: int

    @classmethod
    def from_path(cls, path: str) -> 'ImageFile':
        """
        Build an ImageFile for a path.

        Args:
            path: Path to the image file

        Returns:
            ImageFile with guessed MIME type and current size
        """
        mime_type, _ = mimetypes.guess_type(path)
        return cls(
            path=path,
            name=os.path.basename(path),
            mime_type=mime_type or 'application/octet-stream',
            size=os.path.getsize(path),
        )

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith('image/')

    def read_bytes(self) -> bytes:
        with open(self.path, 'rb') as f:
            return f.read()


def _expand_paths(paths: Iterable[str]) -> List[str]:
    """Expand directories into their files (sorted, non-recursive)."""
    expanded = []
    for path in paths:
        path = os.path.expanduser(path)
        if os.path.isdir(path):
            for entry in sorted(os.listdir(path)):
                full_path = os.path.join(path, entry)
                if os.path.isfile(full_path):
                    expanded.append(full_path)
        elif os.path.isfile(path):
            expanded.append(path)
        else:
            logger.warning(f"Path not found, skipping: {path}")
    return expanded


def collect_images(paths: Iterable[str], max_images: int = 100, max_file_size_mb: int = 60) -> List[ImageFile]:
    """
    Collect image files from files and directories.

    Non-image files and files over the size limit are skipped. The result is
    truncated to max_images entries.

    Args:
        paths: Files and/or directories
        max_images: Maximum number of images to return
        max_file_size_mb: Maximum size of a single image in megabytes

    Returns:
        List of ImageFile objects in discovery order
    """
    max_bytes = max_file_size_mb * 1024 * 1024
    images = []

    for path in _expand_paths(paths):
        image = ImageFile.from_path(path)
        if not image.is_image:
            logger.debug(f"Skipping non-image file: {path}")
            continue
        if image.size > max_bytes:
            logger.warning(f"Skipping {image.name}: {image.size / (1024 * 1024):.1f} MB exceeds {max_file_size_mb} MB limit")
            continue
        images.append(image)

    if len(images) > max_images:
        logger.warning(f"Found {len(images)} images, limiting to {max_images}")
        images = images[:max_images]

    logger.info(f"Collected {len(images)} images")
    return images
