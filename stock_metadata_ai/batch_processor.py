"""
Sequential batch processing of images.
"""

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Any, List, Optional, Sequence

from .ai_providers import AiProvider
from .config import AppConfig
from .filesystem import ImageFile
from .logging_setup import get_logger
from .response_parser import MetadataResult

logger = get_logger(__name__)

ProgressCallback = Callable[[int, int], None]


class ItemStatus(Enum):
    PENDING = "pending"
    DONE = "done"


@dataclass
class BatchItem:
    """One image in the batch and its current result."""
    item_id: str
    image: ImageFile
    status: ItemStatus = ItemStatus.PENDING
    result: Optional[MetadataResult] = None


@dataclass
class ProcessingStats:
    """Class to track processing statistics."""
    total_images: int = 0
    processed_images: int = 0
    successful_images: int = 0
    failed_images: int = 0
    start_time: float = 0
    total_time: float = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert stats to dictionary."""
        result = {k: v for k, v in self.__dict__.items()}
        if self.total_images > 0:
            result['success_rate'] = self.successful_images / self.total_images
        if self.processed_images > 0:
            result['avg_time_per_image'] = self.total_time / self.processed_images
        else:
            result['avg_time_per_image'] = 0
        return result


class BatchProcessor:
    """Runs metadata generation over a list of images, one at a time."""

    def __init__(self, config: AppConfig, provider: Optional[AiProvider] = None):
        """
        Initialize the batch processor.

        Args:
            config: Application configuration
            provider: AI provider to use (created from config if omitted)
        """
        self.config = config
        self.ai_provider = provider or AiProvider.get_provider(config)
        self.items: "OrderedDict[str, BatchItem]" = OrderedDict()
        self.stats = ProcessingStats()

    @staticmethod
    def make_item_id(image: ImageFile, index: int) -> str:
        return f"{image.name}-{image.size}-{index}"

    def generate_batch(self, images: Sequence[ImageFile], api_key: str,
                       progress_callback: Optional[ProgressCallback] = None,
                       cancel_event: Optional[threading.Event] = None) -> List[MetadataResult]:
        """
        Generate metadata for each image in order.

        Images that fail are dropped from the batch; progress is reported after
        every image either way.

        Args:
            images: Images to process
            api_key: Credential for the inference API
            progress_callback: Optional function called with (completed, total)
            cancel_event: Optional event that stops the batch between images

        Returns:
            Results of the successful images, in input order
        """
        self.items = OrderedDict()
        self.stats = ProcessingStats(total_images=len(images), start_time=time.time())
        total = len(images)

        if total == 0:
            logger.info("No images to process")
            return []

        for index, image in enumerate(images):
            if cancel_event is not None and cancel_event.is_set():
                logger.warning(f"Batch cancelled after {index}/{total} images")
                break

            item = BatchItem(item_id=self.make_item_id(image, index), image=image)
            self.items[item.item_id] = item

            logger.info(f"Processing image {index + 1} of {total}: {image.name}")
            result = self.ai_provider.analyze_image(image, api_key)

            self.stats.processed_images += 1
            if result is not None:
                item.result = result
                item.status = ItemStatus.DONE
                self.stats.successful_images += 1
            else:
                del self.items[item.item_id]
                self.stats.failed_images += 1

            if progress_callback:
                progress_callback(index + 1, total)
            self._log_progress_stats(index + 1, total)

        self.stats.total_time = time.time() - self.stats.start_time
        logger.info(
            f"Generated metadata for {self.stats.successful_images}/{total} images "
            f"in {self.stats.total_time:.1f}s"
        )
        return self.results()

    def regenerate_one(self, item_id: str, api_key: str) -> Optional[MetadataResult]:
        """
        Generate fresh metadata for an item already in the batch.

        The new result replaces the old one entirely. If generation fails the
        old result is kept.

        Args:
            item_id: Identifier of the item to regenerate
            api_key: Credential for the inference API

        Returns:
            The new MetadataResult, or None if generation failed

        Raises:
            KeyError: If item_id is not part of the batch
        """
        if item_id not in self.items:
            raise KeyError(f"Unknown batch item: {item_id}")

        item = self.items[item_id]
        logger.info(f"Regenerating metadata for {item.image.name}")
        result = self.ai_provider.analyze_image(item.image, api_key)
        if result is None:
            logger.warning(f"Regeneration failed for {item.image.name}, keeping previous metadata")
            return None

        item.result = result
        item.status = ItemStatus.DONE
        return result

    def remove_item(self, item_id: str) -> None:
        """Remove an item from the batch."""
        del self.items[item_id]

    def completed_items(self) -> List[BatchItem]:
        """Items with a result, in batch order."""
        return [item for item in self.items.values() if item.status is ItemStatus.DONE]

    def results(self) -> List[MetadataResult]:
        return [item.result for item in self.completed_items()]

    def _log_progress_stats(self, images_processed: int, total_images: int) -> None:
        """
        Log progress statistics.

        Args:
            images_processed: Number of images processed so far
            total_images: Total number of images to process
        """
        elapsed = time.time() - self.stats.start_time
        avg_time_per_image = elapsed / images_processed if images_processed else 0
        estimated_remaining = avg_time_per_image * (total_images - images_processed)

        logger.info(
            f"Progress: {images_processed}/{total_images} "
            f"({images_processed / total_images * 100:.1f}%), "
            f"est. remaining: {estimated_remaining:.1f}s"
        )
