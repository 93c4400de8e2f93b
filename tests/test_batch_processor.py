"""
Tests for the batch processor module.
"""
import os
import shutil
import tempfile
import threading
import unittest
from unittest.mock import MagicMock, call, patch

from PIL import Image

from stock_metadata_ai.ai_providers import AiProvider
from stock_metadata_ai.batch_processor import BatchProcessor, ItemStatus, ProcessingStats
from stock_metadata_ai.config import AppConfig, OpenRouterConfig
from stock_metadata_ai.filesystem import ImageFile
from stock_metadata_ai.gemini_provider import GeminiProvider
from stock_metadata_ai.openrouter_provider import OpenRouterProvider
from stock_metadata_ai.response_parser import MetadataResult


def make_image(name, size=100):
    return ImageFile(path=f"/images/{name}", name=name, mime_type="image/jpeg", size=size)


class TestBatchProcessor(unittest.TestCase):
    """Test cases for the BatchProcessor class."""

    def setUp(self):
        """Set up test fixtures."""
        self.config = AppConfig()
        self.mock_provider = MagicMock(spec=AiProvider)
        self.processor = BatchProcessor(self.config, self.mock_provider)

        self.images = [make_image("img1.jpg"), make_image("img2.jpg"), make_image("img3.jpg")]
        self.results = [MetadataResult(title=f"Title {i}") for i in range(1, 4)]

    def test_init_creates_provider_from_config(self):
        with patch('stock_metadata_ai.batch_processor.AiProvider') as mock_ai_class:
            processor = BatchProcessor(self.config)

        mock_ai_class.get_provider.assert_called_once_with(self.config)
        self.assertIs(processor.ai_provider, mock_ai_class.get_provider.return_value)
        self.assertEqual(processor.stats.total_images, 0)

    def test_generate_batch_all_succeed(self):
        self.mock_provider.analyze_image.side_effect = self.results

        results = self.processor.generate_batch(self.images, "secret")

        self.assertEqual(results, self.results)
        self.assertEqual(
            self.mock_provider.analyze_image.call_args_list,
            [call(image, "secret") for image in self.images]
        )
        self.assertTrue(all(item.status is ItemStatus.DONE for item in self.processor.items.values()))

    def test_failed_image_is_dropped(self):
        self.mock_provider.analyze_image.side_effect = [self.results[0], None, self.results[2]]
        progress = MagicMock()

        results = self.processor.generate_batch(self.images, "secret", progress_callback=progress)

        self.assertEqual(results, [self.results[0], self.results[2]])
        self.assertEqual(progress.call_args_list, [call(1, 3), call(2, 3), call(3, 3)])
        self.assertEqual([item.image.name for item in self.processor.completed_items()],
                         ["img1.jpg", "img3.jpg"])
        self.assertEqual(self.processor.stats.successful_images, 2)
        self.assertEqual(self.processor.stats.failed_images, 1)
        self.assertEqual(self.processor.stats.processed_images, 3)

    def test_progress_reaches_total_when_everything_fails(self):
        self.mock_provider.analyze_image.return_value = None
        progress = MagicMock()

        results = self.processor.generate_batch(self.images, "secret", progress_callback=progress)

        self.assertEqual(results, [])
        self.assertEqual(progress.call_args, call(3, 3))
        self.assertEqual(len(self.processor.items), 0)

    def test_empty_batch(self):
        self.assertEqual(self.processor.generate_batch([], "secret"), [])
        self.mock_provider.analyze_image.assert_not_called()

    def test_new_batch_replaces_previous_items(self):
        self.mock_provider.analyze_image.side_effect = self.results
        self.processor.generate_batch(self.images[:2], "secret")
        self.processor.generate_batch(self.images[2:], "secret")

        self.assertEqual(self.processor.results(), [self.results[2]])

    def test_cancel_between_images(self):
        cancel_event = threading.Event()

        def analyze(image, api_key):
            cancel_event.set()
            return self.results[0]

        self.mock_provider.analyze_image.side_effect = analyze

        results = self.processor.generate_batch(self.images, "secret", cancel_event=cancel_event)

        self.assertEqual(results, [self.results[0]])
        self.mock_provider.analyze_image.assert_called_once()

    def test_regenerate_replaces_result_in_place(self):
        self.mock_provider.analyze_image.side_effect = self.results
        self.processor.generate_batch(self.images, "secret")
        item_id = self.processor.completed_items()[1].item_id

        new_result = MetadataResult(title="Regenerated")
        self.mock_provider.analyze_image.side_effect = [new_result]

        returned = self.processor.regenerate_one(item_id, "secret")

        self.assertIs(returned, new_result)
        self.assertEqual(self.processor.results(), [self.results[0], new_result, self.results[2]])
        self.mock_provider.analyze_image.assert_called_with(self.images[1], "secret")

    def test_regenerate_after_removal_targets_the_right_item(self):
        self.mock_provider.analyze_image.side_effect = self.results
        self.processor.generate_batch(self.images, "secret")
        first_id, _, last_id = [item.item_id for item in self.processor.completed_items()]

        self.processor.remove_item(first_id)
        new_result = MetadataResult(title="Regenerated")
        self.mock_provider.analyze_image.side_effect = [new_result]
        self.processor.regenerate_one(last_id, "secret")

        self.assertEqual(self.processor.results(), [self.results[1], new_result])

    def test_regenerate_failure_keeps_previous_result(self):
        self.mock_provider.analyze_image.side_effect = self.results
        self.processor.generate_batch(self.images, "secret")
        item_id = self.processor.completed_items()[0].item_id

        self.mock_provider.analyze_image.side_effect = [None]

        self.assertIsNone(self.processor.regenerate_one(item_id, "secret"))
        self.assertEqual(self.processor.results(), self.results)

    def test_regenerate_unknown_item(self):
        with self.assertRaises(KeyError):
            self.processor.regenerate_one("missing", "secret")

    def test_item_ids_are_unique_for_identical_files(self):
        images = [make_image("same.jpg"), make_image("same.jpg")]
        self.mock_provider.analyze_image.side_effect = self.results[:2]

        self.processor.generate_batch(images, "secret")

        self.assertEqual(len(self.processor.completed_items()), 2)


class TestProcessingStats(unittest.TestCase):
    """Test cases for ProcessingStats."""

    def test_to_dict(self):
        stats = ProcessingStats(total_images=4, processed_images=4, successful_images=3,
                                failed_images=1, total_time=8.0)
        data = stats.to_dict()

        self.assertEqual(data['success_rate'], 0.75)
        self.assertEqual(data['avg_time_per_image'], 2.0)

    def test_to_dict_without_images(self):
        data = ProcessingStats().to_dict()

        self.assertNotIn('success_rate', data)
        self.assertEqual(data['avg_time_per_image'], 0)


class TestBatchWithGeminiProvider(unittest.TestCase):
    """End-to-end batch run against a mocked Gemini endpoint."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.images = []
        for name in ("one.jpg", "two.jpg", "three.jpg"):
            path = os.path.join(self.temp_dir, name)
            with open(path, 'wb') as f:
                f.write(name.encode())
            self.images.append(ImageFile.from_path(path))

        self.config = AppConfig()
        self.config.preview_max_resolution = None
        self.sleep = MagicMock()
        self.provider = GeminiProvider(self.config, sleep=self.sleep)

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    @staticmethod
    def _response(status_code, text=None):
        response = MagicMock()
        response.status_code = status_code
        response.reason = "OK" if status_code == 200 else "Service Unavailable"
        if text is not None:
            response.json.return_value = {"candidates": [{"content": {"parts": [{"text": text}]}}]}
        else:
            response.json.return_value = {"error": {"message": "The model is overloaded."}}
        return response

    @patch('stock_metadata_ai.ai_providers.requests.post')
    def test_exhausted_retries_drop_only_that_image(self, mock_post):
        mock_post.side_effect = [
            self._response(200, "TITLE- First Image\nKEYWORDS- sky, tree\n"),
            self._response(503), self._response(503), self._response(503), self._response(503),
            self._response(200, "TITLE- Third Image\nKEYWORDS- river, stone\n"),
        ]
        progress = MagicMock()

        processor = BatchProcessor(self.config, self.provider)
        results = processor.generate_batch(self.images, "secret", progress_callback=progress)

        self.assertEqual([r.title for r in results], ["First Image", "Third Image"])
        self.assertEqual(progress.call_args, call(3, 3))
        self.assertEqual(self.sleep.call_args_list, [call(1.0), call(2.0), call(4.0)])
        self.assertEqual(mock_post.call_count, 6)

    def _run_with_second_body(self, mock_post, body):
        second = MagicMock()
        second.status_code = 200
        second.reason = "OK"
        second.json.return_value = body
        mock_post.side_effect = [
            self._response(200, "TITLE- First Image\nKEYWORDS- sky\n"),
            second,
            self._response(200, "TITLE- Third Image\nKEYWORDS- river\n"),
        ]
        progress = MagicMock()

        processor = BatchProcessor(self.config, self.provider)
        results = processor.generate_batch(self.images, "secret", progress_callback=progress)

        self.assertEqual([r.title for r in results], ["First Image", "Third Image"])
        self.assertEqual(progress.call_args, call(3, 3))
        self.assertEqual(processor.stats.failed_images, 1)

    @patch('stock_metadata_ai.ai_providers.requests.post')
    def test_null_prompt_feedback_drops_only_that_image(self, mock_post):
        self._run_with_second_body(mock_post, {"candidates": [], "promptFeedback": None})

    @patch('stock_metadata_ai.ai_providers.requests.post')
    def test_non_object_body_drops_only_that_image(self, mock_post):
        self._run_with_second_body(mock_post, ["unexpected"])

    @patch('stock_metadata_ai.ai_providers.requests.post')
    def test_unexpected_error_drops_only_that_image(self, mock_post):
        mock_post.side_effect = [
            self._response(200, "TITLE- First Image\nKEYWORDS- sky\n"),
            self._response(200, "TITLE- Third Image\nKEYWORDS- river\n"),
        ]
        prepare = self.provider.image_processor.prepare_image

        def flaky_prepare(image):
            if image.name == "two.jpg":
                raise ValueError("cannot encode")
            return prepare(image)

        with patch.object(self.provider.image_processor, 'prepare_image', side_effect=flaky_prepare):
            results = BatchProcessor(self.config, self.provider).generate_batch(self.images, "secret")

        self.assertEqual([r.title for r in results], ["First Image", "Third Image"])


class TestBatchWithImageProblems(unittest.TestCase):
    """Batch runs where one image cannot be decoded or is too large to open."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.config = AppConfig()
        self.config.preview_max_resolution = 1600
        self.provider = GeminiProvider(self.config, sleep=MagicMock())

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def _save(self, name, size):
        path = os.path.join(self.temp_dir, name)
        Image.new("RGB", size, (1, 2, 3)).save(path, format="PNG")
        return ImageFile.from_path(path)

    def _success(self, title):
        response = MagicMock()
        response.status_code = 200
        response.reason = "OK"
        response.json.return_value = {"candidates": [{"content": {"parts": [{"text": f"TITLE- {title}\n"}]}}]}
        return response

    @patch('stock_metadata_ai.ai_providers.requests.post')
    def test_oversized_image_does_not_abort_batch(self, mock_post):
        images = [self._save("one.png", (10, 10)), self._save("huge.png", (100, 100)), self._save("three.png", (10, 10))]
        mock_post.side_effect = [self._success("One"), self._success("Huge"), self._success("Three")]
        progress = MagicMock()

        with patch.object(Image, 'MAX_IMAGE_PIXELS', 1000):
            results = BatchProcessor(self.config, self.provider).generate_batch(
                images, "secret", progress_callback=progress)

        self.assertEqual([r.title for r in results], ["One", "Huge", "Three"])
        self.assertEqual(progress.call_args, call(3, 3))

    @patch('stock_metadata_ai.ai_providers.requests.post')
    def test_undecodable_image_is_sent_as_is(self, mock_post):
        broken_path = os.path.join(self.temp_dir, "broken.png")
        with open(broken_path, 'wb') as f:
            f.write(b"definitely not a png")
        images = [self._save("one.png", (10, 10)), ImageFile.from_path(broken_path)]
        mock_post.side_effect = [self._success("One"), self._success("Broken")]

        results = BatchProcessor(self.config, self.provider).generate_batch(images, "secret")

        self.assertEqual([r.title for r in results], ["One", "Broken"])


class TestBatchWithOpenRouterProvider(unittest.TestCase):
    """Batch runs against a mocked OpenRouter endpoint with unusual bodies."""

    def setUp(self):
        self.images = []
        self.temp_dir = tempfile.mkdtemp()
        for name in ("one.jpg", "two.jpg", "three.jpg"):
            path = os.path.join(self.temp_dir, name)
            with open(path, 'wb') as f:
                f.write(name.encode())
            self.images.append(ImageFile.from_path(path))

        self.config = AppConfig(provider=OpenRouterConfig())
        self.config.preview_max_resolution = None
        self.provider = OpenRouterProvider(self.config, sleep=MagicMock())

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    @staticmethod
    def _response(message):
        response = MagicMock()
        response.status_code = 200
        response.reason = "OK"
        response.json.return_value = {"choices": [{"message": message}]}
        return response

    @patch('stock_metadata_ai.ai_providers.requests.post')
    def test_malformed_content_drops_only_that_image(self, mock_post):
        mock_post.side_effect = [
            self._response({"content": "TITLE- First\n"}),
            self._response({"content": {"unexpected": True}}),
            self._response({"content": [{"type": "text", "text": "TITLE- Third\n"}]}),
        ]
        progress = MagicMock()

        results = BatchProcessor(self.config, self.provider).generate_batch(
            self.images, "key", progress_callback=progress)

        self.assertEqual([r.title for r in results], ["First", "Third"])
        self.assertEqual(progress.call_args, call(3, 3))


if __name__ == '__main__':
    unittest.main()
