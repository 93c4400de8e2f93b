"""
Command-line interface for the stock metadata generator.
"""

import os
import sys
import argparse

from tqdm import tqdm

from .config import AppConfig, load_config, build_provider_config
from .logging_setup import setup_logging, get_logger
from .ai_providers import AiProvider
from .batch_processor import BatchProcessor
from .csv_exporter import default_csv_filename, export_csv, export_json
from .filesystem import collect_images

logger = get_logger(__name__)


def parse_arguments(argv=None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        description="Generate microstock titles, descriptions and keywords for images with AI"
    )

    parser.add_argument(
        "paths",
        nargs="+",
        help="Image files or directories containing images"
    )

    parser.add_argument(
        "--config",
        default="config.json",
        help="Path to configuration JSON file (default: config.json, optional)"
    )

    parser.add_argument(
        "--api-key",
        help="API key for the inference provider (overrides config)"
    )

    parser.add_argument(
        "--provider",
        choices=["gemini", "openrouter"],
        help="Override AI provider from config file"
    )

    parser.add_argument(
        "--model",
        help="Override model name from config file"
    )

    parser.add_argument(
        "--output",
        help="CSV output path (default: microstock-metadata-<date>.csv)"
    )

    parser.add_argument(
        "--json",
        dest="json_output",
        help="Also save full results, including alternative titles, as JSON"
    )

    parser.add_argument(
        "--max-images",
        type=int,
        help="Override max images from config file"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode regardless of config setting"
    )

    return parser.parse_args(argv)


def process_arguments(args: argparse.Namespace, config: AppConfig) -> AppConfig:
    """
    Process command-line arguments and override config values.

    Args:
        args: Parsed arguments
        config: Loaded configuration

    Returns:
        Updated configuration
    """
    if args.provider and args.provider != config.provider.provider_type:
        config.provider = build_provider_config(args.provider, {})
    if args.api_key:
        config.provider.api_key = args.api_key
    if args.model:
        config.provider.model = args.model
    if args.debug:
        config.debug_mode = True
        config.log_level = "DEBUG"
    if args.max_images:
        config.max_images = args.max_images

    return config


def run_cli(argv=None) -> int:
    """
    Run the command-line interface.

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    config = None
    try:
        args = parse_arguments(argv)

        if os.path.exists(args.config):
            config = load_config(args.config)
        else:
            config = AppConfig()

        config = process_arguments(args, config)

        setup_logging(config)

        images = collect_images(args.paths, config.max_images, config.max_file_size_mb)
        if not images:
            logger.error("No images found to process")
            return 1

        with tqdm(total=len(images), unit="image", desc="Generating metadata") as progress:
            def on_progress(completed: int, total: int) -> None:
                progress.update(completed - progress.n)

            provider = AiProvider.get_provider(config, status_callback=tqdm.write)
            processor = BatchProcessor(config, provider)
            processor.generate_batch(images, config.provider.api_key, progress_callback=on_progress)

        stats = processor.stats
        logger.info(f"Successfully processed: {stats.successful_images}/{stats.total_images}")

        items = processor.completed_items()
        if not items:
            logger.error("Metadata generation failed for every image")
            return 1

        output_path = args.output or default_csv_filename()
        export_csv(items, output_path)
        if args.json_output:
            export_json(items, args.json_output)

        print(f"Exported metadata for {len(items)} of {len(images)} images to {output_path}")
        return 0

    except Exception as e:
        logger.error(f"Script execution failed: {str(e)}")
        if config is not None and config.debug_mode:
            import traceback
            logger.error(f"Traceback: {traceback.format_exc()}")
        return 1
