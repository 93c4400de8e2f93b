"""
Logging configuration for the stock metadata generator.
"""

import logging
import os
import sys


def setup_logging(config) -> None:
    """
    Configure logging based on settings.

    Args:
        config: Application configuration
    """
    log_level = getattr(logging, str(config.log_level).upper(), logging.INFO)
    log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    log_file = config.log_file
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)

        logging.basicConfig(
            filename=log_file,
            level=log_level,
            format=log_format
        )

        # Also log to console if debug mode is enabled
        if config.debug_mode:
            console = logging.StreamHandler(sys.stderr)
            console.setLevel(log_level)
            console.setFormatter(logging.Formatter(log_format))
            logging.getLogger('').addHandler(console)
    else:
        logging.basicConfig(
            level=log_level,
            format=log_format
        )

    # Set level for third-party loggers to reduce noise
    logging.getLogger('PIL').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('requests').setLevel(logging.WARNING)

    provider_type = getattr(config.provider, 'provider_type', 'unknown')
    logging.info(f"Logging initialized. Using AI provider: {provider_type}")

    if config.debug_mode:
        logging.debug("Debug mode enabled")
        logging.debug(f"Python version: {sys.version}")
        logging.debug(f"Platform: {sys.platform}")
        logging.debug("Configuration summary:")
        logging.debug(f"  Max retries: {config.max_retries}")
        logging.debug(f"  Request timeout: {config.request_timeout}s")
        logging.debug(f"  Max preview resolution: {config.preview_max_resolution}")
        logging.debug(f"  Max keywords: {config.max_keywords}")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the specified name.

    Args:
        name: Name for the logger

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
