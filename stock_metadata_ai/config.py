"""
Configuration handling for the stock metadata generator.
"""

import json
import os
import re
from dataclasses import dataclass, field, asdict
from typing import Optional, List, Dict, Any, Union


DEFAULT_GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"
DEFAULT_OPENROUTER_API_URL = "https://openrouter.ai/api/v1/chat/completions"
DEFAULT_OPENROUTER_MODEL = "google/gemini-2.5-flash"


@dataclass
class AiProviderConfig:
    """Base class for AI provider configurations."""
    provider_type: str


@dataclass
class GeminiConfig(AiProviderConfig):
    """Google Gemini API configuration."""
    provider_type: str = "gemini"
    api_key: str = ""
    api_url: str = DEFAULT_GEMINI_API_URL
    model: str = DEFAULT_GEMINI_MODEL


@dataclass
class OpenRouterConfig(AiProviderConfig):
    """OpenRouter API configuration."""
    provider_type: str = "openrouter"
    api_key: str = ""
    api_url: str = DEFAULT_OPENROUTER_API_URL
    model: str = DEFAULT_OPENROUTER_MODEL
    site_url: str = "https://stock-metadata-ai.example.com"
    title: str = "Stock Metadata AI"


@dataclass
class AppConfig:
    """Main application configuration."""
    provider: Union[GeminiConfig, OpenRouterConfig] = field(default_factory=GeminiConfig)
    max_retries: int = 3
    retry_base_delay: float = 1.0  # Seconds before the first retry, doubled after each one
    overload_status_code: int = 503
    request_timeout: int = 60
    preview_max_resolution: Optional[int] = 1600
    jpeg_quality: int = 85
    max_keywords: int = 50
    synonym_groups: List[List[str]] = field(default_factory=list)  # Empty means the built-in table
    max_images: int = 100
    max_file_size_mb: int = 60
    log_level: str = "INFO"
    log_file: Optional[str] = None
    debug_mode: bool = False


def _substitute_env_vars(value: Any) -> Any:
    """
    Substitute environment variables in string values.

    Args:
        value: Value to process for environment variables

    Returns:
        Value with environment variables substituted
    """
    if not isinstance(value, str):
        return value

    # Pattern to match ${ENV_VAR} syntax
    pattern = r'\${([^}]+)}'

    def replace_env_var(match):
        env_var = match.group(1)
        env_value = os.environ.get(env_var)
        if env_value is None:
            print(f"Warning: Environment variable {env_var} not found")
            return ""
        return env_value

    return re.sub(pattern, replace_env_var, value)


def _process_config_dict(config_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    Process a configuration dictionary to substitute environment variables.

    Args:
        config_dict: Dictionary containing configuration values

    Returns:
        Processed dictionary with environment variables substituted
    """
    result = {}

    for key, value in config_dict.items():
        if isinstance(value, dict):
            result[key] = _process_config_dict(value)
        elif isinstance(value, list):
            result[key] = [
                _process_config_dict(item) if isinstance(item, dict) else _substitute_env_vars(item)
                for item in value
            ]
        else:
            result[key] = _substitute_env_vars(value)

    return result


def build_provider_config(provider_type: str, config_dict: Dict[str, Any]) -> Union[GeminiConfig, OpenRouterConfig]:
    """
    Create the provider-specific config, consuming its flat keys from config_dict.

    Args:
        provider_type: Provider name ("gemini" or "openrouter")
        config_dict: Flat configuration dictionary; provider keys are popped

    Returns:
        Provider configuration object

    Raises:
        ValueError: If the provider is not supported
    """
    if provider_type == 'gemini':
        return GeminiConfig(
            api_key=config_dict.pop('gemini_api_key', ''),
            api_url=config_dict.pop('gemini_api_url', DEFAULT_GEMINI_API_URL),
            model=config_dict.pop('gemini_model', DEFAULT_GEMINI_MODEL)
        )
    elif provider_type == 'openrouter':
        return OpenRouterConfig(
            api_key=config_dict.pop('openrouter_api_key', ''),
            api_url=config_dict.pop('openrouter_api_url', DEFAULT_OPENROUTER_API_URL),
            model=config_dict.pop('openrouter_model', DEFAULT_OPENROUTER_MODEL),
            site_url=config_dict.pop('openrouter_site_url', "https://stock-metadata-ai.example.com"),
            title=config_dict.pop('openrouter_title', "Stock Metadata AI")
        )
    raise ValueError(f"Unsupported AI provider: {provider_type}")


def load_config(config_path: str) -> AppConfig:
    """
    Load and validate configuration from JSON file.

    Args:
        config_path: Path to the configuration JSON file

    Returns:
        AppConfig object

    Raises:
        ValueError: If the configuration is invalid
        RuntimeError: If the configuration file cannot be loaded
    """
    config_path = os.path.abspath(os.path.expanduser(config_path))

    try:
        with open(config_path, 'r') as cfg:
            config_dict = json.load(cfg)
    except (json.JSONDecodeError, IOError) as e:
        raise RuntimeError(f"Failed to load configuration from {config_path}: {str(e)}")

    if not isinstance(config_dict, dict):
        raise ValueError("Configuration must be a JSON object")

    config_dict = _process_config_dict(config_dict)

    provider_type = str(config_dict.pop('provider', 'gemini')).lower()
    provider_config = build_provider_config(provider_type, config_dict)

    known_fields = set(AppConfig.__dataclass_fields__)
    unknown = sorted(key for key in config_dict if key not in known_fields)
    if unknown:
        raise ValueError(f"Unknown configuration fields: {', '.join(unknown)}")

    _validate_settings(config_dict)

    return AppConfig(provider=provider_config, **config_dict)


def _validate_settings(config_dict: Dict[str, Any]) -> None:
    """
    Check values that would otherwise fail silently later on.

    Raises:
        ValueError: If max_keywords or synonym_groups is malformed
    """
    max_keywords = config_dict.get('max_keywords', 1)
    if isinstance(max_keywords, bool) or not isinstance(max_keywords, int) or max_keywords < 1:
        raise ValueError(f"max_keywords must be a positive integer, got {max_keywords!r}")

    synonym_groups = config_dict.get('synonym_groups', [])
    if not isinstance(synonym_groups, list):
        raise ValueError("synonym_groups must be a list of lists of terms")
    for group in synonym_groups:
        if not isinstance(group, list) or not all(isinstance(term, str) for term in group):
            raise ValueError(f"Each synonym group must be a list of strings, got {group!r}")


def save_config(config: AppConfig, config_path: str) -> None:
    """
    Save configuration to JSON file.

    Args:
        config: AppConfig object
        config_path: Path to save the configuration

    Raises:
        RuntimeError: If the configuration cannot be saved
    """
    try:
        config_dict = asdict(config)

        provider_config = config_dict.pop('provider', {})
        provider_type = provider_config.pop('provider_type', 'gemini')
        config_dict['provider'] = provider_type

        if provider_type == 'gemini':
            config_dict['gemini_api_key'] = provider_config.get('api_key', '')
            config_dict['gemini_api_url'] = provider_config.get('api_url', '')
            config_dict['gemini_model'] = provider_config.get('model', '')
        elif provider_type == 'openrouter':
            config_dict['openrouter_api_key'] = provider_config.get('api_key', '')
            config_dict['openrouter_api_url'] = provider_config.get('api_url', '')
            config_dict['openrouter_model'] = provider_config.get('model', '')
            config_dict['openrouter_site_url'] = provider_config.get('site_url', '')
            config_dict['openrouter_title'] = provider_config.get('title', '')

        with open(config_path, 'w') as f:
            json.dump(config_dict, f, indent=2)
    except (IOError, TypeError) as e:
        raise RuntimeError(f"Failed to save configuration: {str(e)}")
