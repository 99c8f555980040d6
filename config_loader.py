"""Configuration loader with YAML support and environment variable substitution."""

import copy
import os
import re
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import yaml
from dotenv import load_dotenv

from fetchers.cache_manager import parse_duration


DEFAULT_SCOPES = [
    'https://www.googleapis.com/auth/drive.readonly',
    'https://www.googleapis.com/auth/documents.readonly',
]

DEFAULT_CONFIG: Dict[str, Any] = {
    'google': {
        'client_email': None,
        'private_key': None,
        'scopes': DEFAULT_SCOPES,
        'token_uri': 'https://oauth2.googleapis.com/token',
        'docs_api_url': 'https://docs.googleapis.com',
        'drive_api_url': 'https://www.googleapis.com',
    },
    'drive': {
        'folder_id': None,
        'include_shared_drives': False,
    },
    'site': {
        'output_directory': './_site',
        'path_prefix': '/',
        'title': 'Documentation',
        'readme': 'README.md',
    },
    'images': {
        'output_directory': None,
        'url_path': '/img/',
        'format': 'webp',
        'max_workers': 8,
    },
    'advanced': {
        'request_timeout': 30,
        'max_retries': 0,
        'retry_backoff_factor': 2.0,
        'cache': {
            'enabled': True,
            'directory': './.cache',
            'duration': '1d',
        },
    },
    'logging': {
        'level': None,
        'file': None,
        'progress_bar': True,
    },
}

# Environment variables read once at startup, mapped onto config paths
ENV_OVERRIDES = {
    'GOOGLE_CLIENT_EMAIL': 'google.client_email',
    'GOOGLE_PRIVATE_KEY': 'google.private_key',
    'GOOGLE_DRIVE_FOLDER': 'drive.folder_id',
    'PATH_PREFIX': 'site.path_prefix',
}

SUPPORTED_IMAGE_FORMATS = ['auto', 'webp', 'jpeg', 'png', 'gif', 'avif']


class ConfigLoader:
    """Handles loading and validation of configuration files."""

    ENV_VAR_PATTERN = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*)\}')

    @classmethod
    def load(cls, config_path: str) -> Dict[str, Any]:
        """
        Load configuration from YAML file with environment variable substitution.

        The file is layered over DEFAULT_CONFIG and the process environment,
        so a partial file is enough.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            Parsed configuration dictionary

        Raises:
            FileNotFoundError: If config file doesn't exist
            yaml.YAMLError: If YAML parsing fails
        """
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f)

        if config_data is None:
            config_data = {}
        if not isinstance(config_data, dict):
            raise ValueError("Configuration file must contain a dictionary")

        config_data = cls._substitute_env_vars_recursive(config_data)
        config_data = cls._drop_unresolved(config_data)

        merged = _deep_merge(cls.from_environment(), config_data)
        return merged

    @classmethod
    def from_environment(cls, env_file: Optional[str] = '.env') -> Dict[str, Any]:
        """
        Build configuration from defaults and environment variables only.

        Args:
            env_file: Optional dotenv file to load first (missing file is fine)

        Returns:
            Configuration dictionary
        """
        if env_file:
            load_dotenv(env_file)

        config = copy.deepcopy(DEFAULT_CONFIG)
        for var_name, path in ENV_OVERRIDES.items():
            value = os.getenv(var_name)
            if value:
                set_nested(config, path, value)

        return config

    @classmethod
    def validate(cls, config: Dict[str, Any]) -> None:
        """
        Validate configuration for required fields and correct values.

        Args:
            config: Configuration dictionary to validate

        Raises:
            ValueError: If validation fails
        """
        cls._validate_required_field(config, 'google.client_email')
        cls._validate_required_field(config, 'google.private_key')
        cls._validate_required_field(config, 'drive.folder_id')

        scopes = get_nested(config, 'google.scopes', [])
        if not isinstance(scopes, list) or not scopes:
            raise ValueError("google.scopes must be a non-empty list")

        for field_name in ['google.token_uri', 'google.docs_api_url', 'google.drive_api_url']:
            url = get_nested(config, field_name)
            if url:
                cls._validate_url(url, field_name)

        path_prefix = get_nested(config, 'site.path_prefix', '/')
        if not isinstance(path_prefix, str) or not path_prefix.startswith('/'):
            raise ValueError("site.path_prefix must be a string starting with /")

        output_dir = get_nested(config, 'site.output_directory')
        if not output_dir:
            raise ValueError("Missing required configuration: site.output_directory")
        if os.path.exists(output_dir) and not os.path.isdir(output_dir):
            raise ValueError(f"site.output_directory '{output_dir}' is not a directory")

        image_format = get_nested(config, 'images.format', 'webp')
        if image_format not in SUPPORTED_IMAGE_FORMATS:
            raise ValueError(f"images.format must be one of: {SUPPORTED_IMAGE_FORMATS}")

        max_workers = get_nested(config, 'images.max_workers', 8)
        if not isinstance(max_workers, int) or max_workers < 1:
            raise ValueError("images.max_workers must be a positive integer")

        timeout = get_nested(config, 'advanced.request_timeout', 30)
        if not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ValueError("advanced.request_timeout must be a positive number")

        max_retries = get_nested(config, 'advanced.max_retries', 0)
        if not isinstance(max_retries, int) or max_retries < 0:
            raise ValueError("advanced.max_retries must be a non-negative integer")

        duration = get_nested(config, 'advanced.cache.duration', '1d')
        try:
            parse_duration(duration)
        except ValueError as e:
            raise ValueError(f"advanced.cache.duration is invalid: {e}")

    @classmethod
    def merge_with_args(cls, config: Dict[str, Any], args) -> Dict[str, Any]:
        """
        Merge configuration with CLI arguments.
        CLI arguments take precedence over config file and environment values.

        Args:
            config: Base configuration dictionary
            args: CLI arguments with attributes matching config keys

        Returns:
            Merged configuration dictionary
        """
        merged = copy.deepcopy(config)

        if getattr(args, 'folder_id', None):
            set_nested(merged, 'drive.folder_id', args.folder_id)

        if getattr(args, 'output_dir', None):
            output_dir = args.output_dir.rstrip('/') or '.'
            set_nested(merged, 'site.output_directory', output_dir)
            set_nested(merged, 'images.output_directory', os.path.join(output_dir, 'img'))

        if getattr(args, 'path_prefix', None):
            set_nested(merged, 'site.path_prefix', args.path_prefix)

        if getattr(args, 'no_cache', False):
            set_nested(merged, 'advanced.cache.enabled', False)

        if getattr(args, 'log_file', None):
            set_nested(merged, 'logging.file', args.log_file)

        verbose = getattr(args, 'verbose', 0)
        if verbose:
            set_nested(merged, 'logging.level', 'DEBUG' if verbose >= 2 else 'INFO')

        return merged

    @classmethod
    def _substitute_env_vars_recursive(cls, data: Any) -> Any:
        """Recursively substitute environment variables in data structure."""
        if isinstance(data, dict):
            return {key: cls._substitute_env_vars_recursive(value) for key, value in data.items()}
        elif isinstance(data, list):
            return [cls._substitute_env_vars_recursive(item) for item in data]
        elif isinstance(data, str):
            return cls._substitute_env_vars(data)
        else:
            return data

    @classmethod
    def _substitute_env_vars(cls, value: str) -> str:
        """Substitute environment variables in a string value."""
        def replace_match(match):
            var_name = match.group(1)
            env_value = os.getenv(var_name)
            return env_value if env_value is not None else match.group(0)

        return cls.ENV_VAR_PATTERN.sub(replace_match, value)

    @classmethod
    def _drop_unresolved(cls, data: Any) -> Any:
        """Remove values that still reference an unset environment variable."""
        if isinstance(data, dict):
            return {
                key: cls._drop_unresolved(value)
                for key, value in data.items()
                if not (isinstance(value, str) and cls.ENV_VAR_PATTERN.search(value))
            }
        return data

    @staticmethod
    def _validate_required_field(config_section: dict, field: str) -> None:
        """Validate that a required field exists and has a value."""
        value = get_nested(config_section, field)
        if value is None or value == '':
            env_names = [name for name, path in ENV_OVERRIDES.items() if path == field]
            hint = f" (set {env_names[0]})" if env_names else ""
            raise ValueError(f"Missing required configuration: {field}{hint}")

    @staticmethod
    def _validate_url(url: str, field_name: str) -> None:
        """Validate URL format."""
        parsed = urlparse(url)
        if not parsed.scheme or parsed.scheme not in ['http', 'https']:
            raise ValueError(f"{field_name} must use http or https scheme: {url}")
        if not parsed.netloc:
            raise ValueError(f"{field_name} missing hostname: {url}")


def get_nested(config: dict, path: str, default: Any = None) -> Any:
    """Safely retrieve nested configuration values using dot notation.

    Args:
        config: Configuration dictionary
        path: Dot-separated path (e.g., "google.client_email")
        default: Default value if path doesn't exist

    Returns:
        Value at the nested path or default
    """
    keys = path.split('.')
    value = config

    for key in keys:
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default

    return value


def set_nested(config: dict, path: str, value: Any) -> None:
    """Set a nested configuration value using dot notation, creating sections."""
    keys = path.split('.')
    section = config
    for key in keys[:-1]:
        if not isinstance(section.get(key), dict):
            section[key] = {}
        section = section[key]
    section[keys[-1]] = value


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge override into a copy of base, recursing into nested sections."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


__all__ = ['ConfigLoader', 'DEFAULT_CONFIG', 'get_nested', 'set_nested']
