"""Configuration loader with YAML support, .env loading and environment variable substitution."""

import copy
import os
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

import yaml
from dotenv import dotenv_values


# Environment keys understood by ConfigLoader.from_env, mapped to config paths
ENV_KEY_MAP = {
    'CONFLUENCE_BASE_URL': 'confluence.base_url',
    'CONFLUENCE_PATH_URL': 'confluence.context_path',
    'CONFLUENCE_USER': 'confluence.username',
    'CONFLUENCE_API_TOKEN': 'confluence.api_token',
    'CONFLUENCE_SPACES': 'confluence.spaces',
    'CONFLUENCE_DUMP_DIR': 'export.dump_dir',
    'CONFLUENCE_LIMIT': 'export.page_limit',
    'MIN_PAGE_LENGTH': 'export.min_page_length',
    'DELETE_PREVIOUS_DUMP': 'export.delete_previous_dump',
    'SKIP_FETCHED_PAGES': 'export.skip_fetched_pages',
    'SAVE_PAGES_TO_LOCAL_FS': 'export.save_pages_to_local_fs',
    'DEBUG': 'logging.debug',
    'OLLAMA_HOST': 'ollama.base_url',
    'OLLAMA_MODEL': 'ollama.model',
    'OLLAMA_NUM_CTX': 'ollama.num_ctx',
    'OLLAMA_NUM_PREDICT': 'ollama.num_predict',
}

BOOLEAN_PATHS = {
    'export.delete_previous_dump',
    'export.skip_fetched_pages',
    'export.save_pages_to_local_fs',
    'logging.debug',
}

INTEGER_PATHS = {
    'export.page_limit',
    'export.min_page_length',
    'ollama.num_ctx',
    'ollama.num_predict',
}

DEFAULT_PAGE_LIMIT = 50


class ConfigLoader:
    """Handles loading and validation of configuration files."""

    ENV_VAR_PATTERN = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*)\}')

    @classmethod
    def load(cls, config_path: str) -> Dict[str, Any]:
        """
        Load configuration from YAML file with environment variable substitution.

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

        if not isinstance(config_data, dict):
            raise ValueError("Configuration file must contain a dictionary")

        # Substitute environment variables recursively
        config_data = cls._substitute_env_vars_recursive(config_data)

        return config_data

    @classmethod
    def from_env(
        cls,
        env_file: Optional[str] = '.env',
        environ: Optional[Dict[str, str]] = None
    ) -> Dict[str, Any]:
        """
        Build a configuration dictionary from environment variables.

        Values from ``env_file`` (when it exists) are overridden by the process
        environment, matching the usual dotenv precedence.

        Args:
            env_file: Optional path to a .env file
            environ: Environment mapping (defaults to os.environ)

        Returns:
            Configuration dictionary containing only the keys that were set
        """
        values: Dict[str, Optional[str]] = {}
        if env_file and os.path.isfile(env_file):
            values.update(dotenv_values(env_file))
        values.update(os.environ if environ is None else environ)

        config: Dict[str, Any] = {}
        for env_key, path in ENV_KEY_MAP.items():
            raw_value = values.get(env_key)
            if raw_value is None or raw_value == '':
                continue
            set_nested(config, path, cls._coerce(path, raw_value))

        return config

    @classmethod
    def merge(cls, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep-merge two configuration dictionaries; ``override`` wins."""
        merged = copy.deepcopy(base)
        for key, value in override.items():
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key] = cls.merge(merged[key], value)
            else:
                merged[key] = copy.deepcopy(value)
        return merged

    @classmethod
    def validate(cls, config: Dict[str, Any], require_remote: bool = True) -> None:
        """
        Validate configuration for required fields and correct values.

        Args:
            config: Configuration dictionary to validate
            require_remote: Whether Confluence credentials and spaces are needed

        Raises:
            ValueError: If validation fails
        """
        cls._validate_required_field(config, 'export.dump_dir')
        dump_dir = get_nested(config, 'export.dump_dir')
        if os.path.exists(dump_dir) and not os.path.isdir(dump_dir):
            raise ValueError(f"export.dump_dir '{dump_dir}' is not a directory")

        page_limit = get_nested(config, 'export.page_limit', DEFAULT_PAGE_LIMIT)
        if not isinstance(page_limit, int) or isinstance(page_limit, bool) or page_limit < 1:
            raise ValueError("export.page_limit must be a positive integer")

        min_page_length = get_nested(config, 'export.min_page_length', 0)
        if not isinstance(min_page_length, int) or isinstance(min_page_length, bool) or min_page_length < 0:
            raise ValueError("export.min_page_length must be a non-negative integer")

        for path in sorted(BOOLEAN_PATHS):
            value = get_nested(config, path)
            if value is not None and not isinstance(value, bool):
                raise ValueError(f"{path} must be a boolean")

        timeout = get_nested(config, 'advanced.request_timeout')
        if timeout is not None and (not isinstance(timeout, (int, float)) or timeout <= 0):
            raise ValueError("advanced.request_timeout must be a positive number")

        max_retries = get_nested(config, 'advanced.max_retries', 0)
        if not isinstance(max_retries, int) or max_retries < 0:
            raise ValueError("advanced.max_retries must be a non-negative integer")

        if not require_remote:
            return

        cls._validate_required_field(config, 'confluence.base_url')
        cls._validate_url(get_nested(config, 'confluence.base_url'), 'confluence.base_url')
        cls._validate_required_field(config, 'confluence.username')
        cls._validate_required_field(config, 'confluence.api_token')

        if not parse_spaces(get_nested(config, 'confluence.spaces')):
            raise ValueError("Missing required configuration: confluence.spaces")

    @classmethod
    def merge_with_args(cls, config: Dict[str, Any], args) -> Dict[str, Any]:
        """
        Merge configuration with CLI arguments.
        CLI arguments take precedence over config file values.

        Args:
            config: Base configuration dictionary
            args: CLI arguments with attributes matching config keys

        Returns:
            Merged configuration dictionary
        """
        merged = copy.deepcopy(config)

        for section in ('confluence', 'export', 'logging'):
            merged.setdefault(section, {})

        if getattr(args, 'spaces', None):
            merged['confluence']['spaces'] = args.spaces

        if getattr(args, 'dump_dir', None):
            merged['export']['dump_dir'] = args.dump_dir

        if getattr(args, 'skip_fetched', None) is not None:
            merged['export']['skip_fetched_pages'] = args.skip_fetched

        if getattr(args, 'delete_previous_dump', None) is not None:
            merged['export']['delete_previous_dump'] = args.delete_previous_dump

        verbose = getattr(args, 'verbose', 0) or 0
        if verbose >= 2:
            merged['logging']['level'] = 'DEBUG'
        elif verbose == 1 and not merged['logging'].get('level'):
            merged['logging']['level'] = 'INFO'

        return merged

    @classmethod
    def _coerce(cls, path: str, raw_value: str) -> Any:
        """Convert an environment string to the type expected at ``path``."""
        if path in BOOLEAN_PATHS:
            return raw_value.strip().lower() == 'true'
        if path in INTEGER_PATHS:
            try:
                return int(raw_value.strip())
            except ValueError:
                raise ValueError(f"{path} must be an integer, got '{raw_value}'")
        return raw_value

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

    @staticmethod
    def _validate_required_field(config_section: dict, field: str) -> None:
        """Validate that a required field exists and has a value."""
        value = get_nested(config_section, field)
        if value is None or value == '':
            raise ValueError(f"Missing required configuration: {field}")

        # Check for unsubstituted environment variables
        if isinstance(value, str) and '${' in value:
            match = ConfigLoader.ENV_VAR_PATTERN.search(value)
            var_name = match.group(1) if match else value
            raise ValueError(
                f"Configuration field '{field}' contains unsubstituted environment variable: {value}. "
                f"Please set the {var_name} environment variable or provide a value in config file."
            )

    @staticmethod
    def _validate_url(url: str, field_name: str) -> None:
        """Validate URL format."""
        parsed = urlparse(url)
        if not parsed.scheme or parsed.scheme not in ['http', 'https']:
            raise ValueError(f"{field_name} must use http or https scheme: {url}")
        if not parsed.netloc:
            raise ValueError(f"{field_name} missing hostname: {url}")


@dataclass(frozen=True)
class ExportSettings:
    """Explicit settings handed to every ingestion component."""

    dump_dir: str
    base_url: str = ''
    context_path: str = ''
    spaces: Tuple[str, ...] = ()
    page_limit: int = DEFAULT_PAGE_LIMIT
    min_page_length: int = 0
    delete_previous_dump: bool = False
    skip_fetched_pages: bool = False
    save_pages_to_local_fs: bool = True
    debug: bool = False

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'ExportSettings':
        """Read settings once from a validated configuration dictionary."""
        return cls(
            dump_dir=get_nested(config, 'export.dump_dir'),
            base_url=(get_nested(config, 'confluence.base_url') or '').rstrip('/'),
            context_path=get_nested(config, 'confluence.context_path') or '',
            spaces=tuple(parse_spaces(get_nested(config, 'confluence.spaces'))),
            page_limit=get_nested(config, 'export.page_limit', DEFAULT_PAGE_LIMIT),
            min_page_length=get_nested(config, 'export.min_page_length', 0),
            delete_previous_dump=get_nested(config, 'export.delete_previous_dump', False),
            skip_fetched_pages=get_nested(config, 'export.skip_fetched_pages', False),
            save_pages_to_local_fs=get_nested(config, 'export.save_pages_to_local_fs', True),
            debug=get_nested(config, 'logging.debug', False)
        )


def parse_spaces(value: Any) -> List[str]:
    """Split a comma-separated space list (or a YAML list) into space keys."""
    if not value:
        return []
    if isinstance(value, str):
        value = value.split(',')
    return [str(key).strip() for key in value if str(key).strip()]


def get_nested(config: dict, path: str, default: Any = None) -> Any:
    """Safely retrieve nested configuration values using dot notation.

    Args:
        config: Configuration dictionary
        path: Dot-separated path (e.g., "confluence.base_url")
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
        section = section.setdefault(key, {})
    section[keys[-1]] = value


__all__ = ['ConfigLoader', 'ExportSettings', 'get_nested', 'set_nested', 'parse_spaces']
