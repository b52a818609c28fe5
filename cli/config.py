#!/usr/bin/env python3
"""
Configuration Management Module for relaysig CLI

Handles hierarchical configuration loading (defaults, config file,
environment variables) and resolution of the signer's secret key.
"""

import os
import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional, List, Union

import yaml

# Configuration file locations in order of precedence (highest to lowest)
CONFIG_SEARCH_PATHS = [
    Path.cwd() / '.relaysig.yml',               # Project-specific YAML
    Path.cwd() / '.relaysig.json',              # Project-specific JSON
    Path.home() / '.relaysig' / 'config.yml',   # User global YAML
    Path.home() / '.relaysig' / 'config.json',  # User global JSON
]

# Environment variable prefix
ENV_PREFIX = 'RELAYSIG_'

# Well-known secret key 1. Only ever used when explicitly requested.
TEST_ONLY_SECRET_KEY = '0000000000000000000000000000000000000000000000000000000000000001'

REDACTED = '<redacted>'

# Default configuration values
DEFAULT_CONFIG = {
    # Signer identity
    'signer': {
        'sec': None,         # hex secret key
        'insecure': False,   # allow TEST_ONLY_SECRET_KEY when no key is set
    },

    # CLI behavior
    'cli': {
        'verbose': 0,
        'program': 'relaysig',   # executable name used in resume commands
        'output': 'json',        # json, yaml
    },
}


class ConfigurationError(Exception):
    """Raised when configuration is missing or invalid."""
    pass


class ConfigurationManager:
    """Manages hierarchical configuration with environment variable support."""

    def __init__(self, config_file: Optional[str] = None,
                 environ: Optional[Dict[str, str]] = None):
        """
        Initialize configuration manager.

        Args:
            config_file: Explicit configuration file path
            environ: Environment mapping (defaults to os.environ)
        """
        self.logger = logging.getLogger('relaysig.config')
        self.config_file = config_file
        self.environ = os.environ if environ is None else environ
        self._config_cache = None
        self._config_sources = []

    def load(self) -> Dict[str, Any]:
        """
        Load configuration from all sources in hierarchical order.

        Returns:
            Merged configuration dictionary
        """
        if self._config_cache is not None:
            return self._config_cache

        configs = []

        # 1. Start with default configuration
        configs.append(DEFAULT_CONFIG)
        self._config_sources.append("defaults")

        # 2. Load configuration files
        if self.config_file:
            path = Path(self.config_file)
            if not path.exists():
                raise ConfigurationError(f"Config file not found: {path}")
            configs.append(self._load_config_file(path))
            self._config_sources.append(f"file:{self.config_file}")
        else:
            for config_path in CONFIG_SEARCH_PATHS:
                if config_path.exists():
                    configs.append(self._load_config_file(config_path))
                    self._config_sources.append(f"file:{config_path}")
                    self.logger.debug(f"Loaded config from {config_path}")
                    break  # Use first found config file

        # 3. Apply environment variables
        env_config = self._load_environment_variables()
        if env_config:
            configs.append(env_config)
            self._config_sources.append("environment")

        # Merge all configurations (later ones override earlier ones)
        self._config_cache = self._deep_merge(*configs)
        return self._config_cache

    def _load_config_file(self, path: Path) -> Dict[str, Any]:
        """Load configuration from file."""
        try:
            with open(path, 'r') as f:
                if path.suffix in ['.yml', '.yaml']:
                    data = yaml.safe_load(f)
                elif path.suffix == '.json':
                    data = json.load(f)
                else:
                    raise ConfigurationError(f"Unknown config file format: {path}")
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Failed to load config from {path}: {e}")

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping")
        return data

    def _load_environment_variables(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        env_config = {}

        for key, value in self.environ.items():
            if key.startswith(ENV_PREFIX):
                # e.g., RELAYSIG_SIGNER_SEC -> {'signer': {'sec': value}}
                parts = key[len(ENV_PREFIX):].lower().split('_')
                current = env_config

                for part in parts[:-1]:
                    if part not in current:
                        current[part] = {}
                    current = current[part]

                current[parts[-1]] = self._parse_env_value(value)

        return env_config

    def _parse_env_value(self, value: str) -> Union[str, int, bool]:
        """
        Parse environment variable value to appropriate type.

        Hex strings stay strings even when they happen to be all digits.
        """
        if value.lower() in ['true', 'yes']:
            return True
        elif value.lower() in ['false', 'no']:
            return False

        if value.isdigit() and len(value) < 16:
            return int(value)

        return value

    def _deep_merge(self, *dicts: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge multiple dictionaries."""
        result = {}

        for dictionary in dicts:
            for key, value in dictionary.items():
                if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                    result[key] = self._deep_merge(result[key], value)
                elif isinstance(value, dict):
                    result[key] = self._deep_merge(value)
                else:
                    result[key] = value

        return result

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-notation path.

        Args:
            key_path: Dot-separated path (e.g., 'signer.sec')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        current = self.load()

        for key in key_path.split('.'):
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default

        return current

    def get_sources(self) -> List[str]:
        """Get list of configuration sources that were loaded."""
        self.load()
        return self._config_sources

    def redacted(self) -> Dict[str, Any]:
        """Merged configuration with the secret key hidden."""
        config = self._deep_merge(self.load())
        signer = config.get('signer')
        if isinstance(signer, dict) and signer.get('sec'):
            config['signer']['sec'] = REDACTED
        return config

    def validate(self) -> List[str]:
        """
        Validate current configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        for section in DEFAULT_CONFIG:
            if not isinstance(self.get(section), dict):
                errors.append(f"{section} must be a mapping, got {self.get(section)!r}")
        if errors:
            return errors

        sec = self.get('signer.sec')
        if sec is not None:
            if not isinstance(sec, str) or len(sec) != 64:
                errors.append("signer.sec must be a 64 character hex string")
            else:
                try:
                    bytes.fromhex(sec)
                except ValueError:
                    errors.append("signer.sec is not valid hex")

        if not isinstance(self.get('signer.insecure'), bool):
            errors.append("signer.insecure must be true or false")

        if self.get('cli.output') not in ['json', 'yaml']:
            errors.append(f"Invalid output format: {self.get('cli.output')}")

        if not self.get('cli.program'):
            errors.append("cli.program must not be empty")

        return errors


def resolve_secret_key(manager: ConfigurationManager,
                       cli_value: Optional[str] = None,
                       insecure: bool = False) -> str:
    """
    Pick the signer's secret key.

    The command line wins over configuration. There is no silent default:
    the well-known test key is used only if insecure mode was asked for on
    the command line or in configuration.

    Raises:
        ConfigurationError: If no key is available
    """
    if cli_value:
        return cli_value

    configured = manager.get('signer.sec')
    if configured:
        return str(configured)

    if insecure or manager.get('signer.insecure') is True:
        manager.logger.warning(
            "INSECURE TEST MODE: signing with the publicly known secret key 1. "
            "Never use this outside of tests.")
        return TEST_ONLY_SECRET_KEY

    raise ConfigurationError(
        f"No secret key given. Pass --sec or set {ENV_PREFIX}SIGNER_SEC.")
