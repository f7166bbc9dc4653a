"""
Configuration management for SongPrint.

Loads and validates configuration from YAML files with environment
variable interpolation support.
"""

import copy
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from songprint.utils.errors import ConfigurationError


class ConfigManager:
    """
    Manages application configuration loaded from YAML files.

    Features:
    - YAML configuration loading
    - Environment variable interpolation (${VAR_NAME})
    - Nested key access with dot notation
    - Default value support
    - Configuration validation
    """

    def __init__(self, config_dict: Optional[Dict[str, Any]] = None):
        """
        Initialize configuration manager.

        Args:
            config_dict: Optional pre-loaded configuration dictionary
        """
        self._config: Dict[str, Any] = config_dict or {}
        self._env_pattern = re.compile(r'\$\{([^}]+)\}')

    @classmethod
    def from_file(cls, file_path: Path) -> "ConfigManager":
        """
        Create ConfigManager from YAML file.

        Raises:
            ConfigurationError: If file cannot be loaded or parsed
        """
        if not file_path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {file_path}",
                config_key=str(file_path)
            )

        try:
            with open(file_path, 'r') as f:
                config_dict = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Failed to parse YAML configuration: {e}",
                config_key=str(file_path)
            ) from e

        if not isinstance(config_dict, dict):
            raise ConfigurationError(
                f"Configuration root must be a mapping, got {type(config_dict).__name__}",
                config_key=str(file_path)
            )

        manager = cls(config_dict)
        manager._interpolate_env_vars()
        return manager

    def _interpolate_env_vars(self) -> None:
        """Replace ${ENV_VAR} patterns with environment variable values."""
        self._config = self._interpolate(self._config)

    def _interpolate(self, value: Any) -> Any:
        if isinstance(value, dict):
            return {key: self._interpolate(item) for key, item in value.items()}
        if isinstance(value, list):
            return [self._interpolate(item) for item in value]
        if isinstance(value, str):
            return self._interpolate_string(value)
        return value

    def _interpolate_string(self, s: str) -> str:
        """Replace ${ENV_VAR} with environment variable value."""
        def replace(match: re.Match) -> str:
            value = os.environ.get(match.group(1))
            if value is None:
                return match.group(0)  # Keep original if not found
            return value

        return self._env_pattern.sub(replace, s)

    def get(
        self,
        key: str,
        default: Any = None,
        required: bool = False
    ) -> Any:
        """
        Get configuration value using dot notation.

        Example:
            config.get("fingerprint.fuzz_factor", default=2)
            config.get("index.path", required=True)

        Raises:
            ConfigurationError: If required key is not found
        """
        value = self._config

        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                if required:
                    raise ConfigurationError(
                        f"Required configuration key not found: {key}",
                        config_key=key
                    )
                return default

        return value

    def get_section(self, key: str) -> Dict[str, Any]:
        """Get an entire configuration section (empty dict if not found)."""
        value = self.get(key, default={})
        if not isinstance(value, dict):
            return {}
        return value

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value using dot notation."""
        keys = key.split('.')
        current = self._config

        for k in keys[:-1]:
            if k not in current:
                current[k] = {}
            current = current[k]

        current[keys[-1]] = value

    def to_dict(self) -> Dict[str, Any]:
        """Return configuration as dictionary."""
        return copy.deepcopy(self._config)

    def validate(self, schema: Dict[str, Any]) -> None:
        """
        Validate configuration against a schema.

        Schema format:
            {
                "fingerprint.fuzz_factor": {"type": int, "required": True},
                "matching.max_workers": {"type": int}
            }

        Raises:
            ConfigurationError: If validation fails
        """
        for key, rules in schema.items():
            value = self.get(key)
            expected_type = rules.get("type")

            if value is None:
                if rules.get("required", False):
                    raise ConfigurationError(
                        f"Required configuration missing: {key}",
                        config_key=key
                    )
                continue

            if expected_type and not isinstance(value, expected_type):
                raise ConfigurationError(
                    f"Invalid type for {key}: expected {expected_type.__name__}, "
                    f"got {type(value).__name__}",
                    config_key=key
                )


CONFIG_SCHEMA: Dict[str, Dict[str, Any]] = {
    "audio.target_sample_rate": {"type": int, "required": True},
    "audio.max_file_size": {"type": int},
    "transform.n_fft": {"type": int, "required": True},
    "transform.hop_length": {"type": int, "required": True},
    "fingerprint.bands": {"type": list, "required": True},
    "fingerprint.fuzz_factor": {"type": int, "required": True},
    "matching.max_workers": {"type": int},
    "index.path": {"type": str},
}


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from file, merged over the defaults.

    Args:
        config_path: Optional path to config file.
                    If None, tries "config/config.yaml" then "config.yaml"

    Returns:
        Dict[str, Any]: Configuration dictionary
    """
    if config_path is None:
        for path in (Path("config/config.yaml"), Path("config.yaml")):
            if path.exists():
                config_path = str(path)
                break
    elif not Path(config_path).exists():
        raise ConfigurationError(
            f"Configuration file not found: {config_path}",
            config_key=config_path
        )

    config = get_default_config()
    if config_path:
        manager = ConfigManager.from_file(Path(config_path))
        config = _deep_merge(config, manager.to_dict())

    ConfigManager(config).validate(CONFIG_SCHEMA)
    return config


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def get_default_config() -> Dict[str, Any]:
    """Return default configuration values."""
    return {
        "audio": {
            "supported_formats": [".wav", ".aiff", ".aif", ".mp3", ".flac", ".ogg"],
            "max_file_size": 524288000,  # 500MB
            "target_sample_rate": 11025,
        },
        "transform": {
            "n_fft": 4096,
            "hop_length": 4096,  # one non-overlapping frame per time slice
            "window": "hann",
        },
        "fingerprint": {
            "bands": [40, 80, 120, 180, 300],
            "fuzz_factor": 2,
        },
        "matching": {
            "max_workers": 1,
        },
        "ranking": {
            "top_n": None,
        },
        "index": {
            "path": "fingerprints",
        },
        "logging": {
            "level": "INFO",
            "format": "text",
            "file": None,
        },
    }


def fingerprint_settings(config: Dict[str, Any]) -> Tuple[Any, int]:
    """
    Build the band table and fuzz factor from the "fingerprint" section.

    Returns:
        Tuple of (BandTable, fuzz_factor)

    Raises:
        ConfigurationError: If bands or fuzz factor are invalid
    """
    from songprint.core.models import BandTable

    section = config.get("fingerprint", {})
    bands = section.get("bands")
    if not isinstance(bands, (list, tuple)) or not all(
        isinstance(b, int) and not isinstance(b, bool) for b in bands
    ):
        raise ConfigurationError(
            f"fingerprint.bands must be a list of integers, got {bands!r}",
            config_key="fingerprint.bands"
        )

    fuzz_factor = section.get("fuzz_factor", 2)
    if not isinstance(fuzz_factor, int) or isinstance(fuzz_factor, bool) or fuzz_factor < 1:
        raise ConfigurationError(
            f"fingerprint.fuzz_factor must be an integer >= 1, got {fuzz_factor!r}",
            config_key="fingerprint.fuzz_factor"
        )

    return BandTable(tuple(bands)), fuzz_factor
