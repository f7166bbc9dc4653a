"""
Utility modules for configuration, logging, and error handling.
"""

from songprint.utils.errors import (
    FingerprintError,
    ConfigurationError,
    InputError,
    IndexLookupError,
    NotFoundError,
    AudioLoadError,
    UnsupportedFormatError,
    FileTooLargeError,
    RecognitionCancelledError,
)
from songprint.utils.logging import get_logger, setup_logging, JSONFormatter
from songprint.utils.config import ConfigManager, load_config, fingerprint_settings

__all__ = [
    "FingerprintError",
    "ConfigurationError",
    "InputError",
    "IndexLookupError",
    "NotFoundError",
    "AudioLoadError",
    "UnsupportedFormatError",
    "FileTooLargeError",
    "RecognitionCancelledError",
    "get_logger",
    "setup_logging",
    "JSONFormatter",
    "ConfigManager",
    "load_config",
    "fingerprint_settings",
]
