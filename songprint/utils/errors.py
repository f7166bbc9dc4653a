"""
Custom exceptions for the SongPrint audio fingerprinting library.

This module defines a hierarchy of exceptions for the error kinds the
recognition pipeline distinguishes: bad configuration, malformed input,
index lookup failures and missing song metadata.
"""

from typing import Optional, Any


class FingerprintError(Exception):
    """Base exception for all fingerprinting errors."""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class ConfigurationError(FingerprintError):
    """Raised when configuration (band table, fuzz factor, file) is invalid."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(message)
        self.config_key = config_key
        self.details = {"config_key": config_key}


class InputError(FingerprintError):
    """Raised when spectral frames or key point rows are malformed or too short."""

    def __init__(
        self,
        message: str,
        expected: Optional[Any] = None,
        actual: Optional[Any] = None,
    ):
        super().__init__(message)
        self.expected = expected
        self.actual = actual
        self.details = {"expected": expected, "actual": actual}


class IndexLookupError(FingerprintError):
    """
    Raised when the fingerprint index cannot answer a lookup.

    Covers I/O faults and corruption reported by the index collaborator.
    Aborts the in-flight recognition; the whole request may be retried.
    """

    def __init__(
        self,
        message: str,
        hash_value: Optional[int] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.hash_value = hash_value
        self.original_error = original_error
        self.details = {
            "hash_value": hash_value,
            "original_error": str(original_error) if original_error else None,
        }


class NotFoundError(FingerprintError):
    """Raised when a song id has no metadata (index and catalog disagree)."""

    def __init__(self, message: str, song_id: Optional[int] = None):
        super().__init__(message)
        self.song_id = song_id
        self.details = {"song_id": song_id}


class AudioLoadError(FingerprintError):
    """Raised when audio file cannot be decoded."""

    def __init__(self, message: str, file_path: Optional[str] = None):
        super().__init__(message, details={"file_path": file_path})
        self.file_path = file_path


class UnsupportedFormatError(AudioLoadError):
    """Raised when audio format is not supported."""

    def __init__(self, message: str, format: Optional[str] = None):
        super().__init__(message)
        self.format = format
        self.details = {"format": format}


class FileTooLargeError(AudioLoadError):
    """Raised when audio file exceeds size limit."""

    def __init__(
        self,
        message: str,
        file_size: Optional[int] = None,
        max_size: Optional[int] = None,
    ):
        super().__init__(message)
        self.file_size = file_size
        self.max_size = max_size
        self.details = {"file_size": file_size, "max_size": max_size}


class RecognitionCancelledError(FingerprintError):
    """Raised when a recognition request is cancelled between time slices."""

    def __init__(self, processed_slices: int = 0):
        super().__init__(
            f"Recognition cancelled after {processed_slices} time slices.",
            details={"processed_slices": processed_slices},
        )
        self.processed_slices = processed_slices
