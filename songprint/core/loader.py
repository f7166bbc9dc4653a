"""
Audio decoder for SongPrint.

Decodes audio files to mono float samples at the fingerprinting rate.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Set, Union

import librosa
import numpy as np
import soundfile as sf

from songprint.core.models import AudioClip
from songprint.utils.errors import AudioLoadError, FileTooLargeError, UnsupportedFormatError


# Constants
SUPPORTED_FORMATS = ('.wav', '.aif', '.aiff', '.mp3', '.flac', '.ogg')

TARGET_SAMPLE_RATE: int = 11025  # Hz, ~5 kHz bandwidth
MAX_FILE_SIZE: int = 524288000  # 500 MB

logger = logging.getLogger("decoder")


def pcm16_to_float(raw: bytes) -> np.ndarray:
    """
    Convert raw 16-bit little-endian mono PCM to float samples in [-1, 1).

    Raises:
        AudioLoadError: If the byte count is odd
    """
    if len(raw) % 2:
        raise AudioLoadError(
            f"16-bit PCM data must have an even byte count, got {len(raw)}"
        )
    return np.frombuffer(raw, dtype='<i2').astype(np.float32) / 32768.0


class AudioDecoder:
    """
    Decodes audio files into AudioClip instances.

    Thread-safe and stateless - can be used concurrently.
    """

    def __init__(
        self,
        target_sr: int = TARGET_SAMPLE_RATE,
        max_file_size: int = MAX_FILE_SIZE,
        supported_formats: Iterable[str] = SUPPORTED_FORMATS,
    ):
        """
        Initialize decoder with configuration.

        Args:
            target_sr: Sample rate every clip is resampled to
            max_file_size: Maximum file size in bytes
            supported_formats: Accepted file suffixes (with leading dot)
        """
        self._target_sr = target_sr
        self.max_file_size = max_file_size
        self.supported_suffixes: Set[str] = {s.lower() for s in supported_formats}

    @property
    def target_sr(self) -> int:
        return self._target_sr

    def decode(self, file_path: Union[str, Path]) -> AudioClip:
        """
        Decode an audio file.

        Raises:
            FileNotFoundError: File doesn't exist
            UnsupportedFormatError: File format not supported
            FileTooLargeError: File exceeds size limit
            AudioLoadError: Audio data is invalid
        """
        file_path = Path(file_path)

        self._validate_file(file_path)
        samples = self._load_samples(file_path)
        samples = self._validate_samples(samples, file_path)

        return AudioClip(
            file_path=file_path,
            sample_rate=self.target_sr,
            duration=len(samples) / self.target_sr,
            samples=samples,
        )

    def _validate_file(self, file_path: Path) -> None:
        """Validate file exists, has supported format, and is within size limit."""
        if not file_path.exists():
            raise FileNotFoundError(f"Audio file not found: {file_path}")

        suffix = file_path.suffix.lower()
        if suffix not in self.supported_suffixes:
            raise UnsupportedFormatError(
                f"Format {suffix} not supported. "
                f"Supported formats: {', '.join(sorted(self.supported_suffixes))}",
                format=suffix
            )

        file_size = file_path.stat().st_size
        if file_size > self.max_file_size:
            raise FileTooLargeError(
                f"File too large: {file_size / 1024 / 1024:.1f} MB. "
                f"Maximum: {self.max_file_size / 1024 / 1024:.1f} MB",
                file_size=file_size,
                max_size=self.max_file_size
            )

    def _load_samples(self, file_path: Path) -> np.ndarray:
        try:
            info = sf.info(str(file_path))
            logger.debug(
                f"Decoding {file_path.name}: {info.samplerate} Hz, "
                f"{info.channels} ch, {info.subtype}"
            )
        except Exception as e:
            # soundfile can't read every container (some MP3s); librosa falls back to audioread
            logger.debug(f"Could not read metadata with soundfile: {e}")

        try:
            samples, _ = librosa.load(
                str(file_path),
                sr=self.target_sr,
                mono=True,
                dtype=np.float32
            )
        except Exception as e:
            raise AudioLoadError(
                f"Failed to decode audio from {file_path}: {e}",
                file_path=str(file_path)
            ) from e

        return samples

    def _validate_samples(self, samples: np.ndarray, file_path: Path) -> np.ndarray:
        """Reject empty audio, warn on silence, normalize clipping."""
        if samples.size == 0:
            raise AudioLoadError(f"Audio file is empty: {file_path}", file_path=str(file_path))

        rms = np.sqrt(np.mean(samples ** 2))
        if rms < 1e-6:
            logger.warning(f"Audio appears to be silent: {file_path}")

        max_abs = np.max(np.abs(samples))
        if max_abs > 1.0:
            logger.warning(
                f"Audio contains clipping (max: {max_abs:.2f}), normalizing: {file_path}"
            )
            samples = samples / max_abs

        return samples


def create_audio_decoder(config: Optional[Dict[str, Any]] = None) -> AudioDecoder:
    """
    Factory function to create AudioDecoder from the "audio" config section.
    """
    if config is None:
        config = {}

    return AudioDecoder(
        target_sr=config.get('target_sample_rate', TARGET_SAMPLE_RATE),
        max_file_size=config.get('max_file_size', MAX_FILE_SIZE),
        supported_formats=config.get('supported_formats', SUPPORTED_FORMATS),
    )
