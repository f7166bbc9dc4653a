"""
Collaborator protocols for the recognition pipeline.

Decoding, the spectral transform, index storage and song metadata live
outside the fingerprinting core. These protocols use structural subtyping:
a class is compatible if it has the methods, without explicit inheritance.
Default implementations live in loader.py, transform.py and index.py.
"""

from pathlib import Path
from typing import Protocol, Sequence, Union, runtime_checkable

import numpy as np

from songprint.core.models import AudioClip, DataPoint


@runtime_checkable
class AudioDecoder(Protocol):
    """Decodes an audio file into mono samples at the fingerprinting rate."""

    @property
    def target_sr(self) -> int:
        ...

    def decode(self, file_path: Union[str, Path]) -> AudioClip:
        """
        Raises:
            AudioLoadError: If the file cannot be decoded
        """
        ...


@runtime_checkable
class SpectralTransform(Protocol):
    """Turns samples into time-ordered spectral frames."""

    def transform(self, samples: np.ndarray) -> np.ndarray:
        """
        Returns:
            np.ndarray: complex array of shape (n_frames, n_bins)
        """
        ...


@runtime_checkable
class FingerprintIndex(Protocol):
    """
    Read-only hash -> occurrences store.

    Must be safe for concurrent ``lookup`` calls.
    """

    def lookup(self, hash_value: int) -> Sequence[DataPoint]:
        """
        Returns:
            Occurrences recorded under the hash; empty when absent

        Raises:
            IndexLookupError: On I/O faults or corruption
        """
        ...


@runtime_checkable
class SongMetadata(Protocol):
    """Resolves song ids to display names."""

    def song_name(self, song_id: int) -> str:
        """
        Raises:
            NotFoundError: If the id is unknown
        """
        ...
