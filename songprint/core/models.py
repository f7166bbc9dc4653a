"""
Core data models for SongPrint.

Immutable domain models shared by the fingerprinting pipeline: the band
table, index occurrence records, per-song match scores and ranked results.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Tuple

import numpy as np

from songprint.utils.errors import ConfigurationError

# Frequency bin boundaries of the low/mid/high tonal ranges
DEFAULT_BANDS: Tuple[int, ...] = (40, 80, 120, 180, 300)


@dataclass(frozen=True)
class BandTable:
    """
    Monotonically increasing frequency bin boundaries.

    The lowest and highest boundaries only limit which bins are scanned
    (``lower <= bin < upper``); every boundary also closes one band, so a
    table of B boundaries yields key point rows of B entries.
    """

    boundaries: Tuple[int, ...] = DEFAULT_BANDS

    def __post_init__(self) -> None:
        """Validate boundaries."""
        boundaries = tuple(int(b) for b in self.boundaries)
        if not boundaries:
            raise ConfigurationError(
                "Band boundary table is empty",
                config_key="fingerprint.bands"
            )
        if boundaries[0] < 0:
            raise ConfigurationError(
                f"Band boundaries must be non-negative, got {boundaries[0]}",
                config_key="fingerprint.bands"
            )
        for lower, upper in zip(boundaries, boundaries[1:]):
            if upper <= lower:
                raise ConfigurationError(
                    f"Band boundaries must be strictly increasing: {list(boundaries)}",
                    config_key="fingerprint.bands"
                )
        object.__setattr__(self, 'boundaries', boundaries)

    @property
    def num_bands(self) -> int:
        return len(self.boundaries)

    @property
    def scan_range(self) -> Tuple[int, int]:
        """Half-open range of scanned bins."""
        return self.boundaries[0], self.boundaries[-1]

    @property
    def min_bins(self) -> int:
        """Number of frequency bins a frame must carry to cover the scan range."""
        return self.boundaries[-1]

    def band_index(self, frequency_bin: int) -> int:
        """Smallest band index whose boundary is >= the bin."""
        index = int(np.searchsorted(self.boundaries, frequency_bin, side='left'))
        if index >= self.num_bands:
            raise ValueError(
                f"Bin {frequency_bin} lies above the highest boundary {self.boundaries[-1]}"
            )
        return index


@dataclass(frozen=True)
class DataPoint:
    """One occurrence of a fingerprint hash in an indexed song."""

    song_id: int
    time: int  # time-slice index within the song


@dataclass(frozen=True)
class MatchScore:
    """Strongest temporal alignment evidence for one candidate song."""

    song_id: int
    score: int  # peak offset-histogram count
    offset: int = 0  # offset that achieved the peak

    def __post_init__(self) -> None:
        """Validate fields."""
        if self.score < 0:
            raise ValueError(f"Score must be non-negative, got {self.score}")


@dataclass(frozen=True)
class RankedMatch:
    """A resolved candidate song in the final ranking."""

    name: str
    score: int
    song_id: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'name': self.name,
            'score': self.score,
            'song_id': self.song_id,
        }


@dataclass(frozen=True)
class AudioClip:
    """
    Decoded audio, mono and resampled to the fingerprinting rate.
    """

    file_path: Path
    sample_rate: int
    duration: float  # seconds
    samples: np.ndarray = field(repr=False, compare=False)  # shape (n_samples,)


@dataclass(frozen=True)
class RecognitionResult:
    """Ranked matches for one query, with bookkeeping for reports."""

    query: str
    matches: Tuple[RankedMatch, ...]
    num_slices: int
    processing_time: float

    @property
    def best(self) -> RankedMatch | None:
        return self.matches[0] if self.matches else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'query': self.query,
            'num_slices': self.num_slices,
            'processing_time': self.processing_time,
            'matches': [match.to_dict() for match in self.matches],
        }

    def to_json(self, indent: int = 2) -> str:
        """Export as JSON string."""
        return json.dumps(self.to_dict(), indent=indent, default=str)
