"""Shared fixtures for fingerprinting tests."""

import logging
from pathlib import Path
from typing import Dict, List, Sequence

import numpy as np
import pytest
import soundfile as sf

from songprint.core.hashing import FingerprintHasher
from songprint.core.index import IndexBuilder, SongCatalog
from songprint.core.keypoints import KeyPointExtractor
from songprint.core.models import DataPoint


# ---------------------------------------------------------------------------
# Synthetic spectral data
# ---------------------------------------------------------------------------

N_BINS = 320


def random_frames(n_frames: int, seed: int, n_bins: int = N_BINS) -> np.ndarray:
    """Complex Gaussian frames; every band gets a positive-magnitude winner."""
    rng = np.random.default_rng(seed)
    return rng.normal(size=(n_frames, n_bins)) + 1j * rng.normal(size=(n_frames, n_bins))


def spike_frame(bins: Dict[int, float], n_bins: int = N_BINS) -> np.ndarray:
    """One silent frame with the given bin -> magnitude spikes."""
    frame = np.zeros(n_bins, dtype=np.complex128)
    for frequency_bin, magnitude in bins.items():
        frame[frequency_bin] = magnitude
    return frame


# ---------------------------------------------------------------------------
# Synthetic audio
# ---------------------------------------------------------------------------

SAMPLE_RATE = 11025
HOP = 4096


def noise(n_samples: int, seed: int) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return (0.1 * rng.standard_normal(n_samples)).astype(np.float32)


def write_wav(path: Path, samples: np.ndarray, sample_rate: int = SAMPLE_RATE) -> Path:
    """32-bit float WAV so decoded samples round-trip exactly."""
    sf.write(str(path), samples, sample_rate, subtype='FLOAT')
    return path


# ---------------------------------------------------------------------------
# Fake collaborators
# ---------------------------------------------------------------------------


class FakeIndex:
    """Dict-backed index that counts lookups."""

    def __init__(self, table: Dict[int, Sequence[DataPoint]] = None):
        self.table = dict(table or {})
        self.lookups: List[int] = []

    def lookup(self, hash_value):
        self.lookups.append(hash_value)
        return self.table.get(hash_value, [])


class FramesTransform:
    """Transform stub: the 'samples' already are spectral frames."""

    def transform(self, samples):
        return np.asarray(samples)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def extractor():
    return KeyPointExtractor()


@pytest.fixture
def hasher():
    return FingerprintHasher(fuzz_factor=2)


@pytest.fixture
def song_frames():
    """Two unrelated 'songs' of 80 and 60 frames."""
    return {
        "Vienna": random_frames(80, seed=1),
        "Africa": random_frames(60, seed=2),
    }


@pytest.fixture
def built_index(extractor, hasher, song_frames):
    """(index, catalog) built from song_frames."""
    builder = IndexBuilder(extractor, hasher)
    for name, frames in song_frames.items():
        builder.add_frames(name, frames)
    return builder.build()


@pytest.fixture
def catalog():
    return SongCatalog({"Vienna": 1, "Africa": 2, "Roxanne": 3})


@pytest.fixture
def restore_root_logger():
    """setup_logging() replaces root handlers; put pytest's back afterwards."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)
