"""
Key point extraction.

For every time slice of a spectral transform, picks the frequency bin with
the largest log-compressed magnitude inside each band of a BandTable.
"""

import logging
from typing import Any, Optional

import numpy as np

from songprint.core.hashing import HASH_WINDOW
from songprint.core.models import BandTable
from songprint.utils.errors import InputError

logger = logging.getLogger(__name__)


def as_complex_frames(frames: Any) -> np.ndarray:
    """
    Coerce spectral frames to a complex array of shape (n_frames, n_bins).

    Complex input is used as is. Real input is read as interleaved
    (re, im) pairs along the last axis.

    Raises:
        InputError: If the frames are not two-dimensional or the
            interleaved layout has an odd length
    """
    try:
        array = np.asarray(frames)
    except ValueError as e:
        raise InputError(f"Spectral frames are ragged: {e}") from e

    # No frames at all; frames without bins still go through the width check
    if array.size == 0 and (array.ndim != 2 or array.shape[0] == 0):
        return np.zeros((0, 0), dtype=np.complex128)

    if array.ndim != 2:
        raise InputError(
            "Spectral frames must be a 2-D (time, frequency) array",
            expected=2,
            actual=array.ndim,
        )

    if np.iscomplexobj(array):
        return array

    if not np.issubdtype(array.dtype, np.number):
        raise InputError(
            f"Spectral frames must be numeric, got dtype {array.dtype}"
        )

    if array.shape[1] % 2:
        raise InputError(
            "Interleaved real/imaginary frames must have an even length",
            expected="even",
            actual=array.shape[1],
        )

    real = array[:, 0::2].astype(np.float64)
    imag = array[:, 1::2].astype(np.float64)
    return real + 1j * imag


class KeyPointExtractor:
    """
    Derives one key point row per spectral frame.

    Stateless apart from the immutable band table; safe to share between
    threads.
    """

    def __init__(self, bands: Optional[BandTable] = None):
        self.bands = bands or BandTable()
        lower, upper = self.bands.scan_range
        self._bins = np.arange(lower, upper)
        # Band of every scanned bin, resolved once
        self._band_of_bin = np.searchsorted(
            self.bands.boundaries, self._bins, side='left'
        )

    @property
    def num_bands(self) -> int:
        return self.bands.num_bands

    def band_index(self, frequency_bin: int) -> int:
        """Band a frequency bin belongs to."""
        return self.bands.band_index(frequency_bin)

    def extract(self, frames: Any) -> np.ndarray:
        """
        Extract key points from a sequence of spectral frames.

        Args:
            frames: (n_frames, n_bins) complex array, or the interleaved
                real layout accepted by ``as_complex_frames``

        Returns:
            np.ndarray: int64 array of shape (n_frames, B); entry [t, b] is
            the bin of maximum magnitude in band b at slice t, or 0 when no
            bin in that band had a positive magnitude

        Raises:
            InputError: If frames are malformed or too short for the scan range
        """
        spectrum = as_complex_frames(frames)
        n_frames = spectrum.shape[0]
        key_points = np.zeros((n_frames, self.num_bands), dtype=np.int64)
        if n_frames == 0:
            return key_points

        n_bins = spectrum.shape[1]
        if n_bins < self.bands.min_bins:
            raise InputError(
                f"Spectral frames carry {n_bins} bins but the band table "
                f"scans up to bin {self.bands.min_bins - 1}",
                expected=self.bands.min_bins,
                actual=n_bins,
            )

        lower, upper = self.bands.scan_range
        magnitudes = np.log(np.abs(spectrum[:, lower:upper]) + 1.0)

        for band in range(self.num_bands):
            columns = np.flatnonzero(self._band_of_bin == band)
            if columns.size == 0:
                continue
            band_mags = magnitudes[:, columns]
            # argmax keeps the lowest bin on ties
            winners = np.argmax(band_mags, axis=1)
            peak = band_mags[np.arange(n_frames), winners]
            key_points[:, band] = np.where(peak > 0, self._bins[columns[winners]], 0)

        return key_points


def has_key_points(rows: np.ndarray) -> np.ndarray:
    """Boolean mask of rows with at least one key point in the hashed bands."""
    rows = np.asarray(rows)
    if rows.size == 0:
        return np.zeros(rows.shape[0] if rows.ndim else 0, dtype=bool)
    return np.any(rows[:, :HASH_WINDOW] != 0, axis=1)
