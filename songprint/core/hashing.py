"""
Fingerprint hashing.

Folds the first four key points of a time slice into one integer index key.
Each key point is rounded down to a multiple of the fuzz factor first, so
bins that drift by less than one bucket under noise still collide.
"""

from typing import Sequence

import numpy as np

from songprint.utils.errors import ConfigurationError, InputError

FUZ_FACTOR = 2  # 43 -> 42, 121 -> 120

# Positional weights for p0..p3; the top band is left out of the hash
HASH_WEIGHTS = (1, 100, 100000, 100000000)
HASH_WINDOW = len(HASH_WEIGHTS)

# Key points at or above this value can carry into the next position
MAX_SAFE_BIN = 1000


def quantize(value: int, fuzz_factor: int = FUZ_FACTOR) -> int:
    """Round down to nearest multiple of fuzz factor."""
    return (value // fuzz_factor) * fuzz_factor


class FingerprintHasher:
    """Pure, deterministic key point hasher."""

    def __init__(self, fuzz_factor: int = FUZ_FACTOR):
        if fuzz_factor < 1:
            raise ConfigurationError(
                f"Fuzz factor must be >= 1, got {fuzz_factor}",
                config_key="fingerprint.fuzz_factor"
            )
        self.fuzz_factor = fuzz_factor
        self._weights = np.asarray(HASH_WEIGHTS, dtype=np.int64)

    @property
    def window(self) -> int:
        return HASH_WINDOW

    def hash(self, points: Sequence[int]) -> int:
        """
        Hash one key point row.

        Args:
            points: Key points of a time slice, lowest band first; only
                the first four are used

        Returns:
            int: Fingerprint hash

        Raises:
            InputError: If fewer than four key points are given
        """
        if len(points) < HASH_WINDOW:
            raise InputError(
                f"Hashing needs {HASH_WINDOW} key points, got {len(points)}",
                expected=HASH_WINDOW,
                actual=len(points),
            )

        return sum(
            quantize(int(point), self.fuzz_factor) * weight
            for point, weight in zip(points, HASH_WEIGHTS)
        )

    def hash_rows(self, rows: np.ndarray) -> np.ndarray:
        """
        Hash every row of a (n_frames, B) key point array.

        Equivalent to ``[self.hash(row) for row in rows]``.
        """
        rows = np.asarray(rows, dtype=np.int64)
        if rows.size == 0:
            return np.zeros(0, dtype=np.int64)
        if rows.ndim != 2 or rows.shape[1] < HASH_WINDOW:
            raise InputError(
                f"Key point rows must have at least {HASH_WINDOW} columns",
                expected=HASH_WINDOW,
                actual=rows.shape[-1] if rows.ndim else 0,
            )

        quantized = (rows[:, :HASH_WINDOW] // self.fuzz_factor) * self.fuzz_factor
        return quantized @ self._weights
