"""
Short-time spectral transform.

Frames are cut with ``center=False`` so frame t always starts at sample
``t * hop_length``; a clip cut on a hop boundary reproduces the frames of
the song it came from.
"""

from typing import Any, Dict, Optional

import librosa
import numpy as np

N_FFT = 4096
HOP_LENGTH = 4096


class StftTransform:
    """librosa STFT returning (n_frames, n_bins) complex frames."""

    def __init__(self, n_fft: int = N_FFT, hop_length: int = HOP_LENGTH, window: str = "hann"):
        self.n_fft = n_fft
        self.hop_length = hop_length
        self.window = window

    @property
    def n_bins(self) -> int:
        return self.n_fft // 2 + 1

    def transform(self, samples: np.ndarray) -> np.ndarray:
        samples = np.asarray(samples, dtype=np.float32)
        if samples.ndim > 1:
            samples = librosa.to_mono(samples)

        # Shorter than one window: no complete time slice
        if len(samples) < self.n_fft:
            return np.zeros((0, self.n_bins), dtype=np.complex64)

        stft = librosa.stft(
            samples,
            n_fft=self.n_fft,
            hop_length=self.hop_length,
            window=self.window,
            center=False,
        )
        return stft.T


def create_transform(config: Optional[Dict[str, Any]] = None) -> StftTransform:
    """Factory function to create StftTransform from the "transform" config section."""
    if config is None:
        config = {}

    return StftTransform(
        n_fft=config.get('n_fft', N_FFT),
        hop_length=config.get('hop_length', HOP_LENGTH),
        window=config.get('window', "hann"),
    )
