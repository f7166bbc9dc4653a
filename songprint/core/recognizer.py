"""
Recognition engine for SongPrint.

Orchestrates decode -> transform -> key points -> hashes -> match
aggregation -> ranking for one query at a time.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np

from songprint.core.hashing import MAX_SAFE_BIN, FingerprintHasher
from songprint.core.index import IndexBuilder, load_index
from songprint.core.keypoints import KeyPointExtractor
from songprint.core.loader import create_audio_decoder, pcm16_to_float
from songprint.core.matching import MatchAggregator
from songprint.core.models import BandTable, RankedMatch, RecognitionResult
from songprint.core.protocols import AudioDecoder, FingerprintIndex, SongMetadata, SpectralTransform
from songprint.core.ranking import RankingEngine
from songprint.core.transform import create_transform
from songprint.utils.config import fingerprint_settings
from songprint.utils.logging import create_logger_with_context

AudioInput = Union[np.ndarray, bytes, bytearray, memoryview]


class Fingerprinter:
    """
    Main recognition engine - wires the pipeline stages together.

    Design:
    - Dependency Injection: index, metadata, transform and decoder are
      collaborators (testable with fakes)
    - Parallel lookups: the match aggregator shares this engine's pool
    - Stateless per query: nothing survives a recognize() call
    """

    def __init__(
        self,
        index: FingerprintIndex,
        metadata: SongMetadata,
        transform: SpectralTransform,
        decoder: Optional[AudioDecoder] = None,
        bands: Optional[BandTable] = None,
        fuzz_factor: int = 2,
        max_workers: int = 1,
        top_n: Optional[int] = None,
    ):
        """
        Initialize recognition engine.

        Args:
            index: Fingerprint index built with the same bands and fuzz factor
            metadata: Song id -> name resolver
            transform: Samples -> spectral frames
            decoder: Optional file decoder, required by recognize_file()
            bands: Band boundary table (default 40/80/120/180/300)
            fuzz_factor: Key point quantization step
            max_workers: Parallel index lookup partitions per query
            top_n: Optional cap on ranked results
        """
        self.index = index
        self.metadata = metadata
        self.transform = transform
        self.decoder = decoder
        self.logger = logging.getLogger('recognizer')

        self.extractor = KeyPointExtractor(bands)
        self.hasher = FingerprintHasher(fuzz_factor)
        self.executor = ThreadPoolExecutor(max_workers=max_workers) if max_workers > 1 else None
        self.aggregator = MatchAggregator(
            index, self.hasher, max_workers=max_workers, executor=self.executor
        )
        self.ranking = RankingEngine(metadata, top_n=top_n)

        if self.extractor.bands.boundaries[-1] > MAX_SAFE_BIN:
            self.logger.warning(
                f"Band table reaches bin {self.extractor.bands.boundaries[-1]}; "
                f"key points >= {MAX_SAFE_BIN} can collide across hash positions"
            )

    def fingerprint(self, frames: Any) -> Tuple[np.ndarray, np.ndarray]:
        """
        Key points and hashes for a sequence of spectral frames.

        Returns:
            Tuple of ((n_frames, B) key point rows, (n_frames,) hashes)
        """
        key_points = self.extractor.extract(frames)
        return key_points, self.hasher.hash_rows(key_points)

    def recognize_frames(
        self,
        frames: Any,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[RankedMatch]:
        """
        Rank indexed songs against already-transformed spectral frames.

        Raises:
            InputError: If frames are malformed
            IndexLookupError: If the index fails a lookup
            NotFoundError: If a matched song has no metadata
        """
        key_points = self.extractor.extract(frames)
        scores = self.aggregator.aggregate(key_points, cancel_event=cancel_event)
        return self.ranking.rank(scores)

    def recognize(
        self,
        audio: AudioInput,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[RankedMatch]:
        """
        Rank indexed songs against raw audio.

        Args:
            audio: Float samples at the transform's sample rate, or raw
                16-bit little-endian mono PCM bytes
            cancel_event: Optional event checked between time slices

        Returns:
            Ranked matches, best first; empty for silence or too-short audio
        """
        if isinstance(audio, (bytes, bytearray, memoryview)):
            samples = pcm16_to_float(bytes(audio))
        else:
            samples = np.asarray(audio, dtype=np.float32)

        frames = self.transform.transform(samples)
        return self.recognize_frames(frames, cancel_event=cancel_event)

    def recognize_file(
        self,
        file_path: Union[str, Path],
        cancel_event: Optional[threading.Event] = None,
    ) -> List[RankedMatch]:
        """Decode an audio file, then recognize it."""
        return list(self.identify(file_path, cancel_event=cancel_event).matches)

    def identify(
        self,
        file_path: Union[str, Path],
        cancel_event: Optional[threading.Event] = None,
    ) -> RecognitionResult:
        """
        Recognize an audio file and keep timing and slice count for reports.
        """
        if self.decoder is None:
            raise RuntimeError("No decoder configured; pass one to Fingerprinter()")

        file_path = Path(file_path)
        log = create_logger_with_context('recognizer', {'query': str(file_path)})
        start_time = time.time()

        log.info(f"Decoding query: {file_path}")
        clip = self.decoder.decode(file_path)
        frames = self.transform.transform(clip.samples)
        matches = self.recognize_frames(frames, cancel_event=cancel_event)

        processing_time = time.time() - start_time
        log.info(
            f"Recognition complete in {processing_time:.3f}s: "
            f"{len(matches)} candidates over {len(frames)} slices"
        )
        return RecognitionResult(
            query=str(file_path),
            matches=tuple(matches),
            num_slices=len(frames),
            processing_time=processing_time,
        )

    def create_index_builder(self) -> IndexBuilder:
        """IndexBuilder that fingerprints songs exactly as this engine does."""
        return IndexBuilder(
            extractor=self.extractor,
            hasher=self.hasher,
            transform=self.transform,
            decoder=self.decoder,
        )

    def shutdown(self) -> None:
        """Shutdown thread pool gracefully."""
        if self.executor is not None:
            self.logger.debug("Shutting down lookup pool")
            self.executor.shutdown(wait=True)

    def __enter__(self) -> "Fingerprinter":
        """Context manager support."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Cleanup on context exit."""
        self.shutdown()


def create_fingerprinter(
    config: Dict[str, Any],
    index: Optional[FingerprintIndex] = None,
    metadata: Optional[SongMetadata] = None,
) -> Fingerprinter:
    """
    Factory function to create a fully configured recognition engine.

    Args:
        config: Configuration dict (see utils.config.get_default_config)
        index: Fingerprint index; loaded from config["index"]["path"] when omitted
        metadata: Song metadata; required when index is given

    Returns:
        Fingerprinter: Configured engine
    """
    if index is None:
        index, catalog = load_index(config.get('index', {}).get('path', 'fingerprints'))
        metadata = metadata or catalog
    elif metadata is None:
        raise ValueError("metadata is required when an index is supplied")

    bands, fuzz_factor = fingerprint_settings(config)

    return Fingerprinter(
        index=index,
        metadata=metadata,
        transform=create_transform(config.get('transform', {})),
        decoder=create_audio_decoder(config.get('audio', {})),
        bands=bands,
        fuzz_factor=fuzz_factor,
        max_workers=config.get('matching', {}).get('max_workers', 1),
        top_n=config.get('ranking', {}).get('top_n'),
    )


def create_index_builder(config: Dict[str, Any]) -> IndexBuilder:
    """
    Factory function to create an IndexBuilder for a song library.

    Uses the same fingerprint, transform and audio settings as
    create_fingerprinter(), so built indexes match queries.
    """
    bands, fuzz_factor = fingerprint_settings(config)

    return IndexBuilder(
        extractor=KeyPointExtractor(bands),
        hasher=FingerprintHasher(fuzz_factor),
        transform=create_transform(config.get('transform', {})),
        decoder=create_audio_decoder(config.get('audio', {})),
    )
