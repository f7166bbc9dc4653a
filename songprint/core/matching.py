"""
Match aggregation by offset-histogram alignment.

Every query time slice is hashed and looked up in the fingerprint index.
Each returned occurrence votes for the distance between the query slice and
the indexed slice. A true match piles its votes onto one offset (the real
alignment); unrelated songs spread theirs thin. A song's score is the height
of its tallest histogram bucket.
"""

import logging
import threading
from collections import Counter
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from songprint.core.hashing import FingerprintHasher
from songprint.core.keypoints import has_key_points
from songprint.core.models import DataPoint, MatchScore
from songprint.core.protocols import FingerprintIndex
from songprint.utils.errors import IndexLookupError, RecognitionCancelledError

# song_id -> {offset -> count}
SongHistograms = Dict[int, Counter]


def partition_range(length: int, parts: int) -> List[Tuple[int, int]]:
    """Split range(length) into at most `parts` contiguous, non-empty chunks."""
    parts = max(1, min(parts, length))
    bounds = [length * i // parts for i in range(parts + 1)]
    return [(start, stop) for start, stop in zip(bounds, bounds[1:]) if stop > start]


def merge_histograms(partials: Iterable[SongHistograms]) -> SongHistograms:
    """
    Sum per-song offset counts.

    Associative and commutative, so worker completion order does not matter.
    """
    merged: SongHistograms = {}
    for histograms in partials:
        for song_id, histogram in histograms.items():
            merged.setdefault(song_id, Counter()).update(histogram)
    return merged


def score_histograms(histograms: SongHistograms) -> Dict[int, MatchScore]:
    """Peak bucket per song; songs without any vote are left out."""
    scores: Dict[int, MatchScore] = {}
    for song_id, histogram in histograms.items():
        if not histogram:
            continue
        peak = max(histogram.values())
        offset = min(o for o, count in histogram.items() if count == peak)
        scores[song_id] = MatchScore(song_id=song_id, score=peak, offset=offset)
    return scores


class MatchAggregator:
    """
    Accumulates offset histograms for one query against a fingerprint index.

    All accumulation state is local to a single call. With ``max_workers > 1``
    the query's time range is split across threads, each with private
    histograms, merged once every worker has finished.
    """

    def __init__(
        self,
        index: FingerprintIndex,
        hasher: Optional[FingerprintHasher] = None,
        max_workers: int = 1,
        executor: Optional[Executor] = None,
    ):
        """
        Args:
            index: Fingerprint index to query
            hasher: Hasher matching the one used to build the index
            max_workers: Number of time-range partitions to look up in parallel
            executor: Optional shared pool; a private one is created per
                call when omitted and max_workers > 1
        """
        self.index = index
        self.hasher = hasher or FingerprintHasher()
        self.max_workers = max(1, max_workers)
        self.executor = executor
        self.logger = logging.getLogger("matching")

    def aggregate(
        self,
        key_points: np.ndarray,
        cancel_event: Optional[threading.Event] = None,
    ) -> Dict[int, MatchScore]:
        """
        Score every candidate song for a query.

        Args:
            key_points: (n_frames, B) key point rows, time-indexed from 0
            cancel_event: Optional event checked between time slices

        Returns:
            Dict mapping song id to MatchScore

        Raises:
            IndexLookupError: If the index fails a lookup
            RecognitionCancelledError: If cancel_event is set mid-query
        """
        return score_histograms(self.histograms(key_points, cancel_event))

    def histograms(
        self,
        key_points: np.ndarray,
        cancel_event: Optional[threading.Event] = None,
    ) -> SongHistograms:
        """Build the per-song offset histograms for a query."""
        hashes = self.hasher.hash_rows(key_points)
        active = has_key_points(key_points)
        n_slices = len(hashes)
        if n_slices == 0:
            return {}

        chunks = partition_range(n_slices, self.max_workers)
        if len(chunks) == 1:
            histograms = self._accumulate(hashes, active, 0, n_slices, cancel_event)
        else:
            histograms = self._accumulate_parallel(hashes, active, chunks, cancel_event)

        self.logger.debug(
            f"Aggregated {n_slices} slices ({int(active.sum())} with key points) "
            f"into {len(histograms)} candidate songs"
        )
        return histograms

    def _accumulate_parallel(
        self,
        hashes: np.ndarray,
        active: np.ndarray,
        chunks: List[Tuple[int, int]],
        cancel_event: Optional[threading.Event],
    ) -> SongHistograms:
        if self.executor is not None:
            return self._run_chunks(self.executor, hashes, active, chunks, cancel_event)
        with ThreadPoolExecutor(max_workers=len(chunks)) as executor:
            return self._run_chunks(executor, hashes, active, chunks, cancel_event)

    def _run_chunks(
        self,
        executor: Executor,
        hashes: np.ndarray,
        active: np.ndarray,
        chunks: List[Tuple[int, int]],
        cancel_event: Optional[threading.Event],
    ) -> SongHistograms:
        futures = [
            executor.submit(self._accumulate, hashes, active, start, stop, cancel_event)
            for start, stop in chunks
        ]
        try:
            partials = [future.result() for future in futures]
        except Exception:
            for future in futures:
                future.cancel()
            raise
        return merge_histograms(partials)

    def _accumulate(
        self,
        hashes: np.ndarray,
        active: np.ndarray,
        start: int,
        stop: int,
        cancel_event: Optional[threading.Event],
    ) -> SongHistograms:
        """Fold slices [start, stop) into fresh histograms, using global slice indices."""
        histograms: SongHistograms = {}

        for t in range(start, stop):
            if cancel_event is not None and cancel_event.is_set():
                raise RecognitionCancelledError(processed_slices=t - start)

            # Rows without any key point (silence) carry no signal
            if not active[t]:
                continue

            for point in self._lookup(int(hashes[t])):
                offset = abs(t - point.time)
                histogram = histograms.get(point.song_id)
                if histogram is None:
                    histogram = histograms[point.song_id] = Counter()
                histogram[offset] += 1

        return histograms

    def _lookup(self, hash_value: int) -> Sequence[DataPoint]:
        try:
            return self.index.lookup(hash_value) or ()
        except IndexLookupError:
            raise
        except Exception as e:
            self.logger.error(f"Index lookup failed for hash {hash_value}: {e}")
            raise IndexLookupError(
                f"Index lookup failed for hash {hash_value}: {e}",
                hash_value=hash_value,
                original_error=e,
            ) from e
