"""
In-memory fingerprint index, song catalog and batch index builder.

The index maps a fingerprint hash to every (song id, time slice) at which it
was seen. It is built once from a song library and is read-only afterwards;
concurrent lookups need no locking.

On disk an index directory holds two pickles: ``fingerprints.db``
(hash -> [(song_id, time), ...]) and ``songs.db`` (name -> song_id).
"""

import logging
import pickle
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from songprint.core.hashing import FingerprintHasher
from songprint.core.keypoints import KeyPointExtractor, has_key_points
from songprint.core.models import DataPoint
from songprint.core.protocols import AudioDecoder, SpectralTransform
from songprint.utils.errors import IndexLookupError, NotFoundError

FINGERPRINTS_FILE = "fingerprints.db"
SONGS_FILE = "songs.db"


class InMemoryFingerprintIndex:
    """Dict-backed hash -> DataPoint store."""

    def __init__(self, table: Optional[Dict[int, List[DataPoint]]] = None):
        self._table: Dict[int, List[DataPoint]] = table if table is not None else {}

    def lookup(self, hash_value: int) -> Sequence[DataPoint]:
        return self._table.get(hash_value, ())

    def add(self, hash_value: int, point: DataPoint) -> None:
        self._table.setdefault(hash_value, []).append(point)

    @property
    def num_hashes(self) -> int:
        return len(self._table)

    @property
    def num_points(self) -> int:
        return sum(len(points) for points in self._table.values())

    def __contains__(self, hash_value: int) -> bool:
        return hash_value in self._table

    def to_table(self) -> Dict[int, List[Tuple[int, int]]]:
        """Plain-tuple form used for persistence."""
        return {
            h: [(p.song_id, p.time) for p in points]
            for h, points in self._table.items()
        }

    @classmethod
    def from_table(cls, table: Dict[int, List[Tuple[int, int]]]) -> "InMemoryFingerprintIndex":
        return cls({
            int(h): [DataPoint(song_id=int(s), time=int(t)) for s, t in points]
            for h, points in table.items()
        })


class SongCatalog:
    """Song name <-> id mapping; ids start at 1."""

    def __init__(self, songs: Optional[Dict[str, int]] = None):
        self._ids: Dict[str, int] = dict(songs or {})
        self._names: Dict[int, str] = {i: name for name, i in self._ids.items()}

    def song_name(self, song_id: int) -> str:
        try:
            return self._names[song_id]
        except KeyError:
            raise NotFoundError(f"No metadata for song id {song_id}", song_id=song_id) from None

    def song_id(self, name: str) -> Optional[int]:
        return self._ids.get(name)

    def get_or_create_id(self, name: str) -> int:
        """Get or create song id. Returns existing id if song already catalogued."""
        if name in self._ids:
            return self._ids[name]
        new_id = len(self._ids) + 1
        self._ids[name] = new_id
        self._names[new_id] = name
        return new_id

    def __contains__(self, name: str) -> bool:
        return name in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def to_dict(self) -> Dict[str, int]:
        return dict(self._ids)


def save_index(
    path: Union[str, Path],
    index: InMemoryFingerprintIndex,
    catalog: SongCatalog,
) -> None:
    """Write index and catalog to a directory."""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    with open(path / FINGERPRINTS_FILE, "wb") as f:
        pickle.dump(index.to_table(), f)
    with open(path / SONGS_FILE, "wb") as f:
        pickle.dump(catalog.to_dict(), f)
    logging.getLogger("index").info(
        f"Saved {index.num_hashes} hashes for {len(catalog)} songs to {path}"
    )


def load_index(path: Union[str, Path]) -> Tuple[InMemoryFingerprintIndex, SongCatalog]:
    """
    Read index and catalog from a directory written by ``save_index``.

    Raises:
        IndexLookupError: If the files are missing or unreadable
    """
    path = Path(path)
    try:
        with open(path / FINGERPRINTS_FILE, "rb") as f:
            table = pickle.load(f)
        with open(path / SONGS_FILE, "rb") as f:
            songs = pickle.load(f)
        index = InMemoryFingerprintIndex.from_table(table)
        catalog = SongCatalog(songs)
    except (OSError, pickle.UnpicklingError, EOFError, AttributeError, TypeError, ValueError) as e:
        raise IndexLookupError(
            f"Could not load fingerprint index from {path}: {e}",
            original_error=e,
        ) from e

    logging.getLogger("index").info(
        f"Loaded {index.num_hashes} hashes for {len(catalog)} songs from {path}"
    )
    return index, catalog


class IndexBuilder:
    """
    Batch-builds an index from a song library.

    Songs are fingerprinted with the same extractor and hasher used at query
    time. Hand the finished index to a Fingerprinter only after building.
    """

    def __init__(
        self,
        extractor: KeyPointExtractor,
        hasher: FingerprintHasher,
        transform: Optional[SpectralTransform] = None,
        decoder: Optional[AudioDecoder] = None,
        index: Optional[InMemoryFingerprintIndex] = None,
        catalog: Optional[SongCatalog] = None,
    ):
        self.extractor = extractor
        self.hasher = hasher
        self.transform = transform
        self.decoder = decoder
        self.index = index if index is not None else InMemoryFingerprintIndex()
        self.catalog = catalog if catalog is not None else SongCatalog()
        self.logger = logging.getLogger("index")

    def add_frames(self, name: str, frames: Any) -> Optional[int]:
        """
        Fingerprint a song's spectral frames and record every occurrence.

        Returns:
            The new song id, or None if the song was already indexed
        """
        if name in self.catalog:
            self.logger.debug(f"Already indexed, skipping: {name}")
            return None

        key_points = self.extractor.extract(frames)
        hashes = self.hasher.hash_rows(key_points)
        song_id = self.catalog.get_or_create_id(name)

        for t in np.flatnonzero(has_key_points(key_points)):
            self.index.add(int(hashes[t]), DataPoint(song_id=song_id, time=int(t)))

        self.logger.info(f"Indexed '{name}' as song {song_id} ({len(hashes)} slices)")
        return song_id

    def add_audio(self, name: str, samples: np.ndarray) -> Optional[int]:
        """Transform decoded samples, then index them."""
        if self.transform is None:
            raise RuntimeError("IndexBuilder needs a transform to index audio samples")
        if name in self.catalog:
            self.logger.debug(f"Already indexed, skipping: {name}")
            return None
        return self.add_frames(name, self.transform.transform(samples))

    def add_file(self, file_path: Union[str, Path]) -> Optional[int]:
        """Decode and index one audio file, named after its stem."""
        if self.decoder is None:
            raise RuntimeError("IndexBuilder needs a decoder to index audio files")
        file_path = Path(file_path)
        if file_path.stem in self.catalog:
            self.logger.debug(f"Already indexed, skipping: {file_path.stem}")
            return None
        clip = self.decoder.decode(file_path)
        return self.add_audio(file_path.stem, clip.samples)

    def add_folder(self, folder: Union[str, Path], pattern: str = "*") -> Dict[Path, str]:
        """
        Index every matching audio file in a folder, in name order.

        Files that fail to decode are logged and skipped.

        Returns:
            Dict of failed file paths to error messages
        """
        folder = Path(folder)
        suffixes = getattr(self.decoder, "supported_suffixes", None)
        paths = sorted(
            p for p in folder.glob(pattern)
            if p.is_file() and (suffixes is None or p.suffix.lower() in suffixes)
        )
        if not paths:
            self.logger.warning(f"No audio files matching '{pattern}' in {folder}")

        failed: Dict[Path, str] = {}
        for path in paths:
            try:
                self.add_file(path)
            except Exception as e:
                failed[path] = str(e)
                self.logger.error(f"Failed to index {path}: {e}")
        return failed

    def build(self) -> Tuple[InMemoryFingerprintIndex, SongCatalog]:
        self.logger.info(
            f"Index complete: {len(self.catalog)} songs, {self.index.num_hashes} hashes, "
            f"{self.index.num_points} occurrences"
        )
        return self.index, self.catalog
