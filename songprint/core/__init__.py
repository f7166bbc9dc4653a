"""
Core module containing data models, fingerprinting and the recognition engine.

Uses lazy imports for modules that pull in librosa.
"""

# Pipeline stages are numpy-only - import directly
from songprint.core.models import (
    BandTable,
    DataPoint,
    MatchScore,
    RankedMatch,
    AudioClip,
    RecognitionResult,
    DEFAULT_BANDS,
)
from songprint.core.keypoints import KeyPointExtractor
from songprint.core.hashing import FingerprintHasher
from songprint.core.matching import MatchAggregator, merge_histograms
from songprint.core.ranking import RankingEngine
from songprint.core.index import (
    InMemoryFingerprintIndex,
    SongCatalog,
    IndexBuilder,
    load_index,
    save_index,
)

__all__ = [
    # Models and pipeline (always available)
    "BandTable",
    "DataPoint",
    "MatchScore",
    "RankedMatch",
    "AudioClip",
    "RecognitionResult",
    "DEFAULT_BANDS",
    "KeyPointExtractor",
    "FingerprintHasher",
    "MatchAggregator",
    "merge_histograms",
    "RankingEngine",
    "InMemoryFingerprintIndex",
    "SongCatalog",
    "IndexBuilder",
    "load_index",
    "save_index",
    # Heavy modules (lazy loaded)
    "AudioDecoder",
    "create_audio_decoder",
    "StftTransform",
    "create_transform",
    "Fingerprinter",
    "create_fingerprinter",
    "create_index_builder",
    # Batch processing
    "BatchProcessor",
    "BatchResult",
    "ResultWriter",
    "TextResultWriter",
    "JSONResultWriter",
    "create_result_writer",
]


def __getattr__(name: str):
    """Lazy load modules with heavy dependencies."""
    if name in ("AudioDecoder", "create_audio_decoder"):
        from songprint.core import loader
        return getattr(loader, name)
    elif name in ("StftTransform", "create_transform"):
        from songprint.core import transform
        return getattr(transform, name)
    elif name in ("Fingerprinter", "create_fingerprinter", "create_index_builder"):
        from songprint.core import recognizer
        return getattr(recognizer, name)
    elif name in ("BatchProcessor", "BatchResult"):
        from songprint.core import batch_processor
        return getattr(batch_processor, name)
    elif name in ("ResultWriter", "TextResultWriter", "JSONResultWriter", "create_result_writer"):
        from songprint.core import result_writer
        return getattr(result_writer, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
