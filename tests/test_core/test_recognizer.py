"""Tests for the Fingerprinter recognition engine."""

import threading
from unittest.mock import MagicMock

import numpy as np
import pytest

from songprint.core.index import IndexBuilder, save_index
from songprint.core.keypoints import KeyPointExtractor
from songprint.core.hashing import FingerprintHasher
from songprint.core.loader import AudioDecoder
from songprint.core.models import DataPoint, RecognitionResult
from songprint.core.recognizer import Fingerprinter, create_fingerprinter, create_index_builder
from songprint.core.transform import StftTransform
from songprint.utils.config import get_default_config
from songprint.utils.errors import (
    IndexLookupError,
    NotFoundError,
    RecognitionCancelledError,
)

from conftest import HOP, N_BINS, FakeIndex, FramesTransform, noise, write_wav


@pytest.fixture
def fingerprinter(built_index):
    index, catalog = built_index
    engine = Fingerprinter(index, catalog, transform=FramesTransform())
    yield engine
    engine.shutdown()


class TestRecognizeFrames:
    def test_excerpt_matches_its_song(self, fingerprinter, song_frames):
        ranked = fingerprinter.recognize_frames(song_frames["Vienna"][20:60])

        assert ranked[0].name == "Vienna"
        assert ranked[0].score >= 40
        assert all(match.score < ranked[0].score for match in ranked[1:])

    def test_other_song(self, fingerprinter, song_frames):
        ranked = fingerprinter.recognize_frames(song_frames["Africa"][5:25])
        assert ranked[0].name == "Africa"
        assert ranked[0].score >= 20

    def test_scores_are_sorted(self, fingerprinter, song_frames):
        ranked = fingerprinter.recognize_frames(song_frames["Vienna"][:30])
        assert [m.score for m in ranked] == sorted((m.score for m in ranked), reverse=True)

    def test_deterministic(self, fingerprinter, song_frames):
        query = song_frames["Africa"][10:40]
        assert fingerprinter.recognize_frames(query) == fingerprinter.recognize_frames(query)

    def test_parallel_engine_agrees(self, built_index, song_frames, fingerprinter):
        index, catalog = built_index
        query = song_frames["Vienna"][10:70]
        with Fingerprinter(index, catalog, FramesTransform(), max_workers=4) as parallel:
            assert parallel.recognize_frames(query) == fingerprinter.recognize_frames(query)

    def test_empty_query(self, fingerprinter):
        assert fingerprinter.recognize_frames(np.zeros((0, N_BINS), dtype=np.complex128)) == []

    def test_silence_matches_nothing(self, catalog):
        index = FakeIndex({0: [DataPoint(song_id=1, time=0)]})
        engine = Fingerprinter(index, catalog, transform=FramesTransform())
        assert engine.recognize_frames(np.zeros((12, N_BINS), dtype=np.complex128)) == []

    def test_top_n(self, built_index, song_frames):
        index, catalog = built_index
        engine = Fingerprinter(index, catalog, FramesTransform(), top_n=1)
        assert len(engine.recognize_frames(song_frames["Vienna"])) == 1

    def test_index_failure_aborts(self, catalog, song_frames):
        index = MagicMock()
        index.lookup.side_effect = OSError("connection reset")
        engine = Fingerprinter(index, catalog, transform=FramesTransform())
        with pytest.raises(IndexLookupError):
            engine.recognize_frames(song_frames["Vienna"][:5])

    def test_metadata_mismatch(self, built_index, song_frames):
        index, _ = built_index
        metadata = MagicMock()
        metadata.song_name.side_effect = NotFoundError("gone", song_id=1)
        engine = Fingerprinter(index, metadata, transform=FramesTransform())
        with pytest.raises(NotFoundError):
            engine.recognize_frames(song_frames["Vienna"][:5])

    def test_cancelled(self, fingerprinter, song_frames):
        event = threading.Event()
        event.set()
        with pytest.raises(RecognitionCancelledError):
            fingerprinter.recognize_frames(song_frames["Vienna"], cancel_event=event)

    def test_fingerprint(self, fingerprinter, song_frames):
        rows, hashes = fingerprinter.fingerprint(song_frames["Vienna"][:8])
        assert rows.shape == (8, 5)
        assert hashes.tolist() == [fingerprinter.hasher.hash(row) for row in rows]


@pytest.fixture
def audio_library():
    return {
        "Creep": noise(HOP * 30, seed=10),
        "Hurt": noise(HOP * 24, seed=11),
    }


@pytest.fixture
def audio_engine(audio_library):
    builder = IndexBuilder(KeyPointExtractor(), FingerprintHasher(), transform=StftTransform())
    for name, samples in audio_library.items():
        builder.add_audio(name, samples)
    index, catalog = builder.build()
    with Fingerprinter(index, catalog, StftTransform(), decoder=AudioDecoder()) as engine:
        yield engine


class TestRecognizeAudio:
    def test_sample_excerpt(self, audio_engine, audio_library):
        ranked = audio_engine.recognize(audio_library["Creep"][HOP * 5:HOP * 25])
        assert ranked[0].name == "Creep"
        assert ranked[0].score >= 18

    def test_silence(self, audio_engine):
        assert audio_engine.recognize(np.zeros(HOP * 8, dtype=np.float32)) == []

    def test_too_short(self, audio_engine, audio_library):
        assert audio_engine.recognize(audio_library["Hurt"][:HOP - 1]) == []

    def test_pcm_bytes(self, audio_engine):
        raw = np.zeros(HOP * 3, dtype='<i2').tobytes()
        assert audio_engine.recognize(raw) == []

    def test_recognize_file(self, audio_engine, audio_library, tmp_path):
        path = write_wav(tmp_path / "query.wav", audio_library["Hurt"][HOP * 2:HOP * 14])

        ranked = audio_engine.recognize_file(path)

        assert ranked[0].name == "Hurt"
        assert ranked[0].score >= 10

    def test_identify(self, audio_engine, audio_library, tmp_path):
        path = write_wav(tmp_path / "query.wav", audio_library["Creep"][:HOP * 10])

        result = audio_engine.identify(path)

        assert isinstance(result, RecognitionResult)
        assert result.num_slices == 10
        assert result.best.name == "Creep"
        assert result.query == str(path)

    def test_recognize_file_needs_decoder(self, built_index, tmp_path):
        index, catalog = built_index
        engine = Fingerprinter(index, catalog, transform=StftTransform())
        with pytest.raises(RuntimeError):
            engine.recognize_file(tmp_path / "query.wav")


class TestFactories:
    def test_create_with_index(self, built_index):
        index, catalog = built_index
        engine = create_fingerprinter(get_default_config(), index=index, metadata=catalog)
        assert engine.index is index
        assert engine.extractor.bands.boundaries == (40, 80, 120, 180, 300)
        assert engine.hasher.fuzz_factor == 2
        engine.shutdown()

    def test_index_without_metadata(self, built_index):
        with pytest.raises(ValueError):
            create_fingerprinter(get_default_config(), index=built_index[0])

    def test_loads_index_from_config(self, built_index, tmp_path):
        save_index(tmp_path / "db", *built_index)
        config = get_default_config()
        config["index"]["path"] = str(tmp_path / "db")

        with create_fingerprinter(config) as engine:
            assert len(engine.metadata) == 2

    def test_missing_index(self, tmp_path):
        config = get_default_config()
        config["index"]["path"] = str(tmp_path / "missing")
        with pytest.raises(IndexLookupError):
            create_fingerprinter(config)

    def test_builder_uses_configured_fingerprint(self):
        config = get_default_config()
        config["fingerprint"]["fuzz_factor"] = 4
        builder = create_index_builder(config)
        assert builder.hasher.fuzz_factor == 4
        assert isinstance(builder.transform, StftTransform)

    def test_engine_builder_shares_settings(self, fingerprinter):
        builder = fingerprinter.create_index_builder()
        assert builder.extractor is fingerprinter.extractor
        assert builder.hasher is fingerprinter.hasher
