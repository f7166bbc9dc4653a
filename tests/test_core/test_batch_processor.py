"""Tests for BatchProcessor and result writers."""

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from songprint.core.batch_processor import BatchProcessor, BatchResult
from songprint.core.models import RankedMatch, RecognitionResult
from songprint.core.result_writer import (
    JSONResultWriter,
    TextResultWriter,
    create_result_writer,
    format_match,
)
from songprint.utils.errors import AudioLoadError


def _result(query, *matches):
    return RecognitionResult(
        query=str(query),
        matches=tuple(RankedMatch(name, score, song_id) for song_id, (name, score) in enumerate(matches, 1)),
        num_slices=42,
        processing_time=0.25,
    )


@pytest.fixture
def mock_fingerprinter():
    fingerprinter = MagicMock()
    fingerprinter.decoder.supported_suffixes = {".wav", ".mp3"}

    def identify(path):
        if path.stem == "broken":
            raise AudioLoadError("cannot decode", file_path=str(path))
        return _result(path, ("Vienna", 12))

    fingerprinter.identify.side_effect = identify
    return fingerprinter


@pytest.fixture
def query_dir(tmp_path):
    for name in ("a.wav", "b.mp3", "broken.wav", "notes.txt"):
        (tmp_path / name).write_bytes(b"")
    (tmp_path / "nested").mkdir()
    (tmp_path / "nested" / "c.wav").write_bytes(b"")
    return tmp_path


class TestBatchProcessor:
    def test_directory(self, mock_fingerprinter, query_dir):
        result = BatchProcessor(mock_fingerprinter).process(query_dir)

        assert result.total_files == 3
        assert sorted(p.name for p in result.successful) == ["a.wav", "b.mp3"]
        assert list(result.failed) == [query_dir / "broken.wav"]
        assert "cannot decode" in result.failed[query_dir / "broken.wav"]
        assert result.success_rate == pytest.approx(200 / 3)

    def test_recursive(self, mock_fingerprinter, query_dir):
        result = BatchProcessor(mock_fingerprinter).process(query_dir, recursive=True)
        assert query_dir / "nested" / "c.wav" in result.successful

    def test_explicit_files_deduplicated(self, mock_fingerprinter, query_dir):
        a = query_dir / "a.wav"
        result = BatchProcessor(mock_fingerprinter).process([a, a, query_dir / "notes.txt"])
        assert result.total_files == 1
        mock_fingerprinter.identify.assert_called_once_with(a)

    def test_nothing_to_do(self, mock_fingerprinter, tmp_path):
        result = BatchProcessor(mock_fingerprinter).process(tmp_path / "missing")
        assert result.total_files == 0
        assert result.success_rate == 0.0

    def test_progress_callback(self, mock_fingerprinter, query_dir):
        calls = []
        processor = BatchProcessor(
            mock_fingerprinter, progress_callback=lambda i, n, p: calls.append((i, n, p.name))
        )
        processor.process(query_dir)
        assert calls == [(1, 3, "a.wav"), (2, 3, "b.mp3"), (3, 3, "broken.wav")]


class TestResultWriters:
    @pytest.fixture
    def results(self):
        return {
            Path("clips/one.wav"): _result("clips/one.wav", ("Vienna", 31), ("Africa", 3)),
            Path("clips/two.wav"): _result("clips/two.wav"),
        }

    def test_format_match(self):
        assert format_match(RankedMatch("Vienna", 31, 1)) == "Vienna: with 31 matches."

    def test_text_report(self, results, tmp_path):
        output = tmp_path / "reports" / "results.txt"
        TextResultWriter(include_timestamp=False).write(results, output)

        text = output.read_text(encoding="utf-8")
        assert "Total Queries: 2" in text
        assert "Found 2 results." in text
        assert "1: Vienna: with 31 matches." in text
        assert "2: Africa: with 3 matches." in text
        assert "No match found" in text
        assert "Generated:" not in text

    def test_text_report_caps_matches(self, results, tmp_path):
        output = tmp_path / "results.txt"
        TextResultWriter(max_matches=1).write(results, output)
        assert "Africa" not in output.read_text(encoding="utf-8")

    def test_json_report(self, results, tmp_path):
        output = tmp_path / "results.json"
        JSONResultWriter().write(results, output)

        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["total_queries"] == 2
        first = data["results"][str(Path("clips/one.wav"))]
        assert first["matches"][0] == {"name": "Vienna", "score": 31, "song_id": 1}
        assert first["num_slices"] == 42

    def test_factory(self):
        assert isinstance(create_result_writer("txt"), TextResultWriter)
        assert isinstance(create_result_writer("JSON", indent=4), JSONResultWriter)
        with pytest.raises(ValueError):
            create_result_writer("xml")


def test_batch_result_defaults():
    result = BatchResult()
    assert result.success_count == 0
    assert result.failure_count == 0
