"""
Result writers for recognition reports.
"""

import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Dict, TextIO

from songprint.core.models import RankedMatch, RecognitionResult


def format_match(match: RankedMatch) -> str:
    """Render a ranked match the way the recognizer reports it."""
    return f"{match.name}: with {match.score} matches."


class ResultWriter(ABC):
    """Abstract base class for result writers (Strategy Pattern)."""

    @abstractmethod
    def write(self, results: Dict[Path, RecognitionResult], output_path: Path) -> None:
        """Write results to the specified path."""
        pass


class TextResultWriter(ResultWriter):
    """Writes recognition results to a human-readable text file."""

    def __init__(self, include_timestamp: bool = True, max_matches: int = 10):
        """
        Args:
            include_timestamp: Whether to include timestamp in output
            max_matches: Ranked songs listed per query
        """
        self.include_timestamp = include_timestamp
        self.max_matches = max_matches
        self.logger = logging.getLogger("result_writer.text")

    def write(self, results: Dict[Path, RecognitionResult], output_path: Path) -> None:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, 'w', encoding='utf-8') as f:
            f.write("=" * 70 + "\n")
            f.write("SONGPRINT RECOGNITION RESULTS\n")
            f.write("=" * 70 + "\n")

            if self.include_timestamp:
                f.write(f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")

            f.write(f"Total Queries: {len(results)}\n")
            f.write("=" * 70 + "\n\n")

            for file_path, result in results.items():
                self._write_single_result(f, file_path, result)

            f.write("=" * 70 + "\n")
            f.write("END OF REPORT\n")
            f.write("=" * 70 + "\n")

        self.logger.info(f"Results written to: {output_path}")

    def _write_single_result(self, f: TextIO, file_path: Path, result: RecognitionResult) -> None:
        f.write("-" * 70 + "\n")
        f.write(f"QUERY: {file_path.name}\n")
        f.write(f"PATH: {file_path}\n")
        f.write("-" * 70 + "\n")
        f.write(f"Processing Time: {result.processing_time:.3f}s\n")
        f.write(f"Time Slices: {result.num_slices}\n")

        if not result.matches:
            f.write("\nNo match found\n\n")
            return

        f.write(f"\nFound {len(result.matches)} results.\n")
        for rank, match in enumerate(result.matches[:self.max_matches], start=1):
            f.write(f"  {rank}: {format_match(match)}\n")
        f.write("\n")


class JSONResultWriter(ResultWriter):
    """Writes recognition results to a JSON file."""

    def __init__(self, indent: int = 2):
        self.indent = indent
        self.logger = logging.getLogger("result_writer.json")

    def write(self, results: Dict[Path, RecognitionResult], output_path: Path) -> None:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        output_data = {
            "generated": datetime.now().isoformat(),
            "total_queries": len(results),
            "results": {
                str(path): result.to_dict()
                for path, result in results.items()
            }
        }

        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(output_data, f, indent=self.indent, default=str)

        self.logger.info(f"Results written to: {output_path}")


def create_result_writer(format: str = "text", **kwargs) -> ResultWriter:
    """
    Factory function to create appropriate result writer.

    Args:
        format: Output format ("text" or "json")
        **kwargs: Additional arguments for the writer
    """
    writers = {
        "text": TextResultWriter,
        "txt": TextResultWriter,
        "json": JSONResultWriter,
    }

    writer_class = writers.get(format.lower())
    if writer_class is None:
        raise ValueError(f"Unknown format: {format}. Supported: {list(writers.keys())}")

    return writer_class(**kwargs)
