"""
Batch processor for recognizing multiple query files.
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Union

from songprint.core.models import RecognitionResult


@dataclass
class BatchResult:
    """Result of a batch recognition run."""
    successful: Dict[Path, RecognitionResult] = field(default_factory=dict)
    failed: Dict[Path, str] = field(default_factory=dict)
    total_files: int = 0
    total_time: float = 0.0

    @property
    def success_count(self) -> int:
        """Number of successfully processed files."""
        return len(self.successful)

    @property
    def failure_count(self) -> int:
        """Number of failed files."""
        return len(self.failed)

    @property
    def success_rate(self) -> float:
        """Success rate as percentage."""
        if self.total_files == 0:
            return 0.0
        return (self.success_count / self.total_files) * 100


class BatchProcessor:
    """
    Recognizes query files one after another with a shared Fingerprinter.

    A failing query is recorded and the batch moves on; the fingerprinter
    already parallelizes lookups inside each query.
    """

    def __init__(
        self,
        fingerprinter,
        suffixes: Optional[Iterable[str]] = None,
        progress_callback: Optional[Callable[[int, int, Path], None]] = None
    ):
        """
        Initialize batch processor.

        Args:
            fingerprinter: Recognition engine (dependency injection)
            suffixes: Accepted audio suffixes; defaults to the decoder's
            progress_callback: Optional callback(current, total, file_path)
        """
        self.fingerprinter = fingerprinter
        if suffixes is None:
            suffixes = getattr(fingerprinter.decoder, "supported_suffixes", ())
        self.suffixes = {s.lower() for s in suffixes}
        self.progress_callback = progress_callback
        self.logger = logging.getLogger("batch_processor")

    def process(
        self,
        inputs: Union[Path, List[Path]],
        recursive: bool = False
    ) -> BatchResult:
        """
        Recognize one or more audio files or directories.

        Args:
            inputs: Single path or list of paths (files or directories)
            recursive: If True, search directories recursively

        Returns:
            BatchResult containing all results and any errors
        """
        start_time = time.time()
        files = self._collect_files(inputs, recursive)

        if not files:
            self.logger.warning("No audio files found to process")
            return BatchResult(total_files=0, total_time=0.0)

        self.logger.info(f"Recognizing {len(files)} audio files")

        result = BatchResult(total_files=len(files))
        for position, file_path in enumerate(files, start=1):
            if self.progress_callback:
                self.progress_callback(position, len(files), file_path)

            try:
                result.successful[file_path] = self.fingerprinter.identify(file_path)
            except Exception as e:
                result.failed[file_path] = str(e)
                self.logger.error(f"Failed to recognize {file_path}: {e}")

        result.total_time = time.time() - start_time
        self.logger.info(
            f"Batch complete: {result.success_count}/{result.total_files} succeeded "
            f"in {result.total_time:.2f}s"
        )
        return result

    def _collect_files(
        self,
        inputs: Union[Path, List[Path]],
        recursive: bool
    ) -> List[Path]:
        """Collect all audio files from inputs, sorted and de-duplicated."""
        if isinstance(inputs, (str, Path)):
            inputs = [inputs]

        files = []
        for path in inputs:
            path = Path(path)
            if path.is_file():
                if self._is_audio_file(path):
                    files.append(path)
                else:
                    self.logger.warning(f"Skipping non-audio file: {path}")
            elif path.is_dir():
                pattern = "**/*" if recursive else "*"
                files.extend(
                    p for p in path.glob(pattern)
                    if p.is_file() and self._is_audio_file(p)
                )
            else:
                self.logger.warning(f"Path not found: {path}")

        return sorted(set(files))

    def _is_audio_file(self, path: Path) -> bool:
        return path.suffix.lower() in self.suffixes
