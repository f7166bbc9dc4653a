"""
SongPrint - command-line interface

Example usage:
    # Build an index from a folder of songs
    songprint index path/to/music/ --db fingerprints/

    # Recognize a clip
    songprint recognize clip.wav --db fingerprints/
    songprint recognize --top 5 clip.wav

    # Recognize many clips, with reports
    songprint recognize clips/ --recursive --output-file results.txt
    songprint recognize a.wav b.wav --output-json results.json
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from songprint import __version__
from songprint.core.models import RecognitionResult
from songprint.core.result_writer import format_match
from songprint.utils.config import load_config
from songprint.utils.errors import FingerprintError
from songprint.utils.logging import setup_logging


def print_recognition(file_path: Path, result: RecognitionResult, top: Optional[int] = None) -> None:
    """Print ranked matches for a single query to console."""
    print("\n" + "=" * 60)
    print(f"Query: {file_path.name}")
    print(f"Processing Time: {result.processing_time:.3f}s ({result.num_slices} slices)")
    print("-" * 60)

    if not result.matches:
        print("No match found")
        return

    print(f"Found {len(result.matches)} results.")
    matches = result.matches if top is None else result.matches[:top]
    for rank, match in enumerate(matches, start=1):
        print(f"{rank}: {format_match(match)}")


def build_index(
    folder: Path,
    config: dict,
    db_path: Path,
    pattern: str = "*",
    verbose: bool = False,
) -> int:
    """
    Fingerprint every song in a folder and save the index.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    from songprint.core.index import load_index, save_index
    from songprint.core.recognizer import create_index_builder

    if not folder.is_dir():
        print(f"Error: Music folder not found: {folder}")
        return 1

    print("Loading db...")
    builder = create_index_builder(config)

    try:
        # Songs already in an existing index are kept and skipped
        if (db_path / "fingerprints.db").exists():
            builder.index, builder.catalog = load_index(db_path)

        failed = builder.add_folder(folder, pattern=pattern)
        index, catalog = builder.build()
        save_index(db_path, index, catalog)
    except FingerprintError as e:
        print(f"Error while indexing: {e}")
        if verbose:
            import traceback
            traceback.print_exc()
        return 1

    print(f"Indexed {len(catalog)} songs ({index.num_hashes} hashes) into {db_path}")
    if failed:
        print("\nFailed Files:")
        for path, error in failed.items():
            print(f"  {path.name}: {error}")
    return 0 if not failed else 1


def recognize(
    inputs: List[Path],
    config: dict,
    recursive: bool = False,
    top: Optional[int] = None,
    output_txt: Optional[Path] = None,
    output_json: Optional[Path] = None,
    verbose: bool = False,
) -> int:
    """
    Recognize one or more query files.

    Returns:
        Exit code (0 for success, 1 for errors)
    """
    from songprint.core.batch_processor import BatchProcessor
    from songprint.core.recognizer import create_fingerprinter
    from songprint.core.result_writer import JSONResultWriter, TextResultWriter

    try:
        fingerprinter = create_fingerprinter(config)
    except FingerprintError as e:
        print(f"Error: {e}")
        if verbose:
            import traceback
            traceback.print_exc()
        return 1

    def progress_callback(current: int, total: int, file_path: Path) -> None:
        if total > 1:
            print(f"[{current}/{total}] Recognizing: {file_path.name}")

    with fingerprinter:
        print(f"Database: {len(fingerprinter.metadata)} songs indexed")
        processor = BatchProcessor(fingerprinter, progress_callback=progress_callback)
        batch_result = processor.process(inputs, recursive=recursive)

    for file_path, result in batch_result.successful.items():
        print_recognition(file_path, result, top=top)

    if batch_result.failed:
        print("\nFailed Files:")
        for path, error in batch_result.failed.items():
            print(f"  {path.name}: {error}")

    if output_txt:
        TextResultWriter().write(batch_result.successful, output_txt)
        print(f"\nText results saved to: {output_txt}")
    if output_json:
        JSONResultWriter().write(batch_result.successful, output_json)
        print(f"JSON results saved to: {output_json}")

    if batch_result.total_files == 0:
        print("Error: no audio files to recognize")
        return 1
    return 0 if batch_result.failure_count == 0 else 1


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for SongPrint."""
    parser = argparse.ArgumentParser(
        prog="songprint",
        description="Identify songs from short audio clips by spectral fingerprint",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  songprint index music/ --db fingerprints/
  songprint recognize clip.wav --db fingerprints/ --top 5
  songprint recognize clips/ --recursive --output-json results.json
        """
    )
    parser.add_argument("--config", type=Path, default=None, help="Path to configuration file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose output")
    parser.add_argument("--version", action="version", version=f"SongPrint {__version__}")
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Index directory (default: index.path from config)"
    )

    # Lets --db also follow the subcommand; SUPPRESS keeps a leading --db
    db_parent = argparse.ArgumentParser(add_help=False)
    db_parent.add_argument("--db", type=Path, default=argparse.SUPPRESS, help="Index directory")

    subparsers = parser.add_subparsers(dest="command", required=True)

    index_parser = subparsers.add_parser(
        "index", parents=[db_parent], help="Build a fingerprint index from a music folder"
    )
    index_parser.add_argument("folder", type=Path, help="Folder of songs to index")
    index_parser.add_argument("--pattern", default="*", help="Glob pattern for song files")

    recognize_parser = subparsers.add_parser(
        "recognize", parents=[db_parent], help="Recognize audio clips"
    )
    recognize_parser.add_argument(
        "inputs", type=Path, nargs="+", help="Audio file(s) or directory to recognize"
    )
    recognize_parser.add_argument(
        "--recursive", "-r", action="store_true", help="Search directories recursively"
    )
    recognize_parser.add_argument(
        "--top", type=int, default=None, help="Only print the N best matches per query"
    )
    recognize_parser.add_argument(
        "--output-file", "-o", type=Path, default=None, help="Path to save text results file"
    )
    recognize_parser.add_argument(
        "--output-json", type=Path, default=None, help="Path to save JSON results file"
    )

    args = parser.parse_args(argv)

    try:
        config = load_config(str(args.config) if args.config else None)
    except FingerprintError as e:
        print(f"Error: {e}")
        sys.exit(1)

    logging_config = config.get("logging", {})
    setup_logging(
        level="DEBUG" if args.verbose else logging_config.get("level", "INFO"),
        log_format=logging_config.get("format", "text"),
        log_file=logging_config.get("file"),
        colored=True,
        console_enabled=True
    )

    if args.db is not None:
        config.setdefault("index", {})["path"] = str(args.db)
    db_path = Path(config["index"]["path"])

    if args.command == "index":
        exit_code = build_index(
            folder=args.folder,
            config=config,
            db_path=db_path,
            pattern=args.pattern,
            verbose=args.verbose,
        )
    else:
        print("Recognizing...")
        exit_code = recognize(
            inputs=args.inputs,
            config=config,
            recursive=args.recursive,
            top=args.top,
            output_txt=args.output_file,
            output_json=args.output_json,
            verbose=args.verbose,
        )

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
