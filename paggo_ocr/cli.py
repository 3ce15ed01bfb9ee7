"""Command-line interface for text extraction and CSV export.

Provides subcommands for extracting a single document to JSON and for
processing folders of documents into a CSV summary.
"""

import argparse
import csv
import json
import mimetypes
import sys
import time
from pathlib import Path

from paggo_ocr.ocr.document_processor import DocumentProcessor
from paggo_ocr.ocr.models import ExtractionRequest, ExtractionResult
from paggo_ocr.utils.config import AppConfig, load_config
from paggo_ocr.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_SUPPORTED_EXTENSIONS = ("*.png", "*.jpg", "*.jpeg", "*.webp", "*.tiff", "*.tif", "*.pdf")
_COLUMNS = [
    "filename",
    "status",
    "method",
    "total_pages",
    "processed_pages",
    "truncated",
    "characters",
    "processing_time_s",
    "error",
]


def _find_documents(input_dir: Path) -> list[Path]:
    """Find all supported document files in a directory.

    Args:
        input_dir: Directory to scan for documents.

    Returns:
        Sorted list of document file paths.
    """
    files: list[Path] = []
    for ext in _SUPPORTED_EXTENSIONS:
        files.extend(input_dir.glob(ext))
        files.extend(input_dir.glob(ext.upper()))
    return sorted(set(files))


def _load_config(engine: str | None) -> AppConfig:
    config = load_config()
    if engine:
        config.ocr.engine = engine
    return config


def _extract(processor: DocumentProcessor, file_path: Path) -> ExtractionResult:
    declared, _ = mimetypes.guess_type(file_path.name)
    return processor.extract(
        ExtractionRequest(absolute_path=file_path.resolve(), declared_mime_type=declared)
    )


def process_folder(
    input_dir: Path,
    output_csv: Path,
    engine: str | None = None,
    verbose: bool = False,
) -> dict[str, int]:
    """Extract all documents in a folder and export a summary to CSV.

    Args:
        input_dir: Directory containing document files.
        output_csv: Path for the output CSV file.
        engine: OCR engine override (``native`` or ``in_process``).
        verbose: Whether to print per-file progress.

    Returns:
        Summary dict with total, successful, and failed counts.
    """
    processor = DocumentProcessor.from_config(_load_config(engine))

    files = _find_documents(input_dir)
    if not files:
        logger.warning("No documents found in %s", input_dir)
        return {"total": 0, "successful": 0, "failed": 0}

    logger.info("Found %d documents to process", len(files))

    rows: list[dict[str, object]] = []
    successful = 0
    failed = 0

    for i, file_path in enumerate(files, 1):
        if verbose:
            print(f"Processing [{i}/{len(files)}]: {file_path.name}")

        start_time = time.time()
        try:
            result = _extract(processor, file_path)
        except Exception as exc:
            logger.error("Failed to process %s: %s", file_path.name, exc)
            rows.append({"filename": file_path.name, "status": "failed", "error": str(exc)})
            failed += 1
            continue

        meta = result.meta
        rows.append(
            {
                "filename": file_path.name,
                "status": "success",
                "method": result.method.value,
                "total_pages": meta.total_pages if meta else "",
                "processed_pages": meta.processed_pages if meta else "",
                "truncated": meta.truncated if meta else "",
                "characters": len(result.text),
                "processing_time_s": round(time.time() - start_time, 2),
                "error": None,
            }
        )
        successful += 1

    _write_csv(rows, output_csv)
    logger.info("Results written to %s", output_csv)

    summary = {"total": len(files), "successful": successful, "failed": failed}
    _print_summary(summary, output_csv)
    return summary


def _write_csv(rows: list[dict[str, object]], output_path: Path) -> None:
    """Write per-file results to a CSV file.

    Args:
        rows: List of result dictionaries.
        output_path: Path for the output CSV file.
    """
    if not rows:
        return

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=_COLUMNS, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(rows)


def _print_summary(summary: dict[str, int], output_csv: Path) -> None:
    """Print batch processing summary to stdout."""
    print(f"\n{'=' * 50}")
    print("Batch Extraction Complete")
    print(f"{'=' * 50}")
    print(f"Total:      {summary['total']}")
    print(f"Successful: {summary['successful']}")
    print(f"Failed:     {summary['failed']}")
    print(f"Output:     {output_csv}")


def extract_single(file_path: Path, engine: str | None = None) -> dict[str, object]:
    """Extract a single document and return the result as a dict.

    Args:
        file_path: Path to the document file.
        engine: OCR engine override (``native`` or ``in_process``).

    Returns:
        Dictionary with filename, text, method, and page metadata.
    """
    processor = DocumentProcessor.from_config(_load_config(engine))
    result = _extract(processor, file_path)
    return {"filename": file_path.name, **result.to_dict()}


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="Paggo OCR text extraction",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    batch_parser = subparsers.add_parser("batch", help="Extract a folder of documents")
    batch_parser.add_argument("input_dir", type=Path, help="Input directory with documents")
    batch_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("results.csv"),
        help="Output CSV file (default: results.csv)",
    )
    batch_parser.add_argument(
        "--engine", choices=["native", "in_process"], help="OCR engine override"
    )
    batch_parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    single_parser = subparsers.add_parser("extract", help="Extract a single document")
    single_parser.add_argument("file", type=Path, help="Document file to process")
    single_parser.add_argument(
        "--engine", choices=["native", "in_process"], help="OCR engine override"
    )
    single_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    args = parser.parse_args(argv)

    setup_logging()

    if args.command == "batch":
        if not args.input_dir.is_dir():
            print(f"Error: {args.input_dir} is not a directory", file=sys.stderr)
            sys.exit(1)
        process_folder(args.input_dir, args.output, args.engine, args.verbose)
    elif args.command == "extract":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        result = extract_single(args.file, args.engine)
        output_str = json.dumps(result, indent=2)
        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(output_str)
            print(f"Output written to {args.output}")
        else:
            print(output_str)
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
