"""Value types shared by the extraction engines and the orchestrator."""

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path


class ExtractionMethod(StrEnum):
    """Engine that produced the text of an extraction result."""

    DIRECT_TEXT = "DIRECT_TEXT"
    RASTER_OCR = "RASTER_OCR"
    IMAGE_OCR = "IMAGE_OCR"


@dataclass(frozen=True)
class ExtractionMeta:
    """Page accounting for a PDF extraction.

    ``truncated`` is derived from the page counts so it can never
    disagree with them.
    """

    total_pages: int
    processed_pages: int

    @property
    def truncated(self) -> bool:
        return self.total_pages > 0 and self.processed_pages < self.total_pages

    def to_dict(self) -> dict[str, int | bool]:
        return {
            "total_pages": self.total_pages,
            "processed_pages": self.processed_pages,
            "truncated": self.truncated,
        }


@dataclass(frozen=True)
class ExtractionResult:
    """Normalized output of any extraction path."""

    text: str
    method: ExtractionMethod
    meta: ExtractionMeta | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "text": self.text,
            "method": self.method.value,
            "meta": self.meta.to_dict() if self.meta else None,
        }


@dataclass
class ExtractionRequest:
    """Input descriptor for a single extraction call.

    Engines may ignore ``buffer`` and always re-read ``absolute_path``.
    """

    absolute_path: Path
    buffer: bytes | None = None
    declared_mime_type: str | None = None


@dataclass(frozen=True)
class PageBatch:
    """Contiguous inclusive 1-based page range."""

    first: int
    last: int

    @property
    def size(self) -> int:
        return self.last - self.first + 1


def page_batches(total_pages: int, batch_size: int, max_pages: int) -> list[PageBatch]:
    """Split the first ``min(total_pages, max_pages)`` pages into batches.

    Args:
        total_pages: Number of pages in the document.
        batch_size: Maximum number of pages per batch.
        max_pages: Ceiling on the number of pages to cover.

    Returns:
        Batches in ascending page order; empty when there is nothing to read.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")

    limit = max(0, min(total_pages, max_pages))
    return [
        PageBatch(first=start, last=min(start + batch_size - 1, limit))
        for start in range(1, limit + 1, batch_size)
    ]
