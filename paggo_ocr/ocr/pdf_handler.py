"""PDF inspection: page counting and embedded text-layer extraction.

Page counts come from poppler's ``pdfinfo`` (metadata only, no rendering);
the text layer is read with pypdf in page batches so huge documents are
never parsed in one call.
"""

import io
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from pdf2image.exceptions import (
    PDFInfoNotInstalledError,
    PDFPageCountError,
    PDFPopplerTimeoutError,
    PDFSyntaxError,
)
from pdf2image.pdf2image import pdfinfo_from_path
from pypdf import PdfReader
from pypdf.errors import PyPdfError

from paggo_ocr.exceptions import EngineError, ExtractionTimeoutError
from paggo_ocr.utils.logger import get_logger
from paggo_ocr.utils.timeouts import call_with_timeout

from .models import PageBatch, page_batches

logger = get_logger(__name__)


@dataclass
class TextLayer:
    """Embedded text of a PDF, grouped by the batches it was read in."""

    total_pages: int
    batches: list[tuple[PageBatch, str]] = field(default_factory=list)

    @property
    def processed_pages(self) -> int:
        return sum(batch.size for batch, _ in self.batches)

    @property
    def raw_text(self) -> str:
        """Trimmed concatenation of the non-empty batch texts, without markers."""
        return "\n".join(text for _, text in self.batches if text.strip()).strip()


class PDFHandler:
    """Reads page counts and text layers from PDF files.

    Args:
        poppler_path: Directory holding the poppler binaries.
            If ``None``, they are looked up on ``PATH``.
        timeout: Seconds allowed for each pdfinfo call or text-layer read.
    """

    def __init__(self, poppler_path: str | None = None, timeout: float = 120.0) -> None:
        self.poppler_path = poppler_path
        self.timeout = timeout

    def get_page_count(self, pdf_path: Path) -> int:
        """Get the number of pages in a PDF without rendering it.

        Args:
            pdf_path: Path to the PDF file.

        Returns:
            Number of pages in the PDF.
        """
        try:
            info = pdfinfo_from_path(
                str(pdf_path), poppler_path=self.poppler_path, timeout=self.timeout
            )
        except (subprocess.TimeoutExpired, PDFPopplerTimeoutError) as exc:
            raise ExtractionTimeoutError(
                f"pdfinfo timed out after {self.timeout:g}s on {pdf_path.name}"
            ) from exc
        except (PDFInfoNotInstalledError, PDFPageCountError, PDFSyntaxError) as exc:
            raise EngineError(f"Could not read page count of {pdf_path.name}: {exc}") from exc

        count = int(info["Pages"])
        logger.debug("PDF %s has %d pages", pdf_path.name, count)
        return count

    def extract_text_layer(
        self,
        pdf_path: Path,
        batch_size: int,
        max_pages: int,
        buffer: bytes | None = None,
    ) -> TextLayer:
        """Read the embedded text of the first ``max_pages`` pages.

        Args:
            pdf_path: Path to the PDF file.
            batch_size: Pages read per batch.
            max_pages: Ceiling on the number of pages read.
            buffer: PDF bytes already in memory; used instead of the file
                when given.

        Returns:
            Text per batch, in ascending page order.
        """
        try:
            return call_with_timeout(
                lambda: self._read_text_layer(pdf_path, batch_size, max_pages, buffer),
                self.timeout,
                f"Text-layer read of {pdf_path.name}",
            )
        except PyPdfError as exc:
            raise EngineError(f"Could not parse {pdf_path.name}: {exc}") from exc

    def _read_text_layer(
        self,
        pdf_path: Path,
        batch_size: int,
        max_pages: int,
        buffer: bytes | None,
    ) -> TextLayer:
        source = io.BytesIO(buffer) if buffer is not None else str(pdf_path)
        reader = PdfReader(source)
        layer = TextLayer(total_pages=len(reader.pages))

        for batch in page_batches(layer.total_pages, batch_size, max_pages):
            text = "\n".join(
                (reader.pages[index].extract_text() or "")
                for index in range(batch.first - 1, batch.last)
            )
            layer.batches.append((batch, text.strip()))
            logger.debug(
                "Text layer pages %d-%d: %d characters",
                batch.first,
                batch.last,
                len(text.strip()),
            )

        return layer
