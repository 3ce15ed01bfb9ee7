"""Extraction orchestrator.

Decides per document whether text comes from the PDF text layer, from
OCR on rasterized PDF pages, or from OCR on an uploaded image, and
normalizes every path into one ``ExtractionResult`` shape.
"""

from pathlib import Path

from paggo_ocr.exceptions import UnsupportedMediaError
from paggo_ocr.utils.config import AppConfig, OCRConfig, PDFConfig
from paggo_ocr.utils.logger import get_logger

from . import mime
from .base import OCREngine
from .models import (
    ExtractionMeta,
    ExtractionMethod,
    ExtractionRequest,
    ExtractionResult,
    page_batches,
)
from .pdf_handler import PDFHandler
from .rasterizer import PageRasterizer

logger = get_logger(__name__)


def build_ocr_engine(config: OCRConfig) -> OCREngine:
    """Instantiate the OCR engine selected by ``config.engine``.

    Args:
        config: OCR configuration.

    Returns:
        The native Tesseract engine or the in-process EasyOCR engine.
    """
    if config.engine == "in_process":
        from .easyocr_engine import EasyOCREngine

        return EasyOCREngine(
            lang=config.lang, gpu=config.gpu, timeout=config.timeout_seconds
        )

    from .tesseract_engine import TesseractEngine

    return TesseractEngine(
        tesseract_cmd=config.tesseract_cmd,
        lang=config.lang,
        psm=config.psm,
        timeout=config.timeout_seconds,
    )


class DocumentProcessor:
    """Runs the extraction pipeline for a single document.

    Args:
        config: PDF batching limits and thresholds.
        ocr_engine: Engine used for images and rasterized pages.
        pdf_handler: Page counter and text-layer reader.
        rasterizer: Renders PDF pages for the OCR fallback.
    """

    def __init__(
        self,
        config: PDFConfig,
        ocr_engine: OCREngine,
        pdf_handler: PDFHandler,
        rasterizer: PageRasterizer,
    ) -> None:
        self.config = config
        self.ocr_engine = ocr_engine
        self.pdf_handler = pdf_handler
        self.rasterizer = rasterizer

    @classmethod
    def from_config(cls, config: AppConfig) -> "DocumentProcessor":
        """Wire a processor from the application configuration."""
        timeout = config.ocr.timeout_seconds
        return cls(
            config=config.pdf,
            ocr_engine=build_ocr_engine(config.ocr),
            pdf_handler=PDFHandler(poppler_path=config.ocr.poppler_path, timeout=timeout),
            rasterizer=PageRasterizer(
                tmp_dir=Path(config.storage.tmp_dir),
                poppler_path=config.ocr.poppler_path,
                timeout=timeout,
            ),
        )

    def extract(self, request: ExtractionRequest) -> ExtractionResult:
        """Extract the text of a stored document.

        Args:
            request: Location, optional bytes, and declared MIME type.

        Returns:
            The extracted text, the method that produced it, and page
            accounting for PDFs.

        Raises:
            UnsupportedMediaError: If the document is neither a PDF nor a
                supported image.
        """
        path = Path(request.absolute_path)
        mime_type = self._resolve_mime(request)

        if mime_type == mime.PDF_MIME:
            return self._extract_pdf(path, request.buffer)

        if mime_type in mime.SUPPORTED_IMAGE_TYPES:
            logger.info("Running %s on image %s", self.ocr_engine.name, path.name)
            text = self.ocr_engine.recognize(path)
            return ExtractionResult(text=text, method=ExtractionMethod.IMAGE_OCR)

        raise UnsupportedMediaError(mime_type)

    def _resolve_mime(self, request: ExtractionRequest) -> str | None:
        if request.buffer is not None:
            sniffed = mime.sniff_mime_type(request.buffer)
        else:
            try:
                sniffed = mime.sniff_file(Path(request.absolute_path))
            except OSError:
                sniffed = None
        return mime.resolve_mime_type(sniffed, request.declared_mime_type)

    def _extract_pdf(self, path: Path, buffer: bytes | None) -> ExtractionResult:
        direct = self._extract_direct_text(path, buffer)
        if direct is not None:
            return direct
        return self._extract_raster_ocr(path)

    def _extract_direct_text(
        self, path: Path, buffer: bytes | None
    ) -> ExtractionResult | None:
        """Read the text layer; ``None`` means the PDF needs OCR."""
        try:
            layer = self.pdf_handler.extract_text_layer(
                path,
                batch_size=self.config.text_batch_size,
                max_pages=self.config.text_max_pages,
                buffer=buffer,
            )
        except Exception as exc:
            logger.warning(
                "Text-layer extraction failed for %s, falling back to OCR: %s",
                path.name,
                exc,
            )
            return None

        characters = len(layer.raw_text)
        if characters < self.config.min_text_chars:
            logger.info(
                "PDF %s has %d text-layer characters (< %d), treating as scanned",
                path.name,
                characters,
                self.config.min_text_chars,
            )
            return None

        text = "\n\n".join(
            f"--- Pages {batch.first}-{batch.last} ---\n{batch_text}"
            for batch, batch_text in layer.batches
            if batch_text.strip()
        )
        meta = ExtractionMeta(
            total_pages=layer.total_pages, processed_pages=layer.processed_pages
        )
        logger.info(
            "Read %d characters from the text layer of %s (%d/%d pages)",
            characters,
            path.name,
            meta.processed_pages,
            meta.total_pages,
        )
        return ExtractionResult(text=text, method=ExtractionMethod.DIRECT_TEXT, meta=meta)

    def _extract_raster_ocr(self, path: Path) -> ExtractionResult:
        total_pages = self.pdf_handler.get_page_count(path)
        batches = page_batches(
            total_pages, self.config.image_batch_size, self.config.image_max_pages
        )
        parts: list[str] = []

        for batch in batches:
            images = self.rasterizer.rasterize(
                path, batch.first, batch.last, self.config.dpi
            )
            try:
                for page, image in zip(range(batch.first, batch.last + 1), images):
                    try:
                        page_text = self.ocr_engine.recognize(image)
                    finally:
                        image.unlink(missing_ok=True)
                    parts.append(f"--- Page {page} ---\n{page_text}")
            finally:
                for image in images:
                    image.unlink(missing_ok=True)

        meta = ExtractionMeta(
            total_pages=total_pages,
            processed_pages=sum(batch.size for batch in batches),
        )
        if meta.truncated:
            logger.warning(
                "PDF %s has %d pages, only the first %d were OCR'd",
                path.name,
                meta.total_pages,
                meta.processed_pages,
            )
        logger.info(
            "OCR'd %d rasterized pages of %s with %s",
            meta.processed_pages,
            path.name,
            self.ocr_engine.name,
        )
        return ExtractionResult(
            text="\n\n".join(parts), method=ExtractionMethod.RASTER_OCR, meta=meta
        )
