"""Shared test fixtures and fakes for the Paggo OCR test suite."""

import io
from pathlib import Path

import pytest
from PIL import Image

from paggo_ocr.exceptions import EngineError
from paggo_ocr.ocr.base import OCREngine
from paggo_ocr.ocr.document_processor import DocumentProcessor
from paggo_ocr.ocr.models import PageBatch, page_batches
from paggo_ocr.ocr.pdf_handler import TextLayer
from paggo_ocr.utils.config import PDFConfig

PDF_BYTES = b"%PDF-1.4\n% fake pdf body\n"


class FakeEngine(OCREngine):
    """OCR engine that reports which image it was given."""

    name = "fake"

    def __init__(self, fail: bool = False, text: str | None = None) -> None:
        self.fail = fail
        self.text = text
        self.calls: list[Path] = []

    def recognize(self, image_path: Path) -> str:
        self.calls.append(image_path)
        if self.fail:
            raise EngineError(f"cannot read {image_path.name}")
        return self.text if self.text is not None else f"text of {image_path.name}"


class FakePDFHandler:
    """PDF handler with a fixed page count and text layer."""

    def __init__(
        self,
        total_pages: int = 1,
        page_text: str = "",
        error: Exception | None = None,
    ) -> None:
        self.total_pages = total_pages
        self.page_text = page_text
        self.error = error
        self.text_layer_calls = 0

    def get_page_count(self, pdf_path: Path) -> int:
        return self.total_pages

    def extract_text_layer(
        self,
        pdf_path: Path,
        batch_size: int,
        max_pages: int,
        buffer: bytes | None = None,
    ) -> TextLayer:
        self.text_layer_calls += 1
        if self.error is not None:
            raise self.error
        layer = TextLayer(total_pages=self.total_pages)
        for batch in page_batches(self.total_pages, batch_size, max_pages):
            layer.batches.append((batch, self.page_text))
        return layer


class FakeRasterizer:
    """Writes one placeholder PNG per requested page into ``tmp_dir``."""

    def __init__(self, tmp_dir: Path) -> None:
        self.tmp_dir = tmp_dir
        self.calls: list[PageBatch] = []

    def rasterize(
        self, source_path: Path, first_page: int, last_page: int, dpi: int
    ) -> list[Path]:
        self.calls.append(PageBatch(first_page, last_page))
        self.tmp_dir.mkdir(parents=True, exist_ok=True)
        paths = []
        for page in range(first_page, last_page + 1):
            path = self.tmp_dir / f"raster-{len(self.calls)}-{page}.png"
            path.write_bytes(b"\x89PNG\r\n\x1a\n")
            paths.append(path)
        return paths


def make_processor(
    tmp_path: Path,
    engine: OCREngine | None = None,
    pdf_handler: FakePDFHandler | None = None,
    **pdf_overrides: int,
) -> DocumentProcessor:
    """Build a processor wired to fakes, with raster output under tmp_path/raster."""
    return DocumentProcessor(
        config=PDFConfig(**pdf_overrides),
        ocr_engine=engine or FakeEngine(),
        pdf_handler=pdf_handler or FakePDFHandler(),
        rasterizer=FakeRasterizer(tmp_path / "raster"),
    )


def image_bytes(fmt: str = "JPEG") -> bytes:
    """Encode a small white image."""
    buf = io.BytesIO()
    Image.new("RGB", (40, 20), "white").save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def jpeg_bytes() -> bytes:
    return image_bytes("JPEG")


@pytest.fixture
def png_bytes() -> bytes:
    return image_bytes("PNG")
