"""PDF page rasterization with pdf2image.

Each call renders a page range into uniquely prefixed PNG files inside a
shared temp directory. The caller owns the returned files and must
delete them once consumed.
"""

import secrets
import time
from pathlib import Path

from pdf2image import convert_from_path
from pdf2image.exceptions import (
    PDFInfoNotInstalledError,
    PDFPageCountError,
    PDFPopplerTimeoutError,
    PDFSyntaxError,
)

from paggo_ocr.exceptions import ExtractionTimeoutError, RasterizationError
from paggo_ocr.utils.logger import get_logger

logger = get_logger(__name__)

# pdftoppm pads the page suffix to the digit count of the document's
# page total, which depends on the poppler build and the document.
_MAX_PAD_WIDTH = 6


class PageRasterizer:
    """Renders PDF pages to PNG files for OCR.

    Args:
        tmp_dir: Directory for the rendered images.
        poppler_path: Directory holding the poppler binaries.
            If ``None``, they are looked up on ``PATH``.
        timeout: Seconds allowed for a single render call.
    """

    def __init__(
        self,
        tmp_dir: Path,
        poppler_path: str | None = None,
        timeout: float = 120.0,
    ) -> None:
        self.tmp_dir = Path(tmp_dir)
        self.poppler_path = poppler_path
        self.timeout = timeout

    def rasterize(
        self, source_path: Path, first_page: int, last_page: int, dpi: int
    ) -> list[Path]:
        """Render pages ``first_page..last_page`` (inclusive, 1-based).

        Args:
            source_path: Path to the PDF file.
            first_page: First page to render.
            last_page: Last page to render.
            dpi: Rendering resolution.

        Returns:
            One PNG path per page, in ascending page order.

        Raises:
            RasterizationError: If poppler fails or an expected page
                image is missing after rendering.
            ExtractionTimeoutError: If rendering exceeds the time limit.
        """
        if first_page < 1 or last_page < first_page:
            raise ValueError(f"Invalid page range {first_page}-{last_page}")

        self.tmp_dir.mkdir(parents=True, exist_ok=True)
        prefix = self.tmp_dir / f"page_{time.time_ns()}_{secrets.token_hex(4)}"

        try:
            rendered = convert_from_path(
                str(source_path),
                dpi=dpi,
                first_page=first_page,
                last_page=last_page,
                output_folder=str(self.tmp_dir),
                output_file=prefix.name,
                fmt="png",
                paths_only=True,
                poppler_path=self.poppler_path,
                timeout=self.timeout,
            )
        except PDFPopplerTimeoutError as exc:
            self._cleanup(prefix)
            raise ExtractionTimeoutError(
                f"Rendering timed out after {self.timeout:g}s on pages "
                f"{first_page}-{last_page} of {source_path.name}"
            ) from exc
        except (PDFInfoNotInstalledError, PDFPageCountError, PDFSyntaxError) as exc:
            self._cleanup(prefix)
            raise RasterizationError(
                f"Could not render pages {first_page}-{last_page} of {source_path.name}: {exc}"
            ) from exc

        produced = {Path(path) for path in rendered}
        paths: list[Path] = []
        for page in range(first_page, last_page + 1):
            path = self._resolve_output(prefix, page, produced)
            if path is None:
                self._cleanup(prefix)
                raise RasterizationError(
                    f"No image was rendered for page {page} of {source_path.name}"
                )
            paths.append(path)

        logger.debug(
            "Rasterized pages %d-%d of %s at %d DPI",
            first_page,
            last_page,
            source_path.name,
            dpi,
        )
        return paths

    @staticmethod
    def output_candidates(prefix: Path, page: int) -> list[Path]:
        """List the file names poppler may use for ``page``, unpadded first."""
        names = [f"{prefix.name}-{page}.png"]
        for width in range(2, _MAX_PAD_WIDTH + 1):
            name = f"{prefix.name}-{page:0{width}d}.png"
            if name not in names:
                names.append(name)
        return [prefix.parent / name for name in names]

    def _resolve_output(self, prefix: Path, page: int, produced: set[Path]) -> Path | None:
        for candidate in self.output_candidates(prefix, page):
            if candidate in produced and candidate.exists():
                return candidate
        return None

    @staticmethod
    def _cleanup(prefix: Path) -> None:
        for leftover in prefix.parent.glob(f"{prefix.name}-*.png"):
            leftover.unlink(missing_ok=True)
