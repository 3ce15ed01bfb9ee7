"""Tests for PDF page rasterization (mocked pdf2image)."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from pdf2image.exceptions import (
    PDFInfoNotInstalledError,
    PDFPageCountError,
    PDFPopplerTimeoutError,
    PDFSyntaxError,
)

from paggo_ocr.exceptions import ExtractionTimeoutError, RasterizationError
from paggo_ocr.ocr.rasterizer import PageRasterizer


def _fake_convert(pad_width: int = 0, skip_page: int | None = None):
    """Build a convert_from_path stand-in that writes pages like poppler does."""

    def convert(pdf_path: str, **kwargs) -> list[str]:
        folder = Path(kwargs["output_folder"])
        paths = []
        for page in range(kwargs["first_page"], kwargs["last_page"] + 1):
            if page == skip_page:
                continue
            suffix = f"{page:0{pad_width}d}" if pad_width else str(page)
            path = folder / f"{kwargs['output_file']}-{suffix}.png"
            path.write_bytes(b"png")
            paths.append(str(path))
        return paths

    return convert


class TestRasterize:
    """Tests for PageRasterizer.rasterize."""

    @patch("paggo_ocr.ocr.rasterizer.convert_from_path")
    def test_unpadded_output(self, mock_convert: MagicMock, tmp_path: Path) -> None:
        mock_convert.side_effect = _fake_convert()
        rasterizer = PageRasterizer(tmp_path, poppler_path="/opt/poppler/bin", timeout=30)

        paths = rasterizer.rasterize(Path("/fake/doc.pdf"), 3, 5, dpi=200)

        assert [p.name.rsplit("-", 1)[1] for p in paths] == ["3.png", "4.png", "5.png"]
        assert all(p.exists() for p in paths)
        args, kwargs = mock_convert.call_args
        assert args == ("/fake/doc.pdf",)
        assert kwargs["dpi"] == 200
        assert kwargs["first_page"] == 3
        assert kwargs["last_page"] == 5
        assert kwargs["fmt"] == "png"
        assert kwargs["paths_only"] is True
        assert kwargs["output_folder"] == str(tmp_path)
        assert kwargs["poppler_path"] == "/opt/poppler/bin"
        assert kwargs["timeout"] == 30

    @patch("paggo_ocr.ocr.rasterizer.convert_from_path")
    def test_zero_padded_output(self, mock_convert: MagicMock, tmp_path: Path) -> None:
        mock_convert.side_effect = _fake_convert(pad_width=3)

        paths = PageRasterizer(tmp_path).rasterize(Path("/fake/doc.pdf"), 9, 10, dpi=150)

        assert [p.name.rsplit("-", 1)[1] for p in paths] == ["009.png", "010.png"]

    @patch("paggo_ocr.ocr.rasterizer.convert_from_path")
    def test_missing_page_raises_and_cleans_up(
        self, mock_convert: MagicMock, tmp_path: Path
    ) -> None:
        mock_convert.side_effect = _fake_convert(skip_page=2)

        with pytest.raises(RasterizationError, match="page 2"):
            PageRasterizer(tmp_path).rasterize(Path("/fake/doc.pdf"), 1, 3, dpi=200)

        assert list(tmp_path.glob("*.png")) == []

    @patch("paggo_ocr.ocr.rasterizer.convert_from_path")
    def test_timeout(self, mock_convert: MagicMock, tmp_path: Path) -> None:
        mock_convert.side_effect = PDFPopplerTimeoutError("Run poppler timeout.")

        with pytest.raises(ExtractionTimeoutError):
            PageRasterizer(tmp_path, timeout=5).rasterize(Path("/fake/doc.pdf"), 1, 1, dpi=200)

    @pytest.mark.parametrize(
        "error",
        [
            PDFInfoNotInstalledError("Unable to get page count. Is poppler installed?"),
            PDFPageCountError("Unable to get page count."),
            PDFSyntaxError("Syntax Error"),
        ],
    )
    def test_poppler_errors(self, tmp_path: Path, error: Exception) -> None:
        with patch("paggo_ocr.ocr.rasterizer.convert_from_path", side_effect=error):
            with pytest.raises(RasterizationError):
                PageRasterizer(tmp_path).rasterize(Path("/fake/doc.pdf"), 1, 2, dpi=200)

    @pytest.mark.parametrize(("first", "last"), [(0, 1), (3, 2)])
    def test_invalid_range(self, tmp_path: Path, first: int, last: int) -> None:
        with pytest.raises(ValueError):
            PageRasterizer(tmp_path).rasterize(Path("/fake/doc.pdf"), first, last, dpi=200)

    @patch("paggo_ocr.ocr.rasterizer.convert_from_path")
    def test_prefixes_are_unique(self, mock_convert: MagicMock, tmp_path: Path) -> None:
        mock_convert.side_effect = _fake_convert()
        rasterizer = PageRasterizer(tmp_path)

        first = rasterizer.rasterize(Path("/fake/doc.pdf"), 1, 1, dpi=200)
        second = rasterizer.rasterize(Path("/fake/doc.pdf"), 1, 1, dpi=200)

        assert first[0] != second[0]
        assert first[0].exists() and second[0].exists()
        prefixes = [c.kwargs["output_file"] for c in mock_convert.call_args_list]
        assert prefixes[0] != prefixes[1]


class TestOutputCandidates:
    def test_unpadded_first(self) -> None:
        names = [p.name for p in PageRasterizer.output_candidates(Path("/tmp/page_x"), 7)]
        assert names[0] == "page_x-7.png"
        assert names[1:3] == ["page_x-07.png", "page_x-007.png"]
        assert names[-1] == "page_x-000007.png"

    def test_no_duplicates_for_wide_pages(self) -> None:
        names = [p.name for p in PageRasterizer.output_candidates(Path("/tmp/p"), 123)]
        assert len(names) == len(set(names))
        assert names[0] == "p-123.png"
