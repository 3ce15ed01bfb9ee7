"""PDF export of a document with its OCR text and chat transcript.

The export starts with the first page of the original upload (copied for
PDFs, drawn onto an A4 page for images), followed by an OCR text section
and a chat section. Text pages are laid out with reportlab using the
built-in Helvetica font; pages are assembled with pypdf.
"""

import io
import unicodedata
from collections.abc import Callable, Sequence

from pypdf import PdfReader, PdfWriter
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfgen import canvas

from paggo_ocr.ocr.mime import PDF_MIME
from paggo_ocr.utils.logger import get_logger

from .ask import truncate
from .models import ChatMessage

logger = get_logger(__name__)

OCR_MAX_CHARS = 120_000
CHAT_MAX_CHARS = 80_000

OCR_TITLE = "OCR - Extracted text"
CHAT_TITLE = "Chat - LLM interactions"
OCR_EMPTY = "(OCR not available or empty)"
CHAT_EMPTY = "(No LLM interactions yet)"

FONT = "Helvetica"
TITLE_SIZE = 16
BODY_SIZE = 11
LINE_HEIGHT = 14
MARGIN = 50
IMAGE_MARGIN = 36

# Helvetica only covers Latin-1; map common typographic characters first.
_TYPOGRAPHY = str.maketrans(
    {
        "\u2192": "->",
        "\u2190": "<-",
        "\u2194": "<->",
        "\u201c": '"',
        "\u201d": '"',
        "\u2018": "'",
        "\u2019": "'",
        "\u2013": "-",
        "\u2014": "-",
        "\u2022": "-",
    }
)


def sanitize_text(text: str) -> str:
    """Reduce text to characters the standard Helvetica font can draw."""
    text = unicodedata.normalize("NFKC", text).translate(_TYPOGRAPHY)
    text = "".join(ch if ch == "\n" or ch.isprintable() else " " for ch in text)
    return text.encode("latin-1", "replace").decode("latin-1")


def wrap_text(text: str, max_width: float) -> list[str]:
    """Wrap text to ``max_width`` points, keeping blank lines."""
    lines: list[str] = []
    for paragraph in text.split("\n"):
        if not paragraph.strip():
            lines.append("")
            continue
        lines.extend(simpleSplit(paragraph, FONT, BODY_SIZE, max_width))
    return lines


def format_chat(messages: Sequence[ChatMessage]) -> str:
    if not messages:
        return CHAT_EMPTY
    return "\n\n".join(
        f"[{m.created_at:%Y-%m-%d %H:%M:%S}] {m.role}: {m.content}" for m in messages
    )


class PdfAppendixBuilder:
    """Builds the "original + OCR + chat" export of a document."""

    def build(
        self,
        original: bytes | None,
        mime_type: str,
        original_name: str,
        ocr_text: str | None,
        chat: Sequence[ChatMessage],
    ) -> bytes:
        """Render the export.

        Args:
            original: Bytes of the uploaded file, or ``None`` if unreadable.
            mime_type: Stored MIME type of the upload.
            original_name: File name given by the uploader.
            ocr_text: Extracted text, or ``None`` when OCR is not done.
            chat: Chat messages in chronological order.

        Returns:
            The PDF file content.
        """
        writer = PdfWriter()
        self._add_original(writer, original, mime_type, original_name)

        ocr = truncate(ocr_text or "", OCR_MAX_CHARS)
        self._add_text_section(writer, OCR_TITLE, ocr if ocr.strip() else OCR_EMPTY)
        self._add_text_section(
            writer, CHAT_TITLE, truncate(format_chat(chat), CHAT_MAX_CHARS)
        )

        output = io.BytesIO()
        writer.write(output)
        return output.getvalue()

    def _add_original(
        self,
        writer: PdfWriter,
        original: bytes | None,
        mime_type: str,
        original_name: str,
    ) -> None:
        if original is None:
            self._add_notice(writer, f"Original file not available:\n{original_name}")
            return

        try:
            if mime_type == PDF_MIME or original_name.lower().endswith(".pdf"):
                writer.add_page(PdfReader(io.BytesIO(original)).pages[0])
            elif mime_type.startswith("image/"):
                self._append_canvas(writer, lambda pdf: _draw_image(pdf, original))
            else:
                self._add_notice(
                    writer,
                    "Original file cannot be rendered as an image or PDF:\n"
                    f"{original_name}\n({mime_type})",
                )
        except Exception as exc:
            logger.warning("Could not embed %s in the export: %s", original_name, exc)
            self._add_notice(writer, f"Could not embed the original file.\n{exc}")

    def _add_notice(self, writer: PdfWriter, message: str) -> None:
        def draw(pdf: canvas.Canvas) -> None:
            pdf.setFont(FONT, 12)
            y = 780
            for line in sanitize_text(message).split("\n"):
                pdf.drawString(MARGIN, y, line)
                y -= 16
            pdf.showPage()

        self._append_canvas(writer, draw)

    def _add_text_section(self, writer: PdfWriter, title: str, text: str) -> None:
        def draw(pdf: canvas.Canvas) -> None:
            width, height = A4
            y = height - MARGIN
            pdf.setFont(FONT, TITLE_SIZE)
            pdf.drawString(MARGIN, y, sanitize_text(title))
            y -= 26

            pdf.setFont(FONT, BODY_SIZE)
            for line in wrap_text(sanitize_text(text), width - 2 * MARGIN):
                if y <= MARGIN:
                    pdf.showPage()
                    pdf.setFont(FONT, BODY_SIZE)
                    y = height - MARGIN
                pdf.drawString(MARGIN, y, line)
                y -= LINE_HEIGHT
            pdf.showPage()

        self._append_canvas(writer, draw)

    @staticmethod
    def _append_canvas(
        writer: PdfWriter, draw: Callable[[canvas.Canvas], None]
    ) -> None:
        buffer = io.BytesIO()
        pdf = canvas.Canvas(buffer, pagesize=A4)
        draw(pdf)
        pdf.save()
        for page in PdfReader(buffer).pages:
            writer.add_page(page)


def _draw_image(pdf: canvas.Canvas, data: bytes) -> None:
    """Draw an image centered on an A4 page, scaled to fit the margins."""
    image = ImageReader(io.BytesIO(data))
    image_width, image_height = image.getSize()
    page_width, page_height = A4
    scale = min(
        (page_width - 2 * IMAGE_MARGIN) / image_width,
        (page_height - 2 * IMAGE_MARGIN) / image_height,
    )
    draw_width = image_width * scale
    draw_height = image_height * scale
    pdf.drawImage(
        image,
        (page_width - draw_width) / 2,
        (page_height - draw_height) / 2,
        width=draw_width,
        height=draw_height,
    )
    pdf.showPage()
