"""Tests for the document export with OCR text and chat."""

import io
from pathlib import Path

import pytest
from pypdf import PdfReader
from reportlab.pdfgen import canvas

from paggo_ocr.documents.appendix import (
    CHAT_EMPTY,
    CHAT_TITLE,
    OCR_EMPTY,
    OCR_TITLE,
    PdfAppendixBuilder,
    sanitize_text,
)
from paggo_ocr.documents.download import (
    CHAT_EXPORT_LIMIT,
    DownloadDocumentService,
    export_filename,
)
from paggo_ocr.documents.models import ChatRole, DocumentStatus, OCRResultRecord
from paggo_ocr.documents.repository import InMemoryDocumentRepository
from paggo_ocr.documents.storage import LocalStorage
from paggo_ocr.exceptions import DocumentNotFoundError
from paggo_ocr.ocr.models import ExtractionMethod


def _two_page_pdf() -> bytes:
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer)
    pdf.drawString(72, 720, "ORIGINAL page 1")
    pdf.showPage()
    pdf.drawString(72, 720, "ORIGINAL page 2")
    pdf.showPage()
    pdf.save()
    return buffer.getvalue()


def _text(content: bytes) -> str:
    return "\n".join(page.extract_text() for page in PdfReader(io.BytesIO(content)).pages)


@pytest.fixture
def storage(tmp_path: Path) -> LocalStorage:
    return LocalStorage(tmp_path / "storage")


@pytest.fixture
def repository() -> InMemoryDocumentRepository:
    return InMemoryDocumentRepository()


def _stored_document(
    repository: InMemoryDocumentRepository,
    storage: LocalStorage,
    content: bytes,
    name: str,
    mime_type: str,
    ocr_text: str | None = "TOTAL 42.00",
):
    document = repository.create("alice", name, mime_type, len(content), "pending")
    path = storage.save(f"{document.id}{Path(name).suffix}", content)
    repository.update_storage_path(document.id, str(path))
    repository.update_status(document.id, DocumentStatus.OCR_PROCESSING)
    if ocr_text is None:
        repository.update_status(document.id, DocumentStatus.FAILED)
    else:
        repository.upsert_ocr_result(
            OCRResultRecord(
                document_id=document.id,
                text=ocr_text,
                method=ExtractionMethod.IMAGE_OCR,
            )
        )
        repository.update_status(document.id, DocumentStatus.OCR_DONE)
    return document


class TestExportFilename:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("invoice.pdf", "invoice_with_ocr_chat.pdf"),
            ("Scan.JPEG", "Scan_with_ocr_chat.pdf"),
            ("nota fiscal.png", "nota fiscal_with_ocr_chat.pdf"),
            ('bad"name;.webp', "bad_name__with_ocr_chat.pdf"),
            ("archive.tar", "archive.tar_with_ocr_chat.pdf"),
        ],
    )
    def test_names(self, name: str, expected: str) -> None:
        assert export_filename(name, "doc-1") == expected

    def test_empty_name_uses_document_id(self) -> None:
        assert export_filename("", "doc-1") == "document_doc-1_with_ocr_chat.pdf"


class TestSanitizeText:
    def test_typography_is_mapped(self) -> None:
        assert sanitize_text("a \u2192 b \u2014 \u201cc\u201d") == 'a -> b - "c"'

    def test_unsupported_characters_are_replaced(self) -> None:
        assert sanitize_text("total\t\u6c34") == "total ?"


class TestPdfAppendixBuilder:
    def test_image_original(self, png_bytes: bytes) -> None:
        content = PdfAppendixBuilder().build(
            original=png_bytes,
            mime_type="image/png",
            original_name="invoice.png",
            ocr_text="TOTAL 42.00",
            chat=[],
        )

        reader = PdfReader(io.BytesIO(content))
        assert len(reader.pages) == 3
        assert OCR_TITLE in reader.pages[1].extract_text()
        assert "TOTAL 42.00" in reader.pages[1].extract_text()
        assert CHAT_EMPTY in reader.pages[2].extract_text()

    def test_only_first_page_of_pdf_is_copied(self) -> None:
        content = PdfAppendixBuilder().build(
            original=_two_page_pdf(),
            mime_type="application/pdf",
            original_name="invoice.pdf",
            ocr_text="TOTAL 42.00",
            chat=[],
        )

        text = _text(content)
        assert "ORIGINAL page 1" in text
        assert "ORIGINAL page 2" not in text

    def test_corrupt_original_gets_a_notice(self) -> None:
        content = PdfAppendixBuilder().build(
            original=b"not really a pdf",
            mime_type="application/pdf",
            original_name="broken.pdf",
            ocr_text=None,
            chat=[],
        )

        text = _text(content)
        assert "Could not embed the original file." in text
        assert OCR_EMPTY in text

    def test_long_ocr_text_is_truncated(self) -> None:
        content = PdfAppendixBuilder().build(
            original=None,
            mime_type="image/png",
            original_name="invoice.png",
            ocr_text="line of invoice text\n" * 7000,
            chat=[],
        )

        assert "[TRUNCATED]" in _text(content)

    def test_long_text_spans_several_pages(self) -> None:
        content = PdfAppendixBuilder().build(
            original=None,
            mime_type="image/png",
            original_name="invoice.png",
            ocr_text="\n".join(f"item {i}" for i in range(200)),
            chat=[],
        )

        assert len(PdfReader(io.BytesIO(content)).pages) > 3


class TestDownloadDocumentService:
    def test_export_contains_original_ocr_and_chat(
        self,
        repository: InMemoryDocumentRepository,
        storage: LocalStorage,
        png_bytes: bytes,
    ) -> None:
        document = _stored_document(repository, storage, png_bytes, "invoice.png", "image/png")
        session = repository.get_or_create_chat_session(document.id, "alice")
        repository.add_chat_message(session.id, ChatRole.USER, "What is the total?")
        repository.add_chat_message(session.id, ChatRole.ASSISTANT, "The total is 42.00.")

        export = DownloadDocumentService(repository, storage).download("alice", document.id)

        assert export.filename == "invoice_with_ocr_chat.pdf"
        reader = PdfReader(io.BytesIO(export.content))
        assert len(reader.pages) == 3
        text = _text(export.content)
        assert "TOTAL 42.00" in text
        assert CHAT_TITLE in text
        assert "USER: What is the total?" in text
        assert "ASSISTANT: The total is 42.00." in text

    def test_jpeg_original(
        self,
        repository: InMemoryDocumentRepository,
        storage: LocalStorage,
        jpeg_bytes: bytes,
    ) -> None:
        document = _stored_document(repository, storage, jpeg_bytes, "scan.jpg", "image/jpeg")

        export = DownloadDocumentService(repository, storage).download("alice", document.id)

        assert export.filename == "scan_with_ocr_chat.pdf"
        assert len(PdfReader(io.BytesIO(export.content)).pages) == 3

    def test_missing_original(
        self,
        repository: InMemoryDocumentRepository,
        storage: LocalStorage,
        png_bytes: bytes,
    ) -> None:
        document = _stored_document(repository, storage, png_bytes, "invoice.png", "image/png")
        Path(repository.get(document.id).storage_path).unlink()

        export = DownloadDocumentService(repository, storage).download("alice", document.id)

        text = _text(export.content)
        assert "Original file not available:" in text
        assert "invoice.png" in text

    def test_failed_document_has_no_ocr_text(
        self, repository: InMemoryDocumentRepository, storage: LocalStorage
    ) -> None:
        document = _stored_document(
            repository, storage, _two_page_pdf(), "scan.pdf", "application/pdf", ocr_text=None
        )

        export = DownloadDocumentService(repository, storage).download("alice", document.id)

        text = _text(export.content)
        assert "ORIGINAL page 1" in text
        assert OCR_EMPTY in text

    def test_other_owner_is_not_found(
        self,
        repository: InMemoryDocumentRepository,
        storage: LocalStorage,
        png_bytes: bytes,
    ) -> None:
        document = _stored_document(repository, storage, png_bytes, "invoice.png", "image/png")

        with pytest.raises(DocumentNotFoundError):
            DownloadDocumentService(repository, storage).download("bob", document.id)

    def test_chat_is_limited_to_recent_messages(
        self,
        repository: InMemoryDocumentRepository,
        storage: LocalStorage,
        png_bytes: bytes,
    ) -> None:
        document = _stored_document(repository, storage, png_bytes, "invoice.png", "image/png")
        session = repository.get_or_create_chat_session(document.id, "alice")
        for i in range(CHAT_EXPORT_LIMIT + 5):
            repository.add_chat_message(session.id, ChatRole.USER, f"question number {i:03d}")

        export = DownloadDocumentService(repository, storage).download("alice", document.id)

        text = _text(export.content)
        assert "question number 004" not in text
        assert "question number 005" in text
        assert f"question number {CHAT_EXPORT_LIMIT + 4:03d}" in text
