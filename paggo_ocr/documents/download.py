"""Download of a document bundled with its OCR text and chat."""

import re
from dataclasses import dataclass
from pathlib import Path

from paggo_ocr.exceptions import DocumentNotFoundError
from paggo_ocr.utils.logger import get_logger

from .appendix import PdfAppendixBuilder
from .models import DocumentStatus
from .repository import DocumentRepository
from .storage import LocalStorage

logger = get_logger(__name__)

CHAT_EXPORT_LIMIT = 200

_UNSAFE_NAME_CHARS = re.compile(r"[^\w.\- ]+", re.ASCII)
_KNOWN_EXTENSION = re.compile(r"\.(png|jpe?g|webp|pdf)$", re.IGNORECASE)


def export_filename(original_name: str, document_id: str) -> str:
    """Name of the export: ``<original name without extension>_with_ocr_chat.pdf``."""
    base = _UNSAFE_NAME_CHARS.sub("_", original_name or f"document_{document_id}")
    return _KNOWN_EXTENSION.sub("", base) + "_with_ocr_chat.pdf"


@dataclass(frozen=True)
class DocumentExport:
    filename: str
    content: bytes


class DownloadDocumentService:
    """Builds the downloadable PDF of a document with its OCR and chat.

    Args:
        repository: Document and chat persistence.
        storage: File storage holding the original uploads.
        builder: PDF layout of the export.
    """

    def __init__(
        self,
        repository: DocumentRepository,
        storage: LocalStorage,
        builder: PdfAppendixBuilder | None = None,
    ) -> None:
        self.repository = repository
        self.storage = storage
        self.builder = builder or PdfAppendixBuilder()

    def download(self, owner_id: str, document_id: str) -> DocumentExport:
        """Export one of the owner's documents.

        Raises:
            DocumentNotFoundError: If the owner has no such document.
        """
        document = self.repository.get_for_owner(document_id, owner_id)
        if document is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")

        ocr_text = (
            self.repository.get_ocr_text(document_id)
            if document.status == DocumentStatus.OCR_DONE
            else None
        )
        session = self.repository.get_or_create_chat_session(document_id, owner_id)
        messages = self.repository.list_chat_messages(session.id, CHAT_EXPORT_LIMIT)

        # Uploads are stored under their own file name at the storage root.
        try:
            with self.storage.open(Path(document.storage_path).name) as f:
                original: bytes | None = f.read()
        except OSError as exc:
            logger.warning("Original file of document %s is unreadable: %s", document_id, exc)
            original = None

        content = self.builder.build(
            original=original,
            mime_type=document.mime_type,
            original_name=document.original_name,
            ocr_text=ocr_text,
            chat=messages,
        )
        logger.info(
            "Exported document %s with %d chat messages (%d bytes)",
            document_id,
            len(messages),
            len(content),
        )
        return DocumentExport(
            filename=export_filename(document.original_name, document_id),
            content=content,
        )
