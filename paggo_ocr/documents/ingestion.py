"""Document ingestion.

Stores an uploaded file, runs text extraction on it, and records each
lifecycle step as soon as it happens so concurrent readers can follow a
document through UPLOADED -> OCR_PROCESSING -> OCR_DONE | FAILED. A
document whose bytes cannot be stored goes straight from UPLOADED to FAILED.

Extraction failure is not an ingestion failure: the upload always
returns the document, in FAILED state if OCR did not succeed.
"""

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from paggo_ocr.ocr.mime import extension_for
from paggo_ocr.ocr.models import ExtractionRequest, ExtractionResult
from paggo_ocr.utils.logger import get_logger

from .models import PENDING_STORAGE_PATH, DocumentStatus, OCRResultRecord, SourceDocument
from .repository import DocumentRepository
from .storage import LocalStorage

logger = get_logger(__name__)

DEFAULT_MAX_BUFFER_BYTES = 8 * 1024 * 1024

_SAFE_EXTENSION = re.compile(r"\.[A-Za-z0-9]{1,10}")


class TextExtractor(Protocol):
    def extract(self, request: ExtractionRequest) -> ExtractionResult: ...


@dataclass(frozen=True)
class ExtractionFailure:
    """Diagnostic context for a document whose extraction failed."""

    document_id: str
    original_name: str
    mime_type: str
    storage_path: str
    error: Exception


FailureObserver = Callable[[ExtractionFailure], None]


def log_extraction_failure(failure: ExtractionFailure) -> None:
    """Default observer: log the failed document with its error."""
    logger.error(
        "OCR failed for document %s (name=%s, mime=%s, path=%s): %s",
        failure.document_id,
        failure.original_name,
        failure.mime_type,
        failure.storage_path,
        failure.error,
        exc_info=failure.error,
    )


def storage_extension(declared_mime_type: str | None, file_name: str) -> str:
    """Pick the stored file extension: MIME type first, then the file name."""
    extension = extension_for(declared_mime_type)
    if extension:
        return extension
    suffix = Path(file_name).suffix.lower()
    return suffix if _SAFE_EXTENSION.fullmatch(suffix) else ""


class IngestionService:
    """Coordinates storage, extraction, and status updates for uploads.

    Args:
        repository: Document persistence.
        storage: File storage for the uploaded bytes.
        extractor: Text extraction pipeline.
        max_buffer_bytes: Uploads smaller than this are handed to the
            extractor in memory; larger ones are re-read from storage.
        failure_observers: Called with diagnostics whenever a document
            moves to FAILED. Defaults to logging the failure.
    """

    def __init__(
        self,
        repository: DocumentRepository,
        storage: LocalStorage,
        extractor: TextExtractor,
        max_buffer_bytes: int = DEFAULT_MAX_BUFFER_BYTES,
        failure_observers: Sequence[FailureObserver] | None = None,
    ) -> None:
        self.repository = repository
        self.storage = storage
        self.extractor = extractor
        self.max_buffer_bytes = max_buffer_bytes
        self.failure_observers = (
            list(failure_observers)
            if failure_observers is not None
            else [log_extraction_failure]
        )

    def ingest(
        self,
        owner_id: str,
        file_bytes: bytes,
        file_name: str,
        declared_mime_type: str,
    ) -> SourceDocument:
        """Store an upload and extract its text.

        Args:
            owner_id: Identifier of the uploading user.
            file_bytes: Raw file content.
            file_name: Original file name from the client.
            declared_mime_type: MIME type reported by the client.

        Returns:
            The document in its final status (OCR_DONE or FAILED).

        Raises:
            OSError: If the upload could not be stored. The document is
                moved to FAILED and the failure observers are notified first.
        """
        document = self.repository.create(
            owner_id=owner_id,
            original_name=file_name,
            mime_type=declared_mime_type,
            size_bytes=len(file_bytes),
            storage_path=PENDING_STORAGE_PATH,
        )
        logger.info("Created document %s for %s", document.id, file_name)

        storage_path = PENDING_STORAGE_PATH
        try:
            relative_path = f"{document.id}{storage_extension(declared_mime_type, file_name)}"
            absolute_path = self.storage.save(relative_path, file_bytes)
            storage_path = str(absolute_path)
            self.repository.update_storage_path(document.id, storage_path)
            self.repository.update_status(document.id, DocumentStatus.OCR_PROCESSING)
        except Exception as exc:
            self._fail(document.id, file_name, declared_mime_type, storage_path, exc)
            raise

        request = ExtractionRequest(
            absolute_path=absolute_path,
            buffer=file_bytes if len(file_bytes) < self.max_buffer_bytes else None,
            declared_mime_type=declared_mime_type,
        )
        try:
            result = self.extractor.extract(request)
        except Exception as exc:
            self._fail(document.id, file_name, declared_mime_type, storage_path, exc)
        else:
            self.repository.upsert_ocr_result(_to_record(document.id, result))
            self.repository.update_status(document.id, DocumentStatus.OCR_DONE)
            logger.info(
                "Document %s extracted via %s (%d characters)",
                document.id,
                result.method,
                len(result.text),
            )

        final = self.repository.get(document.id)
        if final is None:
            raise RuntimeError(f"Document {document.id} disappeared during ingestion")
        return final

    def _fail(
        self,
        document_id: str,
        file_name: str,
        mime_type: str,
        storage_path: str,
        error: Exception,
    ) -> None:
        self.repository.update_status(document_id, DocumentStatus.FAILED)
        self._notify_failure(
            ExtractionFailure(
                document_id=document_id,
                original_name=file_name,
                mime_type=mime_type,
                storage_path=storage_path,
                error=error,
            )
        )

    def _notify_failure(self, failure: ExtractionFailure) -> None:
        for observer in self.failure_observers:
            try:
                observer(failure)
            except Exception:
                logger.exception(
                    "Failure observer %r raised for document %s",
                    observer,
                    failure.document_id,
                )


def _to_record(document_id: str, result: ExtractionResult) -> OCRResultRecord:
    meta = result.meta
    return OCRResultRecord(
        document_id=document_id,
        text=result.text,
        method=result.method.value,
        total_pages=meta.total_pages if meta else None,
        processed_pages=meta.processed_pages if meta else None,
        truncated=meta.truncated if meta else False,
    )
