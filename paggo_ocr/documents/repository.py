"""Document persistence.

``DocumentRepository`` is the interface the ingestion and question
services depend on. ``InMemoryDocumentRepository`` keeps rows in process
memory behind a lock: every write is visible to other threads as soon as
the call returns, and readers always receive copies, never live rows.
"""

import threading
import uuid
from dataclasses import replace
from typing import Protocol

from paggo_ocr.exceptions import DocumentNotFoundError, DocumentStateError
from paggo_ocr.utils.logger import get_logger

from .models import (
    ChatMessage,
    ChatRole,
    ChatSession,
    DocumentStatus,
    OCRResultRecord,
    SourceDocument,
)

logger = get_logger(__name__)


class DocumentRepository(Protocol):
    """Storage operations over documents, OCR results, and chat history."""

    def create(
        self,
        owner_id: str,
        original_name: str,
        mime_type: str,
        size_bytes: int,
        storage_path: str,
        status: DocumentStatus = DocumentStatus.UPLOADED,
    ) -> SourceDocument: ...

    def get(self, document_id: str) -> SourceDocument | None: ...

    def get_for_owner(self, document_id: str, owner_id: str) -> SourceDocument | None: ...

    def list_by_owner(self, owner_id: str) -> list[SourceDocument]: ...

    def update_storage_path(self, document_id: str, storage_path: str) -> SourceDocument: ...

    def update_status(self, document_id: str, status: DocumentStatus) -> SourceDocument: ...

    def upsert_ocr_result(self, record: OCRResultRecord) -> None: ...

    def get_ocr_result(self, document_id: str) -> OCRResultRecord | None: ...

    def get_ocr_text(self, document_id: str) -> str | None: ...

    def get_or_create_chat_session(self, document_id: str, owner_id: str) -> ChatSession: ...

    def add_chat_message(self, session_id: str, role: ChatRole, content: str) -> ChatMessage: ...

    def list_chat_messages(self, session_id: str, limit: int) -> list[ChatMessage]: ...


class InMemoryDocumentRepository:
    """Thread-safe, process-local ``DocumentRepository``."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._documents: dict[str, SourceDocument] = {}
        self._ocr_results: dict[str, OCRResultRecord] = {}
        self._sessions: dict[tuple[str, str], ChatSession] = {}
        self._messages: dict[str, list[ChatMessage]] = {}

    def create(
        self,
        owner_id: str,
        original_name: str,
        mime_type: str,
        size_bytes: int,
        storage_path: str,
        status: DocumentStatus = DocumentStatus.UPLOADED,
    ) -> SourceDocument:
        document = SourceDocument(
            id=str(uuid.uuid4()),
            owner_id=owner_id,
            original_name=original_name,
            mime_type=mime_type,
            size_bytes=size_bytes,
            storage_path=storage_path,
            status=status,
        )
        with self._lock:
            self._documents[document.id] = document
            return replace(document)

    def get(self, document_id: str) -> SourceDocument | None:
        with self._lock:
            document = self._documents.get(document_id)
            return replace(document) if document else None

    def get_for_owner(self, document_id: str, owner_id: str) -> SourceDocument | None:
        document = self.get(document_id)
        if document is None or document.owner_id != owner_id:
            return None
        return document

    def list_by_owner(self, owner_id: str) -> list[SourceDocument]:
        with self._lock:
            owned = [replace(d) for d in self._documents.values() if d.owner_id == owner_id]
        return sorted(owned, key=lambda d: d.created_at, reverse=True)

    def update_storage_path(self, document_id: str, storage_path: str) -> SourceDocument:
        with self._lock:
            document = self._require(document_id)
            document.storage_path = storage_path
            return replace(document)

    def update_status(self, document_id: str, status: DocumentStatus) -> SourceDocument:
        """Move a document to ``status`` if its lifecycle allows it.

        Raises:
            DocumentNotFoundError: If the document does not exist.
            DocumentStateError: If the transition is not allowed.
        """
        with self._lock:
            document = self._require(document_id)
            if not document.status.can_transition_to(status):
                raise DocumentStateError(
                    f"Document {document_id} cannot move from {document.status} to {status}"
                )
            document.status = status
            logger.debug("Document %s is now %s", document_id, status)
            return replace(document)

    def upsert_ocr_result(self, record: OCRResultRecord) -> None:
        with self._lock:
            self._require(record.document_id)
            self._ocr_results[record.document_id] = replace(record)

    def get_ocr_result(self, document_id: str) -> OCRResultRecord | None:
        with self._lock:
            record = self._ocr_results.get(document_id)
            return replace(record) if record else None

    def get_ocr_text(self, document_id: str) -> str | None:
        record = self.get_ocr_result(document_id)
        return record.text if record else None

    def get_or_create_chat_session(self, document_id: str, owner_id: str) -> ChatSession:
        with self._lock:
            self._require(document_id)
            key = (document_id, owner_id)
            session = self._sessions.get(key)
            if session is None:
                session = ChatSession(
                    id=str(uuid.uuid4()), document_id=document_id, owner_id=owner_id
                )
                self._sessions[key] = session
                self._messages[session.id] = []
            return replace(session)

    def add_chat_message(self, session_id: str, role: ChatRole, content: str) -> ChatMessage:
        message = ChatMessage(
            id=str(uuid.uuid4()), session_id=session_id, role=role, content=content
        )
        with self._lock:
            if session_id not in self._messages:
                raise DocumentNotFoundError(f"Chat session {session_id} not found")
            self._messages[session_id].append(message)
        return replace(message)

    def list_chat_messages(self, session_id: str, limit: int) -> list[ChatMessage]:
        """Return the most recent ``limit`` messages, oldest first."""
        with self._lock:
            messages = self._messages.get(session_id, [])
            recent = messages[-limit:] if limit > 0 else []
            return [replace(m) for m in recent]

    def _require(self, document_id: str) -> SourceDocument:
        document = self._documents.get(document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return document
