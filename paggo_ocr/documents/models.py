"""Document lifecycle and chat records."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum


class DocumentStatus(StrEnum):
    """Lifecycle of an uploaded document."""

    UPLOADED = "UPLOADED"
    OCR_PROCESSING = "OCR_PROCESSING"
    OCR_DONE = "OCR_DONE"
    FAILED = "FAILED"

    def can_transition_to(self, target: "DocumentStatus") -> bool:
        return target in _TRANSITIONS[self]


_TRANSITIONS: dict[DocumentStatus, frozenset[DocumentStatus]] = {
    DocumentStatus.UPLOADED: frozenset(
        {DocumentStatus.OCR_PROCESSING, DocumentStatus.FAILED}
    ),
    DocumentStatus.OCR_PROCESSING: frozenset(
        {DocumentStatus.OCR_DONE, DocumentStatus.FAILED}
    ),
    DocumentStatus.OCR_DONE: frozenset(),
    DocumentStatus.FAILED: frozenset(),
}

PENDING_STORAGE_PATH = "PENDING"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SourceDocument:
    """An uploaded file and where it is in the OCR lifecycle."""

    id: str
    owner_id: str
    original_name: str
    mime_type: str
    size_bytes: int
    storage_path: str = PENDING_STORAGE_PATH
    status: DocumentStatus = DocumentStatus.UPLOADED
    created_at: datetime = field(default_factory=_utcnow)


@dataclass
class OCRResultRecord:
    """Extracted text stored 1:1 with its document."""

    document_id: str
    text: str
    method: str
    total_pages: int | None = None
    processed_pages: int | None = None
    truncated: bool = False
    updated_at: datetime = field(default_factory=_utcnow)


class ChatRole(StrEnum):
    USER = "USER"
    ASSISTANT = "ASSISTANT"


@dataclass
class ChatSession:
    id: str
    document_id: str
    owner_id: str
    created_at: datetime = field(default_factory=_utcnow)


@dataclass
class ChatMessage:
    id: str
    session_id: str
    role: ChatRole
    content: str
    created_at: datetime = field(default_factory=_utcnow)
