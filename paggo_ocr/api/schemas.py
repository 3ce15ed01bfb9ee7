"""Pydantic request/response schemas for the FastAPI endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field

from paggo_ocr.documents.models import (
    ChatMessage,
    DocumentStatus,
    OCRResultRecord,
    SourceDocument,
)


class DocumentResponse(BaseModel):
    """Response schema for an uploaded document."""

    id: str
    owner_id: str
    original_name: str
    mime_type: str
    size_bytes: int
    status: DocumentStatus
    created_at: datetime

    @classmethod
    def from_document(cls, document: SourceDocument) -> "DocumentResponse":
        return cls(
            id=document.id,
            owner_id=document.owner_id,
            original_name=document.original_name,
            mime_type=document.mime_type,
            size_bytes=document.size_bytes,
            status=document.status,
            created_at=document.created_at,
        )


class ExtractionMetaResponse(BaseModel):
    """Page accounting of a PDF extraction."""

    total_pages: int
    processed_pages: int
    truncated: bool


class DocumentDetailResponse(DocumentResponse):
    """Document together with its extracted text, once available."""

    ocr_text: str | None = None
    ocr_method: str | None = None
    ocr_meta: ExtractionMetaResponse | None = None

    @classmethod
    def from_records(
        cls, document: SourceDocument, record: OCRResultRecord | None
    ) -> "DocumentDetailResponse":
        base = DocumentResponse.from_document(document).model_dump()
        if record is None:
            return cls(**base)

        meta = None
        if record.total_pages is not None and record.processed_pages is not None:
            meta = ExtractionMetaResponse(
                total_pages=record.total_pages,
                processed_pages=record.processed_pages,
                truncated=record.truncated,
            )
        return cls(**base, ocr_text=record.text, ocr_method=record.method, ocr_meta=meta)


class AskRequest(BaseModel):
    """Request schema for a question about a document."""

    question: str = Field(min_length=2, max_length=500)


class AskResponse(BaseModel):
    session_id: str
    answer: str


class ChatMessageResponse(BaseModel):
    id: str
    role: str
    content: str
    created_at: datetime

    @classmethod
    def from_message(cls, message: ChatMessage) -> "ChatMessageResponse":
        return cls(
            id=message.id,
            role=message.role.value,
            content=message.content,
            created_at=message.created_at,
        )


class ChatHistoryResponse(BaseModel):
    session_id: str
    messages: list[ChatMessageResponse]


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    tesseract_available: bool
    pdftoppm_available: bool
    gpu_available: bool
    llm_configured: bool
