"""FastAPI application for the Paggo OCR API.

Provides REST endpoints for document upload with OCR, document listing
and download (as uploaded or as a PDF with OCR text and chat appended),
questions about a document, and health checks.
"""

import shutil
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Annotated

import torch
from fastapi import Depends, FastAPI, File, Header, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, Response
from starlette.concurrency import run_in_threadpool

from paggo_ocr import __version__
from paggo_ocr.documents.ask import AskDocumentService
from paggo_ocr.documents.download import DownloadDocumentService
from paggo_ocr.documents.ingestion import IngestionService
from paggo_ocr.documents.repository import DocumentRepository, InMemoryDocumentRepository
from paggo_ocr.documents.storage import LocalStorage
from paggo_ocr.exceptions import (
    DocumentNotFoundError,
    DocumentNotReadyError,
    LLMUnavailableError,
)
from paggo_ocr.llm.client import build_llm_client
from paggo_ocr.ocr.document_processor import DocumentProcessor
from paggo_ocr.utils.config import AppConfig, load_config
from paggo_ocr.utils.logger import get_logger

from .schemas import (
    AskRequest,
    AskResponse,
    ChatHistoryResponse,
    ChatMessageResponse,
    DocumentDetailResponse,
    DocumentResponse,
    HealthResponse,
)

logger = get_logger(__name__)

app = FastAPI(
    title="Paggo OCR API",
    description="Upload invoices, extract their text, and ask questions about them",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_ALLOWED_CONTENT_TYPES = {
    "image/png",
    "image/jpeg",
    "image/webp",
    "application/pdf",
}


@dataclass
class Services:
    """Shared components behind the endpoints."""

    config: AppConfig
    repository: DocumentRepository
    ingestion: IngestionService
    ask: AskDocumentService
    download: DownloadDocumentService


@lru_cache(maxsize=1)
def _get_services() -> Services:
    """Initialize and return the shared processing components."""
    config = load_config()
    repository = InMemoryDocumentRepository()
    storage = LocalStorage(Path(config.storage.root))
    ingestion = IngestionService(
        repository=repository,
        storage=storage,
        extractor=DocumentProcessor.from_config(config),
        max_buffer_bytes=config.storage.max_buffer_bytes,
    )
    ask = AskDocumentService(
        repository=repository,
        llm=build_llm_client(config.llm),
        context_max_chars=config.llm.context_max_chars,
        history_limit=config.llm.history_limit,
    )
    return Services(
        config=config,
        repository=repository,
        ingestion=ingestion,
        ask=ask,
        download=DownloadDocumentService(repository, storage),
    )


def get_owner_id(x_owner_id: Annotated[str | None, Header()] = None) -> str:
    """Identify the caller from the ``X-Owner-Id`` header."""
    if not x_owner_id or not x_owner_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-Owner-Id header")
    return x_owner_id.strip()


OwnerId = Annotated[str, Depends(get_owner_id)]


@app.exception_handler(DocumentNotFoundError)
async def _not_found(request: Request, exc: DocumentNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(DocumentNotReadyError)
async def _not_ready(request: Request, exc: DocumentNotReadyError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(LLMUnavailableError)
async def _llm_unavailable(request: Request, exc: LLMUnavailableError) -> JSONResponse:
    logger.error("LLM unavailable: %s", exc)
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return system health status."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        tesseract_available=shutil.which("tesseract") is not None,
        pdftoppm_available=shutil.which("pdftoppm") is not None,
        gpu_available=torch.cuda.is_available(),
        llm_configured=_get_services().ask.llm is not None,
    )


@app.post("/documents", response_model=DocumentResponse, status_code=201)
async def upload_document(
    file: Annotated[UploadFile, File(...)],
    owner_id: OwnerId,
) -> DocumentResponse:
    """Store an uploaded invoice and extract its text.

    OCR failures do not fail the upload; they show up as a FAILED
    document status.

    Args:
        file: Uploaded document file (PNG, JPEG, WEBP, or PDF).
        owner_id: Identifier of the uploading user.

    Returns:
        The stored document in its final status.
    """
    if file.content_type not in _ALLOWED_CONTENT_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type: {file.content_type}",
        )

    services = _get_services()
    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Empty file")
    if len(content) > services.config.storage.max_upload_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File exceeds {services.config.storage.max_upload_bytes} bytes",
        )

    document = await run_in_threadpool(
        services.ingestion.ingest,
        owner_id,
        content,
        file.filename or "document",
        file.content_type,
    )
    return DocumentResponse.from_document(document)


@app.get("/documents", response_model=list[DocumentResponse])
async def list_documents(owner_id: OwnerId) -> list[DocumentResponse]:
    """List the caller's documents, newest first."""
    documents = _get_services().repository.list_by_owner(owner_id)
    return [DocumentResponse.from_document(d) for d in documents]


@app.get("/documents/{document_id}", response_model=DocumentDetailResponse)
async def get_document(document_id: str, owner_id: OwnerId) -> DocumentDetailResponse:
    """Return a document with its extracted text."""
    repository = _get_services().repository
    document = repository.get_for_owner(document_id, owner_id)
    if document is None:
        raise DocumentNotFoundError(f"Document {document_id} not found")
    return DocumentDetailResponse.from_records(
        document, repository.get_ocr_result(document_id)
    )


@app.get("/documents/{document_id}/file")
async def download_file(document_id: str, owner_id: OwnerId) -> FileResponse:
    """Stream the original uploaded file."""
    document = _get_services().repository.get_for_owner(document_id, owner_id)
    if document is None:
        raise DocumentNotFoundError(f"Document {document_id} not found")

    path = Path(document.storage_path)
    if not path.is_file():
        raise HTTPException(status_code=404, detail="Stored file not found")
    return FileResponse(path, media_type=document.mime_type, filename=document.original_name)


@app.get("/documents/{document_id}/download")
async def download_with_appendix(document_id: str, owner_id: OwnerId) -> Response:
    """Download the document with its OCR text and chat appended as a PDF."""
    export = await run_in_threadpool(
        _get_services().download.download, owner_id, document_id
    )
    return Response(
        content=export.content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
    )


@app.post("/documents/{document_id}/chat", response_model=AskResponse)
async def ask_document(
    document_id: str, body: AskRequest, owner_id: OwnerId
) -> AskResponse:
    """Ask a question about a document's OCR text."""
    result = await run_in_threadpool(
        _get_services().ask.ask, owner_id, document_id, body.question
    )
    return AskResponse(session_id=result.session_id, answer=result.answer)


@app.get("/documents/{document_id}/chat", response_model=ChatHistoryResponse)
async def list_chat(document_id: str, owner_id: OwnerId) -> ChatHistoryResponse:
    """Return the chat history of a document."""
    history = _get_services().ask.list_chat(owner_id, document_id)
    return ChatHistoryResponse(
        session_id=history.session_id,
        messages=[ChatMessageResponse.from_message(m) for m in history.messages],
    )
