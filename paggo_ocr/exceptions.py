"""Custom exceptions for the Paggo OCR service."""


class PaggoOCRError(Exception):
    """Base exception for Paggo OCR errors."""

    pass


class UnsupportedMediaError(PaggoOCRError):
    """Raised when a document is neither a supported image nor a PDF."""

    def __init__(self, mime_type: str | None) -> None:
        super().__init__(f"Unsupported MIME type for OCR: {mime_type}")
        self.mime_type = mime_type


class EngineError(PaggoOCRError):
    """Raised when an OCR or PDF text-layer engine invocation fails."""

    pass


class RasterizationError(PaggoOCRError):
    """Raised when a PDF page could not be rendered to an image."""

    pass


class ExtractionTimeoutError(PaggoOCRError):
    """Raised when an external extraction call exceeds its time limit."""

    pass


class DocumentNotFoundError(PaggoOCRError):
    """Raised when a document does not exist for the requesting owner."""

    pass


class DocumentNotReadyError(PaggoOCRError):
    """Raised when a document has no usable OCR text yet."""

    pass


class DocumentStateError(PaggoOCRError):
    """Raised on a status transition the document lifecycle forbids."""

    pass


class LLMUnavailableError(PaggoOCRError):
    """Raised when the LLM backend is not configured or keeps failing."""

    pass
