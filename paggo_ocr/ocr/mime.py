"""MIME type detection from file signatures."""

from pathlib import Path

from paggo_ocr.utils.logger import get_logger

logger = get_logger(__name__)

PDF_MIME = "application/pdf"

SUPPORTED_IMAGE_TYPES = frozenset(
    {"image/png", "image/jpeg", "image/webp", "image/tiff"}
)

_SIGNATURES: tuple[tuple[bytes, str], ...] = (
    (b"%PDF", PDF_MIME),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"II*\x00", "image/tiff"),
    (b"MM\x00*", "image/tiff"),
)

_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/webp": ".webp",
    "image/tiff": ".tiff",
    PDF_MIME: ".pdf",
}

# Longest signature we need to look at (RIFF....WEBP).
HEADER_SIZE = 16


def sniff_mime_type(data: bytes) -> str | None:
    """Detect a MIME type from the leading bytes of a file.

    Args:
        data: File content, or at least its first ``HEADER_SIZE`` bytes.

    Returns:
        The detected MIME type, or ``None`` if no signature matches.
    """
    head = data[:HEADER_SIZE]
    for signature, mime in _SIGNATURES:
        if head.startswith(signature):
            return mime
    if head[:4] == b"RIFF" and head[8:12] == b"WEBP":
        return "image/webp"
    return None


def sniff_file(path: Path) -> str | None:
    """Detect the MIME type of a file on disk from its header bytes."""
    with open(path, "rb") as f:
        return sniff_mime_type(f.read(HEADER_SIZE))


def resolve_mime_type(sniffed: str | None, declared: str | None) -> str | None:
    """Pick the effective MIME type; a sniffed type always wins."""
    if sniffed:
        if declared and declared != sniffed:
            logger.debug(
                "Declared MIME type %s overridden by sniffed %s", declared, sniffed
            )
        return sniffed
    return declared


def extension_for(mime_type: str | None) -> str:
    """Return the storage file extension for a MIME type, or ``""``."""
    return _EXTENSIONS.get(mime_type or "", "")
