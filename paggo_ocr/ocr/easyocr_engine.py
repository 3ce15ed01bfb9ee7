"""In-process OCR engine backed by EasyOCR.

A recognition worker is loaded for every call and released afterwards,
whether recognition succeeded or not, so no model weights stay resident
between uploads.
"""

import gc
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import easyocr
import torch

from paggo_ocr.exceptions import EngineError, ExtractionTimeoutError
from paggo_ocr.utils.logger import get_logger
from paggo_ocr.utils.timeouts import call_with_timeout

from .base import OCREngine

logger = get_logger(__name__)

# Tesseract language codes mapped to EasyOCR ones.
_LANG_MAP = {
    "eng": "en",
    "por": "pt",
    "spa": "es",
    "fra": "fr",
    "deu": "de",
    "ita": "it",
    "vie": "vi",
}


def to_easyocr_languages(lang: str) -> list[str]:
    """Convert a Tesseract-style language hint (``eng+por``) to EasyOCR codes."""
    codes = [part.strip() for part in lang.split("+") if part.strip()]
    return [_LANG_MAP.get(code, code) for code in codes] or ["en"]


class EasyOCREngine(OCREngine):
    """EasyOCR recognizer with per-call worker lifetime.

    Args:
        lang: Tesseract-style language hint, converted to EasyOCR codes.
        gpu: Whether EasyOCR may use CUDA.
        timeout: Seconds to wait for a single recognition.
    """

    name = "easyocr"

    def __init__(self, lang: str = "eng", gpu: bool = False, timeout: float = 120.0) -> None:
        self.languages = to_easyocr_languages(lang)
        self.gpu = gpu
        self.timeout = timeout

    @contextmanager
    def _worker(self) -> Iterator[easyocr.Reader]:
        reader = easyocr.Reader(self.languages, gpu=self.gpu, verbose=False)
        try:
            yield reader
        finally:
            self._release(reader)

    def _release(self, reader: easyocr.Reader) -> None:
        """Drop the worker's models and return GPU memory to the driver."""
        reader.detector = None
        reader.recognizer = None
        gc.collect()
        if self.gpu and torch.cuda.is_available():
            torch.cuda.empty_cache()
        logger.debug("Released EasyOCR worker")

    def _recognize(self, image_path: Path) -> str:
        with self._worker() as reader:
            lines = reader.readtext(str(image_path), detail=0, paragraph=True)
        return "\n".join(lines).strip()

    def recognize(self, image_path: Path) -> str:
        """Recognize an image with a freshly loaded EasyOCR worker.

        Args:
            image_path: Path to the image file.

        Returns:
            Recognized lines joined by newlines.
        """
        try:
            text = call_with_timeout(
                lambda: self._recognize(image_path),
                self.timeout,
                f"EasyOCR recognition of {image_path.name}",
            )
        except ExtractionTimeoutError:
            raise
        except Exception as exc:
            raise EngineError(f"EasyOCR failed on {image_path.name}: {exc}") from exc

        logger.debug("EasyOCR read %d characters from %s", len(text), image_path.name)
        return text
