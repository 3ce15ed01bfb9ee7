"""Native Tesseract OCR engine.

Runs the ``tesseract`` command-line binary once per image through
pytesseract and returns the text it prints.
"""

from pathlib import Path

import pytesseract
from pytesseract import TesseractError, TesseractNotFoundError

from paggo_ocr.exceptions import EngineError, ExtractionTimeoutError
from paggo_ocr.utils.logger import get_logger

from .base import OCREngine

logger = get_logger(__name__)


class TesseractEngine(OCREngine):
    """Wrapper around the Tesseract binary for plain-text extraction.

    Args:
        tesseract_cmd: Path to the Tesseract executable.
            If ``None``, uses the system default.
        lang: Tesseract language code, e.g. ``eng`` or ``eng+por``.
        psm: Tesseract page segmentation mode.
        timeout: Seconds before the Tesseract process is killed.
    """

    name = "tesseract"

    def __init__(
        self,
        tesseract_cmd: str | None = None,
        lang: str = "eng",
        psm: int = 3,
        timeout: float = 120.0,
    ) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.lang = lang
        self.psm = psm
        self.timeout = timeout

    def recognize(self, image_path: Path) -> str:
        """Run Tesseract on an image file.

        Args:
            image_path: Path to a PNG, JPEG, WEBP or TIFF image.

        Returns:
            Recognized text with surrounding whitespace removed.
        """
        try:
            text = pytesseract.image_to_string(
                str(image_path),
                lang=self.lang,
                config=f"--psm {self.psm}",
                timeout=self.timeout,
            )
        except TesseractNotFoundError as exc:
            raise EngineError("Tesseract binary not found") from exc
        except TesseractError as exc:
            raise EngineError(f"Tesseract failed on {image_path.name}: {exc}") from exc
        except RuntimeError as exc:
            # pytesseract signals a killed process with a bare RuntimeError.
            if "timeout" in str(exc).lower():
                raise ExtractionTimeoutError(
                    f"Tesseract timed out after {self.timeout:g}s on {image_path.name}"
                ) from exc
            raise EngineError(f"Tesseract failed on {image_path.name}: {exc}") from exc

        text = text.strip()
        logger.debug("Tesseract read %d characters from %s", len(text), image_path.name)
        return text
