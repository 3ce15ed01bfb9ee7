"""Capability interface shared by the OCR engines."""

from abc import ABC, abstractmethod
from pathlib import Path


class OCREngine(ABC):
    """Recognizes the text of a single image file."""

    name: str = "ocr"

    @abstractmethod
    def recognize(self, image_path: Path) -> str:
        """Return the text recognized in ``image_path``, stripped.

        Raises:
            EngineError: If the engine fails on the image.
            ExtractionTimeoutError: If recognition exceeds the time limit.
        """
