"""Local filesystem storage for uploaded files."""

import os
from pathlib import Path
from typing import BinaryIO

from paggo_ocr.utils.logger import get_logger

logger = get_logger(__name__)


class LocalStorage:
    """Durable byte storage keyed by paths relative to a root directory.

    Args:
        root: Directory all stored files live under.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root).resolve()

    def resolve(self, relative_path: str) -> Path:
        """Map a storage key to an absolute path inside the root.

        Raises:
            ValueError: If the key escapes the storage root.
        """
        path = (self.root / relative_path).resolve()
        if not path.is_relative_to(self.root):
            raise ValueError(f"Storage key escapes the storage root: {relative_path}")
        return path

    def save(self, relative_path: str, data: bytes) -> Path:
        """Write ``data`` and flush it to disk before returning.

        Args:
            relative_path: Storage key chosen by the caller.
            data: File content.

        Returns:
            Absolute path of the stored file.
        """
        path = self.resolve(relative_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        logger.debug("Stored %d bytes at %s", len(data), path)
        return path

    def open(self, relative_path: str) -> BinaryIO:
        """Open a stored file for binary reading."""
        return open(self.resolve(relative_path), "rb")
