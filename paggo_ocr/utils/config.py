"""Configuration management for the Paggo OCR service.

Loads and validates YAML configuration with sensible defaults for the
OCR engines, PDF extraction limits, file storage, and the LLM backend.
"""

import logging
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class OCRConfig(BaseModel):
    """Configuration for the OCR engine selection."""

    engine: Literal["native", "in_process"] = "native"
    lang: str = "eng"
    tesseract_cmd: str | None = None
    psm: int = 3
    poppler_path: str | None = None
    gpu: bool = False
    timeout_seconds: float = Field(default=120.0, gt=0)


class PDFConfig(BaseModel):
    """Limits for PDF text-layer extraction and raster OCR fallback."""

    min_text_chars: int = Field(default=80, ge=0)
    text_batch_size: int = Field(default=10, ge=1)
    text_max_pages: int = Field(default=200, ge=1)
    image_batch_size: int = Field(default=5, ge=1)
    image_max_pages: int = Field(default=30, ge=1)
    dpi: int = Field(default=200, ge=36)


class StorageConfig(BaseModel):
    """Configuration for uploaded file storage."""

    root: str = "storage"
    tmp_dir: str = "storage/tmp"
    max_buffer_bytes: int = 8 * 1024 * 1024
    max_upload_bytes: int = 10 * 1024 * 1024


class LLMConfig(BaseModel):
    """Configuration for the question-answering LLM backend."""

    provider: Literal["gemini", "openai", "none"] = "gemini"
    model: str | None = None
    api_key: str | None = None
    max_output_tokens: int = 400
    retries: int = Field(default=3, ge=0)
    base_delay_seconds: float = 0.6
    max_delay_seconds: float = 3.0
    context_max_chars: int = 20000
    history_limit: int = 20


class AppConfig(BaseModel):
    """Top-level application configuration."""

    ocr: OCRConfig = Field(default_factory=OCRConfig)
    pdf: PDFConfig = Field(default_factory=PDFConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    log_level: str = "INFO"


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
