"""Runtime configuration for pdf2docxauto.

Every value can be overridden with an environment variable carrying the
``PDF2DOCX_`` prefix (for example ``PDF2DOCX_OCR_LANG=eng``) or from a local
``.env`` file.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .types import ConversionMode


class Settings(BaseSettings):
    """Settings shared by the CLI, the HTTP service and the orchestrator."""

    model_config = SettingsConfigDict(
        env_prefix="PDF2DOCX_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Service
    conversion_mode: ConversionMode = ConversionMode.AUTO
    log_level: str = "INFO"
    max_upload_mb: int = 50

    # Directories
    upload_dir: Path = Path("./uploads")
    output_dir: Path = Path("./output")
    temp_dir: Path = Path("./temp")

    # External tools
    libreoffice_path: str | None = None
    tesseract_path: str | None = None
    whole_document_engine: Literal["libreoffice", "pdf2docx"] = "libreoffice"
    poppler_path: str | None = None

    # Input and output documents
    pdf_password: str | None = None
    docx_margin_inches: float | None = Field(default=None, gt=0)

    # OCR
    ocr_lang: str = "spa+eng"
    ocr_psm: int = 3
    ocr_oem: int = 1
    ocr_max_workers: int = Field(default=2, ge=1)

    # Scanned-document detection
    text_threshold: float = 5.0
    min_text_per_page: int = 50
    expected_chars_per_page: int = 2000
    min_usable_text: int = 100

    # Timeouts (seconds)
    rasterize_timeout: float = 120.0
    ocr_page_timeout: float = 60.0
    whole_document_timeout: float = 180.0

    def ensure_directories(self) -> None:
        """Create the upload, output and temp directories when missing."""
        for directory in (self.upload_dir, self.output_dir, self.temp_dir):
            directory.mkdir(parents=True, exist_ok=True)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
