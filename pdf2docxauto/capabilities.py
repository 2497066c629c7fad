"""Detection of optional external converters."""

from __future__ import annotations

import importlib.util
import logging
from typing import Sequence

from .config import Settings
from .types import CapabilitySet
from .utils import which

LOGGER = logging.getLogger(__name__)

LIBREOFFICE_CANDIDATES: Sequence[str] = (
    "soffice",
    "libreoffice",
    "/usr/bin/soffice",
    "/usr/bin/libreoffice",
    "/Applications/LibreOffice.app/Contents/MacOS/soffice",
    "C:\\Program Files\\LibreOffice\\program\\soffice.exe",
    "C:\\Program Files (x86)\\LibreOffice\\program\\soffice.exe",
)

TESSERACT_CANDIDATES: Sequence[str] = (
    "tesseract",
    "/usr/bin/tesseract",
    "/usr/local/bin/tesseract",
    "C:\\Program Files\\Tesseract-OCR\\tesseract.exe",
    "C:\\Program Files (x86)\\Tesseract-OCR\\tesseract.exe",
)


def find_libreoffice(configured: str | None = None) -> str | None:
    """Return the LibreOffice executable, preferring *configured*."""
    return which([configured or "", *LIBREOFFICE_CANDIDATES])


def find_tesseract(configured: str | None = None) -> str | None:
    """Return the Tesseract executable, preferring *configured*."""
    return which([configured or "", *TESSERACT_CANDIDATES])


def pdf2docx_installed() -> bool:
    return importlib.util.find_spec("pdf2docx") is not None


def probe_capabilities(settings: Settings) -> CapabilitySet:
    """Probe the environment once and return an immutable :class:`CapabilitySet`.

    The result is meant to be built at process start and passed to the
    orchestrator. Probing again creates a new instance.
    """
    libreoffice_path = find_libreoffice(settings.libreoffice_path)
    tesseract_path = find_tesseract(settings.tesseract_path)

    if settings.whole_document_engine == "pdf2docx":
        whole_document_available = pdf2docx_installed()
    else:
        whole_document_available = libreoffice_path is not None

    if whole_document_available:
        LOGGER.info("Whole-document converter available (%s)", settings.whole_document_engine)
    else:
        LOGGER.warning(
            "Whole-document converter '%s' not available; digital PDFs use the basic strategy",
            settings.whole_document_engine,
        )
    if tesseract_path:
        LOGGER.info("Tesseract OCR detected at %s", tesseract_path)
    else:
        LOGGER.warning("Tesseract not available; OCR disabled")

    return CapabilitySet(
        whole_document_converter_available=whole_document_available,
        ocr_engine_available=tesseract_path is not None,
        whole_document_engine=settings.whole_document_engine,
        libreoffice_path=libreoffice_path,
        tesseract_path=tesseract_path,
    )
