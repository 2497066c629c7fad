"""Top-level package for pdf2docxauto.

Convert PDF documents to DOCX, routing digital PDFs to a whole-document
converter, scanned PDFs to OCR, and anything else to a dependency-free
basic strategy.
"""
from functools import lru_cache

from .capabilities import probe_capabilities
from .classifier import PdfClassifier, analyze_text
from .config import Settings, get_settings
from .orchestrator import ConversionOrchestrator
from .types import (
    CapabilitySet,
    ConversionMethod,
    ConversionMode,
    ConversionResult,
    OcrPageRecord,
    PdfAnalysis,
)


@lru_cache(maxsize=1)
def default_orchestrator() -> ConversionOrchestrator:
    """Orchestrator built from the process-wide settings, probed once."""
    return ConversionOrchestrator.from_settings(get_settings())


def convert_pdf_to_docx(input_path, output_path, mode=None) -> ConversionResult:
    """Convert ``input_path`` using the process-wide settings."""
    return default_orchestrator().convert(input_path, output_path, mode)


__all__ = [
    "CapabilitySet",
    "ConversionMethod",
    "ConversionMode",
    "ConversionOrchestrator",
    "ConversionResult",
    "OcrPageRecord",
    "PdfAnalysis",
    "PdfClassifier",
    "Settings",
    "analyze_text",
    "convert_pdf_to_docx",
    "default_orchestrator",
    "get_settings",
    "probe_capabilities",
]

__version__ = "0.1.0"
