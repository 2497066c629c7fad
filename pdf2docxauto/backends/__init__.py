"""Backends implementing the external collaborators of the conversion pipeline."""

from .base import (
    DocumentSink,
    DocumentStats,
    ExtractedText,
    OcrEngine,
    PageRasterizer,
    RasterOptions,
    TextExtractor,
    WholeDocumentConverter,
)
from .docx_sink import DocxSink
from .libreoffice_backend import LibreOfficeConverter
from .poppler_backend import PopplerRasterizer
from .pypdf_backend import PypdfTextExtractor
from .tesseract_backend import TesseractEngine

__all__ = [
    "DocumentSink",
    "DocumentStats",
    "ExtractedText",
    "OcrEngine",
    "PageRasterizer",
    "RasterOptions",
    "TextExtractor",
    "WholeDocumentConverter",
    "DocxSink",
    "LibreOfficeConverter",
    "PopplerRasterizer",
    "PypdfTextExtractor",
    "TesseractEngine",
]
