"""Custom exceptions for pdf2docxauto."""
from __future__ import annotations


class Pdf2DocxAutoError(RuntimeError):
    """Base class for all pdf2docxauto exceptions."""


class InvalidPDFError(Pdf2DocxAutoError):
    """Raised when the provided PDF document is invalid or unreadable."""


class ConversionError(Pdf2DocxAutoError):
    """Raised when a conversion strategy fails to produce a document."""


class CollaboratorTimeoutError(ConversionError):
    """Raised when an external tool exceeds its time budget."""


class RasterizationError(Pdf2DocxAutoError):
    """Raised when PDF pages cannot be rendered to images."""


class MetadataError(Pdf2DocxAutoError):
    """Raised when metadata extraction or application fails."""
