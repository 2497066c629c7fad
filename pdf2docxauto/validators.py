"""Validation routines for pdf2docxauto."""
from __future__ import annotations

import logging
from pathlib import Path

from docx import Document

from .exceptions import ConversionError, InvalidPDFError
from .utils import to_path

LOGGER = logging.getLogger(__name__)

PDF_HEADER = b"%PDF-"
_HEADER_WINDOW = 1024


def validate_pdf(input_path: str | Path) -> Path:
    """Check that *input_path* is an existing, non-empty file with a PDF header."""
    path = to_path(input_path)
    LOGGER.debug("Validating PDF input %s", path)
    if not path.is_file():
        raise InvalidPDFError(f"PDF file not found: {path}")
    try:
        with path.open("rb") as handle:
            head = handle.read(_HEADER_WINDOW)
    except OSError as exc:
        raise InvalidPDFError(f"Unable to read PDF file: {path}") from exc
    if not head:
        raise InvalidPDFError(f"PDF file is empty: {path}")
    if PDF_HEADER not in head:
        raise InvalidPDFError(f"File is not a PDF document: {path.name}")
    return path


def validate_docx(output_path: str | Path) -> None:
    """Validate that a converted DOCX is readable."""
    path = to_path(output_path)
    LOGGER.debug("Validating DOCX output %s", path)
    try:
        Document(str(path))
    except Exception as exc:  # python-docx raises zipfile, lxml and KeyError variants
        raise ConversionError(f"DOCX validation failed: {path.name}") from exc
