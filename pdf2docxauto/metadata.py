"""PDF metadata extraction and transfer onto generated DOCX documents."""
from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from pypdf import PdfReader

from .exceptions import MetadataError
from .utils import parse_pdf_date, to_path

LOGGER = logging.getLogger(__name__)

# Document information dictionary keys, without the leading slash.
_TEXT_KEYS = {
    "title": "Title",
    "author": "Author",
    "subject": "Subject",
    "keywords": "Keywords",
    "creator": "Creator",
    "producer": "Producer",
}
_DATE_KEYS = {
    "creation_date": "CreationDate",
    "modification_date": "ModDate",
}
# Creator and producer name the PDF toolchain, not the document.
_DESCRIPTIVE = ("title", "author", "subject", "keywords", "creation_date", "modification_date")


@dataclass(frozen=True)
class PDFMetadata:
    """Document information dictionary entries carried into the DOCX."""

    title: Optional[str] = None
    author: Optional[str] = None
    subject: Optional[str] = None
    keywords: Optional[str] = None
    creator: Optional[str] = None
    producer: Optional[str] = None
    creation_date: Optional[datetime] = None
    modification_date: Optional[datetime] = None

    @property
    def is_empty(self) -> bool:
        return not any(getattr(self, name) for name in _DESCRIPTIVE)

    @classmethod
    def from_info(cls, info: Mapping[str, Any]) -> "PDFMetadata":
        """Build metadata from a raw pypdf information dictionary."""
        cleaned: Dict[str, str] = {
            key.lstrip("/"): str(value).strip() for key, value in info.items() if value
        }
        values: Dict[str, Any] = {name: cleaned.get(key) or None for name, key in _TEXT_KEYS.items()}
        values.update({name: parse_pdf_date(cleaned.get(key)) for name, key in _DATE_KEYS.items()})
        return cls(**values)


def extract_metadata(input_path: str | Path) -> PDFMetadata:
    """Read the information dictionary of a PDF.

    Raises :class:`MetadataError` when the file cannot be parsed.
    """
    path = to_path(input_path)
    LOGGER.debug("Extracting metadata from %s", path)
    try:
        info = PdfReader(str(path)).metadata or {}
    except Exception as exc:  # pypdf raises a variety of error types
        raise MetadataError(f"Unable to open PDF for metadata extraction: {path}") from exc
    return PDFMetadata.from_info(info)


def read_metadata(input_path: str | Path) -> PDFMetadata | None:
    """Best-effort variant of :func:`extract_metadata` returning ``None`` on failure."""
    try:
        metadata = extract_metadata(input_path)
    except MetadataError as exc:
        LOGGER.warning("Metadata extraction failed: %s", exc)
        return None
    return None if metadata.is_empty else metadata


def apply_metadata(document: Any, metadata: PDFMetadata) -> None:
    """Copy *metadata* onto the core properties of a python-docx ``document``."""
    core = document.core_properties
    for field in fields(PDFMetadata):
        value = getattr(metadata, field.name)
        if not value or field.name in ("creator", "producer"):
            continue
        if field.name == "creation_date":
            core.created = value.astimezone(timezone.utc)
        elif field.name == "modification_date":
            core.modified = value.astimezone(timezone.utc)
        else:
            setattr(core, field.name, value)
