"""pypdf text extraction backend."""

from __future__ import annotations

import logging
from pathlib import Path

from pypdf import PasswordType, PdfReader
from pypdf.errors import PdfReadError

from .base import ExtractedText, TextExtractor

LOGGER = logging.getLogger(__name__)


class PypdfTextExtractor(TextExtractor):
    """Extract the text layer of a PDF with `pypdf`.

    Files locked by a user password that is not configured, malformed
    files and missing files yield empty text and a page count of zero
    instead of an exception.
    """

    def __init__(self, password: str | None = None) -> None:
        self._password = password

    def extract(self, pdf_path: Path) -> ExtractedText:
        try:
            reader = PdfReader(str(pdf_path))
            # Owner-only protection opens with the empty user password.
            if reader.is_encrypted and reader.decrypt(self._password or "") == PasswordType.NOT_DECRYPTED:
                LOGGER.warning("PDF is encrypted, no text extracted: %s", pdf_path)
                return ExtractedText(text="", page_count=0)
            pages = list(reader.pages)
        except (PdfReadError, OSError, ValueError) as exc:
            LOGGER.warning("Unable to read PDF %s: %s", pdf_path, exc)
            return ExtractedText(text="", page_count=0)
        except Exception as exc:  # pypdf surfaces arbitrary errors on broken files
            LOGGER.warning("Unexpected error reading PDF %s: %s", pdf_path, exc)
            return ExtractedText(text="", page_count=0)

        chunks: list[str] = []
        for index, page in enumerate(pages, start=1):
            try:
                chunks.append(page.extract_text() or "")
            except Exception as exc:  # a single broken content stream must not hide the others
                LOGGER.debug("Text extraction failed on page %d of %s: %s", index, pdf_path, exc)
                chunks.append("")
        return ExtractedText(text="\n".join(chunks), page_count=len(pages))
