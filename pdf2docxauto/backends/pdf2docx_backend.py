"""Whole-document conversion with the `pdf2docx` library."""

from __future__ import annotations

import logging
from concurrent.futures import ProcessPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from pathlib import Path

from docx import Document
from pdf2docx import Converter

from ..exceptions import CollaboratorTimeoutError, ConversionError
from ..types import ConversionMethod
from ..utils import time_block
from .base import WholeDocumentConverter

LOGGER = logging.getLogger(__name__)


def _convert_document(source: str, destination: str) -> None:
    with Converter(source) as converter:
        converter.convert(destination, start=0, end=None)


def _apply_layout_enhancements(docx_path: Path) -> None:
    """Keep table cell paragraphs together to reduce layout drift."""
    document = Document(str(docx_path))
    for table in document.tables:
        for cell in table._cells:
            for paragraph in cell.paragraphs:
                paragraph.paragraph_format.keep_together = True
    document.save(str(docx_path))


def _terminate_workers(pool: ProcessPoolExecutor) -> None:
    # shutdown(wait=False) leaves a busy worker running.
    processes = getattr(pool, "_processes", None) or {}
    for process in list(processes.values()):
        process.terminate()


class Pdf2DocxConverter(WholeDocumentConverter):
    """In-process alternative to LibreOffice for digital PDFs.

    The conversion runs in a single worker process so a ``timeout`` can stop
    a document that keeps the layout engine busy.
    """

    method = ConversionMethod.PDF2DOCX

    def __init__(self, *, timeout: float | None = None, preserve_formatting: bool = True) -> None:
        self._timeout = timeout
        self._preserve_formatting = preserve_formatting

    def convert(self, pdf_path: Path, out_dir: Path) -> Path:
        out_dir.mkdir(parents=True, exist_ok=True)
        destination = out_dir / f"{pdf_path.stem}.docx"
        pool = ProcessPoolExecutor(max_workers=1)
        try:
            with time_block(LOGGER, "pdf2docx conversion"):
                future = pool.submit(_convert_document, str(pdf_path), str(destination))
                future.result(timeout=self._timeout)
        except FutureTimeoutError as exc:
            _terminate_workers(pool)
            raise CollaboratorTimeoutError(
                f"pdf2docx conversion of {pdf_path.name} timed out after {self._timeout}s"
            ) from exc
        except Exception as exc:  # pdf2docx wraps PyMuPDF errors inconsistently
            raise ConversionError(f"pdf2docx conversion failed for {pdf_path.name}: {exc}") from exc
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        if not destination.is_file():
            raise ConversionError(f"pdf2docx did not produce {destination.name}")

        if self._preserve_formatting:
            try:
                _apply_layout_enhancements(destination)
            except Exception as exc:  # pragma: no cover - cosmetic post-processing
                LOGGER.debug("Layout enhancements failed: %s", exc)
        return destination
