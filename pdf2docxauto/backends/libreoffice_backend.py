"""Headless LibreOffice whole-document converter."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from ..exceptions import CollaboratorTimeoutError, ConversionError
from ..types import ConversionMethod
from ..utils import run_subprocess
from .base import WholeDocumentConverter

LOGGER = logging.getLogger(__name__)


def build_soffice_command(executable: str, source: Path, out_dir: Path) -> list[str]:
    """Construct the non-interactive ``soffice`` command converting *source* to DOCX."""
    return [
        executable,
        "--headless",
        "--invisible",
        "--norestore",
        "--nolockcheck",
        "--infilter=writer_pdf_import",
        "--convert-to",
        "docx:MS Word 2007 XML",
        "--outdir",
        str(out_dir),
        str(source),
    ]


def locate_output(source: Path, out_dir: Path) -> Path:
    """Return the DOCX written for *source* inside the request-scoped *out_dir*.

    ``out_dir`` only ever holds the output of one conversion, so a single
    ``.docx`` under a different name is unambiguous.
    """
    expected = out_dir / f"{source.stem}.docx"
    if expected.is_file():
        return expected
    candidates = sorted(out_dir.glob("*.docx"))
    if len(candidates) == 1:
        LOGGER.debug("LibreOffice wrote %s instead of %s", candidates[0].name, expected.name)
        return candidates[0]
    if not candidates:
        raise ConversionError("LibreOffice did not produce a DOCX file; check that the PDF is valid")
    names = ", ".join(path.name for path in candidates)
    raise ConversionError(f"LibreOffice produced several DOCX files: {names}")


class LibreOfficeConverter(WholeDocumentConverter):
    """Convert digital PDFs with ``soffice --headless --convert-to docx``."""

    method = ConversionMethod.LIBREOFFICE

    def __init__(self, executable: str, *, timeout: float | None = None) -> None:
        self._executable = executable
        self._timeout = timeout

    def convert(self, pdf_path: Path, out_dir: Path) -> Path:
        out_dir.mkdir(parents=True, exist_ok=True)
        command = build_soffice_command(self._executable, pdf_path, out_dir)
        LOGGER.info("Running LibreOffice headless on %s", pdf_path.name)
        try:
            run_subprocess(command, timeout=self._timeout)
        except subprocess.TimeoutExpired as exc:
            raise CollaboratorTimeoutError(
                f"LibreOffice did not finish within {self._timeout}s"
            ) from exc
        except subprocess.CalledProcessError as exc:
            detail = (exc.stderr or "").strip()[:500]
            raise ConversionError(f"LibreOffice exited with status {exc.returncode}: {detail}") from exc
        except OSError as exc:
            raise ConversionError(f"Unable to start LibreOffice: {exc}") from exc
        return locate_output(pdf_path, out_dir)
