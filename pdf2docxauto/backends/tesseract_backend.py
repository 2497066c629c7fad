"""Tesseract OCR backend built on `pytesseract`."""

from __future__ import annotations

import logging
from pathlib import Path

import pytesseract
from PIL import Image

from ..exceptions import CollaboratorTimeoutError
from .base import OcrEngine

LOGGER = logging.getLogger(__name__)


class TesseractEngine(OcrEngine):
    """Run ``tesseract`` on a single page image.

    ``timeout`` bounds every call; an expired call raises
    :class:`CollaboratorTimeoutError`.
    """

    def __init__(
        self,
        *,
        tesseract_cmd: str | None = None,
        oem: int = 1,
        timeout: float | None = None,
    ) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self._oem = oem
        self._timeout = timeout or 0

    def recognize(self, image_path: Path, *, language: str, page_segmentation_mode: int) -> str:
        config = f"--oem {self._oem} --psm {page_segmentation_mode}"
        with Image.open(image_path) as image:
            try:
                text = pytesseract.image_to_string(
                    image,
                    lang=language,
                    config=config,
                    timeout=self._timeout,
                )
            except RuntimeError as exc:
                # pytesseract signals a killed process with a bare RuntimeError
                if "timeout" in str(exc).lower():
                    raise CollaboratorTimeoutError(f"OCR of {image_path.name} timed out") from exc
                raise
        LOGGER.debug("OCR of %s produced %d characters", image_path.name, len(text))
        return text
