"""Page rasterisation through Poppler (`pdf2image`) and `Pillow`."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from pdf2image import convert_from_path
from pdf2image.exceptions import (
    PDFInfoNotInstalledError,
    PDFPageCountError,
    PDFPopplerTimeoutError,
    PDFSyntaxError,
)
from PIL import Image, ImageOps

from ..exceptions import CollaboratorTimeoutError, RasterizationError
from .base import PageRasterizer, RasterOptions

LOGGER = logging.getLogger(__name__)

PAGE_PREFIX = "page"
_PAGE_INDEX = re.compile(r"(\d+)$")


def page_index(path: Path) -> int:
    """Return the page number embedded at the end of a rendered file's stem."""
    match = _PAGE_INDEX.search(path.stem)
    if match is None:
        raise ValueError(f"No page index in file name: {path.name}")
    return int(match.group(1))


def postprocess_image(path: Path, options: RasterOptions) -> None:
    """Resize and tone-adjust a rendered page in place."""
    with Image.open(path) as source:
        image = source.copy()
    if options.target_width and options.target_height:
        image.thumbnail((options.target_width, options.target_height), Image.Resampling.LANCZOS)
    if options.greyscale:
        image = ImageOps.grayscale(image)
    if options.normalize:
        if image.mode not in ("L", "RGB"):
            image = image.convert("RGB")
        image = ImageOps.autocontrast(image)
    image.save(path, format="PNG", optimize=True)


class PopplerRasterizer(PageRasterizer):
    """Render PDF pages to PNG files with ``pdftoppm``."""

    def __init__(self, *, timeout: float | None = None, poppler_path: str | None = None) -> None:
        self._timeout = timeout
        self._poppler_path = poppler_path

    def rasterize(self, pdf_path: Path, out_dir: Path, options: RasterOptions) -> list[Path]:
        out_dir.mkdir(parents=True, exist_ok=True)
        LOGGER.debug("Rasterising %s into %s at %d dpi", pdf_path, out_dir, options.dpi)
        try:
            rendered = convert_from_path(
                str(pdf_path),
                dpi=options.dpi,
                output_folder=str(out_dir),
                fmt="png",
                output_file=PAGE_PREFIX,
                paths_only=True,
                grayscale=options.greyscale,
                poppler_path=self._poppler_path,
                timeout=self._timeout,
            )
        except PDFPopplerTimeoutError as exc:
            raise CollaboratorTimeoutError(f"Rasterising {pdf_path.name} timed out") from exc
        except (PDFInfoNotInstalledError, PDFPageCountError, PDFSyntaxError) as exc:
            raise RasterizationError(f"Unable to rasterise {pdf_path.name}: {exc}") from exc

        pages = sorted((Path(item) for item in rendered), key=page_index)
        if options.target_width or options.greyscale or options.normalize:
            for number, page in enumerate(pages, start=1):
                try:
                    postprocess_image(page, options)
                except OSError as exc:
                    LOGGER.warning("Could not optimise page %d, keeping original render: %s", number, exc)
        LOGGER.info("Rasterised %d pages of %s", len(pages), pdf_path.name)
        return pages
