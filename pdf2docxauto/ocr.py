"""OCR pipeline turning a scanned PDF into per-page text records."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Sequence

from .backends.base import OcrEngine, PageRasterizer, RasterOptions
from .types import OcrPageRecord, PageOcrFailure, PageOcrOutcome, PageOcrSuccess
from .utils import time_block

LOGGER = logging.getLogger(__name__)

OCR_RASTER_OPTIONS = RasterOptions(
    target_width=2000,
    target_height=2000,
    greyscale=True,
    normalize=True,
    dpi=300,
)


class OcrPipeline:
    """Rasterise every page of a PDF and run OCR on each page image.

    Pages are independent, so up to ``max_workers`` of them are recognised
    concurrently. Records always come back in page order.
    """

    def __init__(
        self,
        rasterizer: PageRasterizer,
        engine: OcrEngine,
        *,
        language: str = "spa+eng",
        page_segmentation_mode: int = 3,
        max_workers: int = 1,
        raster_options: RasterOptions = OCR_RASTER_OPTIONS,
    ) -> None:
        self._rasterizer = rasterizer
        self._engine = engine
        self._language = language
        self._psm = page_segmentation_mode
        self._max_workers = max(1, max_workers)
        self._raster_options = raster_options

    def run(self, pdf_path: Path, work_dir: Path, expected_pages: int | None = None) -> list[OcrPageRecord]:
        """Return one :class:`OcrPageRecord` per page of *pdf_path*.

        Rasterisation errors propagate to the caller. OCR errors on a single
        page only empty that page's text. When the rasterizer returns fewer
        images than ``expected_pages`` the missing pages are reported with
        empty text and no image.
        """
        LOGGER.info("Starting OCR of %s", pdf_path.name)
        with time_block(LOGGER, f"Rasterising {pdf_path.name} for OCR"):
            images = self._rasterizer.rasterize(pdf_path, work_dir, self._raster_options)

        outcomes = self._recognize_all(images)
        total = max(len(images), expected_pages or 0)
        if total > len(images):
            LOGGER.warning(
                "Rasteriser produced %d of %d pages for %s; missing pages are left empty",
                len(images),
                total,
                pdf_path.name,
            )
            for number in range(len(images) + 1, total + 1):
                outcomes.append(PageOcrFailure(number, None, "page was not rasterised"))

        records = [outcome.to_record() for outcome in sorted(outcomes, key=lambda item: item.page_number)]
        failed = sum(1 for outcome in outcomes if isinstance(outcome, PageOcrFailure))
        LOGGER.info(
            "OCR completed: %d pages processed, %d without text, %d characters",
            len(records),
            failed,
            sum(len(record.text) for record in records),
        )
        return records

    def _recognize_all(self, images: Sequence[Path]) -> list[PageOcrOutcome]:
        numbered = list(enumerate(images, start=1))
        if self._max_workers == 1 or len(numbered) <= 1:
            return [self._recognize_page(number, image, len(numbered)) for number, image in numbered]
        with ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="ocr") as pool:
            futures = [pool.submit(self._recognize_page, number, image, len(numbered)) for number, image in numbered]
            return [future.result() for future in futures]

    def _recognize_page(self, page_number: int, image_path: Path, total: int) -> PageOcrOutcome:
        LOGGER.debug("Running OCR on page %d/%d", page_number, total)
        try:
            text = self._engine.recognize(
                image_path,
                language=self._language,
                page_segmentation_mode=self._psm,
            )
        except Exception as exc:  # one unreadable page must not abort the document
            LOGGER.error("OCR failed on page %d (%s): %s", page_number, image_path.name, exc)
            return PageOcrFailure(page_number, image_path, str(exc) or type(exc).__name__)
        cleaned = (text or "").strip()
        LOGGER.debug("Page %d processed (%d characters)", page_number, len(cleaned))
        return PageOcrSuccess(page_number, cleaned, image_path)
