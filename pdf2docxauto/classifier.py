"""Digital versus scanned PDF classification."""

from __future__ import annotations

import logging
from pathlib import Path

from .backends.base import TextExtractor
from .types import PdfAnalysis

LOGGER = logging.getLogger(__name__)

DEFAULT_MIN_TEXT_PER_PAGE = 50
DEFAULT_EXPECTED_CHARS_PER_PAGE = 2000
DEFAULT_TEXT_THRESHOLD = 5.0


def analyze_text(
    text: str,
    page_count: int,
    *,
    min_text_per_page: int = DEFAULT_MIN_TEXT_PER_PAGE,
    expected_chars_per_page: int = DEFAULT_EXPECTED_CHARS_PER_PAGE,
    text_threshold: float = DEFAULT_TEXT_THRESHOLD,
) -> PdfAnalysis:
    """Score extracted *text* against the two scanned-document heuristics.

    A document is scanned when its average characters per page is below
    ``min_text_per_page`` or when its text amounts to less than
    ``text_threshold`` percent of ``expected_chars_per_page`` per page.
    Either signal alone is enough. A document without pages is always
    scanned.
    """
    text_length = len(text.strip())
    pages = max(page_count, 0)
    density = text_length / max(pages, 1)
    expected = max(pages, 1) * expected_chars_per_page
    percentage = (text_length / expected) * 100 if expected else 0.0

    if pages == 0:
        is_scanned = True
    else:
        is_scanned = density < min_text_per_page or percentage < text_threshold

    return PdfAnalysis(
        page_count=pages,
        text_length=text_length,
        text_density_per_page=density,
        text_percentage=percentage,
        is_scanned=is_scanned,
    )


class PdfClassifier:
    """Decide whether a PDF should go through OCR or text extraction."""

    def __init__(
        self,
        extractor: TextExtractor,
        *,
        min_text_per_page: int = DEFAULT_MIN_TEXT_PER_PAGE,
        expected_chars_per_page: int = DEFAULT_EXPECTED_CHARS_PER_PAGE,
        text_threshold: float = DEFAULT_TEXT_THRESHOLD,
    ) -> None:
        self._extractor = extractor
        self._min_text_per_page = min_text_per_page
        self._expected_chars_per_page = expected_chars_per_page
        self._text_threshold = text_threshold

    def classify(self, pdf_path: Path) -> PdfAnalysis:
        """Classify *pdf_path*; failures are reported as a scanned document."""
        try:
            extracted = self._extractor.extract(pdf_path)
            analysis = analyze_text(
                extracted.text,
                extracted.page_count,
                min_text_per_page=self._min_text_per_page,
                expected_chars_per_page=self._expected_chars_per_page,
                text_threshold=self._text_threshold,
            )
        except Exception as exc:  # any extraction problem routes to the OCR path
            LOGGER.error("PDF type detection failed for %s: %s", pdf_path, exc)
            return PdfAnalysis(
                page_count=0,
                text_length=0,
                text_density_per_page=0.0,
                text_percentage=0.0,
                is_scanned=True,
                error=str(exc) or type(exc).__name__,
            )

        LOGGER.info(
            "Analysis of %s: pages=%d chars=%d density=%.0f/page text=%.0f%% scanned=%s",
            pdf_path.name,
            analysis.page_count,
            analysis.text_length,
            analysis.text_density_per_page,
            analysis.text_percentage,
            "yes" if analysis.is_scanned else "no",
        )
        return analysis
