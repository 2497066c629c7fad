"""Content block assembly and the dependency-free *basic* conversion strategy."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Sequence

from PIL import Image

from .backends.base import DocumentSink, DocumentStats, PageRasterizer, RasterOptions, TextExtractor
from .metadata import PDFMetadata, read_metadata
from .types import (
    ContentBlock,
    ConversionMethod,
    HeadingBlock,
    ImageBlock,
    OcrPageRecord,
    ParagraphBlock,
    StrategyFailure,
    StrategyOutcome,
    StrategySuccess,
)
from .utils import scoped_workdir, split_lines, time_block

LOGGER = logging.getLogger(__name__)

STRUCTURE_RASTER_OPTIONS = RasterOptions(target_width=1920, target_height=2560, dpi=150)
PREVIEW_RASTER_OPTIONS = RasterOptions(target_width=1200, target_height=1600, dpi=110)

# Display boxes in pixels at 96 dpi; all fit inside a portrait Letter/A4 text area.
STRUCTURE_IMAGE_BOX = (576, 768)
PREVIEW_IMAGE_BOX = (600, 800)
OCR_IMAGE_BOX = (550, 750)

PLACEHOLDER_TEXT = "Document converted from PDF"
DEFAULT_MIN_USABLE_TEXT = 100


def fit_within(width: int, height: int, box: tuple[int, int]) -> tuple[int, int]:
    """Scale ``width`` x ``height`` to fit inside *box* keeping the aspect ratio."""
    max_width, max_height = box
    if width <= 0 or height <= 0:
        return box
    scale = min(max_width / width, max_height / height)
    return max(1, round(width * scale)), max(1, round(height * scale))


def load_image_block(image_path: Path | None, box: tuple[int, int]) -> ImageBlock | None:
    """Read a page image into an :class:`ImageBlock`, or ``None`` when unusable."""
    if image_path is None:
        return None
    try:
        data = image_path.read_bytes()
        with Image.open(image_path) as image:
            width, height = image.size
    except OSError as exc:
        LOGGER.error("Skipping page image %s: %s", image_path, exc)
        return None
    display_width, display_height = fit_within(width, height, box)
    return ImageBlock(data=data, display_width=display_width, display_height=display_height)


def paragraphs_from_text(text: str) -> list[ParagraphBlock]:
    return [ParagraphBlock(line) for line in split_lines(text)]


def ensure_content(blocks: list[ContentBlock]) -> list[ContentBlock]:
    """Never hand an empty document to the sink."""
    if blocks:
        return blocks
    return [ParagraphBlock(PLACEHOLDER_TEXT)]


def blocks_from_text(text: str) -> list[ContentBlock]:
    """One paragraph per line of *text*."""
    if not text.strip():
        return ensure_content([])
    return ensure_content(list(paragraphs_from_text(text)))


def blocks_from_text_and_images(text: str, image_paths: Sequence[Path]) -> list[ContentBlock]:
    """Paragraphs for whatever text exists, followed by one image per page."""
    blocks: list[ContentBlock] = []
    if text.strip():
        blocks.extend(paragraphs_from_text(text))
    for image_path in image_paths:
        image = load_image_block(image_path, PREVIEW_IMAGE_BOX)
        if image is not None:
            blocks.append(image)
    return ensure_content(blocks)


def blocks_from_ocr_pages(records: Iterable[OcrPageRecord]) -> list[ContentBlock]:
    """Heading, recognised text and the source raster of every OCR page.

    Keeping the page image next to its text lets the reader check the
    recognition visually.
    """
    blocks: list[ContentBlock] = []
    for record in records:
        blocks.append(HeadingBlock(f"Page {record.page_number}"))
        if record.text.strip():
            blocks.extend(paragraphs_from_text(record.text))
        image = load_image_block(record.image_path, OCR_IMAGE_BOX)
        if image is not None:
            blocks.append(image)
    return ensure_content(blocks)


def blocks_for_page_images(image_paths: Sequence[Path]) -> list[ContentBlock]:
    """Structure-preserving layout: every page reproduced as an image."""
    total = len(image_paths)
    blocks: list[ContentBlock] = [
        HeadingBlock("Converted PDF document", level=1),
        ParagraphBlock(f"Total pages: {total}", italic=True),
    ]
    for number, image_path in enumerate(image_paths, start=1):
        blocks.append(HeadingBlock(f"Page {number} of {total}"))
        image = load_image_block(image_path, STRUCTURE_IMAGE_BOX)
        if image is None:
            blocks.append(ParagraphBlock("[Page image unavailable]", italic=True))
        else:
            blocks.append(image)
    return blocks


class DocumentAssembler:
    """Build documents from text, page images or OCR records.

    :meth:`run_basic` is the strategy that works without LibreOffice or
    Tesseract. It tries a structure-preserving rendering first, then plain
    text extraction, then text with page images.
    """

    def __init__(
        self,
        rasterizer: PageRasterizer,
        extractor: TextExtractor,
        sink: DocumentSink,
        *,
        temp_dir: Path | None = None,
        min_usable_text: int = DEFAULT_MIN_USABLE_TEXT,
    ) -> None:
        self._rasterizer = rasterizer
        self._extractor = extractor
        self._sink = sink
        self._temp_dir = temp_dir
        self._min_usable_text = min_usable_text

    def write_ocr_document(
        self,
        records: Sequence[OcrPageRecord],
        output_path: Path,
        metadata: PDFMetadata | None = None,
    ) -> DocumentStats:
        """Write OCR results; the page images must still exist on disk."""
        return self._sink.write(blocks_from_ocr_pages(records), output_path, metadata)

    def run_basic(self, pdf_path: Path, output_path: Path) -> StrategyOutcome:
        """Convert *pdf_path* without optional collaborators."""
        metadata = read_metadata(pdf_path)
        try:
            return self._structure_preserving(pdf_path, output_path, metadata)
        except Exception as exc:  # internal fallback to text extraction
            LOGGER.warning("Structure-preserving conversion failed (%s); trying text extraction", exc)

        try:
            return self._text_extraction(pdf_path, output_path, metadata)
        except Exception as exc:  # every basic variant failed
            LOGGER.error("Basic conversion failed for %s: %s", pdf_path.name, exc)
            return StrategyFailure(
                method=ConversionMethod.BASIC_WITH_IMAGES,
                error=str(exc) or type(exc).__name__,
                retryable=False,
            )

    def _structure_preserving(
        self,
        pdf_path: Path,
        output_path: Path,
        metadata: PDFMetadata | None,
    ) -> StrategySuccess:
        with scoped_workdir(self._temp_dir, "structure_") as work_dir:
            with time_block(LOGGER, "Structure-preserving conversion"):
                images = self._rasterizer.rasterize(pdf_path, work_dir, STRUCTURE_RASTER_OPTIONS)
                if not images:
                    raise ValueError("no pages could be rendered")
                self._sink.write(blocks_for_page_images(images), output_path, metadata)
        return StrategySuccess(
            method=ConversionMethod.BASIC_STRUCTURE_PRESERVING,
            output_path=output_path,
            page_count=len(images),
            message="PDF converted preserving the original visual structure",
        )

    def _text_extraction(
        self,
        pdf_path: Path,
        output_path: Path,
        metadata: PDFMetadata | None,
    ) -> StrategySuccess:
        extracted = self._extractor.extract(pdf_path)
        text = extracted.text
        usable = len(text.strip())
        if usable >= self._min_usable_text:
            LOGGER.info("Extracted %d characters, generating DOCX from text", usable)
            self._sink.write(blocks_from_text(text), output_path, metadata)
            return StrategySuccess(
                method=ConversionMethod.BASIC_TEXT_EXTRACTION,
                output_path=output_path,
                page_count=extracted.page_count,
                total_characters=usable,
                message="PDF converted using basic text extraction",
            )

        LOGGER.info("Only %d characters of text, including page images", usable)
        with scoped_workdir(self._temp_dir, "basic_") as work_dir:
            try:
                images = self._rasterizer.rasterize(pdf_path, work_dir, PREVIEW_RASTER_OPTIONS)
            except Exception as exc:  # degrade to text (or a placeholder) without images
                LOGGER.warning("Could not render page images: %s", exc)
                images = []
            self._sink.write(blocks_from_text_and_images(text, images), output_path, metadata)
        return StrategySuccess(
            method=ConversionMethod.BASIC_WITH_IMAGES,
            output_path=output_path,
            page_count=len(images) or extracted.page_count,
            total_characters=usable,
            message="PDF converted including page images",
        )
