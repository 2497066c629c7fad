"""Backend protocols for the external collaborators of the pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Sequence

from ..metadata import PDFMetadata
from ..types import ContentBlock, ConversionMethod


@dataclass(frozen=True)
class RasterOptions:
    """Post-processing applied to every rendered page.

    Pages are shrunk to fit inside ``target_width`` x ``target_height``
    without enlargement when both are given.
    """

    target_width: int | None = None
    target_height: int | None = None
    greyscale: bool = False
    normalize: bool = False
    dpi: int = 150


@dataclass(frozen=True)
class ExtractedText:
    text: str
    page_count: int


@dataclass(frozen=True)
class DocumentStats:
    """Counts describing a written document."""

    paragraphs: int
    headings: int
    images: int
    characters: int


class PageRasterizer(Protocol):
    def rasterize(self, pdf_path: Path, out_dir: Path, options: RasterOptions) -> list[Path]:
        """Render every page of *pdf_path* into *out_dir* in page order."""


class TextExtractor(Protocol):
    def extract(self, pdf_path: Path) -> ExtractedText:
        """Return the full text and page count; never raises."""


class OcrEngine(Protocol):
    def recognize(self, image_path: Path, *, language: str, page_segmentation_mode: int) -> str:
        """Return the text recognised in *image_path*, possibly empty."""


class WholeDocumentConverter(Protocol):
    method: ConversionMethod

    def convert(self, pdf_path: Path, out_dir: Path) -> Path:
        """Convert *pdf_path* to a DOCX inside *out_dir* and return its path."""


class DocumentSink(Protocol):
    def write(
        self,
        blocks: Sequence[ContentBlock],
        destination: Path,
        metadata: PDFMetadata | None = None,
    ) -> DocumentStats:
        """Persist *blocks* as a document at *destination*."""
