"""Serialise content blocks into a DOCX package with `python-docx`."""

from __future__ import annotations

import logging
import re
from io import BytesIO
from pathlib import Path
from typing import Sequence

from docx import Document
from docx.shared import Emu, Inches

from ..metadata import PDFMetadata, apply_metadata
from ..types import ContentBlock, HeadingBlock, ImageBlock, ParagraphBlock
from ..utils import ensure_output_directory
from .base import DocumentSink, DocumentStats

LOGGER = logging.getLogger(__name__)

EMU_PER_PIXEL = 9525  # 914400 EMU per inch / 96 dpi

# XML 1.0 forbids most C0 control characters; OCR output routinely ends with \x0c.
_XML_ILLEGAL = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")


def xml_safe(text: str) -> str:
    return _XML_ILLEGAL.sub("", text)


class DocxSink(DocumentSink):
    """Write an ordered list of blocks as a single-section DOCX document."""

    def __init__(self, *, margin_inches: float | None = None) -> None:
        self._margin_inches = margin_inches

    def write(
        self,
        blocks: Sequence[ContentBlock],
        destination: Path,
        metadata: PDFMetadata | None = None,
    ) -> DocumentStats:
        document = Document()
        if self._margin_inches is not None:
            section = document.sections[0]
            margin = Inches(self._margin_inches)
            section.top_margin = section.bottom_margin = margin
            section.left_margin = section.right_margin = margin

        paragraphs = headings = images = characters = 0
        for block in blocks:
            if isinstance(block, HeadingBlock):
                text = xml_safe(block.text)
                document.add_heading(text, level=block.level)
                headings += 1
                characters += len(text)
            elif isinstance(block, ParagraphBlock):
                text = xml_safe(block.text)
                paragraph = document.add_paragraph()
                if text:
                    run = paragraph.add_run(text)
                    run.italic = block.italic
                paragraphs += 1
                characters += len(text)
            elif isinstance(block, ImageBlock):
                document.add_picture(
                    BytesIO(block.data),
                    width=Emu(block.display_width * EMU_PER_PIXEL),
                    height=Emu(block.display_height * EMU_PER_PIXEL),
                )
                images += 1
            else:
                raise TypeError(f"Unsupported content block: {type(block).__name__}")

        if metadata is not None:
            apply_metadata(document, metadata)

        ensure_output_directory(destination)
        document.save(str(destination))
        LOGGER.debug(
            "Wrote %s (%d headings, %d paragraphs, %d images)",
            destination,
            headings,
            paragraphs,
            images,
        )
        return DocumentStats(paragraphs=paragraphs, headings=headings, images=images, characters=characters)
