from __future__ import annotations

from pathlib import Path
from typing import Callable, Sequence
import sys

import pytest
from docx import Document
from PIL import Image
from pypdf import PdfWriter
from pypdf.generic import DictionaryObject, NameObject, NumberObject, StreamObject

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from pdf2docxauto.backends.base import DocumentStats, ExtractedText, RasterOptions  # noqa: E402
from pdf2docxauto.exceptions import ConversionError  # noqa: E402
from pdf2docxauto.types import ConversionMethod  # noqa: E402


def write_text_pdf(path: Path, lines: Sequence[str], title: str | None = None) -> Path:
    """Write a PDF whose pages carry a real text layer, one page per line."""
    writer = PdfWriter()
    font_dict = DictionaryObject(
        {
            NameObject("/Type"): NameObject("/Font"),
            NameObject("/Subtype"): NameObject("/Type1"),
            NameObject("/BaseFont"): NameObject("/Helvetica"),
        }
    )
    font_ref = writer._add_object(font_dict)
    for text in lines:
        page = writer.add_blank_page(width=612, height=792)
        page[NameObject("/Resources")] = DictionaryObject(
            {NameObject("/Font"): DictionaryObject({NameObject("/F1"): font_ref})}
        )
        content_bytes = f"BT /F1 10 Tf 20 700 Td ({text}) Tj ET".encode("latin-1")
        stream = StreamObject()
        stream[NameObject("/Length")] = NumberObject(len(content_bytes))
        stream._data = content_bytes
        page[NameObject("/Contents")] = writer._add_object(stream)
    if title is not None:
        writer.add_metadata({"/Title": title})
    with path.open("wb") as handle:
        writer.write(handle)
    return path


@pytest.fixture()
def sample_pdf(tmp_path: Path) -> Path:
    pdf_path = tmp_path / "sample.pdf"
    writer = PdfWriter()
    for _ in range(3):
        writer.add_blank_page(width=200, height=200)
    writer.add_metadata({"/Producer": "pdf2docxauto-tests", "/Title": "Sample"})
    with pdf_path.open("wb") as stream:
        writer.write(stream)
    return pdf_path


@pytest.fixture()
def text_pdf(tmp_path: Path) -> Path:
    line = "The quick brown fox jumps over the lazy dog near the river bank. " * 3
    return write_text_pdf(tmp_path / "digital.pdf", [line, line], title="Digital Report")


@pytest.fixture()
def not_a_pdf(tmp_path: Path) -> Path:
    path = tmp_path / "notes.pdf"
    path.write_text("plain text pretending to be a PDF", encoding="utf-8")
    return path


@pytest.fixture()
def png_factory(tmp_path: Path) -> Callable[[str, tuple[int, int]], Path]:
    def _create(name: str, size: tuple[int, int] = (120, 160)) -> Path:
        path = tmp_path / name
        Image.new("RGB", size, color="white").save(path, format="PNG")
        return path

    return _create


class FakeExtractor:
    def __init__(self, text: str = "", page_count: int = 1, error: Exception | None = None) -> None:
        self.text = text
        self.page_count = page_count
        self.error = error
        self.calls = 0

    def extract(self, pdf_path: Path) -> ExtractedText:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return ExtractedText(text=self.text, page_count=self.page_count)


class FakeRasterizer:
    """Writes ``pages`` small PNGs, or fails with ``error``."""

    def __init__(self, pages: int = 2, error: Exception | None = None) -> None:
        self.pages = pages
        self.error = error
        self.calls: list[RasterOptions] = []
        self.out_dirs: list[Path] = []

    def rasterize(self, pdf_path: Path, out_dir: Path, options: RasterOptions) -> list[Path]:
        self.calls.append(options)
        self.out_dirs.append(out_dir)
        if self.error is not None:
            raise self.error
        paths = []
        for number in range(1, self.pages + 1):
            path = out_dir / f"page-{number}.png"
            Image.new("L", (100, 140), color=255).save(path, format="PNG")
            paths.append(path)
        return paths


class FakeOcrEngine:
    """Returns ``Text of page N`` or raises for the pages listed in ``failing``."""

    def __init__(self, failing: Sequence[int] = (), text: str | None = None) -> None:
        self.failing = set(failing)
        self.text = text
        self.calls: list[tuple[Path, str, int]] = []

    def recognize(self, image_path: Path, *, language: str, page_segmentation_mode: int) -> str:
        self.calls.append((image_path, language, page_segmentation_mode))
        number = int(image_path.stem.rsplit("-", 1)[-1])
        if number in self.failing:
            raise RuntimeError(f"engine crashed on page {number}")
        if self.text is not None:
            return self.text
        return f"  Text of page {number}\n"


class FakeWholeDocumentConverter:
    method = ConversionMethod.LIBREOFFICE

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls = 0

    def convert(self, pdf_path: Path, out_dir: Path) -> Path:
        self.calls += 1
        if self.fail:
            raise ConversionError("LibreOffice exited with status 1")
        output = out_dir / f"{pdf_path.stem}.docx"
        document = Document()
        document.add_paragraph("converted by the whole-document engine")
        document.save(str(output))
        return output


class RecordingSink:
    """Keeps the blocks it was given and writes a minimal DOCX."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.writes: list[tuple[list, Path, object]] = []

    @property
    def blocks(self) -> list:
        return self.writes[-1][0]

    def write(self, blocks, destination: Path, metadata=None) -> DocumentStats:
        if self.error is not None:
            raise self.error
        self.writes.append((list(blocks), destination, metadata))
        destination.parent.mkdir(parents=True, exist_ok=True)
        Document().save(str(destination))
        return DocumentStats(paragraphs=0, headings=0, images=0, characters=0)


@pytest.fixture()
def fakes():
    """Namespace giving tests access to the fake collaborators."""

    class _Fakes:
        Extractor = FakeExtractor
        Rasterizer = FakeRasterizer
        OcrEngine = FakeOcrEngine
        WholeDocumentConverter = FakeWholeDocumentConverter
        Sink = RecordingSink

    return _Fakes


@pytest.fixture()
def text_pdf_factory(tmp_path: Path) -> Callable[..., Path]:
    def _create(filename: str, lines: Sequence[str], title: str | None = None) -> Path:
        return write_text_pdf(tmp_path / filename, lines, title=title)

    return _create
