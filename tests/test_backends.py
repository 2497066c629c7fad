from __future__ import annotations

import subprocess
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from unittest.mock import patch

import pytest
from docx import Document
from docx.shared import Inches
from PIL import Image
from pypdf import PdfWriter

from pdf2docxauto.backends.base import RasterOptions
from pdf2docxauto.backends.docx_sink import DocxSink, xml_safe
from pdf2docxauto.backends.libreoffice_backend import LibreOfficeConverter, build_soffice_command, locate_output
from pdf2docxauto.backends.poppler_backend import PopplerRasterizer, page_index, postprocess_image
from pdf2docxauto.backends.pypdf_backend import PypdfTextExtractor
from pdf2docxauto.backends.tesseract_backend import TesseractEngine
from pdf2docxauto.exceptions import CollaboratorTimeoutError, ConversionError, RasterizationError
from pdf2docxauto.metadata import PDFMetadata
from pdf2docxauto.types import ConversionMethod, HeadingBlock, ImageBlock, ParagraphBlock


# ---------------------------------------------------------------------------
# pypdf
# ---------------------------------------------------------------------------
def test_pypdf_extractor_reads_text_layer(text_pdf: Path) -> None:
    extracted = PypdfTextExtractor().extract(text_pdf)

    assert extracted.page_count == 2
    assert "quick brown fox" in extracted.text


def test_pypdf_extractor_blank_pages(sample_pdf: Path) -> None:
    extracted = PypdfTextExtractor().extract(sample_pdf)

    assert extracted.page_count == 3
    assert extracted.text.strip() == ""


def test_pypdf_extractor_never_raises(tmp_path: Path, not_a_pdf: Path) -> None:
    assert PypdfTextExtractor().extract(not_a_pdf).page_count == 0
    assert PypdfTextExtractor().extract(tmp_path / "missing.pdf").text == ""


def test_pypdf_extractor_encrypted_without_password(tmp_path: Path) -> None:
    path = tmp_path / "locked.pdf"
    writer = PdfWriter()
    writer.add_blank_page(width=72, height=72)
    writer.encrypt(user_password="secret", owner_password="owner")
    with path.open("wb") as handle:
        writer.write(handle)

    extracted = PypdfTextExtractor().extract(path)

    assert (extracted.text, extracted.page_count) == ("", 0)


def test_pypdf_extractor_reads_owner_only_encrypted_pdf(tmp_path: Path, text_pdf: Path) -> None:
    path = tmp_path / "restricted.pdf"
    writer = PdfWriter(clone_from=text_pdf)
    writer.encrypt(user_password="", owner_password="owner")
    with path.open("wb") as handle:
        writer.write(handle)

    extracted = PypdfTextExtractor().extract(path)

    assert extracted.page_count == 2
    assert "quick brown fox" in extracted.text


def test_pypdf_extractor_uses_configured_password(tmp_path: Path, text_pdf: Path) -> None:
    path = tmp_path / "locked.pdf"
    writer = PdfWriter(clone_from=text_pdf)
    writer.encrypt(user_password="secret", owner_password="owner")
    with path.open("wb") as handle:
        writer.write(handle)

    extracted = PypdfTextExtractor(password="secret").extract(path)

    assert extracted.page_count == 2
    assert "quick brown fox" in extracted.text


# ---------------------------------------------------------------------------
# python-docx sink
# ---------------------------------------------------------------------------
def test_xml_safe_strips_control_characters() -> None:
    assert xml_safe("page\x0c one\x00\ttab\nline") == "page one\ttab\nline"


def test_docx_sink_writes_blocks_and_metadata(tmp_path: Path, png_factory) -> None:
    image = png_factory("page.png", (60, 80))
    blocks = [
        HeadingBlock("Converted PDF document", level=1),
        ParagraphBlock("Total pages: 1", italic=True),
        ParagraphBlock("OCR text\x0c"),
        ImageBlock(data=image.read_bytes(), display_width=60, display_height=80),
    ]
    destination = tmp_path / "nested" / "out.docx"

    stats = DocxSink().write(blocks, destination, PDFMetadata(title="Scanned", author="Tester"))

    assert (stats.headings, stats.paragraphs, stats.images) == (1, 2, 1)
    document = Document(str(destination))
    texts = [paragraph.text for paragraph in document.paragraphs]
    assert texts[:3] == ["Converted PDF document", "Total pages: 1", "OCR text"]
    assert document.paragraphs[1].runs[0].italic is True
    assert len(document.inline_shapes) == 1
    assert document.core_properties.title == "Scanned"
    assert document.core_properties.author == "Tester"


def test_docx_sink_applies_margins(tmp_path: Path) -> None:
    destination = tmp_path / "margins.docx"

    DocxSink(margin_inches=1.5).write([ParagraphBlock("body")], destination)

    section = Document(str(destination)).sections[0]
    assert section.left_margin == Inches(1.5)
    assert section.top_margin == Inches(1.5)


def test_docx_sink_rejects_unknown_blocks(tmp_path: Path) -> None:
    with pytest.raises(TypeError):
        DocxSink().write(["plain string"], tmp_path / "out.docx")


# ---------------------------------------------------------------------------
# LibreOffice
# ---------------------------------------------------------------------------
def test_soffice_command_is_headless(tmp_path: Path) -> None:
    command = build_soffice_command("soffice", tmp_path / "in.pdf", tmp_path / "out")

    assert command[0] == "soffice"
    assert "--headless" in command
    assert command[command.index("--convert-to") + 1] == "docx:MS Word 2007 XML"
    assert command[command.index("--outdir") + 1] == str(tmp_path / "out")
    assert command[-1] == str(tmp_path / "in.pdf")


def test_locate_output_prefers_expected_name(tmp_path: Path) -> None:
    (tmp_path / "report.docx").write_bytes(b"x")

    assert locate_output(Path("report.pdf"), tmp_path) == tmp_path / "report.docx"


def test_locate_output_accepts_single_other_docx(tmp_path: Path) -> None:
    (tmp_path / "renamed.docx").write_bytes(b"x")

    assert locate_output(Path("report.pdf"), tmp_path) == tmp_path / "renamed.docx"


def test_locate_output_without_docx_fails(tmp_path: Path) -> None:
    with pytest.raises(ConversionError):
        locate_output(Path("report.pdf"), tmp_path)


def test_libreoffice_converter_runs_soffice(tmp_path: Path) -> None:
    source = tmp_path / "report.pdf"
    out_dir = tmp_path / "work"

    def fake_run(command, *, timeout=None, env=None, check=True):
        (out_dir / "report.docx").write_bytes(b"docx")
        return subprocess.CompletedProcess(command, 0, "", "")

    with patch("pdf2docxauto.backends.libreoffice_backend.run_subprocess", side_effect=fake_run) as runner:
        produced = LibreOfficeConverter("/usr/bin/soffice", timeout=180).convert(source, out_dir)

    assert produced == out_dir / "report.docx"
    assert runner.call_args.kwargs["timeout"] == 180
    assert LibreOfficeConverter.method is ConversionMethod.LIBREOFFICE


def test_libreoffice_timeout_is_reported(tmp_path: Path) -> None:
    error = subprocess.TimeoutExpired(cmd="soffice", timeout=1)
    with patch("pdf2docxauto.backends.libreoffice_backend.run_subprocess", side_effect=error):
        with pytest.raises(CollaboratorTimeoutError):
            LibreOfficeConverter("soffice", timeout=1).convert(tmp_path / "a.pdf", tmp_path / "work")


def test_libreoffice_non_zero_exit_is_conversion_error(tmp_path: Path) -> None:
    error = subprocess.CalledProcessError(returncode=77, cmd="soffice", stderr="source file could not be loaded")
    with patch("pdf2docxauto.backends.libreoffice_backend.run_subprocess", side_effect=error):
        with pytest.raises(ConversionError, match="77"):
            LibreOfficeConverter("soffice").convert(tmp_path / "a.pdf", tmp_path / "work")


# ---------------------------------------------------------------------------
# Poppler
# ---------------------------------------------------------------------------
def test_page_index_reads_trailing_number() -> None:
    assert page_index(Path("page-03.png")) == 3
    assert page_index(Path("page0001-12.png")) == 12
    with pytest.raises(ValueError):
        page_index(Path("cover.png"))


def test_postprocess_image_fits_and_greys(tmp_path: Path, png_factory) -> None:
    path = png_factory("page-1.png", (400, 300))

    postprocess_image(path, RasterOptions(target_width=200, target_height=200, greyscale=True, normalize=True))

    with Image.open(path) as image:
        assert image.mode == "L"
        assert image.size == (200, 150)


def test_rasterizer_sorts_pages_numerically(tmp_path: Path) -> None:
    out_dir = tmp_path / "pages"
    out_dir.mkdir()
    rendered = []
    for number in (10, 2, 1):
        path = out_dir / f"page-{number:02d}.png"
        Image.new("RGB", (20, 20), color="white").save(path)
        rendered.append(str(path))

    with patch("pdf2docxauto.backends.poppler_backend.convert_from_path", return_value=rendered) as convert:
        pages = PopplerRasterizer(timeout=30).rasterize(tmp_path / "in.pdf", out_dir, RasterOptions(dpi=72))

    assert [page.name for page in pages] == ["page-01.png", "page-02.png", "page-10.png"]
    assert convert.call_args.kwargs["paths_only"] is True
    assert convert.call_args.kwargs["timeout"] == 30


def test_rasterizer_maps_poppler_errors(tmp_path: Path) -> None:
    from pdf2image.exceptions import PDFInfoNotInstalledError, PDFPopplerTimeoutError

    with patch(
        "pdf2docxauto.backends.poppler_backend.convert_from_path",
        side_effect=PDFInfoNotInstalledError("pdfinfo missing"),
    ):
        with pytest.raises(RasterizationError):
            PopplerRasterizer().rasterize(tmp_path / "in.pdf", tmp_path, RasterOptions())

    with patch(
        "pdf2docxauto.backends.poppler_backend.convert_from_path",
        side_effect=PDFPopplerTimeoutError("too slow"),
    ):
        with pytest.raises(CollaboratorTimeoutError):
            PopplerRasterizer().rasterize(tmp_path / "in.pdf", tmp_path, RasterOptions())


# ---------------------------------------------------------------------------
# Tesseract
# ---------------------------------------------------------------------------
def test_tesseract_engine_passes_configuration(png_factory) -> None:
    image = png_factory("page-1.png")

    with patch("pdf2docxauto.backends.tesseract_backend.pytesseract.image_to_string", return_value="Hola\n") as ocr:
        text = TesseractEngine(oem=1, timeout=60).recognize(image, language="spa+eng", page_segmentation_mode=3)

    assert text == "Hola\n"
    assert ocr.call_args.kwargs == {"lang": "spa+eng", "config": "--oem 1 --psm 3", "timeout": 60}


def test_tesseract_timeout_is_reported(png_factory) -> None:
    image = png_factory("page-1.png")

    with patch(
        "pdf2docxauto.backends.tesseract_backend.pytesseract.image_to_string",
        side_effect=RuntimeError("Tesseract process timeout"),
    ):
        with pytest.raises(CollaboratorTimeoutError):
            TesseractEngine(timeout=1).recognize(image, language="eng", page_segmentation_mode=3)


# ---------------------------------------------------------------------------
# pdf2docx
# ---------------------------------------------------------------------------
@pytest.fixture()
def in_thread_pool():
    """Run pdf2docx jobs on a thread so ``Converter`` patches stay visible."""
    with patch("pdf2docxauto.backends.pdf2docx_backend.ProcessPoolExecutor", ThreadPoolExecutor):
        yield


def test_pdf2docx_converter_writes_into_work_dir(tmp_path: Path, in_thread_pool) -> None:
    from pdf2docxauto.backends.pdf2docx_backend import Pdf2DocxConverter

    def fake_convert(destination, start=0, end=None):
        Document().save(destination)

    with patch("pdf2docxauto.backends.pdf2docx_backend.Converter") as converter_cls:
        converter = converter_cls.return_value.__enter__.return_value
        converter.convert.side_effect = fake_convert
        produced = Pdf2DocxConverter().convert(tmp_path / "report.pdf", tmp_path / "work")

    assert produced == tmp_path / "work" / "report.docx"
    assert produced.is_file()
    converter_cls.assert_called_once_with(str(tmp_path / "report.pdf"))
    converter_cls.return_value.__exit__.assert_called_once()


def test_pdf2docx_converter_wraps_errors(tmp_path: Path, in_thread_pool) -> None:
    from pdf2docxauto.backends.pdf2docx_backend import Pdf2DocxConverter

    with patch("pdf2docxauto.backends.pdf2docx_backend.Converter", side_effect=RuntimeError("cannot open")):
        with pytest.raises(ConversionError, match="cannot open"):
            Pdf2DocxConverter().convert(tmp_path / "report.pdf", tmp_path / "work")


def test_pdf2docx_converter_times_out(tmp_path: Path, in_thread_pool) -> None:
    from pdf2docxauto.backends.pdf2docx_backend import Pdf2DocxConverter

    release = threading.Event()
    with patch("pdf2docxauto.backends.pdf2docx_backend.Converter") as converter_cls:
        converter_cls.return_value.__enter__.return_value.convert.side_effect = lambda *args, **kwargs: release.wait(5)
        try:
            with pytest.raises(CollaboratorTimeoutError, match="timed out"):
                Pdf2DocxConverter(timeout=0.1).convert(tmp_path / "report.pdf", tmp_path / "work")
        finally:
            release.set()
