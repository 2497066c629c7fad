"""Strategy selection and fallback for PDF to DOCX conversion."""

from __future__ import annotations

import logging
import shutil
import time
from pathlib import Path
from typing import Any

from .assembler import DocumentAssembler
from .backends.base import WholeDocumentConverter
from .backends.docx_sink import DocxSink
from .backends.poppler_backend import PopplerRasterizer
from .backends.pypdf_backend import PypdfTextExtractor
from .capabilities import probe_capabilities
from .classifier import PdfClassifier
from .config import Settings
from .exceptions import InvalidPDFError
from .metadata import read_metadata
from .ocr import OcrPipeline
from .types import (
    CapabilitySet,
    ConversionMethod,
    ConversionMode,
    ConversionResult,
    PdfAnalysis,
    StrategyFailure,
    StrategyOutcome,
    StrategySuccess,
)
from .utils import PathLike, ensure_output_directory, scoped_workdir, to_path
from .validators import validate_docx, validate_pdf

LOGGER = logging.getLogger(__name__)


class ConversionOrchestrator:
    """Pick and sequence the conversion strategy for one PDF.

    ``basic`` always runs the dependency-free strategy. ``advanced`` and
    ``auto`` classify the PDF and route scanned documents to OCR and digital
    ones to the whole-document converter. A failed advanced step falls back
    to ``basic`` exactly once. ``advanced`` refuses to run when the
    collaborator it needs is missing, ``auto`` degrades instead.

    :meth:`convert` never raises; every outcome is a :class:`ConversionResult`.
    """

    def __init__(
        self,
        capabilities: CapabilitySet,
        classifier: PdfClassifier,
        assembler: DocumentAssembler,
        *,
        ocr_pipeline: OcrPipeline | None = None,
        whole_document_converter: WholeDocumentConverter | None = None,
        temp_dir: Path | None = None,
        default_mode: ConversionMode = ConversionMode.AUTO,
    ) -> None:
        self._capabilities = capabilities
        self._classifier = classifier
        self._assembler = assembler
        self._ocr_pipeline = ocr_pipeline
        self._whole_document_converter = whole_document_converter
        self._temp_dir = temp_dir
        self._default_mode = default_mode

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        capabilities: CapabilitySet | None = None,
    ) -> "ConversionOrchestrator":
        """Wire the default backends according to *settings*."""
        if capabilities is None:
            capabilities = probe_capabilities(settings)

        extractor = PypdfTextExtractor(password=settings.pdf_password)
        rasterizer = PopplerRasterizer(
            timeout=settings.rasterize_timeout,
            poppler_path=settings.poppler_path,
        )
        classifier = PdfClassifier(
            extractor,
            min_text_per_page=settings.min_text_per_page,
            expected_chars_per_page=settings.expected_chars_per_page,
            text_threshold=settings.text_threshold,
        )
        assembler = DocumentAssembler(
            rasterizer,
            extractor,
            DocxSink(margin_inches=settings.docx_margin_inches),
            temp_dir=settings.temp_dir,
            min_usable_text=settings.min_usable_text,
        )

        ocr_pipeline: OcrPipeline | None = None
        if capabilities.ocr_engine_available:
            from .backends.tesseract_backend import TesseractEngine

            engine = TesseractEngine(
                tesseract_cmd=capabilities.tesseract_path,
                oem=settings.ocr_oem,
                timeout=settings.ocr_page_timeout,
            )
            ocr_pipeline = OcrPipeline(
                rasterizer,
                engine,
                language=settings.ocr_lang,
                page_segmentation_mode=settings.ocr_psm,
                max_workers=settings.ocr_max_workers,
            )

        converter: WholeDocumentConverter | None = None
        if capabilities.whole_document_converter_available:
            if capabilities.whole_document_engine == "pdf2docx":
                from .backends.pdf2docx_backend import Pdf2DocxConverter

                converter = Pdf2DocxConverter(timeout=settings.whole_document_timeout)
            elif capabilities.libreoffice_path:
                from .backends.libreoffice_backend import LibreOfficeConverter

                converter = LibreOfficeConverter(
                    capabilities.libreoffice_path,
                    timeout=settings.whole_document_timeout,
                )

        return cls(
            capabilities,
            classifier,
            assembler,
            ocr_pipeline=ocr_pipeline,
            whole_document_converter=converter,
            temp_dir=settings.temp_dir,
            default_mode=settings.conversion_mode,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def convert(
        self,
        pdf_path: PathLike,
        output_path: PathLike,
        mode: ConversionMode | str | None = None,
    ) -> ConversionResult:
        """Convert *pdf_path* into a DOCX at *output_path*."""
        started = time.perf_counter()
        requested = self._resolve_mode(mode)
        analysis: PdfAnalysis | None = None
        LOGGER.info("Conversion mode: %s", requested.value.upper())
        LOGGER.info("Input: %s -> output: %s", pdf_path, output_path)

        try:
            source = validate_pdf(pdf_path)
            destination = to_path(output_path)
            if requested is ConversionMode.BASIC:
                outcome = self._run_basic(source, destination)
            elif requested is ConversionMode.ADVANCED:
                outcome, analysis = self._convert_advanced(source, destination)
            else:
                outcome, analysis = self._convert_auto(source, destination)
        except InvalidPDFError as exc:
            outcome = StrategyFailure(self._entry_method(requested), str(exc), retryable=False)
        except Exception as exc:  # last line of defence: convert() never raises
            LOGGER.exception("Unexpected error during conversion of %s", pdf_path)
            outcome = StrategyFailure(self._entry_method(requested), str(exc) or type(exc).__name__, retryable=False)

        return self._to_result(outcome, time.perf_counter() - started, analysis)

    def status(self) -> dict[str, Any]:
        """Describe the available converters for status endpoints."""
        capabilities = self._capabilities
        return {
            "basic": {"available": True, "name": "basic"},
            "advanced": {
                "available": capabilities.advanced_available,
                "name": "advanced",
                "capabilities": capabilities.as_dict() if capabilities.advanced_available else None,
            },
            "defaultMode": self._default_mode.value,
        }

    # ------------------------------------------------------------------
    # Mode handling
    # ------------------------------------------------------------------
    def _resolve_mode(self, mode: ConversionMode | str | None) -> ConversionMode:
        try:
            return ConversionMode.parse(mode, self._default_mode)
        except ValueError as exc:
            LOGGER.warning("%s; using %s", exc, self._default_mode.value)
            return self._default_mode

    def _convert_advanced(self, source: Path, destination: Path) -> tuple[StrategyOutcome, PdfAnalysis | None]:
        if not self._capabilities.advanced_available:
            LOGGER.warning("Advanced mode not available, using basic mode as fallback")
            return self._run_basic(source, destination), None

        analysis = self._classifier.classify(source)
        outcome = self._run_advanced_step(source, destination, analysis, strict=True)
        if isinstance(outcome, StrategyFailure) and outcome.retryable:
            LOGGER.warning("Advanced conversion failed (%s), falling back to basic mode", outcome.error)
            outcome = self._run_basic(source, destination)
        return outcome, analysis

    def _convert_auto(self, source: Path, destination: Path) -> tuple[StrategyOutcome, PdfAnalysis | None]:
        capabilities = self._capabilities
        if not capabilities.advanced_available:
            LOGGER.info("Advanced components not available, using basic mode")
            return self._run_basic(source, destination), None

        LOGGER.info(
            "Advanced capabilities: whole-document=%s ocr=%s",
            capabilities.whole_document_converter_available,
            capabilities.ocr_engine_available,
        )
        analysis = self._classifier.classify(source)
        outcome = self._run_advanced_step(source, destination, analysis, strict=False)
        if isinstance(outcome, StrategyFailure):
            LOGGER.warning("Advanced step unavailable or failed (%s), trying basic mode", outcome.error)
            outcome = self._run_basic(source, destination)
        return outcome, analysis

    def _run_advanced_step(
        self,
        source: Path,
        destination: Path,
        analysis: PdfAnalysis,
        *,
        strict: bool,
    ) -> StrategyOutcome:
        """Dispatch to OCR or whole-document conversion.

        A missing collaborator is reported as a non-retryable failure when
        *strict*; invocation failures are always retryable.
        """
        capabilities = self._capabilities
        if analysis.is_scanned:
            if not capabilities.ocr_engine_available or self._ocr_pipeline is None:
                return StrategyFailure(
                    ConversionMethod.TESSERACT_OCR,
                    "Tesseract OCR is not available; install it or use basic mode",
                    retryable=not strict,
                )
            LOGGER.info("Scanned PDF detected, using OCR")
            return self._run_ocr(source, destination, analysis)

        if not capabilities.whole_document_converter_available or self._whole_document_converter is None:
            return StrategyFailure(
                self._whole_document_method(),
                f"Whole-document converter '{capabilities.whole_document_engine}' is not available; "
                "install it or use basic mode",
                retryable=not strict,
            )
        LOGGER.info("Digital PDF detected, using %s", self._whole_document_method().value)
        return self._run_whole_document(source, destination, analysis)

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------
    def _run_basic(self, source: Path, destination: Path) -> StrategyOutcome:
        LOGGER.info("Using basic converter")
        return self._assembler.run_basic(source, destination)

    def _run_ocr(self, source: Path, destination: Path, analysis: PdfAnalysis) -> StrategyOutcome:
        assert self._ocr_pipeline is not None
        with scoped_workdir(self._temp_dir, "ocr_") as work_dir:
            try:
                records = self._ocr_pipeline.run(
                    source,
                    work_dir,
                    expected_pages=analysis.page_count or None,
                )
                LOGGER.info("Generating DOCX from OCR results")
                self._assembler.write_ocr_document(records, destination, read_metadata(source))
            except Exception as exc:  # rasteriser or sink failure; handled by the fallback hop
                LOGGER.error("OCR conversion failed for %s: %s", source.name, exc)
                return StrategyFailure(ConversionMethod.TESSERACT_OCR, f"OCR conversion failed: {exc}")

        total_characters = sum(len(record.text) for record in records)
        LOGGER.info("OCR extracted %d characters from %d pages", total_characters, len(records))
        return StrategySuccess(
            method=ConversionMethod.TESSERACT_OCR,
            output_path=destination,
            page_count=len(records),
            total_characters=total_characters,
            message="Scanned PDF converted using Tesseract OCR",
        )

    def _run_whole_document(self, source: Path, destination: Path, analysis: PdfAnalysis) -> StrategyOutcome:
        converter = self._whole_document_converter
        assert converter is not None
        with scoped_workdir(self._temp_dir, "convert_") as work_dir:
            try:
                produced = converter.convert(source, work_dir)
                validate_docx(produced)
                ensure_output_directory(destination)
                shutil.move(str(produced), str(destination))
            except Exception as exc:  # timeouts, non-zero exits and missing output alike
                LOGGER.error("%s conversion failed for %s: %s", converter.method.value, source.name, exc)
                return StrategyFailure(converter.method, f"{converter.method.value} conversion failed: {exc}")

        return StrategySuccess(
            method=converter.method,
            output_path=destination,
            page_count=analysis.page_count or None,
            total_characters=analysis.text_length or None,
            message=f"PDF converted using {converter.method.value} (high fidelity)",
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _whole_document_method(self) -> ConversionMethod:
        if self._whole_document_converter is not None:
            return self._whole_document_converter.method
        if self._capabilities.whole_document_engine == "pdf2docx":
            return ConversionMethod.PDF2DOCX
        return ConversionMethod.LIBREOFFICE

    def _entry_method(self, mode: ConversionMode) -> ConversionMethod:
        """Method reported when a request fails before any strategy ran."""
        if mode is ConversionMode.BASIC or not self._capabilities.advanced_available:
            return ConversionMethod.BASIC_STRUCTURE_PRESERVING
        if self._capabilities.whole_document_converter_available:
            return self._whole_document_method()
        return ConversionMethod.TESSERACT_OCR

    @staticmethod
    def _to_result(
        outcome: StrategyOutcome,
        duration: float,
        analysis: PdfAnalysis | None,
    ) -> ConversionResult:
        if isinstance(outcome, StrategySuccess):
            LOGGER.info("Conversion completed with %s in %.2fs", outcome.method.value, duration)
            return ConversionResult(
                success=True,
                method=outcome.method,
                duration=duration,
                output_path=outcome.output_path,
                page_count=outcome.page_count,
                total_characters=outcome.total_characters,
                message=outcome.message,
                analysis=analysis,
            )
        LOGGER.error("Conversion failed (%s): %s", outcome.method.value, outcome.error)
        return ConversionResult(
            success=False,
            method=outcome.method,
            duration=duration,
            error=outcome.error,
            analysis=analysis,
        )
