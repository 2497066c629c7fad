"""Data structures shared by the pdf2docxauto pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union


class ConversionMode(str, Enum):
    """Conversion strategy requested by the caller."""

    BASIC = "basic"
    ADVANCED = "advanced"
    AUTO = "auto"

    @classmethod
    def parse(cls, value: "ConversionMode | str | None", default: "ConversionMode | str" = "auto") -> "ConversionMode":
        """Coerce user input into a :class:`ConversionMode`.

        ``None`` and empty strings select *default*; unknown names raise
        :class:`ValueError`.
        """
        if isinstance(value, cls):
            return value
        if value is None or not str(value).strip():
            return cls.parse(default)
        normalized = str(value).strip().lower()
        try:
            return cls(normalized)
        except ValueError as exc:
            choices = ", ".join(mode.value for mode in cls)
            raise ValueError(f"Unknown conversion mode '{value}' (expected one of: {choices})") from exc


class ConversionMethod(str, Enum):
    """Strategy that actually produced (or failed to produce) the output."""

    LIBREOFFICE = "libreoffice"
    PDF2DOCX = "pdf2docx"
    TESSERACT_OCR = "tesseract-ocr"
    BASIC_TEXT_EXTRACTION = "basic-text-extraction"
    BASIC_WITH_IMAGES = "basic-with-images"
    BASIC_STRUCTURE_PRESERVING = "basic-structure-preserving"

    @property
    def is_basic(self) -> bool:
        return self.value.startswith("basic-")


@dataclass(frozen=True)
class PdfAnalysis:
    """Classification of a PDF as digital or scanned."""

    page_count: int
    text_length: int
    text_density_per_page: float
    text_percentage: float
    is_scanned: bool
    error: Optional[str] = None

    @property
    def has_text(self) -> bool:
        return self.text_length > 0

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "isScanned": self.is_scanned,
            "textLength": self.text_length,
            "pageCount": self.page_count,
            "textDensityPerPage": round(self.text_density_per_page),
            "textPercentage": round(self.text_percentage),
            "hasText": self.has_text,
        }
        if self.error:
            payload["error"] = self.error
        return payload


@dataclass(frozen=True)
class CapabilitySet:
    """Availability of the optional collaborators, probed once at startup."""

    whole_document_converter_available: bool = False
    ocr_engine_available: bool = False
    whole_document_engine: str = "libreoffice"
    libreoffice_path: Optional[str] = None
    tesseract_path: Optional[str] = None

    @property
    def advanced_available(self) -> bool:
        return self.whole_document_converter_available or self.ocr_engine_available

    def as_dict(self) -> dict[str, Any]:
        return {
            "wholeDocumentConverter": self.whole_document_converter_available,
            "wholeDocumentEngine": self.whole_document_engine,
            "ocr": self.ocr_engine_available,
            "libreofficePath": self.libreoffice_path,
            "tesseractPath": self.tesseract_path,
        }


@dataclass(frozen=True)
class OcrPageRecord:
    """Recognised text of one page together with its rasterised source."""

    page_number: int
    text: str
    image_path: Optional[Path] = None


@dataclass(frozen=True)
class PageOcrSuccess:
    page_number: int
    text: str
    image_path: Optional[Path]

    def to_record(self) -> OcrPageRecord:
        return OcrPageRecord(self.page_number, self.text, self.image_path)


@dataclass(frozen=True)
class PageOcrFailure:
    page_number: int
    image_path: Optional[Path]
    error: str

    def to_record(self) -> OcrPageRecord:
        return OcrPageRecord(self.page_number, "", self.image_path)


PageOcrOutcome = Union[PageOcrSuccess, PageOcrFailure]


@dataclass(frozen=True)
class HeadingBlock:
    text: str
    level: int = 2


@dataclass(frozen=True)
class ParagraphBlock:
    text: str
    italic: bool = False


@dataclass(frozen=True)
class ImageBlock:
    """Raster image with its display size in pixels at 96 dpi."""

    data: bytes = field(repr=False)
    display_width: int
    display_height: int


ContentBlock = Union[HeadingBlock, ParagraphBlock, ImageBlock]


@dataclass(frozen=True)
class StrategySuccess:
    method: ConversionMethod
    output_path: Path
    page_count: Optional[int] = None
    total_characters: Optional[int] = None
    message: Optional[str] = None


@dataclass(frozen=True)
class StrategyFailure:
    """A strategy that did not produce output.

    ``retryable`` marks invocation failures that allow the single
    advanced to basic hop; unavailability failures are final.
    """

    method: ConversionMethod
    error: str
    retryable: bool = True


StrategyOutcome = Union[StrategySuccess, StrategyFailure]


@dataclass
class ConversionResult:
    """Uniform outcome returned by :class:`ConversionOrchestrator`."""

    success: bool
    method: ConversionMethod
    duration: float
    output_path: Optional[Path] = None
    page_count: Optional[int] = None
    total_characters: Optional[int] = None
    error: Optional[str] = None
    message: Optional[str] = None
    analysis: Optional[PdfAnalysis] = None

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "success": self.success,
            "method": self.method.value,
            "duration": round(self.duration, 2),
        }
        if self.output_path is not None:
            payload["outputPath"] = str(self.output_path)
        if self.page_count is not None:
            payload["pageCount"] = self.page_count
        if self.total_characters is not None:
            payload["totalCharacters"] = self.total_characters
        if self.error is not None:
            payload["error"] = self.error
        if self.message is not None:
            payload["message"] = self.message
        if self.analysis is not None:
            payload["analysis"] = self.analysis.as_dict()
        return payload

    def __str__(self) -> str:
        if self.success:
            return f"ConversionResult(success=True, method={self.method.value}, duration={self.duration:.2f}s)"
        return f"ConversionResult(success=False, method={self.method.value}, error='{self.error}')"
