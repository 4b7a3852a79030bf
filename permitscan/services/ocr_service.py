"""OCR service for reading business permits from images or PDFs.

Text is recognized with Tesseract OCR (default, free and open-source) or with the
Google Cloud Vision API, then handed to the permit parser. A failed recognition is
reported in the result instead of raised, so a blurry permit photo never blocks the
signup workflow that depends on it.
"""

from base64 import b64encode
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from io import BytesIO
import logging
from pathlib import Path
import time
from typing import Any, cast

from flask import current_app
from PIL import Image, ImageEnhance, ImageFilter, UnidentifiedImageError
import pytesseract
import requests

from .exceptions import AcquisitionError, OCRDisabledError, UnsupportedDocumentError
from .permit_api import PermitAPIClient, SavePermitResult
from .permit_parser import (
    FIELD_KEYS,
    ExtractedPermitInfo,
    PermitParser,
    extraction_confidence,
    extraction_succeeded,
)
from .report_service import PermitReportWriter

fitz: Any = None
try:
    import fitz  # PyMuPDF
except ImportError:
    pass

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = frozenset({"png", "jpg", "jpeg", "gif", "bmp", "tiff", "tif", "webp", "pdf"})

CLOUD_VISION_URL = "https://vision.googleapis.com/v1/images:annotate"

# Below this many characters a PDF text layer is treated as missing
MIN_PDF_TEXT_LENGTH = 50

MAX_IMAGE_SIZE = 2000


@dataclass(frozen=True)
class RecognizedText:
    """Ordered text fragments returned by a recognizer."""

    fragments: tuple[str, ...] = ()

    @property
    def full_text(self) -> str:
        return "\n".join(self.fragments)

    @classmethod
    def from_text(cls, raw_text: str | None) -> "RecognizedText":
        """Split raw recognizer output into non-blank line fragments."""
        if not raw_text:
            return cls()
        return cls(tuple(line.strip() for line in raw_text.splitlines() if line.strip()))


@dataclass
class PreprocessingStep:
    """One image preparation step and how long it took."""

    name: str
    description: str
    completed: bool = False
    processing_time_ms: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "completed": self.completed,
            "processingTime": self.processing_time_ms,
        }


@dataclass
class PermitScanResult:
    """Outcome of scanning one permit: recognized text, extracted fields and side effects."""

    success: bool
    text: str = ""
    confidence: float = 0.0
    error: str | None = None
    permit_info: ExtractedPermitInfo = field(default_factory=ExtractedPermitInfo)
    processing_steps: list[PreprocessingStep] = field(default_factory=list)
    report_path: str | None = None
    database_saved: bool = False
    save_message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "text": self.text,
            "confidence": self.confidence,
            "error": self.error,
            "businessInfo": self.permit_info.to_dict(),
            "sources": {FIELD_KEYS[name]: source for name, source in self.permit_info.sources.items()},
            "confidenceScores": {
                FIELD_KEYS[name]: score for name, score in self.permit_info.confidence_scores.items()
            },
            "processingSteps": [step.to_dict() for step in self.processing_steps],
            "reportPath": self.report_path,
            "databaseSaved": self.database_saved,
            "saveMessage": self.save_message,
        }


@contextmanager
def _record_step(steps: list[PreprocessingStep] | None, name: str, description: str) -> Iterator[None]:
    step = PreprocessingStep(name=name, description=description)
    if steps is not None:
        steps.append(step)
    started = time.perf_counter()
    yield
    step.completed = True
    step.processing_time_ms = round((time.perf_counter() - started) * 1000, 2)


def file_extension(filename: str | None) -> str:
    return Path(filename or "").suffix.lower().lstrip(".")


def is_pdf(file_bytes: bytes, filename: str | None) -> bool:
    return file_extension(filename) == "pdf" or file_bytes[:4] == b"%PDF"


def extract_pdf_text_layer(pdf_bytes: bytes) -> str:
    """Extract text directly from the first page of a PDF that has a text layer.

    Returns:
        Extracted text, or an empty string when there is no usable text layer
    """
    if fitz is None:
        return ""

    try:
        text = ""
        with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
            if len(doc) > 0:
                text = doc[0].get_text() or ""
        logger.debug(f"Extracted {len(text)} characters directly from PDF")
        return text.strip()
    except Exception as e:
        logger.warning(f"PDF text extraction failed: {e}")
        return ""


def _render_pdf_page(pdf_bytes: bytes) -> Image.Image:
    if fitz is None:
        raise UnsupportedDocumentError("PDF processing requires PyMuPDF library. Install with: pip install PyMuPDF")
    try:
        with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
            if len(doc) == 0:
                raise UnsupportedDocumentError("PDF has no pages")
            # 300 DPI gives Tesseract enough resolution for small permit print
            zoom = 300 / 72
            pix = doc[0].get_pixmap(matrix=fitz.Matrix(zoom, zoom), alpha=False, annots=True)
            if pix.width == 0 or pix.height == 0:
                raise UnsupportedDocumentError(f"PDF rendered to invalid size: {pix.width}x{pix.height}")
            return Image.frombytes("RGB", (pix.width, pix.height), pix.samples)
    except UnsupportedDocumentError:
        raise
    except Exception as e:
        logger.error(f"PyMuPDF PDF conversion failed: {e}")
        raise AcquisitionError(f"Failed to convert PDF to image: {e}") from e


def preprocess_image(
    file_bytes: bytes,
    filename: str | None,
    steps: list[PreprocessingStep] | None = None,
) -> Image.Image:
    """Open an image (or render a PDF page) and prepare it for text recognition.

    Raises:
        UnsupportedDocumentError: If the bytes are not a readable image or PDF
        AcquisitionError: If a PDF cannot be rendered
    """
    if is_pdf(file_bytes, filename):
        with _record_step(steps, "PDF Rendering", "Rendering first PDF page at 300 DPI"):
            img = _render_pdf_page(file_bytes)
    else:
        try:
            img = cast(Image.Image, Image.open(BytesIO(file_bytes)))
            img.load()
        except (UnidentifiedImageError, OSError) as e:
            logger.error(f"Failed to open image: {e}")
            raise UnsupportedDocumentError(f"Unsupported image format: {e}") from e

    with _record_step(steps, "Normalization", "Converting pixels to RGB"):
        if img.mode != "RGB":
            img = img.convert("RGB")

    with _record_step(steps, "Image Scaling", f"Limiting the longest side to {MAX_IMAGE_SIZE}px"):
        if max(img.size) > MAX_IMAGE_SIZE:
            ratio = MAX_IMAGE_SIZE / max(img.size)
            new_size = (int(img.size[0] * ratio), int(img.size[1] * ratio))
            logger.debug(f"Resizing image from {img.size} to {new_size}")
            img = img.resize(new_size, Image.Resampling.LANCZOS)

    with _record_step(steps, "Grayscale Conversion", "Converting to grayscale for text detection"):
        img = img.convert("L")

    with _record_step(steps, "Contrast Enhancement", "Raising contrast by 1.5x"):
        img = ImageEnhance.Contrast(img).enhance(1.5)

    with _record_step(steps, "Sharpening", "Sharpening character edges"):
        img = img.filter(ImageFilter.SHARPEN)

    return img


class TesseractRecognizer:
    """Recognizes permit text locally with Tesseract OCR."""

    name = "tesseract"

    def __init__(
        self,
        tesseract_cmd: str | None = None,
        languages: list[str] | None = None,
        config: str = "--oem 3 --psm 6",
    ) -> None:
        self.languages = languages or ["eng"]
        self.config = config
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    def is_available(self) -> bool:
        try:
            pytesseract.get_tesseract_version()
            return True
        except pytesseract.TesseractNotFoundError:
            logger.error(
                "Tesseract OCR binary not found. Please install it:\n"
                "  Linux: sudo apt-get install tesseract-ocr\n"
                "  macOS: brew install tesseract\n"
                "  Windows: Download from https://github.com/UB-Mannheim/tesseract/wiki"
            )
            return False
        except Exception as e:
            logger.warning(f"Tesseract OCR not available: {e}")
            return False

    def recognize(
        self,
        file_bytes: bytes,
        filename: str | None,
        steps: list[PreprocessingStep] | None = None,
    ) -> RecognizedText:
        """Recognize text in a permit image or PDF.

        Raises:
            AcquisitionError: If no text could be recognized
        """
        if is_pdf(file_bytes, filename):
            with _record_step(steps, "PDF Text Layer", "Reading embedded PDF text"):
                raw_text = extract_pdf_text_layer(file_bytes)
            if len(raw_text) > MIN_PDF_TEXT_LENGTH:
                return RecognizedText.from_text(raw_text)
            logger.debug(f"PDF text layer has {len(raw_text)} chars - using OCR")

        image = preprocess_image(file_bytes, filename, steps)

        try:
            with _record_step(steps, "Text Recognition", "Running Tesseract OCR"):
                raw_text = cast(
                    str,
                    pytesseract.image_to_string(image, lang="+".join(self.languages), config=self.config),
                )
        except pytesseract.TesseractNotFoundError as e:
            raise AcquisitionError("Tesseract OCR binary is not installed") from e
        except Exception as e:
            logger.error(f"OCR text extraction failed: {e}")
            raise AcquisitionError(f"Failed to extract text: {e}") from e

        recognized = RecognizedText.from_text(raw_text)
        if not recognized.fragments:
            raise AcquisitionError("No text recognized in document")
        return recognized


class CloudVisionRecognizer:
    """Recognizes permit text with the Google Cloud Vision TEXT_DETECTION feature."""

    name = "cloud_vision"

    def __init__(self, api_key: str | None, timeout: int = 30) -> None:
        self.api_key = api_key
        self.timeout = timeout
        if not self.api_key:
            logger.warning("Google Cloud Vision API key not configured - cloud OCR will not work")

    def is_available(self) -> bool:
        return bool(self.api_key)

    def recognize(
        self,
        file_bytes: bytes,
        filename: str | None,
        steps: list[PreprocessingStep] | None = None,
    ) -> RecognizedText:
        if not self.api_key:
            raise AcquisitionError("Google Cloud Vision API key is not configured")

        image = preprocess_image(file_bytes, filename, steps)
        buffer = BytesIO()
        image.save(buffer, format="PNG")
        payload = {
            "requests": [
                {
                    "image": {"content": b64encode(buffer.getvalue()).decode("ascii")},
                    "features": [{"type": "TEXT_DETECTION"}],
                }
            ]
        }

        try:
            with _record_step(steps, "Text Recognition", "Calling Google Cloud Vision"):
                response = requests.post(
                    CLOUD_VISION_URL,
                    params={"key": self.api_key},
                    json=payload,
                    timeout=self.timeout,
                )
                response.raise_for_status()
                data = response.json()
        except requests.RequestException as e:
            logger.error(f"Cloud Vision OCR failed: {e}")
            raise AcquisitionError(f"Cloud Vision request failed: {e}") from e
        except ValueError as e:
            raise AcquisitionError("Cloud Vision returned invalid JSON") from e

        first = (data.get("responses") or [{}])[0]
        if "error" in first:
            message = first["error"].get("message", "unknown error")
            raise AcquisitionError(f"Cloud Vision error: {message}")

        recognized = RecognizedText.from_text(first.get("fullTextAnnotation", {}).get("text", ""))
        if not recognized.fragments:
            raise AcquisitionError("No text recognized in document")
        return recognized


def _log_raw_text(raw_text: str) -> None:
    logger.debug("=" * 60)
    logger.debug("RAW OCR TEXT (full text):")
    if raw_text:
        chunk_size = 1000
        for i in range(0, len(raw_text), chunk_size):
            logger.debug(f"Chunk {i // chunk_size + 1}: {raw_text[i : i + chunk_size]}")
        logger.debug(f"Total characters extracted: {len(raw_text)}")
    else:
        logger.debug("No text extracted from OCR")
    logger.debug("=" * 60)


def parse_signup_id(signup_id: Any) -> int | None:
    """Return the signup id as a positive int, or None when it is missing or invalid."""
    if signup_id is None or signup_id == "":
        return None
    try:
        value = int(str(signup_id).strip())
    except ValueError:
        return None
    return value if value > 0 else None


class OCRService:
    """Runs the permit pipeline: recognize, extract, archive a report, save to backend."""

    def __init__(
        self,
        recognizer: TesseractRecognizer | CloudVisionRecognizer,
        parser: PermitParser | None = None,
        report_writer: PermitReportWriter | None = None,
        permit_api: PermitAPIClient | None = None,
        enabled: bool = True,
    ) -> None:
        self.recognizer = recognizer
        self.parser = parser or PermitParser()
        self.report_writer = report_writer
        self.permit_api = permit_api
        self.enabled = enabled

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "OCRService":
        """Build a service from a Flask-style configuration mapping."""
        provider = config.get("OCR_PROVIDER", "tesseract")
        recognizer: TesseractRecognizer | CloudVisionRecognizer
        if provider == "cloud_vision":
            recognizer = CloudVisionRecognizer(
                config.get("GOOGLE_CLOUD_VISION_API_KEY"),
                timeout=config.get("OCR_REQUEST_TIMEOUT", 30),
            )
        else:
            recognizer = TesseractRecognizer(
                tesseract_cmd=config.get("TESSERACT_CMD"),
                languages=config.get("OCR_LANGUAGES"),
            )

        report_writer = None
        if config.get("PERMIT_REPORTS_ENABLED", True) and config.get("PERMIT_REPORT_DIR"):
            report_writer = PermitReportWriter(config["PERMIT_REPORT_DIR"])

        permit_api = None
        if config.get("PERMIT_API_BASE_URL"):
            permit_api = PermitAPIClient(config["PERMIT_API_BASE_URL"], timeout=config.get("PERMIT_API_TIMEOUT", 15))

        return cls(
            recognizer,
            report_writer=report_writer,
            permit_api=permit_api,
            enabled=config.get("OCR_ENABLED", True),
        )

    def extract_from_text(self, text: str | None, steps: list[PreprocessingStep] | None = None) -> PermitScanResult:
        """Run the field extractor on already recognized text."""
        return PermitScanResult(
            success=extraction_succeeded(text),
            text=text or "",
            confidence=extraction_confidence(text),
            permit_info=self.parser.extract(text),
            processing_steps=list(steps or []),
        )

    def scan_permit(
        self,
        file_bytes: bytes,
        filename: str | None,
        signup_id: Any = None,
        business_line: str | None = None,
        save_report: bool = True,
    ) -> PermitScanResult:
        """Recognize and extract permit fields from an uploaded image or PDF.

        Args:
            file_bytes: Raw image or PDF bytes
            filename: Original filename, used for format detection
            signup_id: Signup record to attach the permit to; saving is skipped without it
            business_line: Business line chosen by the owner, forwarded to the backend
            save_report: Whether to archive a text report of this attempt

        Returns:
            PermitScanResult; recognition failures are reported in ``error``

        Raises:
            OCRDisabledError: If OCR is disabled by configuration
            ValueError: If no file content was provided
        """
        if not self.enabled:
            raise OCRDisabledError("OCR is disabled. Set OCR_ENABLED=true to scan permits.")
        if not file_bytes:
            raise ValueError("No file provided")

        logger.debug(f"Scanning permit {filename!r} ({len(file_bytes)} bytes) with {self.recognizer.name}")
        steps: list[PreprocessingStep] = []

        try:
            recognized = self.recognizer.recognize(file_bytes, filename, steps)
        except AcquisitionError as e:
            logger.warning(f"Permit text recognition failed: {e.message}")
            result = PermitScanResult(success=False, error=e.message, processing_steps=steps)
        else:
            _log_raw_text(recognized.full_text)
            result = self.extract_from_text(recognized.full_text, steps)

        if save_report and self.report_writer:
            result.report_path = self.report_writer.write(result)

        if signup_id is not None and signup_id != "":
            self._save_to_backend(result, signup_id, file_bytes, filename, business_line)

        return result

    def _save_to_backend(
        self,
        result: PermitScanResult,
        signup_id: Any,
        file_bytes: bytes,
        filename: str | None,
        business_line: str | None,
    ) -> None:
        if not self.permit_api:
            result.save_message = "Permit API is not configured"
            return
        if not result.permit_info.has_any_field():
            result.save_message = "No permit fields extracted"
            return

        signup_id_number = parse_signup_id(signup_id)
        if signup_id_number is None:
            logger.error(f"Invalid signup ID provided: {signup_id!r}")
            result.save_message = "Invalid signup ID"
            return

        saved: SavePermitResult = self.permit_api.save_permit_data(
            signup_id_number,
            result.permit_info,
            raw_text=result.text,
            image_bytes=file_bytes,
            image_ext=file_extension(filename) or None,
            business_line=business_line,
        )
        result.database_saved = saved.success
        result.save_message = saved.message
        if saved.success:
            logger.info(f"Permit data saved for signup {signup_id_number} ({saved.action})")
        else:
            logger.error(f"Failed to save permit data for signup {signup_id_number}: {saved.message}")


def get_ocr_service() -> OCRService:
    """Build an OCR service from the current Flask application's configuration."""
    return OCRService.from_config(current_app.config)
