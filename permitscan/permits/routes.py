from __future__ import annotations

from datetime import datetime
from typing import Any, Tuple

from flask import Response, current_app, jsonify, request
from marshmallow import ValidationError

from permitscan.extensions import limiter
from permitscan.services.ocr_service import (
    SUPPORTED_EXTENSIONS,
    OCRService,
    PermitScanResult,
    RecognizedText,
    file_extension,
    get_ocr_service,
)
from permitscan.services.report_service import format_report, report_file_name

from . import bp
from .schemas import ExtractTextSchema, ScanFormSchema

extract_text_schema = ExtractTextSchema()
scan_form_schema = ScanFormSchema()


def _create_api_response(
    data: Any = None, message: str = "Success", status: str = "success", code: int = 200
) -> Tuple[Response, int]:
    """Create a standardized API response."""
    response_data = {"status": status, "message": message}
    if data is not None:
        response_data["data"] = data
    return jsonify(response_data), code


def _handle_validation_error(error: ValidationError) -> Tuple[Response, int]:
    """Handle validation errors consistently."""
    return (
        jsonify({"status": "error", "message": "Validation failed", "errors": error.messages}),
        400,
    )


def _scan_rate_limit() -> str:
    return str(current_app.config.get("RATELIMIT_SCAN", "20 per minute"))


def _load_recognized_text() -> str | Tuple[Response, int]:
    """Read recognized text from a JSON body of ``text`` or ``fragments``."""
    payload = request.get_json(silent=True)
    if payload is None:
        return _create_api_response(message="Request body must be JSON", status="error", code=400)
    try:
        data = extract_text_schema.load(payload)
    except ValidationError as e:
        return _handle_validation_error(e)

    if data["text"] is not None:
        return str(data["text"])
    return RecognizedText(tuple(data["fragments"])).full_text


def _extract(text: str) -> PermitScanResult:
    service: OCRService = get_ocr_service()
    return service.extract_from_text(text)


@bp.route("/scan", methods=["POST"])
@limiter.limit(_scan_rate_limit)
def scan_permit() -> Tuple[Response, int]:
    """Scan an uploaded permit image or PDF.

    Recognition failures are reported in the body (``success: false``) with a
    200 status so the signup workflow can continue with manual entry.
    """
    upload = request.files.get("file")
    if not upload or not upload.filename:
        return _create_api_response(message="No file provided", status="error", code=400)

    extension = file_extension(upload.filename)
    if extension not in SUPPORTED_EXTENSIONS:
        return _create_api_response(
            message=f"Unsupported file type '{extension or 'unknown'}'",
            status="error",
            code=400,
        )

    try:
        form = scan_form_schema.load({key: value for key, value in request.form.items() if value != ""})
    except ValidationError as e:
        return _handle_validation_error(e)

    file_bytes = upload.read()
    if not file_bytes:
        return _create_api_response(message="Uploaded file is empty", status="error", code=400)

    result = get_ocr_service().scan_permit(
        file_bytes,
        upload.filename,
        signup_id=form["signup_id"],
        business_line=form["business_line"],
        save_report=form["save_report"],
    )

    if result.success:
        return _create_api_response(data=result.to_dict(), message="Permit scanned successfully")
    current_app.logger.info(f"Permit scan returned no text: {result.error}")
    return _create_api_response(
        data=result.to_dict(),
        message=result.error or "Failed to extract text",
        status="error",
    )


@bp.route("/extract", methods=["POST"])
def extract_fields() -> Tuple[Response, int]:
    """Extract permit fields from text recognized elsewhere (e.g. on the device)."""
    text = _load_recognized_text()
    if not isinstance(text, str):
        return text

    result = _extract(text)
    return _create_api_response(data=result.to_dict(), message="Permit fields extracted")


@bp.route("/report", methods=["POST"])
def render_report() -> Tuple[Response, int]:
    """Render the review report for recognized text without writing a file."""
    text = _load_recognized_text()
    if not isinstance(text, str):
        return text

    result = _extract(text)
    processed_at = datetime.now()
    file_name = report_file_name(processed_at)
    return _create_api_response(
        data={"fileName": file_name, "report": format_report(result, file_name, processed_at)},
        message="Report generated",
    )
