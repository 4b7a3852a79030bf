"""Error handling for the application.

Every error is returned in the same JSON envelope the mobile client understands:
``{"status": "error", "message": ..., "code": ...}``.
"""

from __future__ import annotations

from typing import cast

from flask import Blueprint, Flask, Response, current_app, jsonify
from werkzeug.exceptions import HTTPException

from permitscan.services.exceptions import OCRDisabledError, PermitScanError

# Initialize Blueprint
bp = Blueprint("errors", __name__)


def init_app(app: Flask) -> None:
    """Initialize error handlers with the Flask application."""
    app.register_blueprint(bp)


def _create_error_response(message: str, status_code: int, error_type: str = "error", **extra: object) -> Response:
    """Create a standardized error response.

    Args:
        message: The error message
        status_code: The HTTP status code
        error_type: The type of error (error, warning, info)

    Returns:
        JSON response
    """
    response = jsonify({"status": error_type, "message": message, "code": status_code, **extra})
    response.status_code = status_code
    return cast(Response, response)


@bp.app_errorhandler(OCRDisabledError)
def handle_ocr_disabled(error: OCRDisabledError) -> Response:
    """Handle scans attempted while OCR is switched off."""
    current_app.logger.warning(f"OCR disabled: {error.message}")
    return _create_error_response(error.message, 503, error=error.to_dict())


@bp.app_errorhandler(PermitScanError)
def handle_permit_scan_error(error: PermitScanError) -> Response:
    """Handle permit errors that escaped the service layer."""
    return _create_error_response(error.message, 400, error=error.to_dict())


@bp.app_errorhandler(HTTPException)
def handle_http_exception(error: HTTPException) -> Response:
    """Handle HTTP exceptions (400, 404, 405, 413, 429, ...)."""
    status_code = error.code if error.code is not None else 500
    return _create_error_response(error.description or "HTTP error occurred", status_code)


@bp.app_errorhandler(Exception)
def handle_exception(error: Exception) -> Response:
    """Handle all unhandled exceptions."""
    current_app.logger.error(f"Unhandled exception: {str(error)}", exc_info=True)
    return _create_error_response("An unexpected error occurred", 500)
