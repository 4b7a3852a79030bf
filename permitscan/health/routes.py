"""Health check endpoints for the application."""

from datetime import UTC, datetime
import logging
from typing import cast

from flask import Response, jsonify

from permitscan import __version__
from permitscan.services.ocr_service import get_ocr_service

from . import bp  # Import the blueprint from __init__.py

# Configure logger
logger = logging.getLogger(__name__)


@bp.route("/")
def check() -> Response:
    """Health check endpoint to verify the application and OCR engine are available.

    Returns:
        JSON: Status, version, OCR provider and engine availability
    """
    service = get_ocr_service()
    try:
        ocr_available = service.enabled and service.recognizer.is_available()
    except Exception as e:
        logger.error(f"OCR availability check failed: {str(e)}")
        ocr_available = False

    return cast(
        Response,
        jsonify(
            {
                "status": "ok",
                "version": __version__,
                "timestamp": datetime.now(UTC).isoformat(),
                "ocr_provider": service.recognizer.name,
                "ocr_available": ocr_available,
            }
        ),
    )
