"""Custom exceptions for permit scanning."""


class PermitScanError(Exception):
    """Base exception for permit scanning errors."""

    def __init__(self, message: str, field: str | None = None):
        self.message = message
        self.field = field
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert exception to dictionary for API responses."""
        return {
            "code": "PERMIT_SCAN_ERROR",
            "message": self.message,
            "field": self.field,
        }


class AcquisitionError(PermitScanError):
    """Raised when text recognition produced no usable text."""

    def to_dict(self) -> dict:
        return {**super().to_dict(), "code": "ACQUISITION_FAILED"}


class UnsupportedDocumentError(AcquisitionError):
    """Raised when the uploaded file is not an image or PDF we can read."""

    def __init__(self, message: str):
        super().__init__(message, field="file")

    def to_dict(self) -> dict:
        return {**super().to_dict(), "code": "UNSUPPORTED_DOCUMENT"}


class OCRDisabledError(PermitScanError):
    """Raised when OCR is switched off or the engine is not installed."""

    def to_dict(self) -> dict:
        return {**super().to_dict(), "code": "OCR_DISABLED"}
