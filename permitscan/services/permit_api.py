"""Client for the directory backend's "Save Permit Data" endpoint.

Saving is best effort: every failure is returned as ``SavePermitResult(success=False)``
and logged, never raised, so the signup flow can carry on without it.
"""

from base64 import b64encode
from dataclasses import dataclass
import logging
import re
from typing import Any

import requests

from .permit_parser import ExtractedPermitInfo

logger = logging.getLogger(__name__)

SAVE_PERMIT_PATH = "save_permit.php"


@dataclass(frozen=True)
class SavePermitResult:
    """Backend response to a save request."""

    success: bool
    message: str | None = None
    action: str | None = None


def sanitize_image_extension(ext: str | None) -> str | None:
    """Lower-case an extension and keep only letters and digits (``.JPG`` -> ``jpg``)."""
    if not ext:
        return None
    cleaned = re.sub(r"[^a-z0-9]", "", ext.lower())
    return cleaned or None


def build_save_payload(
    signup_id: int,
    info: ExtractedPermitInfo,
    raw_text: str | None = None,
    image_bytes: bytes | None = None,
    image_ext: str | None = None,
    business_line: str | None = None,
) -> dict[str, Any]:
    """Build the JSON body the backend expects."""
    return {
        "signup_id": signup_id,
        "businessIdNo": info.business_id_no,
        "businessTin": info.business_tin,
        "businessPermitNo": info.business_permit_no,
        "dateIssued": info.date_issued,
        "validUntil": info.valid_until,
        "ownerName": info.owner_name,
        "businessName": info.business_name,
        "businessAddress": info.address,
        "businessLine": business_line,
        "ocrText": raw_text,
        "permitImageBase64": b64encode(image_bytes).decode("ascii") if image_bytes else None,
        "permitImageExt": sanitize_image_extension(image_ext),
    }


class PermitAPIClient:
    """Posts extracted permit fields to the directory backend."""

    def __init__(self, base_url: str, timeout: int = 15, session: requests.Session | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def save_url(self) -> str:
        return f"{self.base_url}/{SAVE_PERMIT_PATH}"

    def save_permit_data(
        self,
        signup_id: int,
        info: ExtractedPermitInfo,
        raw_text: str | None = None,
        image_bytes: bytes | None = None,
        image_ext: str | None = None,
        business_line: str | None = None,
    ) -> SavePermitResult:
        """Save permit fields (plus raw text and image for admin review) for a signup.

        Args:
            signup_id: Signup record the permit belongs to
            info: Cleaned permit fields
            raw_text: Recognized text, archived server side
            image_bytes: Original permit image or PDF
            image_ext: Extension of ``image_bytes``
            business_line: Business line selected during signup

        Returns:
            SavePermitResult with the backend's success flag and message
        """
        payload = build_save_payload(signup_id, info, raw_text, image_bytes, image_ext, business_line)

        try:
            logger.debug(f"Making POST request to {self.save_url} for signup {signup_id}")
            response = self.session.post(self.save_url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Save permit error: {e}")
            return SavePermitResult(success=False, message="Network error")

        try:
            data = response.json()
        except ValueError:
            logger.error(f"Save permit error: response is not valid JSON. Raw response: {response.text[:500]}")
            return SavePermitResult(success=False, message="Server returned invalid JSON")

        if not isinstance(data, dict):
            return SavePermitResult(success=False, message="Server returned invalid JSON")

        if response.status_code >= 400:
            logger.warning(f"Save permit request failed: {response.status_code} - {data.get('message')}")

        return SavePermitResult(
            success=bool(data.get("success")),
            message=data.get("message") or None,
            action=data.get("action"),
        )
