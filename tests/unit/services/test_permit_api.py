"""Tests for the permit backend client."""

from base64 import b64decode
from unittest.mock import Mock

import pytest
import requests

from permitscan.services.permit_api import (
    PermitAPIClient,
    SavePermitResult,
    build_save_payload,
    sanitize_image_extension,
)
from permitscan.services.permit_parser import extract_permit_info


@pytest.fixture
def permit_info(full_permit_text):
    return extract_permit_info(full_permit_text)


def _client_with_response(json_data=None, status_code=200, json_error=None):
    response = Mock()
    response.status_code = status_code
    response.text = "<html>Fatal error</html>"
    if json_error:
        response.json.side_effect = json_error
    else:
        response.json.return_value = json_data
    session = Mock()
    session.post.return_value = response
    return PermitAPIClient("https://directory.example.com/api/", timeout=7, session=session), session


class TestBuildSavePayload:
    def test_payload_keys(self, permit_info) -> None:
        """Test the JSON body uses the backend's field names."""
        payload = build_save_payload(
            42, permit_info, raw_text="RAW", image_bytes=b"\x89PNG", image_ext=".PNG", business_line="Resort"
        )

        assert payload == {
            "signup_id": 42,
            "businessIdNo": "S041008-00061",
            "businessTin": "420-560-891-00000",
            "businessPermitNo": "2025-0401008000-1206",
            "dateIssued": "2025-03-20",
            "validUntil": "2025-12-31",
            "ownerName": "SEVIRINO CAUNTAY SALAZAR",
            "businessName": "SIBUNG'S FLOATING COTTAGE RENTAL",
            "businessAddress": "BARANGAY 4, CALATAGAN, BATANGAS",
            "businessLine": "Resort",
            "ocrText": "RAW",
            "permitImageBase64": payload["permitImageBase64"],
            "permitImageExt": "png",
        }
        assert b64decode(payload["permitImageBase64"]) == b"\x89PNG"

    def test_payload_without_image(self, permit_info) -> None:
        payload = build_save_payload(1, permit_info)

        assert payload["permitImageBase64"] is None
        assert payload["permitImageExt"] is None
        assert payload["ocrText"] is None

    @pytest.mark.parametrize(
        ("ext", "expected"),
        [("JPG", "jpg"), (".jpeg", "jpeg"), ("p/n\\g", "png"), ("../", None), ("", None), (None, None)],
    )
    def test_sanitize_image_extension(self, ext, expected) -> None:
        assert sanitize_image_extension(ext) == expected


class TestPermitAPIClient:
    """Test saving permit data to the backend."""

    def test_save_success(self, permit_info) -> None:
        client, session = _client_with_response(
            {"success": True, "message": "Permit data saved", "action": "inserted"}
        )

        result = client.save_permit_data(42, permit_info, raw_text="RAW")

        assert result == SavePermitResult(success=True, message="Permit data saved", action="inserted")
        url = session.post.call_args.args[0]
        assert url == "https://directory.example.com/api/save_permit.php"
        assert session.post.call_args.kwargs["timeout"] == 7
        assert session.post.call_args.kwargs["json"]["signup_id"] == 42

    def test_backend_rejects(self, permit_info) -> None:
        client, _ = _client_with_response({"success": False, "message": "Signup not found"}, status_code=404)

        result = client.save_permit_data(9, permit_info)

        assert result.success is False
        assert result.message == "Signup not found"
        assert result.action is None

    def test_network_error(self, permit_info) -> None:
        client, session = _client_with_response()
        session.post.side_effect = requests.Timeout("timed out")

        result = client.save_permit_data(42, permit_info)

        assert result == SavePermitResult(success=False, message="Network error")

    def test_invalid_json(self, permit_info) -> None:
        client, _ = _client_with_response(json_error=ValueError("Expecting value"), status_code=500)

        result = client.save_permit_data(42, permit_info)

        assert result == SavePermitResult(success=False, message="Server returned invalid JSON")

    def test_non_object_json(self, permit_info) -> None:
        client, _ = _client_with_response(["unexpected"])

        result = client.save_permit_data(42, permit_info)

        assert result.success is False
        assert result.message == "Server returned invalid JSON"

    def test_default_session(self) -> None:
        client = PermitAPIClient("http://localhost/api")

        assert isinstance(client.session, requests.Session)
        assert client.save_url == "http://localhost/api/save_permit.php"
