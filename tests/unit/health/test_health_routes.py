"""Tests for health check endpoints."""

from unittest.mock import Mock, patch

from flask import url_for
import pytesseract


class TestHealthRoutes:
    """Test health check endpoints."""

    def test_health_check_success(self, client, app):
        """Test successful health check."""
        with patch("permitscan.services.ocr_service.pytesseract.get_tesseract_version") as mock_version:
            mock_version.return_value = "5.3.0"

            with patch("permitscan.health.routes.datetime") as mock_datetime:
                mock_now = Mock()
                mock_now.isoformat.return_value = "2024-01-01T12:00:00+00:00"
                mock_datetime.now.return_value = mock_now

                response = client.get(url_for("health.check"))

                assert response.status_code == 200
                data = response.get_json()
                assert data["status"] == "ok"
                assert data["ocr_provider"] == "tesseract"
                assert data["ocr_available"] is True
                assert data["version"] is not None
                assert data["timestamp"] == "2024-01-01T12:00:00+00:00"

    def test_health_check_tesseract_missing(self, client, app):
        """Test health check when the Tesseract binary is not installed."""
        with patch("permitscan.services.ocr_service.pytesseract.get_tesseract_version") as mock_version:
            mock_version.side_effect = pytesseract.TesseractNotFoundError()

            response = client.get(url_for("health.check"))

            assert response.status_code == 200
            data = response.get_json()
            assert data["status"] == "ok"
            assert data["ocr_available"] is False

    def test_health_check_ocr_disabled(self, client, app):
        """Test health check when OCR is switched off."""
        app.config["OCR_ENABLED"] = False

        response = client.get(url_for("health.check"))

        assert response.get_json()["ocr_available"] is False

    def test_health_check_cloud_vision(self, client, app):
        """Test health check with the cloud provider and no API key."""
        app.config.update(OCR_PROVIDER="cloud_vision", GOOGLE_CLOUD_VISION_API_KEY="")

        response = client.get(url_for("health.check"))

        data = response.get_json()
        assert data["ocr_provider"] == "cloud_vision"
        assert data["ocr_available"] is False

    def test_health_check_availability_error(self, client, app):
        """Test health check when the availability check itself fails."""
        with patch("permitscan.services.ocr_service.TesseractRecognizer.is_available") as mock_available:
            mock_available.side_effect = RuntimeError("check failed")

            response = client.get(url_for("health.check"))

            assert response.status_code == 200
            assert response.get_json()["ocr_available"] is False
