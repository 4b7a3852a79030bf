"""Tests for the Flask application initialization and configuration."""

from unittest.mock import patch

from permitscan import __version__, create_app


class TestConfig:
    """Test configuration for the app."""

    TESTING = True
    SECRET_KEY = "test-secret-key"
    RATELIMIT_ENABLED = False
    OCR_PROVIDER = "cloud_vision"


def test_create_app_with_testing_config():
    """Test creating the app with testing configuration."""
    app = create_app(TestConfig)

    assert app.testing is True
    assert app.config["SECRET_KEY"] == "test-secret-key"
    assert app.config["OCR_PROVIDER"] == "cloud_vision"
    # Values not overridden come from the FLASK_ENV configuration
    assert app.config["PERMIT_REPORTS_ENABLED"] is False


def test_create_app_with_default_config():
    """Test creating the app from environment variables only."""
    with patch.dict(
        "os.environ",
        {"FLASK_ENV": "production", "SECRET_KEY": "prod-secret"},
    ):
        app = create_app()

    assert app.debug is False
    assert app.testing is False


def test_blueprints_registered(app):
    """Test that all blueprints are registered."""
    assert {"permits", "health", "errors"} <= set(app.blueprints)

    rules = {rule.rule for rule in app.url_map.iter_rules()}
    assert "/api/v1/permits/scan" in rules
    assert "/api/v1/permits/extract" in rules
    assert "/api/v1/permits/report" in rules
    assert "/health/" in rules


def test_cli_commands_registered(app):
    assert "permit" in app.cli.commands


def test_version():
    assert __version__ == "1.0.0"


class TestResponses:
    """Test behaviour shared by every response."""

    def test_security_headers(self, client):
        response = client.get("/health/")

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"
        assert response.headers["Cache-Control"] == "no-store"

    def test_not_found_is_json(self, client):
        response = client.get("/does-not-exist")

        assert response.status_code == 404
        data = response.get_json()
        assert data["status"] == "error"
        assert data["code"] == 404

    def test_method_not_allowed_is_json(self, client):
        response = client.get("/api/v1/permits/scan")

        assert response.status_code == 405
        assert response.get_json()["code"] == 405

    def test_cors_headers_on_api(self, client):
        response = client.post(
            "/api/v1/permits/extract",
            json={"text": "S041008-00061"},
            headers={"Origin": "https://app.example.com"},
        )

        assert response.headers["Access-Control-Allow-Origin"] in ("*", "https://app.example.com")

    def test_unhandled_exception_is_json(self, app, client):
        with patch("permitscan.permits.routes.get_ocr_service", side_effect=RuntimeError("boom")):
            response = client.post("/api/v1/permits/extract", json={"text": "anything"})

        assert response.status_code == 500
        assert response.get_json()["message"] == "An unexpected error occurred"
