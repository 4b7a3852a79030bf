"""Pytest configuration and fixtures for the test suite."""

from io import BytesIO
import os
from pathlib import Path
import sys
from typing import Generator

from flask import Flask
from flask.testing import FlaskClient, FlaskCliRunner
from PIL import Image
import pytest

# Add the project root to the Python path first to avoid import issues
project_root = str(Path(__file__).parent.parent)
sys.path.insert(0, project_root)

# Set test environment variables before the application reads them
os.environ.update(
    {
        "FLASK_ENV": "testing",
        "FLASK_APP": "permitscan",
        "SECRET_KEY": "test-secret-key",
        "OCR_PROVIDER": "tesseract",
    }
)

from permitscan import create_app  # noqa: E402

FULL_PERMIT_TEXT = """REPUBLIC OF THE PHILIPPINES
PROVINCE OF BATANGAS
MUNICIPALITY OF CALATAGAN
BUSINESS PERMIT
BUSINESS ID NO: S041008-00061
BUSINESS TIN: 420-560-891-00000
BUSINESS PERMIT NO: 2025-0401008000-1206
OWNER'S NAME: SEVIRINO CAUNTAY SALAZAR
BUSINESS NAME: SIBUNG'S FLOATING COTTAGE RENTAL
BUSINESS ADDRESS: BARANGAY 4, CALATAGAN, BATANGAS
DATE ISSUED: 2025-03-20
VALID UNTIL: 2025-12-31
"""


class TestConfig:
    """Overrides applied on top of UnitTestConfig."""

    TESTING = True
    SECRET_KEY = "test-secret-key"
    RATELIMIT_ENABLED = False
    PERMIT_REPORTS_ENABLED = False
    PERMIT_API_BASE_URL = ""


@pytest.fixture(scope="function")
def app() -> Generator[Flask, None, None]:
    """Create and configure a new app instance for testing."""
    app = create_app(TestConfig)
    app.config.update(SERVER_NAME="localhost", PREFERRED_URL_SCHEME="http")

    ctx = app.app_context()
    ctx.push()

    yield app

    ctx.pop()


@pytest.fixture
def client(app: Flask) -> Generator[FlaskClient, None, None]:
    """Create a test client for the application."""
    with app.test_client() as client:
        yield client


@pytest.fixture
def runner(app: Flask) -> FlaskCliRunner:
    """Create a CLI runner for testing Click commands."""
    return app.test_cli_runner()


@pytest.fixture
def full_permit_text() -> str:
    """Recognized text of a fully labelled business permit."""
    return FULL_PERMIT_TEXT


@pytest.fixture
def png_bytes() -> bytes:
    """A small white PNG image."""
    buffer = BytesIO()
    Image.new("RGB", (120, 60), "white").save(buffer, format="PNG")
    return buffer.getvalue()
