"""Application configuration.

This module provides environment-specific configuration settings for the application.
"""

import os
from pathlib import Path


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class Config:
    """Base configuration with settings common to all environments."""

    # Security
    SECRET_KEY: str = os.getenv("SECRET_KEY", "dev-key-change-in-production")

    # Flask settings
    DEBUG: bool = _env_bool("DEBUG", "false")
    TESTING: bool = False

    # Application settings
    APP_NAME: str = os.getenv("APP_NAME", "permit-scanner")
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "dev")

    # File upload settings
    MAX_CONTENT_LENGTH: int = 10 * 1024 * 1024  # 10MB max permit upload

    # OCR settings
    OCR_ENABLED: bool = _env_bool("OCR_ENABLED", "true")
    OCR_PROVIDER: str = os.getenv("OCR_PROVIDER", "tesseract")  # tesseract | cloud_vision
    TESSERACT_CMD: str | None = os.getenv("TESSERACT_CMD")
    OCR_LANGUAGES: list[str] = [lang.strip() for lang in os.getenv("OCR_LANGUAGES", "eng").split(",") if lang.strip()]
    GOOGLE_CLOUD_VISION_API_KEY: str = os.getenv("GOOGLE_CLOUD_VISION_API_KEY", "")
    OCR_REQUEST_TIMEOUT: int = int(os.getenv("OCR_REQUEST_TIMEOUT", "30"))

    # Extraction reports (one text file per scan attempt)
    PERMIT_REPORTS_ENABLED: bool = _env_bool("PERMIT_REPORTS_ENABLED", "true")
    PERMIT_REPORT_DIR: str = os.getenv(
        "PERMIT_REPORT_DIR", str(Path(__file__).parent / "instance" / "permit_reports")
    )

    # Directory backend that stores permit data for admin review
    PERMIT_API_BASE_URL: str = os.getenv("PERMIT_API_BASE_URL", "")
    PERMIT_API_TIMEOUT: int = int(os.getenv("PERMIT_API_TIMEOUT", "15"))

    # Rate limiting
    RATELIMIT_DEFAULT: str = os.getenv("RATELIMIT_DEFAULT", "400 per day;100 per hour")
    RATELIMIT_SCAN: str = os.getenv("RATELIMIT_SCAN", "20 per minute")
    RATELIMIT_STORAGE_URI: str = os.getenv("RATELIMIT_STORAGE_URI", "memory://")

    def __init__(self) -> None:
        """Initialize configuration."""
        os.environ.setdefault("FLASK_ENV", "development")


class DevelopmentConfig(Config):
    """Development configuration."""

    DEBUG: bool = True


class UnitTestConfig(Config):
    """Testing configuration."""

    TESTING: bool = True
    DEBUG: bool = True
    PERMIT_REPORTS_ENABLED: bool = False
    PERMIT_API_BASE_URL: str = ""
    RATELIMIT_ENABLED: bool = False


class ProductionConfig(Config):
    """Production configuration."""

    DEBUG: bool = False
    TESTING: bool = False
    PREFERRED_URL_SCHEME: str = "https"


ENVIRONMENT_CONFIGS: dict[str, type[Config]] = {
    "development": DevelopmentConfig,
    "dev": DevelopmentConfig,
    "testing": UnitTestConfig,
    "test": UnitTestConfig,
    "production": ProductionConfig,
    "prod": ProductionConfig,
}


def get_config(env: str | None = None) -> Config:
    """Return the configuration for ``env`` (defaults to FLASK_ENV); unknown names fall back to development."""
    name = (env or os.getenv("FLASK_ENV", "development")).strip().lower()
    return ENVIRONMENT_CONFIGS.get(name, DevelopmentConfig)()
