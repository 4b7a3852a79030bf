"""Tests for environment configuration selection."""

from unittest.mock import patch

import pytest

from config import Config, DevelopmentConfig, ProductionConfig, UnitTestConfig, get_config


@pytest.mark.parametrize(
    ("env", "expected"),
    [
        ("development", DevelopmentConfig),
        ("testing", UnitTestConfig),
        ("production", ProductionConfig),
        ("PRODUCTION", ProductionConfig),
        ("staging", DevelopmentConfig),
    ],
)
def test_get_config(env, expected):
    with patch.dict("os.environ", {"FLASK_ENV": env}):
        assert type(get_config()) is expected


def test_testing_config_disables_side_effects():
    config = UnitTestConfig()

    assert config.TESTING is True
    assert config.PERMIT_REPORTS_ENABLED is False
    assert config.PERMIT_API_BASE_URL == ""
    assert config.RATELIMIT_ENABLED is False


def test_defaults():
    assert Config.OCR_PROVIDER in ("tesseract", "cloud_vision")
    assert Config.MAX_CONTENT_LENGTH == 10 * 1024 * 1024
    assert Config.RATELIMIT_SCAN


@pytest.mark.parametrize(("name", "expected"), [("prod", ProductionConfig), (" Test ", UnitTestConfig)])
def test_get_config_by_name(name, expected):
    assert type(get_config(name)) is expected
