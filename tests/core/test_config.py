"""Tests for application settings."""

import pytest

from fxledger.core.config import Settings, settings

pytestmark = pytest.mark.unit


def test_logging_config_applies_log_level():
    configured = Settings(LOG_LEVEL="debug")

    config = configured.logging_config()

    assert config["loggers"]["fxledger"]["level"] == "DEBUG"
    assert config["loggers"]["fxledger"]["propagate"] is False


def test_logging_config_leaves_defaults_untouched():
    config = Settings(LOG_LEVEL="WARNING").logging_config()
    config["handlers"]["console"]["stream"] = "ext://sys.stderr"

    assert settings.LOGGING_CONFIG["loggers"]["fxledger"]["level"] == "INFO"
    assert settings.LOGGING_CONFIG["handlers"]["console"]["stream"] == "ext://sys.stdout"
