"""Tests for runtime settings."""

import pytest

from nxt_mcp.config import DEFAULT_PORT, DEFAULT_TIMEOUT, Settings


def test_defaults():
    settings = Settings.from_env({})
    assert settings.port == DEFAULT_PORT
    assert settings.transport == "bluetooth"
    assert settings.timeout == DEFAULT_TIMEOUT
    assert settings.length_prefixed


def test_environment_overrides():
    settings = Settings.from_env(
        {
            "NXT_PORT": "COM5",
            "NXT_BAUDRATE": "9600",
            "NXT_TRANSPORT": "USB",
            "NXT_TIMEOUT": "0.5",
            "NXT_LOG_LEVEL": "debug",
        }
    )
    assert settings.port == "COM5"
    assert settings.baudrate == 9600
    assert settings.transport == "usb"
    assert settings.timeout == 0.5
    assert settings.log_level == "DEBUG"
    assert not settings.length_prefixed


def test_unknown_transport():
    with pytest.raises(ValueError):
        Settings(transport="wifi")
