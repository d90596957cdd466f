"""
Settings tests.
Tests Settings validation and Settings.from_env() from flowlens.config.
"""
import pytest

from flowlens.config import Settings
from flowlens.constants import DEFAULT_CACHE_SIZE, DEFAULT_MAX_DEPTH, DEFAULT_SUMMARY_MAX
from flowlens.errors import ConfigError


def test_defaults():
    settings = Settings.from_env({})
    assert settings.summary_max == DEFAULT_SUMMARY_MAX
    assert settings.max_depth == DEFAULT_MAX_DEPTH
    assert settings.cache_size == DEFAULT_CACHE_SIZE
    assert settings.locale == "en"
    assert settings.log_level == "WARNING"


def test_environment_values():
    env = {
        "FLOWLENS_SUMMARY_MAX": "40",
        "FLOWLENS_LOCALE": "ja_JP.UTF-8",
        "FLOWLENS_LOG_LEVEL": "debug",
        "FLOWLENS_CACHE_SIZE": "0",
        "FLOWLENS_MAX_DEPTH": "",
    }
    settings = Settings.from_env(env)
    assert settings.summary_max == 40
    assert settings.locale == "ja"
    assert settings.log_level == "DEBUG"
    assert settings.cache_size == 0
    assert settings.max_depth == DEFAULT_MAX_DEPTH


def test_overrides_win_over_environment():
    settings = Settings.from_env({"FLOWLENS_LOCALE": "ja"}, locale="en", summary_max=None)
    assert settings.locale == "en"
    assert settings.summary_max == DEFAULT_SUMMARY_MAX


@pytest.mark.parametrize("env", [
    {"FLOWLENS_SUMMARY_MAX": "0"},
    {"FLOWLENS_SUMMARY_MAX": "many"},
    {"FLOWLENS_LOG_LEVEL": "LOUD"},
    {"FLOWLENS_CACHE_SIZE": "-1"},
])
def test_invalid_values_raise_config_error(env):
    with pytest.raises(ConfigError, match="Invalid configuration"):
        Settings.from_env(env)


def test_settings_are_frozen_and_strict():
    settings = Settings()
    with pytest.raises(Exception):
        settings.summary_max = 5
    with pytest.raises(Exception):
        Settings(unknown_option=True)
