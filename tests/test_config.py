"""Tests for settings.conf loading."""

import pytest

from config import load_settings_conf, SettingsError, DEFAULTS


def test_missing_file_uses_defaults(tmp_path):
    settings = load_settings_conf(str(tmp_path))
    assert settings['db_url'] == DEFAULTS['db_url']
    assert settings['code_digits'] == 12
    assert settings['api_port'] == 8000


def test_values_are_read_and_converted(tmp_path):
    (tmp_path / 'settings.conf').write_text(
        "[DEFAULT]\n"
        "db_url = memory://\n"
        "bridge_url = http://bridge:9000/\n"
        "code_digits = 8\n"
        "log_level = debug\n",
        encoding='utf-8'
    )
    settings = load_settings_conf(str(tmp_path))
    assert settings['db_url'] == 'memory://'
    assert settings['bridge_url'] == 'http://bridge:9000'
    assert settings['code_digits'] == 8
    assert settings['log_level'] == 'DEBUG'
    assert settings['bridge_timeout'] == 10


def test_invalid_integer(tmp_path):
    (tmp_path / 'settings.conf').write_text("[DEFAULT]\napi_port = eighty\n", encoding='utf-8')
    with pytest.raises(SettingsError) as exc_info:
        load_settings_conf(str(tmp_path))
    assert "Invalid setting types" in str(exc_info.value)
    assert "api_port" in str(exc_info.value)


def test_out_of_range(tmp_path):
    (tmp_path / 'settings.conf').write_text("[DEFAULT]\ncode_digits = 2\n", encoding='utf-8')
    with pytest.raises(SettingsError) as exc_info:
        load_settings_conf(str(tmp_path))
    assert "code_digits must be at least 6" in str(exc_info.value)


def test_unparseable_file(tmp_path):
    (tmp_path / 'settings.conf').write_text("no section header\n", encoding='utf-8')
    with pytest.raises(SettingsError):
        load_settings_conf(str(tmp_path))
