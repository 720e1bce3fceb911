# /tests/test_config.py

import pytest

from oracle_assistant.core.config import DEFAULT_DATABASE_URL, load_settings
from oracle_assistant.core.errors import ConfigurationError


@pytest.fixture
def env_file(tmp_path):
    """An empty .env so the developer's own file never leaks into the test."""
    path = tmp_path / ".env"
    path.write_text("")
    return str(path)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "GOOGLE_API_KEY",
        "DATABASE_URL",
        "GEMINI_MODEL",
        "ASSISTANT_TIMEOUT_SECONDS",
        "AUTH_SESSION_TTL_SECONDS",
        "SITE_URL",
        "LOG_LEVEL",
    ):
        # setenv first so teardown also removes whatever load_dotenv() adds.
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


def test_missing_api_key_fails_fast(env_file):
    with pytest.raises(ConfigurationError) as excinfo:
        load_settings(env_file)
    assert "GOOGLE_API_KEY" in excinfo.value.message


def test_defaults_apply_when_only_the_key_is_set(monkeypatch, env_file):
    monkeypatch.setenv("GOOGLE_API_KEY", "abc")

    settings = load_settings(env_file)

    assert settings.google_api_key == "abc"
    assert settings.database_url == DEFAULT_DATABASE_URL
    assert settings.assistant_timeout_seconds == 60.0
    assert settings.log_level == "INFO"


def test_values_are_read_from_the_env_file(tmp_path):
    path = tmp_path / ".env"
    path.write_text("GOOGLE_API_KEY=from-file\nSITE_URL=https://assistant.example.com/\n")

    settings = load_settings(str(path))

    assert settings.google_api_key == "from-file"
    assert settings.site_url == "https://assistant.example.com"


@pytest.mark.parametrize("raw", ["soon", "-5", "0"])
def test_bad_timeout_is_a_configuration_error(monkeypatch, env_file, raw):
    monkeypatch.setenv("GOOGLE_API_KEY", "abc")
    monkeypatch.setenv("ASSISTANT_TIMEOUT_SECONDS", raw)

    with pytest.raises(ConfigurationError):
        load_settings(env_file)
