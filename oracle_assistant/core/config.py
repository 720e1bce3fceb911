# /oracle_assistant/core/config.py

"""
Runtime configuration for the Oracle Support Assistant.

All settings are read from the environment (optionally seeded from a `.env`
file) exactly once at startup. The resulting `Settings` object is passed
explicitly to whatever needs it; nothing else in the package reads `os.environ`.
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigurationError

DEFAULT_DATABASE_URL = "sqlite:///./oracle_assistant.db"
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"


@dataclass(frozen=True)
class Settings:
    google_api_key: str
    database_url: str = DEFAULT_DATABASE_URL
    gemini_model: str = DEFAULT_GEMINI_MODEL
    assistant_timeout_seconds: float = 60.0
    auth_session_ttl_seconds: int = 60 * 60 * 12  # 12 hours
    auth_password_pepper: str = ""
    site_url: str = "http://localhost:8000"
    log_level: str = "INFO"


def _read_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = cast(raw.strip())
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}.")
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {raw!r}.")
    return value


def load_settings(env_file: Optional[str] = None) -> Settings:
    """
    Builds a `Settings` instance from the environment.

    Raises `ConfigurationError` when the Gemini API key is missing so that the
    service refuses to start instead of answering every question with a
    fallback reply.
    """
    load_dotenv(env_file)

    api_key = (os.getenv("GOOGLE_API_KEY") or "").strip()
    if not api_key:
        raise ConfigurationError("GOOGLE_API_KEY environment variable is not set.")

    return Settings(
        google_api_key=api_key,
        database_url=os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL,
        gemini_model=os.getenv("GEMINI_MODEL") or DEFAULT_GEMINI_MODEL,
        assistant_timeout_seconds=_read_number("ASSISTANT_TIMEOUT_SECONDS", 60.0, float),
        auth_session_ttl_seconds=_read_number("AUTH_SESSION_TTL_SECONDS", 60 * 60 * 12, int),
        auth_password_pepper=os.getenv("AUTH_PASSWORD_PEPPER", ""),
        site_url=(os.getenv("SITE_URL") or "http://localhost:8000").rstrip("/"),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )


@lru_cache
def get_settings() -> Settings:
    return load_settings()
