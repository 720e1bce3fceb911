# /tests/conftest.py

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from oracle_assistant.core.config import Settings
from oracle_assistant.core.context import build_context
from oracle_assistant.services.gemini_service import AssistantReply

ASSISTANT_ANSWER = "## Overview\n\nA **tablespace** is a logical storage container.\n\n## Quick Tips\n\n- Use `DBA_TABLESPACES`."


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a throwaway SQLite file; the API key is never used."""
    return Settings(
        google_api_key="test-key",
        database_url=f"sqlite:///{tmp_path / 'assistant.db'}",
        assistant_timeout_seconds=5,
        auth_session_ttl_seconds=3600,
        site_url="http://testserver",
    )


@pytest.fixture
def fake_assistant():
    """Stands in for the Gemini gateway; `ask` always answers successfully."""
    assistant = MagicMock()
    assistant.ask = AsyncMock(return_value=AssistantReply(text=ASSISTANT_ANSWER))
    return assistant


@pytest.fixture
def context(settings, fake_assistant):
    return build_context(settings, assistant=fake_assistant)


@pytest.fixture
def db(context):
    with context.open_db() as db_service:
        yield db_service


@pytest.fixture
def register_user(context):
    """
    Returns a helper that signs a user up, confirms the address, and hands
    back the resulting auth session.
    """
    def _register(email="dba@example.com", password="tiger123"):
        with context.open_db() as db_service:
            with patch("oracle_assistant.core.security.new_token", return_value=f"confirm-{email}"):
                context.identity.sign_up(db_service, email, password)
            return context.identity.confirm_email(db_service, f"confirm-{email}")
    return _register
