# /tests/test_gemini_service.py

import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from oracle_assistant.core.errors import AssistantGatewayError
from oracle_assistant.services import gemini_service
from oracle_assistant.services.gemini_service import GeminiAssistantGateway, build_prompt
from oracle_assistant.services.prompt_library import FALLBACK_REPLY


@pytest.fixture
def mock_genai():
    """Replaces the google.generativeai module so no request ever leaves the process."""
    with patch.object(gemini_service, "genai") as genai:
        yield genai


@pytest.fixture
def gateway(mock_genai):
    return GeminiAssistantGateway(api_key="test-key", model_name="gemini-test", timeout_seconds=1)


def _response(text="## Answer", parts=True):
    response = MagicMock()
    response.parts = ["part"] if parts else []
    response.text = text
    return response


def test_gateway_configures_the_sdk_with_the_api_key(mock_genai):
    GeminiAssistantGateway(api_key="secret", model_name="gemini-test", timeout_seconds=1)
    mock_genai.configure.assert_called_once_with(api_key="secret")


def test_build_prompt_embeds_question_in_oracle_template():
    prompt = build_prompt("What is a tablespace?")
    assert "Oracle Database Expert Assistant" in prompt
    assert "User Question: What is a tablespace?" in prompt
    # The question is also used as the documentation context.
    assert prompt.count("What is a tablespace?") == 2
    assert "Quick Tips" in prompt


@pytest.mark.asyncio
async def test_generate_returns_model_text_verbatim(gateway, mock_genai):
    model = mock_genai.GenerativeModel.return_value
    model.generate_content_async = AsyncMock(return_value=_response("## Tablespaces\n\nText"))

    text = await gateway.generate("prompt")

    assert text == "## Tablespaces\n\nText"
    mock_genai.GenerativeModel.assert_called_once_with("gemini-test")


@pytest.mark.asyncio
async def test_generate_rejects_empty_response(gateway, mock_genai):
    model = mock_genai.GenerativeModel.return_value
    model.generate_content_async = AsyncMock(return_value=_response(parts=False))

    with pytest.raises(AssistantGatewayError):
        await gateway.generate("prompt")


@pytest.mark.asyncio
async def test_generate_wraps_sdk_errors(gateway, mock_genai):
    model = mock_genai.GenerativeModel.return_value
    model.generate_content_async = AsyncMock(side_effect=RuntimeError("quota exceeded"))

    with pytest.raises(AssistantGatewayError) as excinfo:
        await gateway.generate("prompt")
    assert "quota exceeded" in excinfo.value.message


@pytest.mark.asyncio
async def test_ask_success_is_not_degraded(gateway):
    gateway.generate = AsyncMock(return_value="A tablespace is...")

    reply = await gateway.ask("What is a tablespace?")

    assert reply.text == "A tablespace is..."
    assert reply.degraded is False
    assert reply.error is None
    sent_prompt = gateway.generate.await_args.args[0]
    assert "User Question: What is a tablespace?" in sent_prompt


@pytest.mark.asyncio
async def test_ask_never_raises_and_marks_fallback_as_degraded(gateway):
    gateway.generate = AsyncMock(side_effect=AssistantGatewayError("network down"))

    reply = await gateway.ask("What is a tablespace?")

    assert reply.text == FALLBACK_REPLY
    assert reply.degraded is True
    assert reply.error == "network down"


@pytest.mark.asyncio
async def test_ask_times_out_into_a_degraded_reply(gateway):
    gateway.timeout_seconds = 0.01

    async def never_answers(prompt):
        await asyncio.sleep(1)
        return "too late"

    gateway.generate = never_answers

    reply = await gateway.ask("slow question")

    assert reply.degraded is True
    assert reply.text == FALLBACK_REPLY
    assert "did not answer" in reply.error
