# /oracle_assistant/services/gemini_service.py

"""
The assistant gateway adapter.

`GeminiAssistantGateway.generate` is the raw, raising call to the model.
`GeminiAssistantGateway.ask` is what the chat flow uses: it never raises and
returns an `AssistantReply` whose `degraded` flag tells a genuine completion
apart from the fixed fallback text.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import google.generativeai as genai
from google.generativeai.types import GenerationConfig

from ..core.errors import AssistantGatewayError
from .prompt_library import ORACLE_EXPERT_PROMPT, FALLBACK_REPLY

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssistantReply:
    text: str
    degraded: bool = False
    error: Optional[str] = None


def build_prompt(question: str) -> str:
    """Embeds the user's question into the Oracle expert template."""
    return ORACLE_EXPERT_PROMPT.format(question=question)


class GeminiAssistantGateway:
    def __init__(self, api_key: str, model_name: str, timeout_seconds: float, temperature: float = 0.5):
        genai.configure(api_key=api_key)
        self.model_name = model_name
        self.timeout_seconds = timeout_seconds
        self.temperature = temperature

    async def generate(self, prompt: str) -> str:
        """One blocking request to the model. Raises AssistantGatewayError on any failure."""
        try:
            model = genai.GenerativeModel(self.model_name)
            config = GenerationConfig(temperature=self.temperature)
            response = await model.generate_content_async(prompt, generation_config=config)
            if not response.parts:
                raise AssistantGatewayError("AI model returned an empty response.")
            text = response.text
        except AssistantGatewayError:
            raise
        except Exception as e:
            logger.error("Gemini request failed (model=%s): %s", self.model_name, e)
            raise AssistantGatewayError(f"Gemini request failed: {e}") from e
        if not text or not text.strip():
            raise AssistantGatewayError("AI model returned an empty response.")
        return text

    async def ask(self, question: str) -> AssistantReply:
        try:
            text = await asyncio.wait_for(
                self.generate(build_prompt(question)),
                timeout=self.timeout_seconds,
            )
            return AssistantReply(text=text)
        except asyncio.TimeoutError:
            error = f"Gemini did not answer within {self.timeout_seconds:g}s."
        except AssistantGatewayError as e:
            error = e.message
        logger.warning("Substituting fallback reply: %s", error)
        return AssistantReply(text=FALLBACK_REPLY, degraded=True, error=error)
