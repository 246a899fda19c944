from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from config.settings import Settings
from genzoom.core.prompt import (
    ANSWER_TEMPLATE,
    CLASSIFY_TEMPLATE,
    DEFAULT_SYSTEM_PROMPT,
    IMPROVE_PROMPTS,
    MODE_SYSTEM_PROMPTS,
)
from genzoom.dates import formatted_date


logger = logging.getLogger(__name__)


def build_chat_model(settings: Settings) -> BaseChatModel:
    if not settings.google_api_key:
        raise RuntimeError(
            "GOOGLE_API_KEY not set. Please configure it in environment or .env"
        )
    return ChatGoogleGenerativeAI(
        model=settings.gemini_model,
        google_api_key=settings.google_api_key,
        temperature=settings.temperature,
        top_p=settings.top_p,
        max_output_tokens=settings.max_output_tokens,
    )


def _message_text(message) -> str:
    content = getattr(message, "content", message)
    if isinstance(content, list):
        # Gemini may return content blocks instead of a plain string
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text") or "")
        content = "".join(parts)
    return str(content or "").strip()


class TextGenerationClient:
    """Text completion with a system instruction selected by mode.

    Every call is absorbed: on any backend failure the result is None and the
    caller supplies its own fallback.
    """

    def __init__(self, llm: BaseChatModel):
        self._llm = llm

    async def generate(
        self,
        prompt: str,
        mode: str = "generic",
        system_prompt: Optional[str] = None,
    ) -> Optional[str]:
        system = system_prompt or MODE_SYSTEM_PROMPTS.get(mode, DEFAULT_SYSTEM_PROMPT)
        messages = [SystemMessage(content=system), HumanMessage(content=prompt)]
        try:
            result = await self._llm.ainvoke(messages)
        except Exception as exc:
            logger.error("Text generation failed (mode=%s): %s", mode, exc)
            return None
        text = _message_text(result)
        return text or None

    async def classify(self, query: str, conversation: str, today: date) -> Optional[str]:
        today_text = formatted_date(today)
        prompt = CLASSIFY_TEMPLATE.format(
            today=today_text,
            year=today.year,
            conversation=conversation,
            query=query,
        )
        system = MODE_SYSTEM_PROMPTS["decide_response"].format(today=today_text, year=today.year)
        return await self.generate(prompt, mode="decide_response", system_prompt=system)

    async def answer(
        self,
        query: str,
        conversation: str,
        user_name: Optional[str] = None,
    ) -> Optional[str]:
        prompt = ANSWER_TEMPLATE.format(
            conversation=conversation,
            user_name=user_name or "User",
            query=query,
        )
        return await self.generate(prompt, mode="text_response")

    async def improve_prompt(self, original: str, kind: str = "image") -> str:
        """Rewrite a prompt for the image or search backend; falls back to the original."""
        improved = await self.generate(
            f'Improve this {kind} prompt: "{original}"',
            system_prompt=IMPROVE_PROMPTS.get(kind, DEFAULT_SYSTEM_PROMPT),
        )
        return improved or original
