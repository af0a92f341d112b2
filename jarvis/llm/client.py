"""
OpenAI chat LLM client.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

from jarvis.config import settings

DEFAULT_LLM_MODEL = settings.llm_model_name
DEFAULT_MAX_TOKENS = settings.llm_max_tokens


class LLMClient:
    def __init__(
        self,
        model: str = DEFAULT_LLM_MODEL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self.model = model
        self.max_tokens = max_tokens
        api_key = settings.openai_api_key.get_secret_value() if settings.openai_api_key else None
        self.client = client or AsyncOpenAI(api_key=api_key)

    async def chat(self, messages: List[Dict[str, Any]], max_tokens: Optional[int] = None) -> str:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            max_tokens=max_tokens or self.max_tokens,
        )
        choice = response.choices[0].message
        return choice.content or ""


__all__ = ["LLMClient", "DEFAULT_LLM_MODEL", "DEFAULT_MAX_TOKENS"]
