"""
Chat pipeline: record the user turn, retrieve context, call the LLM, write the reply back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Sequence
from zoneinfo import ZoneInfo

from jarvis.config import settings
from jarvis.errors import InvalidInputError
from jarvis.llm.client import LLMClient
from jarvis.rag.router import ContextItem, QueryMode, build_context_text
from jarvis.semantic.service import MemoryService

logger = logging.getLogger(__name__)

DEFAULT_APOLOGY = "Sorry, I encountered an error processing your request."
NEXT_ACTION_APOLOGY = "Sorry, I encountered an error processing your request for the next best action."
NEXT_ACTION_PROMPT = "What should I do next?"
NEXT_ACTION_USER_PROMPT = "What should I do next based on my schedule?"

CHAT_SYSTEM_PROMPT = """You are Jarvis, a helpful AI assistant who helps user.

Here's some relevant context that might help with the response:
{context}

Use the context if relevant to the current question, but don't explicitly mention that you are using stored knowledge unless asked about it."""

NEXT_ACTION_SYSTEM_PROMPT = """You are Jarvis, a productivity-focused AI assistant who helps users prioritize their tasks and stay on schedule.

TASK: The user is asking for the next best action to take. You must recommend ONE specific action. Add a famous quote to motivate the user to accomplish the action.

RULES for recommending the next action:
1. Review any schedule information in the context
2. Prioritize time-sensitive tasks that need attention now
3. Consider urgency and importance of different tasks
4. Be specific and actionable - recommend exactly what to do next

Here's relevant context from the user's history and knowledge base:
{context}

FORMAT YOUR RESPONSE LIKE THIS:
[when to do it]: [specific action to take]

[quote to motivate the user]

Example:
[8am-10am]: work

"The only way to do great work is to love what you do."
- Steve Jobs"""


@dataclass
class ChatResult:
    reply: str
    ok: bool
    context: List[ContextItem] = field(default_factory=list)
    context_text: str = ""


def format_time_context(now: datetime) -> str:
    hour = now.hour % 12 or 12
    return f"Current time is: {now:%A} {hour}:{now:%M} {now:%p}. "


class ChatService:
    """Sequential pipeline over a shared :class:`MemoryService`."""

    def __init__(
        self,
        memory: MemoryService,
        llm_client: LLMClient,
        max_tokens: int = settings.llm_max_tokens,
        timezone_name: str = settings.assistant_timezone,
        logger_: logging.Logger | None = None,
    ) -> None:
        self.memory = memory
        self.llm_client = llm_client
        self.max_tokens = max_tokens
        self.timezone = ZoneInfo(timezone_name)
        self.logger = logger_ or logging.getLogger(__name__)

    # --- Public API ---
    async def respond(
        self,
        message: str,
        mode: QueryMode = QueryMode.BOTH,
        history: Sequence[Dict[str, str]] | None = None,
        limit: int = settings.default_query_limit,
    ) -> ChatResult:
        question = self.normalize_message(message)
        if not question:
            raise InvalidInputError("Message must not be empty")

        prior = await self._prior_turns(history)
        await self._record(question, is_user=True)

        context = await self.memory.query(question, limit, QueryMode(mode))
        context_text = build_context_text(context)
        self.logger.info("Retrieved context", extra={"mode": QueryMode(mode).value, "items": len(context)})

        messages = self.build_messages(
            CHAT_SYSTEM_PROMPT.format(context=context_text),
            prior,
            question,
        )
        return await self._complete(messages, context, context_text, apology=DEFAULT_APOLOGY)

    async def next_action(
        self,
        history: Sequence[Dict[str, str]] | None = None,
        now: datetime | None = None,
    ) -> ChatResult:
        now = now or datetime.now(self.timezone)
        time_context = format_time_context(now)

        prior = await self._prior_turns(history)
        await self._record(NEXT_ACTION_PROMPT, is_user=True)

        context = await self.memory.query(NEXT_ACTION_PROMPT, settings.action_query_limit, QueryMode.BOTH)
        context_text = f"{time_context}\n\n{build_context_text(context)}"

        messages = self.build_messages(
            NEXT_ACTION_SYSTEM_PROMPT.format(context=context_text),
            prior,
            time_context + NEXT_ACTION_USER_PROMPT,
        )
        return await self._complete(messages, context, context_text, apology=NEXT_ACTION_APOLOGY)

    # --- Steps ---
    @staticmethod
    def normalize_message(text: str) -> str:
        return (text or "").strip()

    @staticmethod
    def build_messages(system_prompt: str, prior: Sequence[Dict[str, str]], user_content: str) -> List[Dict[str, str]]:
        messages = [{"role": "system", "content": system_prompt}]
        messages.extend({"role": turn["role"], "content": turn["content"]} for turn in prior)
        messages.append({"role": "user", "content": user_content})
        return messages

    async def _prior_turns(self, history: Sequence[Dict[str, str]] | None) -> List[Dict[str, str]]:
        if history is not None:
            return [{"role": turn["role"], "content": turn["content"]} for turn in history]
        stored = await self.memory.get_conversation_history()
        return [
            {"role": "user" if entry["isUser"] else "assistant", "content": entry["text"]}
            for entry in stored
        ]

    async def _record(self, text: str, is_user: bool) -> str | None:
        # a failed memory write costs context later, not this reply
        try:
            return await self.memory.add_to_memory(text, is_user=is_user)
        except Exception as exc:
            self.logger.warning("Could not record turn in memory", extra={"is_user": is_user, "error": str(exc)})
            return None

    async def _complete(
        self,
        messages: List[Dict[str, Any]],
        context: List[ContextItem],
        context_text: str,
        apology: str,
    ) -> ChatResult:
        try:
            reply = await self.llm_client.chat(messages, max_tokens=self.max_tokens)
        except Exception:
            self.logger.exception("Completion call failed")
            return ChatResult(reply=apology, ok=False, context=context, context_text=context_text)

        await self._record(reply, is_user=False)
        return ChatResult(reply=reply, ok=True, context=context, context_text=context_text)


__all__ = ["ChatService", "ChatResult", "DEFAULT_APOLOGY", "NEXT_ACTION_APOLOGY", "format_time_context"]
