"""Text-generation backends.

A backend does one thing: given a system prompt and a user prompt, return
free-form text. The persona adapter owns everything else (prompt building,
timeouts, parsing).
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Protocol

from dotenv import load_dotenv
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

# Load .env so provider credentials are visible to BackendConfig.api_key().
load_dotenv()

logger = logging.getLogger(__name__)


class TextBackend(Protocol):
    async def generate(self, system_prompt: str, user_prompt: str) -> str:
        ...


def _content_to_text(content: Any) -> str:
    """Flatten a chat message's content (str or list of parts) to text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and isinstance(part.get("text"), str):
                parts.append(part["text"])
        return "".join(parts)
    return str(content)


class LangChainBackend:
    """Backend over any LangChain chat model (OpenAI, Anthropic, Gemini, ...)."""

    def __init__(self, chat_model: BaseChatModel, label: str = "") -> None:
        self.chat_model = chat_model
        self.label = label or type(chat_model).__name__

    async def generate(self, system_prompt: str, user_prompt: str) -> str:
        response = await self.chat_model.ainvoke([
            SystemMessage(content=system_prompt),
            HumanMessage(content=user_prompt),
        ])
        text = _content_to_text(response.content)
        logger.debug("%s returned %d chars", self.label, len(text))
        return text

    def __repr__(self) -> str:
        return f"LangChainBackend({self.label})"


class CallableBackend:
    """Backend over a plain async function. Used for tests and local stubs."""

    def __init__(self, fn: Callable[[str, str], Awaitable[str]]) -> None:
        self.fn = fn

    async def generate(self, system_prompt: str, user_prompt: str) -> str:
        return await self.fn(system_prompt, user_prompt)
