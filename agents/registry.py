"""Provider registry: maps config provider strings to chat-model factories.

Usage::

    from agents.registry import create_backend

    backend = create_backend(backend_config, timeout=25.0)
"""

from __future__ import annotations

from typing import Callable

from langchain_core.language_models.chat_models import BaseChatModel

from agents.backends import LangChainBackend
from models.config import BackendConfig

# Factory signature: (config, api_key, timeout, max_retries) -> chat model
ChatModelFactory = Callable[[BackendConfig, str, float, int], BaseChatModel]

# ---------------------------------------------------------------------------
# Registry mapping
# ---------------------------------------------------------------------------
_REGISTRY: dict[str, ChatModelFactory] = {}


def register(name: str):
    """Decorator to register a chat-model factory under *name*."""

    def _decorator(fn: ChatModelFactory) -> ChatModelFactory:
        if name in _REGISTRY:
            raise ValueError(f"Provider '{name}' is already registered.")
        _REGISTRY[name] = fn
        return fn

    return _decorator


def available_providers() -> list[str]:
    return sorted(_REGISTRY)


def create_chat_model(
    config: BackendConfig,
    api_key: str,
    timeout: float,
    max_retries: int = 1,
) -> BaseChatModel:
    """Instantiate the chat model specified in *config*.

    Raises ``KeyError`` if ``config.provider`` is not registered.
    """
    key = config.provider.lower()
    if key not in _REGISTRY:
        available = ", ".join(available_providers()) or "(none)"
        raise KeyError(f"Unknown provider '{config.provider}'. Available: {available}.")
    return _REGISTRY[key](config, api_key, timeout, max_retries)


def create_backend(
    config: BackendConfig,
    timeout: float,
    max_retries: int = 1,
) -> LangChainBackend | None:
    """Backend for *config*, or ``None`` when its credential is not set."""
    api_key = config.api_key()
    if api_key is None:
        return None
    chat_model = create_chat_model(config, api_key, timeout, max_retries)
    return LangChainBackend(chat_model, label=f"{config.provider}:{config.model}")


# ---------------------------------------------------------------------------
# Built-in providers (imports are lazy so unused SDKs need not be installed)
# ---------------------------------------------------------------------------


@register("openai")
def _openai(config: BackendConfig, api_key: str, timeout: float, max_retries: int):
    from langchain_openai import ChatOpenAI

    return ChatOpenAI(
        model=config.model,
        temperature=config.temperature,
        max_tokens=config.max_tokens,
        api_key=api_key,
        timeout=timeout,
        max_retries=max_retries,
    )


@register("anthropic")
def _anthropic(config: BackendConfig, api_key: str, timeout: float, max_retries: int):
    from langchain_anthropic import ChatAnthropic

    return ChatAnthropic(
        model=config.model,
        temperature=config.temperature,
        max_tokens=config.max_tokens,
        api_key=api_key,
        timeout=timeout,
        max_retries=max_retries,
    )


@register("google")
def _google(config: BackendConfig, api_key: str, timeout: float, max_retries: int):
    from langchain_google_genai import ChatGoogleGenerativeAI

    return ChatGoogleGenerativeAI(
        model=config.model,
        temperature=config.temperature,
        max_output_tokens=config.max_tokens,
        google_api_key=api_key,
        timeout=timeout,
        max_retries=max_retries,
    )
