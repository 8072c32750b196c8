"""
infrastructure.llm.llm_builder - Centralized chat model construction.

Single source of truth for building chat models across all LLM components
(candidate search, recipe formatter, ingredient substituter, intent
extractor). The provider is controlled by the LLM_PROVIDER setting.

Supported providers:
    - "anthropic" → langchain_anthropic.ChatAnthropic (required for web search)
    - "openai"    → langchain_openai.ChatOpenAI
    - "groq"      → langchain_groq.ChatGroq
    - "ollama"    → langchain_ollama.ChatOllama

Provider packages are imported lazily so only the selected one must be
installed.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from langchain_core.language_models import BaseChatModel

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("anthropic", "openai", "groq", "ollama")


def build_llm(
    *,
    provider: str,
    model: str,
    temperature: float = 0,
    anthropic_api_key: str = "",
    openai_api_key: str = "",
    groq_api_key: str = "",
    ollama_base_url: str = "http://localhost:11434/",
    json_mode: bool = False,
    max_tokens: Optional[int] = None,
    timeout: Optional[float] = None,
) -> BaseChatModel:
    """Build a chat model for the given provider.

    Args:
        provider: One of "anthropic", "openai", "groq", "ollama".
        model: Model name for the selected provider.
        temperature: Sampling temperature.
        json_mode: Ask the provider for a JSON object response where it
                   supports a native switch (Anthropic relies on the prompt).
        max_tokens: Maximum output tokens. Defaults to 4096.
        timeout: Client-side request timeout in seconds.

    Raises:
        ValueError: If the provider is unknown or required credentials are missing.
    """
    provider = provider.lower().strip()
    max_tokens = max_tokens if max_tokens is not None else 4096

    if provider == "anthropic":
        from langchain_anthropic import ChatAnthropic

        if not anthropic_api_key:
            raise ValueError("ANTHROPIC_API_KEY is required when LLM_PROVIDER='anthropic'")

        kwargs: Dict[str, Any] = {
            "model": model,
            "temperature": temperature,
            "api_key": anthropic_api_key,
            "max_tokens": max_tokens,
        }
        if timeout is not None:
            kwargs["timeout"] = timeout

        logger.info("Building Anthropic LLM (model=%s)", model)
        return ChatAnthropic(**kwargs)

    elif provider == "openai":
        from langchain_openai import ChatOpenAI

        if not openai_api_key:
            raise ValueError("OPENAI_API_KEY is required when LLM_PROVIDER='openai'")

        kwargs = {
            "model": model,
            "temperature": temperature,
            "openai_api_key": openai_api_key,
            "max_tokens": max_tokens,
        }
        if json_mode:
            kwargs["model_kwargs"] = {"response_format": {"type": "json_object"}}
        if timeout is not None:
            kwargs["timeout"] = timeout

        logger.info("Building OpenAI LLM (model=%s, json_mode=%s)", model, json_mode)
        return ChatOpenAI(**kwargs)

    elif provider == "groq":
        from langchain_groq import ChatGroq

        if not groq_api_key:
            raise ValueError("GROQ_API_KEY is required when LLM_PROVIDER='groq'")

        kwargs = {
            "model": model,
            "temperature": temperature,
            "groq_api_key": groq_api_key,
            "max_tokens": max_tokens,
        }
        if json_mode:
            kwargs["model_kwargs"] = {"response_format": {"type": "json_object"}}
        if timeout is not None:
            kwargs["timeout"] = timeout

        logger.info("Building Groq LLM (model=%s, json_mode=%s)", model, json_mode)
        return ChatGroq(**kwargs)

    elif provider == "ollama":
        from langchain_ollama import ChatOllama

        kwargs = {
            "model": model,
            "temperature": temperature,
            "base_url": ollama_base_url,
        }
        if json_mode:
            kwargs["format"] = "json"

        logger.info("Building ChatOllama (model=%s, json_mode=%s)", model, json_mode)
        return ChatOllama(**kwargs)

    else:
        raise ValueError(
            f"Unsupported LLM_PROVIDER: '{provider}'. "
            f"Must be one of: {', '.join(SUPPORTED_PROVIDERS)}."
        )
