"""
infrastructure.llm.intent_extractor - Conversation → CookingIntent.

Implements IntentExtractorPort using LangChain. The provider is controlled
by the centralized LLM_PROVIDER setting. extract() is async and wraps the
sync chain in run_in_executor.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from langchain_core.output_parsers import JsonOutputParser
from langchain_core.prompts import ChatPromptTemplate

from domain.models import CookingIntent, IntentStatus
from domain.entities import ChatMessage, FoodProfile
from domain.exceptions import IntentExtractionError
from infrastructure.llm.llm_builder import build_llm

logger = logging.getLogger(__name__)

_SYSTEM_INSTRUCTIONS = """You read a conversation between a user and a cooking assistant and decide what the user wants to cook.

OUTPUT FORMAT: JSON object with these keys:

1. "dish" (string): The dish the conversation settled on, e.g. "kimchi jjigae". For broad requests use the category, e.g. "pasta dish".
2. "searchQuery" (string): A short web search phrase that would find a recipe page for it, e.g. "kimchi jjigae recipe". Use "Not applicable" when off topic.
3. "status" (string), one of:
   - "off_topic": the conversation is not about cooking, food or recipes
   - "broad_category": only a broad category is known ("something Italian", "a soup")
   - "dish_type": a type of dish is known but not a specific dish ("a creamy pasta")
   - "specific_dish": a specific, named dish ("chicken tikka masala")
   - "fully_refined": a specific dish plus details (style, key ingredients, method)

RULES:
- Prefer the LATEST dish the user agreed to if several were discussed.
- Respect the user's food profile: do not build the search phrase around something they dislike.
- Return ONLY valid JSON."""

_MAX_TRANSCRIPT_MESSAGES = 20


def format_transcript(messages: list[ChatMessage]) -> str:
    recent = messages[-_MAX_TRANSCRIPT_MESSAGES:]
    return "\n".join(f"{m.role.upper()}: {m.content}" for m in recent)


def format_profile(profile: Optional[FoodProfile]) -> str:
    if profile is None:
        return "None"
    parts = []
    if profile.likes:
        parts.append(f"likes: {', '.join(profile.likes)}")
    if profile.dislikes:
        parts.append(f"dislikes: {', '.join(profile.dislikes)}")
    return "; ".join(parts) or "None"


def decode_intent(result: Any) -> CookingIntent:
    if not isinstance(result, dict):
        raise IntentExtractionError("Intent response was not a JSON object")
    try:
        status = IntentStatus(str(result.get("status", "specific_dish")).strip().lower())
    except ValueError:
        status = IntentStatus.SPECIFIC_DISH

    dish = str(result.get("dish") or "").strip()
    query = str(result.get("searchQuery") or result.get("search_query") or "").strip()
    if status == IntentStatus.OFF_TOPIC:
        return CookingIntent(dish=dish, search_query=query or "Not applicable", status=status)
    if not (dish or query):
        raise IntentExtractionError("No dish could be extracted from the conversation")
    return CookingIntent(dish=dish or query, search_query=query or f"{dish} recipe", status=status)


class LLMIntentExtractor:
    """Implements IntentExtractorPort using any supported LLM provider."""

    def __init__(
        self,
        *,
        provider: str = "anthropic",
        model: str = "claude-sonnet-4-5",
        anthropic_api_key: str = "",
        openai_api_key: str = "",
        groq_api_key: str = "",
        ollama_base_url: str = "http://localhost:11434/",
        llm: Any = None,
    ):
        self._llm = llm or build_llm(
            provider=provider,
            model=model,
            temperature=0,
            json_mode=True,
            max_tokens=512,
            anthropic_api_key=anthropic_api_key,
            openai_api_key=openai_api_key,
            groq_api_key=groq_api_key,
            ollama_base_url=ollama_base_url,
        )
        self._parser = JsonOutputParser()
        self._chain = self._build_chain()

    def _build_chain(self):
        prompt = ChatPromptTemplate.from_messages([
            ("system", _SYSTEM_INSTRUCTIONS),
            ("user", "FOOD PROFILE: {profile}\n\nCONVERSATION:\n{transcript}"),
        ])
        return prompt | self._llm | self._parser

    async def extract(
        self,
        messages: list[ChatMessage],
        profile: Optional[FoodProfile],
    ) -> CookingIntent:
        try:
            loop = asyncio.get_running_loop()
            result: dict[str, Any] = await loop.run_in_executor(
                None,
                self._chain.invoke,
                {"transcript": format_transcript(messages), "profile": format_profile(profile)},
            )
        except Exception as e:
            logger.error("Intent extraction failed: %s", e)
            raise IntentExtractionError(f"Failed to extract intent: {e}") from e
        return decode_intent(result)
