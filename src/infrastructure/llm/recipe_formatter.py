"""
infrastructure.llm.recipe_formatter - Raw page text → structured RecipeData.

Implements RecipeFormatterPort using LangChain (prompt | chat model | JSON
parser). The chain runs in a worker thread and is bounded by its own timeout.

The model's answer is untyped; decode_recipe_payload() is the single place
where it becomes a RecipeData. Anything it can't decode is a
MalformedRecipeError, so untyped data never leaves this module.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from langchain_core.exceptions import OutputParserException
from langchain_core.output_parsers import JsonOutputParser
from langchain_core.prompts import ChatPromptTemplate

from domain.models import RecipeData, SafetyProfile, SubstitutionRecord
from domain.exceptions import (
    ExtractionTimeoutError,
    ExtractionUpstreamError,
    MalformedRecipeError,
)
from infrastructure.llm.llm_builder import build_llm

logger = logging.getLogger(__name__)

_SYSTEM_INSTRUCTIONS = """You convert scraped recipe web pages into structured JSON.

The page text may contain navigation, comments, ads and stories. Ignore them and extract the ONE main recipe.

Return a JSON object with these keys:
{{
  "title": "Recipe title",
  "description": "One or two sentence description, or null",
  "portions": "Servings / yield as written, e.g. '4 servings'",
  "ingredients": ["one ingredient per item, with quantity"],
  "instructions": ["one step per item, in order"],
  "substitutions": [
    {{"original": "ingredient as in the source", "replacement": "what it was replaced with", "reason": "why"}}
  ]
}}

RULES:
- Copy quantities and steps faithfully. Do NOT invent ingredients or steps.
- If the page does not contain a recipe, return {{"title": "", "ingredients": [], "instructions": []}}.
- "substitutions" is an empty list unless you were asked to adapt the recipe below.
- Return ONLY valid JSON."""

_ADAPT_NOTE = """

ADAPT THIS RECIPE: the user must avoid {avoid}.
Replace every ingredient that contains these with a suitable alternative, update the
instructions to match, and list each change in "substitutions"."""


def decode_recipe_payload(payload: Any, source_url: Optional[str] = None) -> RecipeData:
    """Validate the model's JSON and build RecipeData.

    Raises:
        MalformedRecipeError: not an object, no title, or no ingredients/instructions.
    """
    if not isinstance(payload, dict):
        raise MalformedRecipeError(f"Expected a JSON object, got {type(payload).__name__}")

    title = str(payload.get("title") or "").strip()
    if not title:
        raise MalformedRecipeError("Formatted recipe has no title")

    ingredients = _string_list(payload.get("ingredients"), "ingredients")
    instructions = _string_list(payload.get("instructions"), "instructions")
    if not ingredients or not instructions:
        raise MalformedRecipeError(f"Formatted recipe '{title}' has no ingredients or instructions")

    substitutions: list[SubstitutionRecord] = []
    for item in payload.get("substitutions") or []:
        if not isinstance(item, dict) or not item.get("original") or not item.get("replacement"):
            continue
        substitutions.append(SubstitutionRecord(
            original=str(item["original"]),
            replacement=str(item["replacement"]),
            reason=str(item.get("reason") or ""),
        ))

    description = payload.get("description")
    return RecipeData(
        title=title,
        description=str(description).strip() if description else None,
        portions=str(payload.get("portions") or "").strip(),
        ingredients=ingredients,
        instructions=instructions,
        source_url=source_url,
        substitutions=substitutions,
    )


def _string_list(value: Any, name: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [line for line in value.splitlines()]
    if not isinstance(value, list):
        raise MalformedRecipeError(f"'{name}' must be a list")
    return [str(item).strip() for item in value if str(item).strip()]


class LLMRecipeFormatter:
    """Implements RecipeFormatterPort using any supported LLM provider."""

    def __init__(
        self,
        *,
        provider: str = "anthropic",
        model: str = "claude-sonnet-4-5",
        timeout_seconds: float = 60.0,
        anthropic_api_key: str = "",
        openai_api_key: str = "",
        groq_api_key: str = "",
        ollama_base_url: str = "http://localhost:11434/",
        llm: Any = None,
    ):
        self._timeout = timeout_seconds
        self._llm = llm or build_llm(
            provider=provider,
            model=model,
            temperature=0,
            json_mode=True,
            anthropic_api_key=anthropic_api_key,
            openai_api_key=openai_api_key,
            groq_api_key=groq_api_key,
            ollama_base_url=ollama_base_url,
        )
        self._parser = JsonOutputParser()
        self._chain = self._build_chain()

    def _build_chain(self):
        prompt = ChatPromptTemplate.from_messages([
            ("system", _SYSTEM_INSTRUCTIONS + "{adapt_note}"),
            ("user", "SOURCE URL: {source_url}\n\nPAGE TEXT:\n{content}"),
        ])
        return prompt | self._llm | self._parser

    async def format(
        self,
        raw_content: str,
        source_url: str,
        profile: Optional[SafetyProfile],
    ) -> RecipeData:
        adapt_note = ""
        if profile is not None and profile.has_ingredient_constraints:
            adapt_note = _ADAPT_NOTE.format(avoid=", ".join(sorted(profile.disallowed_terms)))

        loop = asyncio.get_running_loop()
        try:
            payload = await asyncio.wait_for(
                loop.run_in_executor(
                    None,
                    self._chain.invoke,
                    {"content": raw_content, "source_url": source_url, "adapt_note": adapt_note},
                ),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as e:
            logger.warning("Formatting %s timed out after %ss", source_url, self._timeout)
            raise ExtractionTimeoutError(self._timeout) from e
        except OutputParserException as e:
            raise MalformedRecipeError(f"Formatter returned invalid JSON: {e}") from e
        except Exception as e:
            logger.error("Recipe formatting failed for %s: %s", source_url, e)
            raise ExtractionUpstreamError(f"Failed to format recipe: {e}") from e

        recipe = decode_recipe_payload(payload, source_url)
        logger.info(
            "Formatted '%s' (%d ingredients, %d steps)",
            recipe.title, len(recipe.ingredients), len(recipe.instructions),
        )
        return recipe
