"""
infrastructure.llm.ingredient_substituter - LLM-driven ingredient substitution.

Implements IngredientSubstituterPort. Given a recipe and the ingredient lines
flagged by the rule-based screen, the model rewrites the ingredient list and
instructions with safe replacements and reports every change it made.

The result is re-checked by the safety chain; this module never decides
whether a recipe is safe.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import replace
from typing import Any

from langchain_core.output_parsers import JsonOutputParser
from langchain_core.prompts import ChatPromptTemplate

from domain.models import RecipeData, SafetyProfile, SubstitutionRecord
from domain.exceptions import SubstitutionError
from infrastructure.llm.llm_builder import build_llm

logger = logging.getLogger(__name__)

_SYSTEM_INSTRUCTIONS = """You are a dietary safety assistant that adapts recipes.

The user must avoid the items listed under CONSTRAINTS. Some ingredients in the recipe violate them.

For EACH flagged ingredient:
- Replace it with a safe, commonly available alternative that keeps the dish recognisable.
- Hidden sources count: "prosciutto" is pork, "ghee" is dairy, "fish sauce" is fish, "soy sauce" contains wheat.
- Never introduce a new ingredient that violates the constraints.

Update the instructions so they refer to the replacements.

Return JSON:
{{
  "ingredients": ["full, updated ingredient list"],
  "instructions": ["full, updated instruction list"],
  "substitutions": [
    {{"original": "flagged ingredient", "replacement": "replacement ingredient", "reason": "which constraint it violated"}}
  ]
}}

Return ONLY valid JSON."""


class LLMIngredientSubstituter:
    """Implements IngredientSubstituterPort using any supported LLM provider."""

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
            ("system", _SYSTEM_INSTRUCTIONS),
            ("user", "RECIPE:\n{recipe_json}\n\nFLAGGED INGREDIENTS:\n{flagged}\n\nCONSTRAINTS:\n- Allergens: {allergens}\n- Dietary restrictions: {restrictions}"),
        ])
        return prompt | self._llm | self._parser

    # ------------------------------------------------------------------
    # Public API (async)
    # ------------------------------------------------------------------

    async def substitute(
        self,
        recipe: RecipeData,
        profile: SafetyProfile,
        disallowed: list[str],
    ) -> tuple[RecipeData, list[SubstitutionRecord]]:
        inputs = {
            "recipe_json": json.dumps({
                "title": recipe.title,
                "ingredients": recipe.ingredients,
                "instructions": recipe.instructions,
            }, indent=2),
            "flagged": "\n".join(f"- {item}" for item in disallowed),
            "allergens": ", ".join(sorted(profile.allergens)) or "None",
            "restrictions": ", ".join(sorted(profile.restrictions)) or "None",
        }

        loop = asyncio.get_running_loop()
        try:
            result: dict[str, Any] = await asyncio.wait_for(
                loop.run_in_executor(None, self._chain.invoke, inputs),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as e:
            raise SubstitutionError(f"Ingredient substitution timed out after {self._timeout:g}s") from e
        except Exception as e:
            logger.error("Ingredient substitution failed: %s", e)
            raise SubstitutionError(f"Ingredient substitution failed: {e}") from e

        return self._decode(recipe, result)

    # ------------------------------------------------------------------
    # Internal methods
    # ------------------------------------------------------------------

    @staticmethod
    def _decode(
        recipe: RecipeData,
        result: Any,
    ) -> tuple[RecipeData, list[SubstitutionRecord]]:
        if not isinstance(result, dict):
            raise SubstitutionError("Substitution response was not a JSON object")

        records = [
            SubstitutionRecord(
                original=str(item.get("original", "")),
                replacement=str(item.get("replacement", "")),
                reason=str(item.get("reason", "")),
            )
            for item in result.get("substitutions") or []
            if isinstance(item, dict) and item.get("original") and item.get("replacement")
        ]

        ingredients = [str(i).strip() for i in result.get("ingredients") or [] if str(i).strip()]
        instructions = [str(i).strip() for i in result.get("instructions") or [] if str(i).strip()]
        if not ingredients:
            ingredients = _apply_records(recipe.ingredients, records)
        if not instructions:
            instructions = list(recipe.instructions)

        return replace(recipe, ingredients=ingredients, instructions=instructions), records


def _apply_records(lines: list[str], records: list[SubstitutionRecord]) -> list[str]:
    """Fallback when the model only reports substitutions: swap whole lines."""
    by_original = {r.original.lower(): r.replacement for r in records}
    return [by_original.get(line.lower(), line) for line in lines]
