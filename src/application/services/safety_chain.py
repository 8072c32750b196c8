"""
application.services.safety_chain - Equipment gate + ingredient gate.

Runs on every extracted recipe before it may be returned:

    1. Equipment gate (always): any unavailable equipment → reject, no repair.
    2. Ingredient gate (profiles with allergens/restrictions only):
       detect → substitute once → re-detect. Anything left → reject.
       The substituted recipe goes through the equipment gate again.

Every rejection is raised as a SafetyViolationError (or SubstitutionError)
and handled by the orchestrator as a per-candidate failure.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from domain.models import RecipeData, SafetyProfile
from domain.ports import IngredientSubstituterPort
from domain.exceptions import (
    EquipmentViolationError,
    IngredientViolationError,
    SubstitutionError,
)
from application.services.equipment_filter import unavailable_equipment_in
from application.services.ingredient_screen import detect_disallowed_ingredients

logger = logging.getLogger(__name__)


class SafetyFilterChain:
    """Accepts a recipe, returns the (possibly substituted) safe version or raises."""

    MAX_SUBSTITUTION_ATTEMPTS = 1

    def __init__(self, substituter: IngredientSubstituterPort):
        self._substituter = substituter

    async def screen(self, recipe: RecipeData, profile: SafetyProfile) -> RecipeData:
        self.check_equipment(recipe, profile)

        if not profile.has_ingredient_constraints:
            return recipe

        disallowed = detect_disallowed_ingredients(recipe, profile)
        if not disallowed:
            logger.info("No disallowed ingredients in '%s'", recipe.title)
            return recipe

        logger.info(
            "Found %d disallowed ingredient(s) in '%s', substituting",
            len(disallowed), recipe.title,
        )
        return await self._substitute_and_verify(recipe, profile, disallowed)

    @staticmethod
    def check_equipment(recipe: RecipeData, profile: SafetyProfile) -> None:
        blocked = unavailable_equipment_in(recipe, profile)
        if blocked:
            logger.info("'%s' requires unavailable equipment: %s", recipe.title, blocked)
            raise EquipmentViolationError(blocked)

    # ------------------------------------------------------------------
    # Internal methods
    # ------------------------------------------------------------------

    async def _substitute_and_verify(
        self,
        recipe: RecipeData,
        profile: SafetyProfile,
        disallowed: list[str],
    ) -> RecipeData:
        try:
            substituted, records = await self._substituter.substitute(recipe, profile, disallowed)
        except SubstitutionError:
            raise
        except Exception as e:
            raise SubstitutionError(f"Ingredient substitution failed: {e}") from e

        if not records:
            raise IngredientViolationError(
                "Unable to substitute disallowed ingredients", remaining=disallowed,
            )

        remaining = detect_disallowed_ingredients(substituted, profile)
        if remaining:
            logger.warning(
                "Substitution left %d disallowed ingredient(s): %s",
                len(remaining), remaining,
            )
            raise IngredientViolationError(
                "Substitution did not remove all disallowed ingredients",
                remaining=remaining,
            )

        # The rewrite may touch the instructions too.
        self.check_equipment(substituted, profile)

        logger.info("Applied %d substitution(s) to '%s'", len(records), recipe.title)
        return replace(
            substituted,
            substitutions=list(recipe.substitutions) + list(records),
        )
