"""
application.services.result_resolver - Dedup and persist accepted recipes.

A user never gets two stored recipes for the same source page: the key is
(user_id, source_url.lower()). An existing record is reused and only gains a
conversation link when it had none. The lookup-then-create is not atomic, so
two concurrent requests for the same page may both create a record.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from domain.models import RecipeData
from domain.entities import StoredRecipe
from domain.ports import RecipeRepository

logger = logging.getLogger(__name__)


def generate_recipe_id() -> str:
    return f"recipe_{uuid4().hex}"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ResultResolver:
    """Links an accepted recipe to an existing StoredRecipe or creates one."""

    def __init__(self, recipe_repo: RecipeRepository):
        self._recipe_repo = recipe_repo

    async def resolve(
        self,
        user_id: str,
        source_url: str,
        recipe: RecipeData,
        conversation_id: Optional[str] = None,
    ) -> StoredRecipe:
        source_url_lower = source_url.lower()
        existing = await self._recipe_repo.find_by_source_url(user_id, source_url_lower)

        if existing:
            stored = existing[0]
            logger.info("Recipe already stored as %s, reusing", stored.id)
            if conversation_id and not stored.conversation_id:
                stored.conversation_id = conversation_id
                stored.updated_at = _now()
                stored = await self._recipe_repo.replace(stored)
            return stored

        now = _now()
        stored = StoredRecipe(
            id=generate_recipe_id(),
            user_id=user_id,
            recipe_name_lower=recipe.title.lower(),
            source_url_lower=source_url_lower,
            recipe_data=replace(recipe, source_url=recipe.source_url or source_url),
            conversation_id=conversation_id,
            is_saved=False,
            has_substitutions=recipe.has_substitutions,
            created_at=now,
            updated_at=now,
        )
        stored = await self._recipe_repo.create(stored)
        logger.info(
            "Recipe stored with ID %s%s",
            stored.id, " (with substitutions)" if stored.has_substitutions else "",
        )
        return stored
