"""
domain.ports - Abstract interfaces (Protocols) for all system boundaries.

These define WHAT the resolver needs without specifying HOW. Infrastructure
modules provide concrete implementations. Application services depend only
on these protocols, never on concrete classes.

Structural typing: test fakes and infrastructure adapters satisfy a port by
implementing its methods, no inheritance required.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from domain.models import (
    CookingIntent,
    RecipeCandidate,
    RecipeData,
    SafetyProfile,
    ScrapeResult,
    SubstitutionRecord,
)
from domain.entities import (
    ChatMessage,
    Conversation,
    FoodProfile,
    StoredRecipe,
)


# ---------------------------------------------------------------------------
# Pipeline Ports
# ---------------------------------------------------------------------------

@runtime_checkable
class CandidateSearchPort(Protocol):
    """Discover recipe pages for a query, distinct domains, rank order."""

    async def search(
        self,
        query: str,
        profile: Optional[SafetyProfile],
        relaxed: bool = False,
    ) -> list[RecipeCandidate]: ...


@runtime_checkable
class ContentFetcherPort(Protocol):
    """Fetch a page and extract its main text plus an optional image."""

    async def fetch(self, url: str) -> ScrapeResult: ...


@runtime_checkable
class RecipeFormatterPort(Protocol):
    """Turn raw page text into structured RecipeData."""

    async def format(
        self,
        raw_content: str,
        source_url: str,
        profile: Optional[SafetyProfile],
    ) -> RecipeData: ...


@runtime_checkable
class IngredientSubstituterPort(Protocol):
    """Replace disallowed ingredients; returns the new recipe and what changed."""

    async def substitute(
        self,
        recipe: RecipeData,
        profile: SafetyProfile,
        disallowed: list[str],
    ) -> tuple[RecipeData, list[SubstitutionRecord]]: ...


@runtime_checkable
class IntentExtractorPort(Protocol):
    """Derive dish + search phrase from a conversation."""

    async def extract(
        self,
        messages: list[ChatMessage],
        profile: Optional[FoodProfile],
    ) -> CookingIntent: ...


# ---------------------------------------------------------------------------
# Repository Ports
# ---------------------------------------------------------------------------

@runtime_checkable
class RecipeRepository(Protocol):
    """Stored recipes, partitioned by user_id."""

    async def create(self, recipe: StoredRecipe) -> StoredRecipe: ...
    async def get(self, recipe_id: str, user_id: str) -> StoredRecipe | None: ...
    async def replace(self, recipe: StoredRecipe) -> StoredRecipe: ...
    async def find_by_source_url(
        self, user_id: str, source_url_lower: str,
    ) -> list[StoredRecipe]: ...
    async def list_by_user(
        self, user_id: str, saved_only: bool = False,
    ) -> list[StoredRecipe]: ...
    async def delete(self, recipe_id: str, user_id: str) -> None: ...


@runtime_checkable
class ProfileRepository(Protocol):
    """Read-only food profile source."""

    async def get(self, user_id: str) -> FoodProfile | None: ...


@runtime_checkable
class ConversationRepository(Protocol):
    async def get(self, conversation_id: str) -> Conversation | None: ...
    async def mark_decided(
        self, conversation_id: str, dish: str, search_query: str,
    ) -> None: ...
    async def link_recipe(self, conversation_id: str, recipe_id: str) -> None: ...


@runtime_checkable
class ChatMessageRepository(Protocol):
    async def get_by_conversation(self, conversation_id: str) -> list[ChatMessage]: ...


@runtime_checkable
class PantryRepository(Protocol):
    async def get_item_names(self, user_id: str) -> list[str]: ...
