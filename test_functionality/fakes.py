"""
In-memory implementations of the domain ports for service-level tests.

Each fake records its calls so tests can assert on the order of work.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Optional, Union

from domain.models import (
    CookingIntent,
    RecipeCandidate,
    RecipeData,
    SafetyProfile,
    ScrapeResult,
    SubstitutionRecord,
)
from domain.entities import ChatMessage, Conversation, FoodProfile, StoredRecipe


class FakeSearch:
    """Returns a fixed list for strict search and another for relaxed search."""

    def __init__(
        self,
        strict: Union[list[RecipeCandidate], Exception, None] = None,
        relaxed: Union[list[RecipeCandidate], Exception, None] = None,
    ):
        self._strict = strict or []
        self._relaxed = relaxed or []
        self.calls: list[tuple[str, bool]] = []

    async def search(self, query, profile, relaxed=False):
        self.calls.append((query, relaxed))
        result = self._relaxed if relaxed else self._strict
        if isinstance(result, Exception):
            raise result
        return list(result)


class FakeFetcher:
    """Maps url → ScrapeResult or an exception to raise."""

    def __init__(self, pages: dict):
        self._pages = pages
        self.fetched: list[str] = []

    async def fetch(self, url):
        self.fetched.append(url)
        page = self._pages[url]
        if isinstance(page, Exception):
            raise page
        return page


class FakeFormatter:
    """Maps scraped content → RecipeData or an exception to raise."""

    def __init__(self, recipes: dict):
        self._recipes = recipes
        self.formatted: list[str] = []

    async def format(self, raw_content, source_url, profile):
        self.formatted.append(source_url)
        recipe = self._recipes[raw_content]
        if isinstance(recipe, Exception):
            raise recipe
        return recipe


class FakeSubstituter:
    """Swaps ingredient lines according to a fixed replacement table.

    Lines without an entry are left alone, so a table that misses a flagged
    line simulates a substitution that didn't fully work.
    """

    def __init__(
        self,
        table: Optional[dict[str, str]] = None,
        error: Optional[Exception] = None,
        instructions: Optional[list[str]] = None,
    ):
        self._table = table or {}
        self._error = error
        self._instructions = instructions
        self.calls: list[list[str]] = []

    async def substitute(self, recipe, profile, disallowed):
        self.calls.append(list(disallowed))
        if self._error is not None:
            raise self._error
        records = [
            SubstitutionRecord(original=line, replacement=self._table[line], reason="allergen")
            for line in disallowed
            if line in self._table
        ]
        ingredients = [self._table.get(line, line) for line in recipe.ingredients]
        instructions = self._instructions if self._instructions is not None else recipe.instructions
        return replace(recipe, ingredients=ingredients, instructions=list(instructions)), records


class FakeIntentExtractor:
    def __init__(self, intent: Union[CookingIntent, Exception]):
        self._intent = intent
        self.calls = 0

    async def extract(self, messages, profile):
        self.calls += 1
        if isinstance(self._intent, Exception):
            raise self._intent
        return self._intent


class InMemoryRecipeRepository:
    def __init__(self):
        self.records: dict[tuple[str, str], StoredRecipe] = {}

    async def create(self, recipe: StoredRecipe) -> StoredRecipe:
        self.records[(recipe.id, recipe.user_id)] = recipe
        return recipe

    async def get(self, recipe_id, user_id):
        return self.records.get((recipe_id, user_id))

    async def replace(self, recipe):
        self.records[(recipe.id, recipe.user_id)] = recipe
        return recipe

    async def find_by_source_url(self, user_id, source_url_lower):
        found = [
            r for r in self.records.values()
            if r.user_id == user_id and r.source_url_lower == source_url_lower
        ]
        return sorted(found, key=lambda r: r.created_at)

    async def list_by_user(self, user_id, saved_only=False):
        found = [
            r for r in self.records.values()
            if r.user_id == user_id and (r.is_saved or not saved_only)
        ]
        return sorted(found, key=lambda r: r.created_at, reverse=True)

    async def delete(self, recipe_id, user_id):
        self.records.pop((recipe_id, user_id), None)


class InMemoryProfileRepository:
    def __init__(self, profiles: Optional[dict[str, FoodProfile]] = None, error: Optional[Exception] = None):
        self._profiles = profiles or {}
        self._error = error

    async def get(self, user_id):
        if self._error is not None:
            raise self._error
        return self._profiles.get(user_id)


class InMemoryConversationRepository:
    def __init__(self):
        self.conversations: dict[str, Conversation] = {}
        self.events: list[tuple] = []

    async def get(self, conversation_id):
        return self.conversations.get(conversation_id)

    async def mark_decided(self, conversation_id, dish, search_query):
        self.events.append(("decided", conversation_id, dish, search_query))

    async def link_recipe(self, conversation_id, recipe_id):
        self.events.append(("linked", conversation_id, recipe_id))


class InMemoryMessageRepository:
    def __init__(self, messages: Optional[dict[str, list[str]]] = None):
        self._messages = messages or {}

    async def get_by_conversation(self, conversation_id):
        return [
            ChatMessage(id=i, conversation_id=conversation_id, message_index=i, role="user", content=text)
            for i, text in enumerate(self._messages.get(conversation_id, []))
        ]


class InMemoryPantryRepository:
    def __init__(self, items: Optional[dict[str, list[str]]] = None):
        self._items = items or {}

    async def get_item_names(self, user_id):
        return list(self._items.get(user_id, []))


def page(text: str, image_url: Optional[str] = None) -> ScrapeResult:
    return ScrapeResult(content=text, image_url=image_url)


def candidate(url: str, title: str = "Recipe") -> RecipeCandidate:
    return RecipeCandidate(title=title, url=url, snippet="")


def recipe(title: str, ingredients: list[str], instructions: Optional[list[str]] = None) -> RecipeData:
    return RecipeData(
        title=title,
        portions="2 servings",
        ingredients=ingredients,
        instructions=instructions or ["Combine and cook."],
    )


def effective(**kwargs) -> SafetyProfile:
    return SafetyProfile.effective(**kwargs)
