"""
Tests for the aiosqlite repositories against a temporary database file.
"""

import json

import pytest
import pytest_asyncio

from domain.entities import StoredRecipe
from domain.exceptions import DatabaseUnavailableError, RecipeNotFoundError, RepositoryError
from domain.models import RecipeData, SubstitutionRecord
from infrastructure.persistence.chat_message_repo import SQLiteChatMessageRepository
from infrastructure.persistence.connection import AsyncSQLiteConnection
from infrastructure.persistence.conversation_repo import SQLiteConversationRepository
from infrastructure.persistence.migrations import run_migrations
from infrastructure.persistence.pantry_repo import SQLitePantryRepository
from infrastructure.persistence.profile_repo import SQLiteProfileRepository
from infrastructure.persistence.recipe_repo import SQLiteRecipeRepository


@pytest_asyncio.fixture
async def connection(tmp_path):
    conn = AsyncSQLiteConnection(str(tmp_path / "recipes.db"))
    await run_migrations(conn)
    return conn


def _stored(recipe_id: str, user_id: str = "u1", *, url: str = "https://a.com/r", created_at: str = "2024-01-01T00:00:00") -> StoredRecipe:
    data = RecipeData(
        title="Kimchi Stew",
        portions="4",
        ingredients=["kimchi", "tofu"],
        instructions=["Simmer."],
        image_url="https://a.com/i.jpg",
        source_url=url,
        substitutions=[SubstitutionRecord("shrimp", "tofu", "shellfish")],
    )
    return StoredRecipe(
        id=recipe_id,
        user_id=user_id,
        recipe_name_lower="kimchi stew",
        source_url_lower=url.lower(),
        recipe_data=data,
        has_substitutions=True,
        created_at=created_at,
        updated_at=created_at,
    )


class TestRecipeRepository:

    @pytest.mark.asyncio
    async def test_create_and_get_round_trip(self, connection):
        repo = SQLiteRecipeRepository(connection)
        await repo.create(_stored("recipe_1"))

        loaded = await repo.get("recipe_1", "u1")

        assert loaded == _stored("recipe_1")
        assert loaded.recipe_data.substitutions[0].replacement == "tofu"

    @pytest.mark.asyncio
    async def test_get_is_scoped_to_user(self, connection):
        repo = SQLiteRecipeRepository(connection)
        await repo.create(_stored("recipe_1"))
        assert await repo.get("recipe_1", "someone-else") is None

    @pytest.mark.asyncio
    async def test_replace_updates_lifecycle_fields(self, connection):
        repo = SQLiteRecipeRepository(connection)
        stored = await repo.create(_stored("recipe_1"))
        stored.is_saved = True
        stored.user_portion_size = 2.5
        stored.conversation_id = "c1"

        await repo.replace(stored)
        loaded = await repo.get("recipe_1", "u1")

        assert loaded.is_saved is True
        assert loaded.user_portion_size == 2.5
        assert loaded.conversation_id == "c1"

    @pytest.mark.asyncio
    async def test_replace_missing_record(self, connection):
        with pytest.raises(RecipeNotFoundError):
            await SQLiteRecipeRepository(connection).replace(_stored("recipe_missing"))

    @pytest.mark.asyncio
    async def test_duplicate_id_is_a_repository_error(self, connection):
        repo = SQLiteRecipeRepository(connection)
        await repo.create(_stored("recipe_1"))
        with pytest.raises(RepositoryError):
            await repo.create(_stored("recipe_1"))

    @pytest.mark.asyncio
    async def test_find_by_source_url_oldest_first(self, connection):
        repo = SQLiteRecipeRepository(connection)
        await repo.create(_stored("recipe_new", created_at="2024-02-01T00:00:00"))
        await repo.create(_stored("recipe_old", created_at="2024-01-01T00:00:00"))
        await repo.create(_stored("recipe_other", url="https://b.com/r"))

        found = await repo.find_by_source_url("u1", "https://a.com/r")

        assert [r.id for r in found] == ["recipe_old", "recipe_new"]

    @pytest.mark.asyncio
    async def test_list_newest_first_and_saved_filter(self, connection):
        repo = SQLiteRecipeRepository(connection)
        await repo.create(_stored("recipe_a", created_at="2024-01-01T00:00:00"))
        saved = _stored("recipe_b", url="https://b.com/r", created_at="2024-03-01T00:00:00")
        saved.is_saved = True
        await repo.create(saved)
        await repo.create(_stored("recipe_c", user_id="u2"))

        assert [r.id for r in await repo.list_by_user("u1")] == ["recipe_b", "recipe_a"]
        assert [r.id for r in await repo.list_by_user("u1", saved_only=True)] == ["recipe_b"]

    @pytest.mark.asyncio
    async def test_delete_is_scoped_to_user(self, connection):
        repo = SQLiteRecipeRepository(connection)
        await repo.create(_stored("recipe_1"))

        await repo.delete("recipe_1", "someone-else")
        assert await repo.get("recipe_1", "u1") is not None

        await repo.delete("recipe_1", "u1")
        assert await repo.get("recipe_1", "u1") is None


class TestReadRepositories:

    @pytest.mark.asyncio
    async def test_profile_lists_are_decoded(self, connection):
        async with connection.acquire() as conn:
            await conn.execute(
                """INSERT INTO food_profiles
                   (user_id, likes, dislikes, allergens, restrictions, unavailable_equipment,
                    cooking_proficiency, is_premium, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                ("u1", json.dumps(["spicy"]), "not json", json.dumps(["shellfish"]),
                 None, json.dumps(["air fryer"]), 2, 1, "2024-01-01"),
            )

        profile = await SQLiteProfileRepository(connection).get("u1")

        assert profile.likes == ["spicy"]
        assert profile.dislikes == []
        assert profile.allergens == ["shellfish"]
        assert profile.restrictions == []
        assert profile.unavailable_equipment == ["air fryer"]
        assert profile.cooking_proficiency == 2
        assert profile.is_premium is True
        assert await SQLiteProfileRepository(connection).get("nobody") is None

    @pytest.mark.asyncio
    async def test_messages_in_conversation_order(self, connection):
        async with connection.acquire() as conn:
            await conn.executemany(
                "INSERT INTO chat_messages (conversation_id, message_index, role, content) VALUES (?, ?, ?, ?)",
                [("c1", 1, "assistant", "How about kimchi stew?"), ("c1", 0, "user", "Dinner ideas?"),
                 ("c2", 0, "user", "elsewhere")],
            )

        messages = await SQLiteChatMessageRepository(connection).get_by_conversation("c1")

        assert [m.content for m in messages] == ["Dinner ideas?", "How about kimchi stew?"]

    @pytest.mark.asyncio
    async def test_pantry_item_names(self, connection):
        async with connection.acquire() as conn:
            await conn.executemany(
                "INSERT INTO pantry_items (user_id, name) VALUES (?, ?)",
                [("u1", "spinach"), ("u1", "garlic"), ("u2", "leeks")],
            )
        assert await SQLitePantryRepository(connection).get_item_names("u1") == ["spinach", "garlic"]

    @pytest.mark.asyncio
    async def test_conversation_status_transitions(self, connection):
        async with connection.acquire() as conn:
            await conn.execute(
                "INSERT INTO conversations (conversation_id, user_id, created_at) VALUES (?, ?, ?)",
                ("c1", "u1", "2024-01-01"),
            )
        repo = SQLiteConversationRepository(connection)

        await repo.mark_decided("c1", "Kimchi Stew", "kimchi stew recipe")
        decided = await repo.get("c1")
        assert decided.status == "decided"
        assert decided.decided_dish == "Kimchi Stew"

        await repo.link_recipe("c1", "recipe_1")
        linked = await repo.get("c1")
        assert linked.status == "recipe_found"
        assert linked.recipe_id == "recipe_1"

        await repo.link_recipe("missing", "recipe_1")
        assert await repo.get("missing") is None


@pytest.mark.asyncio
async def test_unopenable_database(tmp_path):
    conn = AsyncSQLiteConnection(str(tmp_path / "no" / "such" / "dir" / "recipes.db"))
    with pytest.raises(DatabaseUnavailableError):
        await run_migrations(conn)


@pytest.mark.asyncio
async def test_migrations_are_idempotent(connection):
    await run_migrations(connection)
    assert await SQLiteRecipeRepository(connection).list_by_user("u1") == []
