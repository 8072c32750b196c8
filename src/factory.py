"""
factory - Composition root for the recipe resolver.

ALL dependency wiring happens here. No other module constructs its own
dependencies. Adapters (CLI, REST) call this factory to get fully
configured services.

Usage:
    from factory import ServiceFactory
    from infrastructure.config import Settings

    config = Settings.from_env()
    factory = ServiceFactory(config)
    await factory.init_db()  # one-time startup

    service = factory.create_generation_service()
    result = await service.generate_from_conversation(user_id, conversation_id)
"""

from __future__ import annotations

import logging
from pathlib import Path

from infrastructure.config import Settings
from infrastructure.persistence.connection import AsyncSQLiteConnection
from infrastructure.persistence.migrations import run_migrations
from infrastructure.persistence.recipe_repo import SQLiteRecipeRepository
from infrastructure.persistence.profile_repo import SQLiteProfileRepository
from infrastructure.persistence.conversation_repo import SQLiteConversationRepository
from infrastructure.persistence.chat_message_repo import SQLiteChatMessageRepository
from infrastructure.persistence.pantry_repo import SQLitePantryRepository
from infrastructure.llm.recipe_search import LLMRecipeSearch
from infrastructure.llm.recipe_formatter import LLMRecipeFormatter
from infrastructure.llm.ingredient_substituter import LLMIngredientSubstituter
from infrastructure.llm.intent_extractor import LLMIntentExtractor
from infrastructure.scraping.content_fetcher import RequestsContentFetcher
from application.services.safety_chain import SafetyFilterChain
from application.services.orchestrator import FailoverOrchestrator
from application.services.result_resolver import ResultResolver
from application.services.recipe_generation import RecipeGenerationService
from application.services.recipe_library import RecipeLibraryService

logger = logging.getLogger(__name__)


class ServiceFactory:
    """Composition root: wires all dependencies together.

    The LLM-backed adapters are built lazily, on the first call that
    needs them, so commands that only touch the database never require
    provider credentials.
    """

    def __init__(self, config: Settings):
        self._config = config
        self._connection = self.create_connection()

    @property
    def config(self) -> Settings:
        return self._config

    @property
    def connection(self) -> AsyncSQLiteConnection:
        return self._connection

    async def init_db(self) -> None:
        """Create tables and indexes. Safe to call on every startup."""
        await run_migrations(self._connection)
        logger.info("Database ready at %s", self._connection.db_path)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def create_connection(self) -> AsyncSQLiteConnection:
        db_path = Path(self._config.db_path)
        if not db_path.is_absolute():
            db_path = self._config.project_root / db_path
        return AsyncSQLiteConnection(str(db_path))

    def create_recipe_repo(self) -> SQLiteRecipeRepository:
        return SQLiteRecipeRepository(self._connection)

    def create_profile_repo(self) -> SQLiteProfileRepository:
        return SQLiteProfileRepository(self._connection)

    def create_conversation_repo(self) -> SQLiteConversationRepository:
        return SQLiteConversationRepository(self._connection)

    def create_message_repo(self) -> SQLiteChatMessageRepository:
        return SQLiteChatMessageRepository(self._connection)

    def create_pantry_repo(self) -> SQLitePantryRepository:
        return SQLitePantryRepository(self._connection)

    # ------------------------------------------------------------------
    # Pipeline adapters
    # ------------------------------------------------------------------

    def create_candidate_search(self) -> LLMRecipeSearch:
        cfg = self._config
        return LLMRecipeSearch(
            provider=cfg.llm_provider,
            model=cfg.active_llm_model,
            blocked_domains=cfg.blocked_domains,
            max_candidates=cfg.search_max_candidates,
            max_uses=cfg.search_max_uses,
            **cfg.llm_credentials,
        )

    def create_content_fetcher(self) -> RequestsContentFetcher:
        cfg = self._config
        return RequestsContentFetcher(
            timeout=cfg.fetch_timeout_seconds,
            max_retries=cfg.fetch_max_retries,
            min_content_chars=cfg.min_content_chars,
            max_content_chars=cfg.max_content_chars,
        )

    def create_recipe_formatter(self) -> LLMRecipeFormatter:
        cfg = self._config
        return LLMRecipeFormatter(
            provider=cfg.llm_provider,
            model=cfg.active_llm_model,
            timeout_seconds=cfg.format_timeout_seconds,
            **cfg.llm_credentials,
        )

    def create_ingredient_substituter(self) -> LLMIngredientSubstituter:
        cfg = self._config
        return LLMIngredientSubstituter(
            provider=cfg.llm_provider,
            model=cfg.active_llm_model,
            timeout_seconds=cfg.format_timeout_seconds,
            **cfg.llm_credentials,
        )

    def create_intent_extractor(self) -> LLMIntentExtractor:
        cfg = self._config
        return LLMIntentExtractor(
            provider=cfg.llm_provider,
            model=cfg.active_llm_model,
            **cfg.llm_credentials,
        )

    # ------------------------------------------------------------------
    # Services
    # ------------------------------------------------------------------

    def create_orchestrator(self) -> FailoverOrchestrator:
        """Create a FailoverOrchestrator with the configured adapters."""
        return FailoverOrchestrator(
            search=self.create_candidate_search(),
            fetcher=self.create_content_fetcher(),
            formatter=self.create_recipe_formatter(),
            safety_chain=SafetyFilterChain(self.create_ingredient_substituter()),
        )

    def create_generation_service(self) -> RecipeGenerationService:
        """Create a RecipeGenerationService with all dependencies wired."""
        return RecipeGenerationService(
            orchestrator=self.create_orchestrator(),
            result_resolver=ResultResolver(self.create_recipe_repo()),
            intent_extractor=self.create_intent_extractor(),
            profile_repo=self.create_profile_repo(),
            conversation_repo=self.create_conversation_repo(),
            message_repo=self.create_message_repo(),
            pantry_repo=self.create_pantry_repo(),
            deadline_seconds=self._config.resolution_deadline_seconds,
        )

    def create_library_service(self) -> RecipeLibraryService:
        """Create a RecipeLibraryService (no LLM needed)."""
        return RecipeLibraryService(self.create_recipe_repo())
