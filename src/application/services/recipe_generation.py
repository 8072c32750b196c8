"""
application.services.recipe_generation - Conversation → stored recipe.

Orchestrates the full generate-recipe flow:
    1. Load the user's food profile (snapshot, premium gate applied once)
    2. Load the conversation messages (in order)
    3. Extract the cooking intent (LLM)
    4. Optionally enhance the search phrase with pantry ingredients
    5. Mark the conversation as decided
    6. Resolve a safe recipe (search → failover across candidates)
    7. Dedup + persist the recipe, link it to the conversation

All methods are async. Dependencies are injected via constructor.
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Optional, Union

from domain.models import CookingIntent, IntentStatus, ResolutionExhausted, SafetyProfile
from domain.entities import FoodProfile
from domain.ports import (
    ChatMessageRepository,
    ConversationRepository,
    IntentExtractorPort,
    PantryRepository,
    ProfileRepository,
)
from domain.exceptions import (
    AcquisitionError,
    ConversationNotFoundError,
    ExhaustionError,
    ExtractionError,
    ExtractionFailureKind,
    OffTopicIntentError,
    RepositoryError,
)
from application.context import ResolutionContext
from application.dto import RecipeGenerationResult, ResolutionRequest
from application.services.orchestrator import FailoverOrchestrator
from application.services.result_resolver import ResultResolver

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# User-facing failure messages
# ---------------------------------------------------------------------------

FORMATTING_TIMEOUT_MESSAGE = (
    "Recipe formatting took too long. The recipe content may be too complex. "
    "Please try again or with a different dish."
)
BLOCKED_MESSAGE = (
    "Recipe websites are blocking access. Please try a different dish or try again later."
)
NETWORK_MESSAGE = (
    "Network timeout while accessing recipe websites. "
    "Please check your connection and try again."
)
NOT_FOUND_MESSAGE = (
    "Recipe pages not found. The search may have returned invalid links. Please try again."
)
GENERIC_MESSAGE = (
    "Unable to access any recipe websites. This may be due to network issues "
    "or the sites blocking automated access. Please try again later."
)
NO_CANDIDATES_MESSAGE = (
    "Unable to find recipes for this dish. Please try a different dish or check your connection."
)
OFF_TOPIC_MESSAGE = (
    "This conversation isn't about cooking or recipes. "
    "Please ask about a dish or cuisine you'd like to make."
)

_URL_PATTERN = re.compile(r"(?:https?://|www\.)\S+", re.IGNORECASE)


def failure_message_for(error: Union[Exception, str, None]) -> str:
    """Classify the last per-candidate error into a message for the user.

    Typed errors are classified by extraction kind or HTTP status first.
    Anything else falls back to its message text, with URLs removed so a
    path like "/recipes/404-cake" cannot pick the wrong message.
    """
    if isinstance(error, ExtractionError) and error.kind != ExtractionFailureKind.MALFORMED:
        return FORMATTING_TIMEOUT_MESSAGE
    if isinstance(error, AcquisitionError) and error.status_code is not None:
        if error.status_code == 403:
            return BLOCKED_MESSAGE
        if error.status_code in (404, 410):
            return NOT_FOUND_MESSAGE

    text = str(error or "")
    if isinstance(error, AcquisitionError) and error.url:
        text = text.replace(error.url, " ")
    text = _URL_PATTERN.sub(" ", text)
    lowered = text.lower()
    if "formatting timed out" in lowered or "format recipe" in lowered:
        return FORMATTING_TIMEOUT_MESSAGE
    if "403" in text or "forbidden" in lowered or "blocked" in lowered:
        return BLOCKED_MESSAGE
    if "timeout" in lowered or "network" in lowered:
        return NETWORK_MESSAGE
    if "404" in text or "not found" in lowered:
        return NOT_FOUND_MESSAGE
    return GENERIC_MESSAGE


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class RecipeGenerationService:
    """Turns a cooking intent (or a whole conversation) into one stored, safe recipe."""

    def __init__(
        self,
        orchestrator: FailoverOrchestrator,
        result_resolver: ResultResolver,
        intent_extractor: IntentExtractorPort,
        profile_repo: ProfileRepository,
        conversation_repo: ConversationRepository,
        message_repo: ChatMessageRepository,
        pantry_repo: PantryRepository,
        deadline_seconds: Optional[float] = 120.0,
    ):
        self._orchestrator = orchestrator
        self._result_resolver = result_resolver
        self._intent_extractor = intent_extractor
        self._profile_repo = profile_repo
        self._conversation_repo = conversation_repo
        self._message_repo = message_repo
        self._pantry_repo = pantry_repo
        self._deadline_seconds = deadline_seconds

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def generate(
        self,
        request: ResolutionRequest,
        intent: Optional[CookingIntent] = None,
    ) -> RecipeGenerationResult:
        """Resolve and persist one recipe for an already-known intent.

        Raises:
            NoCandidatesError: search produced nothing.
            ExhaustionError:   every candidate failed (or the deadline passed).
        """
        ctx = ResolutionContext(user_id=request.user_id, conversation_id=request.conversation_id)
        logger.info(
            "Generating recipe '%s' for user %s (request=%s)",
            request.dish, ctx.user_id, ctx.request_id,
        )

        deadline = self._orchestrator.deadline_in(self._deadline_seconds)
        outcome = await self._orchestrator.resolve(request.search_query, request.profile, deadline)

        if isinstance(outcome, ResolutionExhausted):
            logger.warning(
                "All %d candidate(s) failed (request=%s): %s",
                len(outcome.attempted_urls), ctx.request_id, outcome.last_error,
            )
            raise ExhaustionError(outcome.last_error, outcome.attempted_urls)

        stored = await self._result_resolver.resolve(
            ctx.user_id, outcome.source_url, outcome.recipe, ctx.conversation_id,
        )
        return RecipeGenerationResult(
            recipe=stored,
            candidate=outcome.candidate,
            attempted_urls=outcome.attempted_urls,
            intent=intent,
        )

    async def generate_from_conversation(
        self,
        user_id: str,
        conversation_id: str,
        include_pantry: bool = False,
    ) -> RecipeGenerationResult:
        """Run the whole flow for a conversation.

        Raises:
            ConversationNotFoundError: the conversation has no messages.
            OffTopicIntentError:       the conversation isn't about cooking.
            plus everything generate() raises.
        """
        food_profile = await self._load_profile(user_id)
        profile = SafetyProfile.from_food_profile(food_profile)

        messages = await self._message_repo.get_by_conversation(conversation_id)
        if not messages:
            raise ConversationNotFoundError(f"No messages found in conversation {conversation_id}")
        logger.info("Fetched %d message(s) for conversation %s", len(messages), conversation_id)

        intent = await self._intent_extractor.extract(messages, food_profile)
        logger.info("Intent extracted: %s (status: %s)", intent.dish, intent.status.value)
        if intent.status == IntentStatus.OFF_TOPIC:
            raise OffTopicIntentError(intent)

        if include_pantry:
            intent = await self._with_pantry_hints(user_id, intent)

        await self._conversation_repo.mark_decided(conversation_id, intent.dish, intent.search_query)

        result = await self.generate(
            ResolutionRequest(
                dish=intent.dish,
                search_query=intent.search_query,
                user_id=user_id,
                profile=profile,
                conversation_id=conversation_id,
            ),
            intent=intent,
        )

        await self._conversation_repo.link_recipe(conversation_id, result.recipe.id)
        logger.info("Recipe generation complete for conversation %s", conversation_id)
        return result

    # ------------------------------------------------------------------
    # Internal methods
    # ------------------------------------------------------------------

    async def _load_profile(self, user_id: str) -> Optional[FoodProfile]:
        """Missing or unreadable profiles degrade to no preferences."""
        try:
            profile = await self._profile_repo.get(user_id)
        except RepositoryError:
            logger.warning("Could not load profile for user %s, proceeding without preferences", user_id)
            return None
        if profile is None:
            logger.info("No profile for user %s, proceeding without preferences", user_id)
        return profile

    async def _with_pantry_hints(self, user_id: str, intent: CookingIntent) -> CookingIntent:
        if not intent.accepts_pantry_hints:
            logger.debug("Skipping pantry enhancement, intent is already specific: %s", intent.dish)
            return intent
        if not intent.search_query or "Not applicable" in intent.search_query:
            return intent

        try:
            names = await self._pantry_repo.get_item_names(user_id)
        except RepositoryError:
            logger.warning("Could not load pantry items for user %s", user_id)
            return intent
        if not names:
            return intent

        query = f"{intent.search_query} with {' '.join(names)}"
        logger.info("Enhanced search query with pantry ingredients: %s", query)
        return replace(intent, search_query=query)
