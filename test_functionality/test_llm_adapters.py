"""
Tests for the LangChain-backed adapters. A FakeListChatModel (or a
RunnableLambda standing in for a slow/broken provider) replaces the real
chat model, so nothing here touches the network.
"""

import json
import time

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from langchain_core.messages import AIMessage
from langchain_core.runnables import RunnableLambda

from domain.entities import ChatMessage, FoodProfile
from domain.exceptions import (
    CandidateSearchError,
    ExtractionTimeoutError,
    ExtractionUpstreamError,
    IntentExtractionError,
    MalformedRecipeError,
    NoCandidatesError,
    SubstitutionError,
)
from domain.models import IntentStatus, RecipeCandidate, SafetyProfile
from infrastructure.llm.ingredient_substituter import LLMIngredientSubstituter
from infrastructure.llm.intent_extractor import (
    LLMIntentExtractor,
    decode_intent,
    format_profile,
    format_transcript,
)
from infrastructure.llm.llm_builder import build_llm
from infrastructure.llm.recipe_formatter import LLMRecipeFormatter, decode_recipe_payload
from infrastructure.llm.recipe_search import (
    SALVAGED_SNIPPET,
    LLMRecipeSearch,
    build_search_notes,
    is_blocked,
    message_text,
    parse_candidates,
    salvage_candidates,
    select_candidates,
    tune_query,
)

from fakes import recipe


def _fake_llm(*responses: str) -> FakeListChatModel:
    return FakeListChatModel(responses=list(responses))


# ---------------------------------------------------------------------------
# llm_builder
# ---------------------------------------------------------------------------

def test_build_llm_rejects_unknown_provider():
    with pytest.raises(ValueError, match="Unsupported LLM_PROVIDER"):
        build_llm(provider="mystery", model="m")


# ---------------------------------------------------------------------------
# Candidate search helpers
# ---------------------------------------------------------------------------

class TestSearchHelpers:

    def test_tune_query_by_proficiency(self):
        assert tune_query("kimchi stew", 1) == "kimchi stew easy kid friendly"
        assert tune_query("kimchi stew", 2) == "kimchi stew easy"
        assert tune_query("kimchi stew", 4) == "kimchi stew"
        assert tune_query("kimchi stew", None) == "kimchi stew"

    def test_strict_and_relaxed_notes(self):
        profile = SafetyProfile.effective(allergens=["shellfish"], is_premium=True)
        strict = build_search_notes(profile, relaxed=False)
        relaxed = build_search_notes(profile, relaxed=True)

        assert "IMPORTANT: The recipe must be allergen-free: shellfish" in strict
        assert "substitutions will be handled automatically" in relaxed
        assert build_search_notes(None, relaxed=False) == ""

    def test_equipment_note_applies_without_premium(self):
        profile = SafetyProfile.effective(unavailable_equipment=["air fryer"])
        notes = build_search_notes(profile, relaxed=False)
        assert "CRITICAL: Do NOT return recipes that require: air fryer" in notes

    def test_parse_fenced_json(self):
        text = '```json\n[{"title": "A", "url": "https://a.com/r", "snippet": "s"}]\n```'
        assert parse_candidates(text) == [RecipeCandidate("A", "https://a.com/r", "s")]

    def test_parse_json_surrounded_by_prose(self):
        text = 'Here you go:\n[{"title": "A", "url": "https://a.com/r"}]\nEnjoy!'
        assert [c.url for c in parse_candidates(text)] == ["https://a.com/r"]

    def test_parse_rejects_entries_without_url(self):
        with pytest.raises(ValueError):
            parse_candidates('[{"title": "A"}]')

    def test_salvage_prefers_recipe_like_urls(self):
        text = (
            "I found https://www.seriouseats.com/kimchi-jjigae. "
            "Also see https://blog.example.net/about and https://eats.example.org/recipes/stew, too"
        )
        salvaged = salvage_candidates(text, "kimchi stew")

        assert [c.url for c in salvaged] == [
            "https://www.seriouseats.com/kimchi-jjigae",
            "https://eats.example.org/recipes/stew",
        ]
        assert all(c.degraded and c.snippet == SALVAGED_SNIPPET for c in salvaged)
        assert all(c.title == "kimchi stew" for c in salvaged)

    def test_salvage_falls_back_to_first_urls(self):
        salvaged = salvage_candidates("see https://a.net/x and https://b.net/y", "q")
        assert [c.url for c in salvaged] == ["https://a.net/x", "https://b.net/y"]

    def test_denylist_matches_subdomains(self):
        assert is_blocked("https://www.allrecipes.com/recipe/1", ["allrecipes.com"])
        assert is_blocked("https://m.allrecipes.com/recipe/1", ["allrecipes.com"])
        assert not is_blocked("https://notallrecipes.com/recipe/1", ["allrecipes.com"])

    def test_select_one_per_domain_and_cap(self):
        candidates = [
            RecipeCandidate("A", "https://www.a.com/1"),
            RecipeCandidate("A2", "https://a.com/2"),
            RecipeCandidate("Blocked", "https://www.food.com/3"),
            RecipeCandidate("B", "https://b.com/4"),
            RecipeCandidate("C", "https://c.com/5"),
        ]
        selected = select_candidates(candidates, ["food.com"], max_candidates=2)
        assert [c.title for c in selected] == ["A", "B"]

    def test_message_text_joins_text_blocks(self):
        message = AIMessage(content=[
            {"type": "server_tool_use", "id": "x", "name": "web_search", "input": {}},
            {"type": "text", "text": "[{\"title\": "},
            {"type": "text", "text": "\"A\"}]"},
        ])
        assert message_text(message) == '[{"title": "A"}]'


# ---------------------------------------------------------------------------
# Candidate search adapter
# ---------------------------------------------------------------------------

class TestLLMRecipeSearch:

    def _search(self, *responses, **kwargs):
        kwargs.setdefault("blocked_domains", ["allrecipes.com"])
        return LLMRecipeSearch(llm=_fake_llm(*responses), **kwargs)

    @pytest.mark.asyncio
    async def test_filters_denylist_and_duplicate_domains(self):
        answer = json.dumps([
            {"title": "Blocked", "url": "https://www.allrecipes.com/recipe/1", "snippet": ""},
            {"title": "Maangchi", "url": "https://www.maangchi.com/recipe/kimchi-jjigae", "snippet": "classic"},
            {"title": "Maangchi again", "url": "https://maangchi.com/recipe/other", "snippet": ""},
            {"title": "Serious Eats", "url": "https://www.seriouseats.com/kimchi-jjigae", "snippet": ""},
        ])
        candidates = await self._search(answer).search("kimchi stew", SafetyProfile())

        assert [c.title for c in candidates] == ["Maangchi", "Serious Eats"]
        assert not any(c.degraded for c in candidates)

    @pytest.mark.asyncio
    async def test_unparseable_answer_is_salvaged(self):
        search = self._search("Try https://www.maangchi.com/recipe/kimchi-jjigae for a great one.")
        candidates = await search.search("kimchi stew", None)

        assert len(candidates) == 1
        assert candidates[0].degraded
        assert candidates[0].url == "https://www.maangchi.com/recipe/kimchi-jjigae"

    @pytest.mark.asyncio
    async def test_empty_answer_is_a_search_error(self):
        with pytest.raises(CandidateSearchError, match="Empty response"):
            await self._search("   ").search("kimchi stew", None)

    @pytest.mark.asyncio
    async def test_only_blocked_results_means_no_candidates(self):
        answer = json.dumps([{"title": "A", "url": "https://allrecipes.com/recipe/1"}])
        with pytest.raises(NoCandidatesError):
            await self._search(answer).search("kimchi stew", None)

    @pytest.mark.asyncio
    async def test_caps_number_of_candidates(self):
        answer = json.dumps([
            {"title": f"R{i}", "url": f"https://site{i}.com/recipe"} for i in range(12)
        ])
        candidates = await self._search(answer, max_candidates=10).search("soup", None)
        assert len(candidates) == 10

    @pytest.mark.asyncio
    async def test_provider_failure_is_a_search_error(self):
        def _boom(_):
            raise RuntimeError("rate limited")

        search = LLMRecipeSearch(llm=RunnableLambda(_boom))
        with pytest.raises(CandidateSearchError, match="rate limited"):
            await search.search("soup", None)


# ---------------------------------------------------------------------------
# Recipe formatter
# ---------------------------------------------------------------------------

VALID_PAYLOAD = {
    "title": "Kimchi Jjigae",
    "description": "Spicy stew.",
    "portions": "4 servings",
    "ingredients": ["2 cups kimchi", "1 block tofu"],
    "instructions": ["Simmer kimchi.", "Add tofu."],
    "substitutions": [
        {"original": "pork belly", "replacement": "mushrooms", "reason": "vegetarian"},
        {"original": "", "replacement": "ignored"},
    ],
}


class TestDecodeRecipePayload:

    def test_valid_payload(self):
        r = decode_recipe_payload(VALID_PAYLOAD, "https://a.com/r")
        assert r.title == "Kimchi Jjigae"
        assert r.source_url == "https://a.com/r"
        assert r.portions == "4 servings"
        assert len(r.substitutions) == 1
        assert r.has_substitutions

    @pytest.mark.parametrize("payload", [
        ["not", "an", "object"],
        {"title": "", "ingredients": ["a"], "instructions": ["b"]},
        {"title": "No steps", "ingredients": ["a"], "instructions": []},
        {"title": "Bad type", "ingredients": {"a": 1}, "instructions": ["b"]},
    ])
    def test_malformed_payloads(self, payload):
        with pytest.raises(MalformedRecipeError):
            decode_recipe_payload(payload)

    def test_newline_separated_lists_are_split(self):
        r = decode_recipe_payload({
            "title": "Toast", "ingredients": "bread\nbutter\n", "instructions": "Toast.\n\nButter.",
        })
        assert r.ingredients == ["bread", "butter"]
        assert r.instructions == ["Toast.", "Butter."]


class TestLLMRecipeFormatter:

    @pytest.mark.asyncio
    async def test_formats_page_text(self):
        formatter = LLMRecipeFormatter(llm=_fake_llm(json.dumps(VALID_PAYLOAD)))
        r = await formatter.format("page text", "https://a.com/r", SafetyProfile())
        assert r.title == "Kimchi Jjigae"
        assert r.instructions == ["Simmer kimchi.", "Add tofu."]

    @pytest.mark.asyncio
    async def test_invalid_json_is_malformed(self):
        formatter = LLMRecipeFormatter(llm=_fake_llm("Sorry, I can't help with that."))
        with pytest.raises(MalformedRecipeError):
            await formatter.format("page text", "https://a.com/r", None)

    @pytest.mark.asyncio
    async def test_timeout(self):
        def _slow(_):
            time.sleep(0.5)
            return json.dumps(VALID_PAYLOAD)

        formatter = LLMRecipeFormatter(llm=RunnableLambda(_slow), timeout_seconds=0.05)
        with pytest.raises(ExtractionTimeoutError, match="formatting timed out"):
            await formatter.format("page text", "https://a.com/r", None)

    @pytest.mark.asyncio
    async def test_upstream_failure(self):
        def _boom(_):
            raise RuntimeError("overloaded")

        formatter = LLMRecipeFormatter(llm=RunnableLambda(_boom))
        with pytest.raises(ExtractionUpstreamError, match="Failed to format recipe: overloaded"):
            await formatter.format("page text", "https://a.com/r", None)


# ---------------------------------------------------------------------------
# Ingredient substituter
# ---------------------------------------------------------------------------

class TestLLMIngredientSubstituter:

    @pytest.mark.asyncio
    async def test_returns_rewritten_recipe_and_records(self):
        answer = json.dumps({
            "ingredients": ["8 oz firm tofu", "2 cups kimchi"],
            "instructions": ["Simmer tofu with kimchi."],
            "substitutions": [{"original": "8 oz shrimp", "replacement": "8 oz firm tofu", "reason": "shellfish"}],
        })
        substituter = LLMIngredientSubstituter(llm=_fake_llm(answer))
        source = recipe("Stew", ["8 oz shrimp", "2 cups kimchi"], ["Simmer shrimp with kimchi."])
        profile = SafetyProfile.effective(allergens=["shellfish"], is_premium=True)

        updated, records = await substituter.substitute(source, profile, ["8 oz shrimp"])

        assert updated.ingredients == ["8 oz firm tofu", "2 cups kimchi"]
        assert updated.instructions == ["Simmer tofu with kimchi."]
        assert updated.title == "Stew"
        assert records[0].reason == "shellfish"

    @pytest.mark.asyncio
    async def test_records_only_answer_swaps_lines(self):
        answer = json.dumps({
            "substitutions": [{"original": "8 oz shrimp", "replacement": "8 oz tofu"}],
        })
        substituter = LLMIngredientSubstituter(llm=_fake_llm(answer))
        source = recipe("Stew", ["8 oz shrimp", "2 cups kimchi"])

        updated, _ = await substituter.substitute(source, SafetyProfile(), ["8 oz shrimp"])

        assert updated.ingredients == ["8 oz tofu", "2 cups kimchi"]
        assert updated.instructions == source.instructions

    @pytest.mark.asyncio
    async def test_unparseable_answer_is_substitution_error(self):
        substituter = LLMIngredientSubstituter(llm=_fake_llm("no idea"))
        with pytest.raises(SubstitutionError):
            await substituter.substitute(recipe("Stew", ["shrimp"]), SafetyProfile(), ["shrimp"])


# ---------------------------------------------------------------------------
# Intent extractor
# ---------------------------------------------------------------------------

class TestIntentExtraction:

    def test_decode_known_status(self):
        intent = decode_intent({"dish": "pasta", "searchQuery": "creamy pasta recipe", "status": "dish_type"})
        assert intent.status == IntentStatus.DISH_TYPE
        assert intent.accepts_pantry_hints

    def test_decode_unknown_status_defaults_to_specific(self):
        intent = decode_intent({"dish": "bibimbap", "status": "very_specific"})
        assert intent.status == IntentStatus.SPECIFIC_DISH
        assert intent.search_query == "bibimbap recipe"

    def test_decode_off_topic_without_dish(self):
        intent = decode_intent({"dish": "", "searchQuery": "", "status": "off_topic"})
        assert intent.status == IntentStatus.OFF_TOPIC

    @pytest.mark.parametrize("payload", [None, [], {"status": "specific_dish"}])
    def test_decode_rejects_unusable_answers(self, payload):
        with pytest.raises(IntentExtractionError):
            decode_intent(payload)

    def test_transcript_keeps_latest_messages(self):
        messages = [
            ChatMessage(id=i, conversation_id="c", message_index=i, role="user", content=f"m{i}")
            for i in range(25)
        ]
        transcript = format_transcript(messages)
        assert transcript.splitlines()[0] == "USER: m5"
        assert transcript.splitlines()[-1] == "USER: m24"

    def test_profile_summary(self):
        assert format_profile(None) == "None"
        assert format_profile(FoodProfile(likes=["spicy"], dislikes=["cilantro"])) == (
            "likes: spicy; dislikes: cilantro"
        )

    @pytest.mark.asyncio
    async def test_extractor_end_to_end(self):
        answer = '```json\n{"dish": "kimchi jjigae", "searchQuery": "kimchi jjigae recipe", "status": "specific_dish"}\n```'
        extractor = LLMIntentExtractor(llm=_fake_llm(answer))
        messages = [ChatMessage(role="user", content="kimchi stew please")]

        intent = await extractor.extract(messages, None)

        assert intent.dish == "kimchi jjigae"
        assert intent.search_query == "kimchi jjigae recipe"

    @pytest.mark.asyncio
    async def test_extractor_failure(self):
        extractor = LLMIntentExtractor(llm=_fake_llm("I think they want soup"))
        with pytest.raises(IntentExtractionError):
            await extractor.extract([ChatMessage(role="user", content="soup")], None)
