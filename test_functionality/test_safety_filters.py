"""
Tests for the safety layer: premium gate, equipment gate, ingredient screen
and the substitute-then-verify chain.
"""

import pytest

from domain.entities import FoodProfile
from domain.exceptions import (
    EquipmentViolationError,
    IngredientViolationError,
    SubstitutionError,
)
from domain.models import RecipeData, SafetyProfile, SubstitutionRecord
from application.services.equipment_filter import (
    detect_equipment_in_recipe,
    requires_unavailable_equipment,
    unavailable_equipment_in,
)
from application.services.ingredient_screen import detect_disallowed_ingredients, expand_terms
from application.services.safety_chain import SafetyFilterChain

from fakes import FakeSubstituter, recipe


# ---------------------------------------------------------------------------
# Premium gate
# ---------------------------------------------------------------------------

class TestSafetyProfile:

    def test_non_premium_drops_allergens_but_keeps_equipment(self):
        profile = SafetyProfile.effective(
            allergens=["Shellfish"],
            restrictions=["vegan"],
            unavailable_equipment=["Air Fryer"],
            cooking_proficiency=2,
            is_premium=False,
        )
        assert profile.allergens == frozenset()
        assert profile.restrictions == frozenset()
        assert profile.cooking_proficiency is None
        assert profile.unavailable_equipment == frozenset({"air fryer"})
        assert not profile.has_ingredient_constraints

    def test_premium_keeps_normalized_constraints(self):
        profile = SafetyProfile.effective(
            allergens=[" Shellfish ", ""],
            restrictions=["Vegetarian"],
            cooking_proficiency=4,
            is_premium=True,
        )
        assert profile.allergens == frozenset({"shellfish"})
        assert profile.disallowed_terms == frozenset({"shellfish", "vegetarian"})
        assert profile.cooking_proficiency == 4

    def test_out_of_range_proficiency_is_ignored(self):
        profile = SafetyProfile.effective(is_premium=True, cooking_proficiency=9)
        assert profile.cooking_proficiency is None

    def test_missing_food_profile_is_empty(self):
        assert SafetyProfile.from_food_profile(None) == SafetyProfile()

    def test_from_food_profile_applies_gate(self):
        stored = FoodProfile(
            user_id="u1", allergens=["peanut"], unavailable_equipment=["wok"], is_premium=False,
        )
        profile = SafetyProfile.from_food_profile(stored)
        assert profile.allergens == frozenset()
        assert profile.unavailable_equipment == frozenset({"wok"})


# ---------------------------------------------------------------------------
# Equipment gate
# ---------------------------------------------------------------------------

class TestEquipmentFilter:

    def test_detects_equipment_in_instructions_only(self):
        r = recipe(
            "Air Fryer Style Wings",
            ["1 lb chicken wings"],
            ["Bake the wings on a sheet pan at 220C for 40 minutes."],
        )
        assert detect_equipment_in_recipe(r) == []

    def test_detects_multiple_and_sous_vide_variant(self):
        r = recipe(
            "Steak",
            ["1 steak"],
            ["Sous-vide the steak for 2 hours.", "Finish it in a wok with a splash of oil."],
        )
        found = detect_equipment_in_recipe(r)
        assert "wok" in found
        assert "sous vide" in found

    def test_unavailable_matches_in_both_directions(self):
        r = recipe("Smoothie", ["1 banana"], ["Puree in an immersion blender until smooth."])
        profile = SafetyProfile.effective(unavailable_equipment=["blender"])
        assert unavailable_equipment_in(r, profile) == ["immersion blender", "blender"]

        pot = recipe("Chili", ["beans"], ["Cook in the Instant Pot on high pressure for 30 minutes."])
        duo = SafetyProfile.effective(unavailable_equipment=["Instant Pot Duo"])
        assert requires_unavailable_equipment(pot, duo)

    def test_no_unavailable_equipment_never_blocks(self, plain_recipe):
        assert unavailable_equipment_in(plain_recipe, SafetyProfile()) == []


# ---------------------------------------------------------------------------
# Ingredient screen
# ---------------------------------------------------------------------------

class TestIngredientScreen:

    def _premium(self, **kwargs) -> SafetyProfile:
        return SafetyProfile.effective(is_premium=True, **kwargs)

    def test_shellfish_expands_to_concrete_ingredients(self):
        r = recipe("Stew", ["8 oz shrimp", "2 prawns, peeled", "1 cup kimchi", "clams"])
        hits = detect_disallowed_ingredients(r, self._premium(allergens=["shellfish"]))
        assert hits == ["8 oz shrimp", "2 prawns, peeled", "clams"]

    def test_whole_word_matching(self):
        r = recipe("Parmigiana", ["1 large eggplant", "2 eggs"])
        hits = detect_disallowed_ingredients(r, self._premium(allergens=["egg"]))
        assert hits == ["2 eggs"]

    @pytest.mark.parametrize("line", [
        "1 cup almond milk",
        "2 tbsp peanut butter",
        "1 cup gluten-free flour",
        "3 tbsp vegan butter",
        "1 cup dairy-free yogurt",
        "coconut cream",
    ])
    def test_qualified_substitutes_are_not_flagged(self, line):
        r = recipe("Cake", [line])
        profile = self._premium(allergens=["dairy", "gluten"])
        assert detect_disallowed_ingredients(r, profile) == []

    def test_free_suffix_neutralises(self):
        r = recipe("Salad", ["egg-free mayonnaise"])
        assert detect_disallowed_ingredients(r, self._premium(allergens=["egg"])) == []

    def test_peanut_allergy_still_flags_peanut_butter(self):
        r = recipe("Satay", ["2 tbsp peanut butter"])
        assert detect_disallowed_ingredients(r, self._premium(allergens=["peanut"])) == ["2 tbsp peanut butter"]

    def test_unmapped_restriction_matches_its_bare_name(self):
        profile = self._premium(restrictions=["no pork"])
        assert expand_terms(profile) == {"pork": "no pork"}
        r = recipe("Dinner", ["4 pork chops", "1 apple"])
        assert detect_disallowed_ingredients(r, profile) == ["4 pork chops"]

    def test_non_premium_profile_flags_nothing(self):
        r = recipe("Stew", ["8 oz shrimp"])
        profile = SafetyProfile.effective(allergens=["shellfish"], is_premium=False)
        assert detect_disallowed_ingredients(r, profile) == []

    @pytest.mark.parametrize("line, allergens, restrictions", [
        ("1 lb coconut shrimp", ["shellfish"], []),
        ("8 oz almond chicken", [], ["vegetarian"]),
        ("2 tbsp rice wine", [], ["halal"]),
        ("8 oz imitation crab", ["shellfish"], []),
        ("2 cups cashew chicken", [], ["vegan"]),
        ("1 cup coconut flour tortillas with cheese", ["dairy"], []),
    ])
    def test_qualifier_only_neutralises_its_own_family(self, line, allergens, restrictions):
        r = recipe("Dinner", [line])
        profile = self._premium(allergens=allergens, restrictions=restrictions)
        assert detect_disallowed_ingredients(r, profile) == [line]

    @pytest.mark.parametrize("line, allergens, restrictions", [
        ("1 lb catfish fillets", ["fish"], []),
        ("2 swordfish steaks", ["fish"], []),
        ("4 anchovies, minced", ["fish"], []),
        ("1 lb meatballs", [], ["vegetarian"]),
        ("2 hamburger patties", [], ["vegetarian"]),
        ("2 slices cornbread", ["gluten"], []),
        ("1 flatbread", ["gluten"], []),
        ("3 cups egg noodles", ["gluten"], []),
        ("6 sea scallops", ["shellfish"], []),
        ("1 tbsp shrimp paste", ["shellfish"], []),
    ])
    def test_compound_words_and_plurals_are_flagged(self, line, allergens, restrictions):
        r = recipe("Dinner", [line])
        profile = self._premium(allergens=allergens, restrictions=restrictions)
        assert detect_disallowed_ingredients(r, profile) == [line]

    @pytest.mark.parametrize("line, allergens, restrictions", [
        ("1 butternut squash", ["dairy"], []),
        ("2 graham crackers", [], ["halal"]),
        ("1/2 tsp cream of tartar", ["dairy"], []),
        ("8 oz oyster mushrooms", ["shellfish"], []),
        ("1 cup rice flour", ["gluten"], []),
        ("8 oz rice noodles", ["gluten"], []),
        ("2 tbsp cocoa butter", ["dairy"], []),
        ("1 cup meatless crumbles", [], ["vegetarian"]),
        ("4 veggie burgers", [], ["vegetarian"]),
        ("2 tbsp creamy peanut butter", ["dairy"], []),
    ])
    def test_lookalikes_and_matching_substitutes_pass(self, line, allergens, restrictions):
        r = recipe("Dinner", [line])
        profile = self._premium(allergens=allergens, restrictions=restrictions)
        assert detect_disallowed_ingredients(r, profile) == []


# ---------------------------------------------------------------------------
# Safety chain
# ---------------------------------------------------------------------------

class TestSafetyFilterChain:

    @pytest.mark.asyncio
    async def test_passes_through_when_unconstrained(self, plain_recipe):
        substituter = FakeSubstituter()
        result = await SafetyFilterChain(substituter).screen(plain_recipe, SafetyProfile())
        assert result == plain_recipe
        assert substituter.calls == []

    @pytest.mark.asyncio
    async def test_equipment_is_a_hard_gate_for_everyone(self):
        r = recipe("Fries", ["potatoes"], ["Cook in the air fryer for 15 minutes."])
        profile = SafetyProfile.effective(unavailable_equipment=["air fryer"], is_premium=False)
        with pytest.raises(EquipmentViolationError) as exc_info:
            await SafetyFilterChain(FakeSubstituter()).screen(r, profile)
        assert exc_info.value.equipment == ["air fryer"]

    @pytest.mark.asyncio
    async def test_successful_substitution_is_recorded(self, premium_shellfish_profile):
        r = recipe("Kimchi Stew", ["8 oz shrimp", "1 cup kimchi"])
        substituter = FakeSubstituter({"8 oz shrimp": "8 oz firm tofu"})

        result = await SafetyFilterChain(substituter).screen(r, premium_shellfish_profile)

        assert result.ingredients == ["8 oz firm tofu", "1 cup kimchi"]
        assert result.has_substitutions
        assert result.substitutions == [
            SubstitutionRecord(original="8 oz shrimp", replacement="8 oz firm tofu", reason="allergen"),
        ]
        assert substituter.calls == [["8 oz shrimp"]]

    @pytest.mark.asyncio
    async def test_existing_substitutions_are_kept(self, premium_shellfish_profile):
        earlier = SubstitutionRecord(original="butter", replacement="oil")
        r = RecipeData(
            title="Stew",
            ingredients=["8 oz shrimp"],
            instructions=["Cook."],
            substitutions=[earlier],
        )
        result = await SafetyFilterChain(
            FakeSubstituter({"8 oz shrimp": "8 oz tofu"})
        ).screen(r, premium_shellfish_profile)
        assert result.substitutions[0] == earlier
        assert len(result.substitutions) == 2

    @pytest.mark.asyncio
    async def test_no_records_rejects(self, premium_shellfish_profile):
        r = recipe("Stew", ["8 oz shrimp"])
        with pytest.raises(IngredientViolationError, match="Unable to substitute"):
            await SafetyFilterChain(FakeSubstituter()).screen(r, premium_shellfish_profile)

    @pytest.mark.asyncio
    async def test_incomplete_substitution_rejects_after_one_attempt(self, premium_shellfish_profile):
        r = recipe("Paella", ["8 oz shrimp", "6 mussels"])
        substituter = FakeSubstituter({"8 oz shrimp": "8 oz chicken"})

        with pytest.raises(IngredientViolationError) as exc_info:
            await SafetyFilterChain(substituter).screen(r, premium_shellfish_profile)

        assert exc_info.value.remaining == ["6 mussels"]
        assert len(substituter.calls) == SafetyFilterChain.MAX_SUBSTITUTION_ATTEMPTS

    @pytest.mark.asyncio
    async def test_unexpected_substituter_failure_is_wrapped(self, premium_shellfish_profile):
        r = recipe("Stew", ["8 oz shrimp"])
        substituter = FakeSubstituter(error=RuntimeError("provider down"))
        with pytest.raises(SubstitutionError, match="provider down"):
            await SafetyFilterChain(substituter).screen(r, premium_shellfish_profile)

    @pytest.mark.asyncio
    async def test_substituted_instructions_go_through_equipment_gate(self):
        r = recipe("Stew", ["8 oz shrimp"], ["Simmer the shrimp for 5 minutes."])
        profile = SafetyProfile.effective(
            allergens=["shellfish"],
            unavailable_equipment=["food processor"],
            is_premium=True,
        )
        substituter = FakeSubstituter(
            {"8 oz shrimp": "8 oz firm tofu"},
            instructions=["Blitz the tofu in a food processor.", "Simmer for 5 minutes."],
        )

        with pytest.raises(EquipmentViolationError) as exc_info:
            await SafetyFilterChain(substituter).screen(r, profile)

        assert exc_info.value.equipment == ["food processor"]
        assert len(substituter.calls) == 1
