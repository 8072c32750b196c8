"""Shared pytest configuration: make src/ importable and provide common builders."""

import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

from domain.models import RecipeData, SafetyProfile  # noqa: E402


@pytest.fixture
def premium_shellfish_profile() -> SafetyProfile:
    return SafetyProfile.effective(allergens=["shellfish"], is_premium=True)


@pytest.fixture
def plain_recipe() -> RecipeData:
    return RecipeData(
        title="Tomato Soup",
        portions="4 servings",
        ingredients=["4 tomatoes", "1 onion", "2 cups vegetable stock", "salt"],
        instructions=["Chop the vegetables.", "Simmer everything in a saucepan for 20 minutes."],
    )
