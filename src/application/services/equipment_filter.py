"""
application.services.equipment_filter - Equipment hard gate.

Detects specialty equipment in a recipe's instructions and checks it against
the profile's unavailable equipment. Common kit (skillet, saucepan, baking
sheet) is deliberately absent from the vocabulary so that ordinary recipes are
never filtered.

Only instructions are scanned: a title like "Instant Pot-style chili" does
not mean the appliance is required.
"""

from __future__ import annotations

from domain.models import RecipeData, SafetyProfile


SPECIALTY_EQUIPMENT: list[str] = [
    "Instant Pot",
    "pressure cooker",
    "slow cooker",
    "Crock-Pot",
    "rice cooker",
    "Dutch oven",
    "wok",
    "stand mixer",
    "hand mixer",
    "food processor",
    "immersion blender",
    "blender",
    "air fryer",
    "toaster oven",
    "microwave",
    "steamer",
    "grill",
    "smoker",
    "deep fryer",
    "waffle iron",
    "pasta machine",
    "spiralizer",
    "mandoline",
    "ice cream maker",
    "dehydrator",
    "bread machine",
    "kitchen torch",
    "mortar and pestle",
    "tagine",
    "pizza stone",
]

_SOUS_VIDE_VARIANTS = ("sous vide", "sous-vide")


def detect_equipment_in_recipe(recipe: RecipeData) -> list[str]:
    """Return specialty equipment mentioned in the instructions (deduplicated, vocabulary order)."""
    text = " ".join(recipe.instructions or []).lower()
    if not text:
        return []

    found: list[str] = []
    for equipment in SPECIALTY_EQUIPMENT:
        if equipment.lower() in text and equipment not in found:
            found.append(equipment)

    if any(v in text for v in _SOUS_VIDE_VARIANTS):
        if not any("sous vide" in eq.lower() for eq in found):
            found.append("sous vide")

    return found


def unavailable_equipment_in(recipe: RecipeData, profile: SafetyProfile) -> list[str]:
    """Detected equipment that overlaps the profile's unavailable list.

    Overlap is a case-insensitive substring match in either direction, so an
    unavailable "mixer" blocks "stand mixer" and an unavailable "Instant Pot
    Duo" blocks "Instant Pot".
    """
    if not profile.unavailable_equipment:
        return []

    unavailable = [u.lower() for u in profile.unavailable_equipment]
    hits: list[str] = []
    for equipment in detect_equipment_in_recipe(recipe):
        eq = equipment.lower()
        if any(eq == u or u in eq or eq in u for u in unavailable):
            hits.append(equipment)
    return hits


def requires_unavailable_equipment(recipe: RecipeData, profile: SafetyProfile) -> bool:
    return bool(unavailable_equipment_in(recipe, profile))
