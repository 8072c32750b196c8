"""
domain.models - Value objects for the recipe resolution pipeline.

These are immutable data containers with no business logic beyond small
convenience properties, and no dependencies on infrastructure (no LangChain,
no requests, no SQLite).

    - SafetyProfile      → effective per-request constraint snapshot
    - CookingIntent      → dish + search phrase derived from a conversation
    - RecipeCandidate    → one search hit
    - ScrapeResult       → extracted page text + optional image
    - RecipeData         → the structured recipe the pipeline exists to produce
    - ResolutionOutcome  → ResolutionSuccess | ResolutionExhausted
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Union


# ---------------------------------------------------------------------------
# Safety Profile
# ---------------------------------------------------------------------------

def _normalize_terms(values: Optional[Iterable[str]]) -> frozenset[str]:
    if not values:
        return frozenset()
    return frozenset(v.strip().lower() for v in values if v and v.strip())


@dataclass(frozen=True)
class SafetyProfile:
    """Effective constraint snapshot for one resolution request.

    Always build through effective() or from_food_profile(): the premium gate
    is applied there and nowhere else. For non-premium users allergens,
    restrictions and proficiency are cleared; equipment exclusions are kept
    because equipment is a hard filter regardless of subscription.
    """
    allergens: frozenset[str] = frozenset()
    restrictions: frozenset[str] = frozenset()
    unavailable_equipment: frozenset[str] = frozenset()
    is_premium: bool = False
    cooking_proficiency: Optional[int] = None

    @classmethod
    def effective(
        cls,
        *,
        allergens: Optional[Iterable[str]] = None,
        restrictions: Optional[Iterable[str]] = None,
        unavailable_equipment: Optional[Iterable[str]] = None,
        is_premium: bool = False,
        cooking_proficiency: Optional[int] = None,
    ) -> SafetyProfile:
        proficiency = cooking_proficiency if cooking_proficiency in range(1, 6) else None
        equipment = _normalize_terms(unavailable_equipment)
        if not is_premium:
            return cls(unavailable_equipment=equipment, is_premium=False)
        return cls(
            allergens=_normalize_terms(allergens),
            restrictions=_normalize_terms(restrictions),
            unavailable_equipment=equipment,
            is_premium=True,
            cooking_proficiency=proficiency,
        )

    @classmethod
    def from_food_profile(cls, profile) -> SafetyProfile:
        """Snapshot a stored FoodProfile entity (None → empty profile)."""
        if profile is None:
            return cls()
        return cls.effective(
            allergens=profile.allergens,
            restrictions=profile.restrictions,
            unavailable_equipment=profile.unavailable_equipment,
            is_premium=profile.is_premium,
            cooking_proficiency=profile.cooking_proficiency,
        )

    @property
    def disallowed_terms(self) -> frozenset[str]:
        return self.allergens | self.restrictions

    @property
    def has_ingredient_constraints(self) -> bool:
        return bool(self.allergens or self.restrictions)


# ---------------------------------------------------------------------------
# Intent
# ---------------------------------------------------------------------------

class IntentStatus(str, Enum):
    """How far a conversation has narrowed down what to cook."""
    OFF_TOPIC = "off_topic"
    BROAD_CATEGORY = "broad_category"
    DISH_TYPE = "dish_type"
    SPECIFIC_DISH = "specific_dish"
    FULLY_REFINED = "fully_refined"


@dataclass(frozen=True)
class CookingIntent:
    dish: str
    search_query: str
    status: IntentStatus = IntentStatus.SPECIFIC_DISH

    @property
    def accepts_pantry_hints(self) -> bool:
        """Only open-ended intents get pantry ingredients appended."""
        return self.status in (IntentStatus.BROAD_CATEGORY, IntentStatus.DISH_TYPE)


# ---------------------------------------------------------------------------
# Search / Acquisition
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RecipeCandidate:
    """A single search hit. degraded=True when salvaged from unstructured output."""
    title: str
    url: str
    snippet: str = ""
    degraded: bool = False


@dataclass(frozen=True)
class ScrapeResult:
    content: str
    image_url: Optional[str] = None


# ---------------------------------------------------------------------------
# Recipe
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SubstitutionRecord:
    original: str
    replacement: str
    reason: str = ""


@dataclass(frozen=True)
class RecipeData:
    """A structured recipe.

    Immutable once accepted; lifecycle fields (saved flag, portion size) live
    on the StoredRecipe entity, not here.
    """
    title: str
    portions: str = ""
    ingredients: list[str] = field(default_factory=list)
    instructions: list[str] = field(default_factory=list)
    description: Optional[str] = None
    image_url: Optional[str] = None
    source_url: Optional[str] = None
    substitutions: list[SubstitutionRecord] = field(default_factory=list)

    @property
    def has_substitutions(self) -> bool:
        return bool(self.substitutions)

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "description": self.description,
            "portions": self.portions,
            "ingredients": list(self.ingredients),
            "instructions": list(self.instructions),
            "imageUrl": self.image_url,
            "sourceUrl": self.source_url,
            "substitutions": [
                {"original": s.original, "replacement": s.replacement, "reason": s.reason}
                for s in self.substitutions
            ],
        }

    @classmethod
    def from_dict(cls, data: dict) -> RecipeData:
        """Rebuild from to_dict() output (trusted, already validated data)."""
        return cls(
            title=data.get("title", ""),
            description=data.get("description"),
            portions=data.get("portions", ""),
            ingredients=list(data.get("ingredients") or []),
            instructions=list(data.get("instructions") or []),
            image_url=data.get("imageUrl"),
            source_url=data.get("sourceUrl"),
            substitutions=[
                SubstitutionRecord(
                    original=s.get("original", ""),
                    replacement=s.get("replacement", ""),
                    reason=s.get("reason", ""),
                )
                for s in data.get("substitutions") or []
            ],
        )


# ---------------------------------------------------------------------------
# Resolution outcome
# ---------------------------------------------------------------------------

class ResolutionState(str, Enum):
    SEARCHING = "searching"
    TRYING_CANDIDATE = "trying_candidate"
    SUCCESS = "success"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class ResolutionSuccess:
    recipe: RecipeData
    source_url: str
    candidate: RecipeCandidate
    attempted_urls: list[str] = field(default_factory=list)

    @property
    def is_success(self) -> bool:
        return True


@dataclass(frozen=True)
class ResolutionExhausted:
    last_error: Exception
    attempted_urls: list[str] = field(default_factory=list)

    @property
    def is_success(self) -> bool:
        return False

    @property
    def last_error_message(self) -> str:
        return str(self.last_error)


ResolutionOutcome = Union[ResolutionSuccess, ResolutionExhausted]
