"""
application.dto - Data Transfer Objects for service input/output.

These are the structured requests and results that services exchange with
callers (REST endpoints, CLI commands).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from domain.models import CookingIntent, RecipeCandidate, SafetyProfile
from domain.entities import StoredRecipe


@dataclass(frozen=True)
class ResolutionRequest:
    """Input for one pipeline run. The profile is already the effective snapshot."""
    dish: str
    search_query: str
    user_id: str
    profile: SafetyProfile
    conversation_id: Optional[str] = None


@dataclass(frozen=True)
class RecipeGenerationResult:
    """A resolved and persisted recipe plus how it was found."""
    recipe: StoredRecipe
    candidate: RecipeCandidate
    attempted_urls: list[str]
    intent: Optional[CookingIntent] = None

    def to_dict(self) -> dict:
        intent = None
        if self.intent is not None:
            intent = {
                "dish": self.intent.dish,
                "searchQuery": self.intent.search_query,
                "status": self.intent.status.value,
            }
        return {
            "recipe": self.recipe.to_dict(),
            "intent": intent,
            "searchResult": {
                "title": self.candidate.title,
                "url": self.candidate.url,
                "snippet": self.candidate.snippet,
            },
        }


@dataclass(frozen=True)
class RecipeUpdate:
    """Partial update of a stored recipe's lifecycle fields.

    clear_portion_size distinguishes "set to null" from "leave as is".
    """
    is_saved: Optional[bool] = None
    user_portion_size: Optional[float] = None
    clear_portion_size: bool = False
