"""
domain.entities - Persistence-aware types (have IDs, timestamps).

Decoupled from any persistence strategy: no SQL concerns, no DB imports.
Timestamps are set by the repository implementations and services, not by
the entities themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from domain.models import RecipeData


@dataclass
class FoodProfile:
    """A user's stored food profile (read-only to this service)."""
    user_id: str = ""
    likes: list[str] = field(default_factory=list)
    dislikes: list[str] = field(default_factory=list)
    allergens: list[str] = field(default_factory=list)
    restrictions: list[str] = field(default_factory=list)
    unavailable_equipment: list[str] = field(default_factory=list)
    cooking_proficiency: Optional[int] = None
    is_premium: bool = False
    updated_at: str = ""


@dataclass
class StoredRecipe:
    """A recipe persisted for one user. Dedup key: (user_id, source_url_lower)."""
    id: str = ""
    user_id: str = ""
    recipe_name_lower: str = ""
    source_url_lower: str = ""
    recipe_data: Optional[RecipeData] = None
    conversation_id: Optional[str] = None
    is_saved: bool = False
    user_portion_size: Optional[float] = None
    has_substitutions: bool = False
    created_at: str = ""
    updated_at: str = ""

    @property
    def recipe_id(self) -> str:
        return self.id

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "recipeID": self.id,
            "userID": self.user_id,
            "recipeNameLower": self.recipe_name_lower,
            "sourceUrlLower": self.source_url_lower,
            "conversationID": self.conversation_id,
            "recipeData": self.recipe_data.to_dict() if self.recipe_data else None,
            "isSaved": self.is_saved,
            "userPortionSize": self.user_portion_size,
            "hasSubstitutions": self.has_substitutions,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class Conversation:
    """Metadata for a cooking conversation."""
    conversation_id: str = ""
    user_id: str = ""
    status: str = "active"  # active | decided | recipe_found
    decided_dish: str = ""
    search_query: str = ""
    recipe_id: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""


@dataclass
class ChatMessage:
    """A single message in a conversation."""
    id: Optional[int] = None
    conversation_id: str = ""
    message_index: int = 0
    role: str = ""  # "user" or "assistant"
    content: str = ""
    created_at: str = ""
