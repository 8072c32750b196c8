"""Pydantic models for REST API request validation.

Field names on the wire are camelCase (userID, conversationID, ...);
responses are built from the entities' to_dict().
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Generation ---

class GenerateRecipeBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    conversation_id: Optional[str] = Field(None, alias="conversationID")
    user_id: Optional[str] = Field(None, alias="userID")
    include_pantry: bool = Field(False, alias="includePantry")


# --- Recipe library ---

class RecipeUpdateBody(BaseModel):
    """Partial update. Sending userPortionSize: null clears the portion size."""
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(None, alias="userID")
    is_saved: Optional[bool] = Field(None, alias="isSaved")
    user_portion_size: Optional[float] = Field(None, alias="userPortionSize")

    @property
    def clears_portion_size(self) -> bool:
        return "user_portion_size" in self.model_fields_set and self.user_portion_size is None
