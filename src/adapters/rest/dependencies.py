"""
Shared FastAPI dependencies.

- get_factory(): returns the initialized ServiceFactory (set at startup).
- require_user_id(): the caller's userID, rejected with 400 when missing.
"""

from __future__ import annotations

from typing import Optional

from fastapi import HTTPException, Query, status

from factory import ServiceFactory

# Module-level reference set by app lifespan
_factory: ServiceFactory | None = None


def set_factory(factory: ServiceFactory | None) -> None:
    global _factory
    _factory = factory


def get_factory() -> ServiceFactory:
    if _factory is None:
        raise RuntimeError("ServiceFactory not initialized.")
    return _factory


def require_user_id(user_id: Optional[str] = Query(None, alias="userID")) -> str:
    """Every recipe lookup is scoped to the caller; no userID, no access."""
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="userID is required",
        )
    return user_id
