"""Stored recipe endpoints: list, fetch, update lifecycle fields, delete."""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from factory import ServiceFactory
from domain.exceptions import RecipeNotFoundError
from application.dto import RecipeUpdate
from adapters.rest.dependencies import get_factory, require_user_id
from adapters.rest.schemas import RecipeUpdateBody

router = APIRouter(prefix="/recipes", tags=["recipes"])


@router.get("/user/{user_id}")
async def list_user_recipes(
    user_id: str,
    saved: bool = Query(False),
    factory: ServiceFactory = Depends(get_factory),
):
    service = factory.create_library_service()
    recipes = await service.list_recipes(user_id, saved_only=saved)
    return {"recipes": [r.to_dict() for r in recipes]}


@router.get("/{recipe_id}")
async def get_recipe(
    recipe_id: str,
    user_id: str = Depends(require_user_id),
    factory: ServiceFactory = Depends(get_factory),
):
    service = factory.create_library_service()
    try:
        recipe = await service.get_recipe(recipe_id, user_id)
    except RecipeNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return {"recipe": recipe.to_dict()}


@router.patch("/{recipe_id}")
async def update_recipe(
    recipe_id: str,
    body: RecipeUpdateBody,
    factory: ServiceFactory = Depends(get_factory),
):
    if not body.user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="userID is required")

    service = factory.create_library_service()
    try:
        recipe = await service.update_recipe(
            recipe_id,
            body.user_id,
            RecipeUpdate(
                is_saved=body.is_saved,
                user_portion_size=body.user_portion_size,
                clear_portion_size=body.clears_portion_size,
            ),
        )
    except RecipeNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return {"recipe": recipe.to_dict()}


@router.delete("/{recipe_id}")
async def delete_recipe(
    recipe_id: str,
    user_id: str = Depends(require_user_id),
    factory: ServiceFactory = Depends(get_factory),
):
    service = factory.create_library_service()
    try:
        await service.delete_recipe(recipe_id, user_id)
    except RecipeNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return {"message": "Recipe deleted successfully"}
