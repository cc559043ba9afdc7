"""
Recipe API routes.

Metered:
- POST /api/recipes/generate
- POST /api/recipes/substitutions (basic, pro, pro_yearly)

Saved recipes (owner only, not metered):
- GET /api/recipes, GET/PUT/DELETE /api/recipes/{recipe_id}
"""
import logging
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field
from starlette.concurrency import run_in_threadpool

from recipehub.core.auth import get_current_user_id
from recipehub.core.responses import success
from recipehub.features.access.service import (
    AccessContext,
    metered_access,
    plan_gated_access,
    usage_recorded,
)
from recipehub.features.ai import service as ai_service
from recipehub.features.plans.service import PAID_PLANS
from recipehub.features.recipes.service import (
    delete_recipe,
    get_recipe,
    list_recipes,
    save_recipe,
    update_recipe,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recipes", tags=["recipes"])

NonEmptyStr = Annotated[str, Field(min_length=1)]


class RecipeGenerationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ingredients: List[NonEmptyStr] = Field(min_length=1)
    dietary_restrictions: List[str] = Field(default_factory=list, alias="dietaryRestrictions")
    cuisine: str = "any"


class SubstitutionRequest(BaseModel):
    ingredient: NonEmptyStr
    restrictions: List[str] = Field(default_factory=list)


class RecipeUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[NonEmptyStr] = None
    description: Optional[str] = None
    ingredients: Optional[List[str]] = None
    instructions: Optional[List[str]] = None
    prep_time: Optional[int] = Field(default=None, ge=0, alias="prepTime")
    cook_time: Optional[int] = Field(default=None, ge=0, alias="cookTime")
    servings: Optional[int] = Field(default=None, ge=1)
    difficulty: Optional[str] = None
    tags: Optional[List[str]] = None


@router.post("/generate")
async def generate_recipe(body: RecipeGenerationRequest, ctx: AccessContext = Depends(metered_access)):
    async with usage_recorded(ctx):
        recipe = await ai_service.generate_recipe(body.ingredients, body.dietary_restrictions, body.cuisine)
        saved = await run_in_threadpool(save_recipe, ctx.user_id, recipe)
    logger.info("recipe.generated", extra={"user_id": ctx.user_id, "recipe_id": saved["id"]})
    return success(saved, "Recipe generated successfully")


@router.post("/substitutions")
async def substitutions(
    body: SubstitutionRequest,
    ctx: AccessContext = Depends(plan_gated_access(*PAID_PLANS)),
):
    async with usage_recorded(ctx):
        result = await ai_service.suggest_substitutions(body.ingredient, body.restrictions)
    return success(result, "Substitutions found successfully")


@router.get("")
def list_saved_recipes(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
):
    return success(list_recipes(user_id, page=page, limit=limit))


@router.get("/{recipe_id}")
def get_saved_recipe(recipe_id: str, user_id: str = Depends(get_current_user_id)):
    return success(get_recipe(user_id, recipe_id))


@router.put("/{recipe_id}")
def update_saved_recipe(recipe_id: str, body: RecipeUpdateRequest, user_id: str = Depends(get_current_user_id)):
    changes = body.model_dump(by_alias=True, exclude_unset=True)
    return success(update_recipe(user_id, recipe_id, changes), "Recipe updated successfully")


@router.delete("/{recipe_id}")
def delete_saved_recipe(recipe_id: str, user_id: str = Depends(get_current_user_id)):
    delete_recipe(user_id, recipe_id)
    return success(None, "Recipe deleted successfully")
