"""
Meal plan API routes.

- POST /api/meal-plans/generate (metered)
- GET /api/meal-plans, GET/PUT/DELETE /api/meal-plans/{plan_id}
"""
import logging
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field
from starlette.concurrency import run_in_threadpool

from recipehub.core.auth import get_current_user_id
from recipehub.core.responses import success
from recipehub.features.access.service import AccessContext, metered_access, usage_recorded
from recipehub.features.ai import service as ai_service
from recipehub.features.meal_plans.service import (
    delete_meal_plan,
    get_meal_plan,
    list_meal_plans,
    save_meal_plan,
    update_meal_plan,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/meal-plans", tags=["meal-plans"])


class MealPlanRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    days: int = Field(default=7, ge=1, le=30)
    dietary_restrictions: List[str] = Field(default_factory=list, alias="dietaryRestrictions")
    budget: Literal["low", "medium", "high"] = "medium"
    cooking_time: Literal["quick", "medium", "long"] = Field(default="medium", alias="cookingTime")
    cuisine: str = "varied"
    health_goals: List[str] = Field(default_factory=list, alias="healthGoals")


class MealPlanUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = Field(default=None, min_length=1)
    meal_plan_data: Optional[Dict[str, Any]] = Field(default=None, alias="mealPlanData")
    shopping_list: Optional[List[Any]] = Field(default=None, alias="shoppingList")


@router.post("/generate")
async def generate_meal_plan(body: MealPlanRequest, ctx: AccessContext = Depends(metered_access)):
    async with usage_recorded(ctx):
        plan = await ai_service.create_meal_plan(
            days=body.days,
            budget=body.budget,
            cooking_time=body.cooking_time,
            cuisine=body.cuisine,
            dietary_restrictions=body.dietary_restrictions,
            health_goals=body.health_goals,
        )
        saved = await run_in_threadpool(
            save_meal_plan, ctx.user_id, plan, body.model_dump(by_alias=True), body.days
        )
    logger.info("meal_plan.generated", extra={"user_id": ctx.user_id, "days": body.days})
    return success(saved, "Meal plan generated successfully")


@router.get("")
def list_saved_meal_plans(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
):
    return success(list_meal_plans(user_id, page=page, limit=limit))


@router.get("/{plan_id}")
def get_saved_meal_plan(plan_id: str, user_id: str = Depends(get_current_user_id)):
    return success(get_meal_plan(user_id, plan_id))


@router.put("/{plan_id}")
def update_saved_meal_plan(plan_id: str, body: MealPlanUpdateRequest, user_id: str = Depends(get_current_user_id)):
    updated = update_meal_plan(
        user_id,
        plan_id,
        name=body.name,
        meal_plan_data=body.meal_plan_data,
        shopping_list=body.shopping_list,
    )
    return success(updated, "Meal plan updated successfully")


@router.delete("/{plan_id}")
def delete_saved_meal_plan(plan_id: str, user_id: str = Depends(get_current_user_id)):
    delete_meal_plan(user_id, plan_id)
    return success(None, "Meal plan deleted successfully")
