from typing import Any, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from recipehub.core.responses import success
from recipehub.features.access.service import AccessContext, metered_access, usage_recorded
from recipehub.features.ai import service as ai_service

router = APIRouter(prefix="/nutrition", tags=["nutrition"])


class RecipeForAnalysis(BaseModel):
    model_config = ConfigDict(extra="allow")

    title: str = Field(min_length=1)
    ingredients: List[Any]
    instructions: List[Any]


class NutritionRequest(BaseModel):
    recipe: RecipeForAnalysis


@router.post("/analyze")
async def analyze_nutrition(body: NutritionRequest, ctx: AccessContext = Depends(metered_access)):
    async with usage_recorded(ctx):
        analysis = await ai_service.analyze_nutrition(body.recipe.model_dump())
    return success(analysis, "Nutrition analysis completed successfully")
