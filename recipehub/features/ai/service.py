"""Generation service for the cooking assistant.

Thin adapter over the OpenAI chat completions API. Calls are bounded by
OPENAI_TIMEOUT_SECONDS and never retried; any provider failure or
unparseable output surfaces as UpstreamProviderError.
"""

import base64
import json
import logging
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI, OpenAIError

from recipehub.core.config import settings
from recipehub.core.errors import UpstreamProviderError
from recipehub.features.ai import prompts

logger = logging.getLogger(__name__)

_ACTIONS = {
    "recipe": "generate recipe",
    "nutrition": "analyze nutrition",
    "substitutions": "generate substitutions",
    "meal_plan": "create meal plan",
    "image": "analyze image",
    "chat": "get chat response",
}


def get_client() -> AsyncOpenAI:
    if not settings.OPENAI_API_KEY:
        raise UpstreamProviderError("Generation provider is not configured")
    return AsyncOpenAI(
        api_key=settings.OPENAI_API_KEY,
        timeout=settings.OPENAI_TIMEOUT_SECONDS,
        max_retries=0,
    )


async def _complete(
    kind: str,
    messages: List[Dict[str, Any]],
    *,
    model: str,
    temperature: float,
    max_tokens: int,
    json_output: bool = True,
) -> str:
    request: Dict[str, Any] = {
        "model": model,
        "messages": [{"role": "system", "content": prompts.SYSTEM_PROMPTS[kind]}] + messages,
        "temperature": temperature,
        "max_tokens": max_tokens,
    }
    if json_output:
        request["response_format"] = {"type": "json_object"}

    # One client per call; leaving the block closes its connection pool
    try:
        async with get_client() as client:
            response = await client.chat.completions.create(**request)
    except OpenAIError as exc:
        logger.warning("ai.provider_error", extra={"kind": kind, "error": str(exc)})
        raise UpstreamProviderError(f"Failed to {_ACTIONS[kind]}: provider error")

    content = response.choices[0].message.content if response.choices else None
    if not content:
        raise UpstreamProviderError(f"Failed to {_ACTIONS[kind]}: empty response")
    return content


def _parse_json(kind: str, text: str) -> Dict[str, Any]:
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        logger.warning("ai.unparseable_output", extra={"kind": kind})
        raise UpstreamProviderError(f"Failed to {_ACTIONS[kind]}: unparseable response")
    if not isinstance(parsed, dict):
        raise UpstreamProviderError(f"Failed to {_ACTIONS[kind]}: unexpected response shape")
    return parsed


async def generate_recipe(
    ingredients: List[str],
    dietary_restrictions: Optional[List[str]] = None,
    cuisine: str = "any",
) -> Dict[str, Any]:
    text = await _complete(
        "recipe",
        [{"role": "user", "content": prompts.recipe_prompt(ingredients, dietary_restrictions, cuisine)}],
        model=settings.OPENAI_MODEL,
        temperature=0.7,
        max_tokens=1500,
    )
    return _parse_json("recipe", text)


async def analyze_nutrition(recipe: Dict[str, Any]) -> Dict[str, Any]:
    text = await _complete(
        "nutrition",
        [{"role": "user", "content": prompts.nutrition_prompt(json.dumps(recipe))}],
        model=settings.OPENAI_MODEL,
        temperature=0.3,
        max_tokens=1000,
    )
    return _parse_json("nutrition", text)


async def suggest_substitutions(ingredient: str, restrictions: Optional[List[str]] = None) -> Dict[str, Any]:
    text = await _complete(
        "substitutions",
        [{"role": "user", "content": prompts.substitutions_prompt(ingredient, restrictions)}],
        model=settings.OPENAI_MODEL,
        temperature=0.5,
        max_tokens=800,
    )
    return _parse_json("substitutions", text)


async def create_meal_plan(
    days: int,
    budget: str,
    cooking_time: str,
    cuisine: str,
    dietary_restrictions: Optional[List[str]] = None,
    health_goals: Optional[List[str]] = None,
) -> Dict[str, Any]:
    text = await _complete(
        "meal_plan",
        [{
            "role": "user",
            "content": prompts.meal_plan_prompt(days, budget, cooking_time, cuisine, dietary_restrictions, health_goals),
        }],
        model=settings.OPENAI_MODEL,
        temperature=0.6,
        max_tokens=2000,
    )
    return _parse_json("meal_plan", text)


async def chat_reply(message: str, context: Optional[Dict[str, Any]] = None) -> str:
    content = message
    recipe = (context or {}).get("recipe")
    if recipe:
        content = f"Current recipe context: {json.dumps(recipe)}. {message}"
    return await _complete(
        "chat",
        [{"role": "user", "content": content}],
        model=settings.OPENAI_CHAT_MODEL,
        temperature=0.7,
        max_tokens=500,
        json_output=False,
    )


async def analyze_image(image: bytes, content_type: str) -> Dict[str, Any]:
    data_uri = f"data:{content_type};base64,{base64.b64encode(image).decode('ascii')}"
    text = await _complete(
        "image",
        [{
            "role": "user",
            "content": [
                {"type": "text", "text": prompts.IMAGE_PROMPT},
                {"type": "image_url", "image_url": {"url": data_uri}},
            ],
        }],
        model=settings.OPENAI_VISION_MODEL,
        temperature=0.3,
        max_tokens=1000,
    )
    return _parse_json("image", text)
