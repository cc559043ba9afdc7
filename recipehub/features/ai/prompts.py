"""Prompt templates for the cooking assistant.

Every structured action asks the model for a single JSON object; the
shapes below are what the handlers persist and return.
"""

SYSTEM_PROMPTS = {
    "recipe": "You are a professional chef. Reply with one JSON object only.",
    "nutrition": "You are a registered dietitian. Reply with one JSON object only.",
    "substitutions": "You are a culinary expert in ingredient substitutions. Reply with one JSON object only.",
    "meal_plan": "You are a meal planning assistant. Reply with one JSON object only.",
    "image": "You identify dishes and ingredients in food photos. Reply with one JSON object only.",
    "chat": (
        "You are a friendly cooking assistant. Answer questions about cooking, "
        "recipes, ingredients and techniques briefly and practically."
    ),
}

RECIPE_SHAPE = (
    '{"title": str, "description": str, "ingredients": [str], "instructions": [str], '
    '"prepTime": int minutes, "cookTime": int minutes, "servings": int, '
    '"difficulty": "Easy"|"Medium"|"Hard", "tags": [str], '
    '"nutritionEstimate": {"calories": int, "protein": str, "carbs": str, "fat": str}}'
)

NUTRITION_SHAPE = (
    '{"calories": int, "macros": {"protein": str, "carbs": str, "fat": str, "fiber": str}, '
    '"healthScore": int 1-10, "dietaryFlags": [str], "allergens": [str], "suggestions": [str]}'
)

SUBSTITUTIONS_SHAPE = (
    '{"ingredient": str, "substitutions": [{"name": str, "ratio": str, "notes": str, '
    '"dietaryInfo": [str]}]}'
)

MEAL_PLAN_SHAPE = (
    '{"name": str, "days": [{"day": int, "breakfast": str, "lunch": str, "dinner": str, '
    '"snacks": [str]}], "shoppingList": [str], "estimatedCost": str}'
)

IMAGE_SHAPE = (
    '{"dishName": str, "ingredients": [str], "cuisine": str, "confidence": float 0-1, '
    '"suggestedRecipe": {"title": str, "instructions": [str]}}'
)


def _joined(values, fallback: str) -> str:
    items = [v for v in (values or []) if v]
    return ", ".join(items) if items else fallback


def recipe_prompt(ingredients, dietary_restrictions, cuisine: str) -> str:
    return (
        f"Create a recipe using these ingredients: {_joined(ingredients, 'any')}.\n"
        f"Dietary restrictions: {_joined(dietary_restrictions, 'none')}.\n"
        f"Cuisine: {cuisine or 'any'}.\n"
        f"Return JSON shaped as {RECIPE_SHAPE}."
    )


def nutrition_prompt(recipe_json: str) -> str:
    return f"Analyze the nutrition of this recipe: {recipe_json}\nReturn JSON shaped as {NUTRITION_SHAPE}."


def substitutions_prompt(ingredient: str, restrictions) -> str:
    return (
        f"Suggest substitutes for {ingredient}.\n"
        f"Dietary restrictions: {_joined(restrictions, 'none')}.\n"
        f"Return JSON shaped as {SUBSTITUTIONS_SHAPE}."
    )


def meal_plan_prompt(days: int, budget: str, cooking_time: str, cuisine: str, dietary_restrictions, health_goals) -> str:
    return (
        f"Plan {days} days of meals.\n"
        f"Budget: {budget}. Cooking time: {cooking_time}. Cuisine: {cuisine}.\n"
        f"Dietary restrictions: {_joined(dietary_restrictions, 'none')}.\n"
        f"Health goals: {_joined(health_goals, 'balanced nutrition')}.\n"
        f"Return JSON shaped as {MEAL_PLAN_SHAPE}."
    )


IMAGE_PROMPT = f"Identify the dish and visible ingredients in this photo. Return JSON shaped as {IMAGE_SHAPE}."
