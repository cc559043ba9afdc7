"""
Saved recipes.

Generated recipes are stored for their owner. Every lookup is scoped
by owner, so another user's recipe id reads as not found.
"""

import re
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import uuid4
from sqlalchemy import select, insert, update, delete, func

from recipehub.core.database import get_db_session, recipes
from recipehub.core.errors import NotFoundError

DEFAULT_SOURCE = "AI_GENERATED"

# Public (camelCase) field -> column
UPDATABLE_FIELDS = {
    "title": "title",
    "description": "description",
    "ingredients": "ingredients",
    "instructions": "instructions",
    "prepTime": "prep_time",
    "cookTime": "cook_time",
    "servings": "servings",
    "difficulty": "difficulty",
    "tags": "tags",
    "nutritionEstimate": "nutrition_estimate",
}


def _as_int(value: Any) -> Optional[int]:
    """Model output may say `25` or "25 minutes"."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    match = re.search(r"\d+", str(value))
    return int(match.group()) if match else None


def _as_list(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _to_public(row) -> Dict[str, Any]:
    return {
        "id": row.id,
        "title": row.title,
        "description": row.description,
        "ingredients": row.ingredients,
        "instructions": row.instructions,
        "prepTime": row.prep_time,
        "cookTime": row.cook_time,
        "servings": row.servings,
        "difficulty": row.difficulty,
        "tags": row.tags or [],
        "nutritionEstimate": row.nutrition_estimate,
        "source": row.source,
        "createdAt": _iso(row.created_at),
        "updatedAt": _iso(row.updated_at),
    }


def _column_values(data: Dict[str, Any]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for public_name, column in UPDATABLE_FIELDS.items():
        if public_name not in data:
            continue
        value = data[public_name]
        if column in ("prep_time", "cook_time", "servings"):
            value = _as_int(value)
        elif column in ("ingredients", "instructions", "tags"):
            value = _as_list(value)
        elif column == "difficulty" and value is not None:
            value = str(value)[:20]
        values[column] = value
    return values


def _fetch(session, user_id: str, recipe_id: str):
    return session.execute(
        select(recipes).where(recipes.c.id == recipe_id, recipes.c.user_id == user_id)
    ).first()


def save_recipe(user_id: str, data: Dict[str, Any], source: str = DEFAULT_SOURCE) -> Dict[str, Any]:
    values = _column_values(data)
    values.setdefault("ingredients", [])
    values.setdefault("instructions", [])
    values["title"] = (values.get("title") or "Untitled recipe")[:255]
    recipe_id = str(uuid4())
    with get_db_session() as session:
        session.execute(insert(recipes).values(id=recipe_id, user_id=user_id, source=source, **values))
        return _to_public(_fetch(session, user_id, recipe_id))


def get_recipe(user_id: str, recipe_id: str) -> Dict[str, Any]:
    with get_db_session() as session:
        row = _fetch(session, user_id, recipe_id)
        if not row:
            raise NotFoundError("Recipe not found")
        return _to_public(row)


def list_recipes(user_id: str, page: int = 1, limit: int = 10) -> Dict[str, Any]:
    offset = (page - 1) * limit
    with get_db_session() as session:
        total = session.execute(
            select(func.count()).select_from(recipes).where(recipes.c.user_id == user_id)
        ).scalar_one()
        rows = session.execute(
            select(recipes)
            .where(recipes.c.user_id == user_id)
            .order_by(recipes.c.created_at.desc(), recipes.c.id)
            .offset(offset)
            .limit(limit)
        ).all()
    return {
        "recipes": [_to_public(row) for row in rows],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        },
    }


def update_recipe(user_id: str, recipe_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
    values = _column_values(changes)
    with get_db_session() as session:
        if not _fetch(session, user_id, recipe_id):
            raise NotFoundError("Recipe not found")
        if values:
            session.execute(
                update(recipes)
                .where(recipes.c.id == recipe_id, recipes.c.user_id == user_id)
                .values(**values)
            )
        return _to_public(_fetch(session, user_id, recipe_id))


def delete_recipe(user_id: str, recipe_id: str) -> None:
    with get_db_session() as session:
        result = session.execute(
            delete(recipes).where(recipes.c.id == recipe_id, recipes.c.user_id == user_id)
        )
        if result.rowcount == 0:
            raise NotFoundError("Recipe not found")
