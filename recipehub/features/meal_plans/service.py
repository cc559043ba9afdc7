"""Saved meal plans, owner-scoped like recipes."""

from typing import Any, Dict, Optional
from uuid import uuid4
from sqlalchemy import select, insert, update, delete, func

from recipehub.core.database import get_db_session, meal_plans
from recipehub.core.errors import NotFoundError


def _to_public(row) -> Dict[str, Any]:
    return {
        "id": row.id,
        "name": row.name,
        "days": row.days,
        "mealPlanData": row.meal_plan_data,
        "shoppingList": row.shopping_list or [],
        "preferences": row.preferences or {},
        "createdAt": row.created_at.isoformat() if row.created_at else None,
        "updatedAt": row.updated_at.isoformat() if row.updated_at else None,
    }


def _fetch(session, user_id: str, plan_id: str):
    return session.execute(
        select(meal_plans).where(meal_plans.c.id == plan_id, meal_plans.c.user_id == user_id)
    ).first()


def save_meal_plan(user_id: str, plan: Dict[str, Any], preferences: Dict[str, Any], days: int) -> Dict[str, Any]:
    shopping_list = plan.get("shoppingList")
    name = plan.get("name") or f"{days}-Day Meal Plan"
    plan_id = str(uuid4())
    with get_db_session() as session:
        session.execute(
            insert(meal_plans).values(
                id=plan_id,
                user_id=user_id,
                name=str(name)[:255],
                days=days,
                meal_plan_data=plan,
                shopping_list=shopping_list if isinstance(shopping_list, list) else [],
                preferences=preferences,
            )
        )
        return _to_public(_fetch(session, user_id, plan_id))


def get_meal_plan(user_id: str, plan_id: str) -> Dict[str, Any]:
    with get_db_session() as session:
        row = _fetch(session, user_id, plan_id)
        if not row:
            raise NotFoundError("Meal plan not found")
        return _to_public(row)


def list_meal_plans(user_id: str, page: int = 1, limit: int = 10) -> Dict[str, Any]:
    with get_db_session() as session:
        total = session.execute(
            select(func.count()).select_from(meal_plans).where(meal_plans.c.user_id == user_id)
        ).scalar_one()
        rows = session.execute(
            select(meal_plans)
            .where(meal_plans.c.user_id == user_id)
            .order_by(meal_plans.c.created_at.desc(), meal_plans.c.id)
            .offset((page - 1) * limit)
            .limit(limit)
        ).all()
    return {
        "mealPlans": [_to_public(row) for row in rows],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        },
    }


def update_meal_plan(
    user_id: str,
    plan_id: str,
    *,
    name: Optional[str] = None,
    meal_plan_data: Optional[Dict[str, Any]] = None,
    shopping_list: Optional[list] = None,
) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    if name is not None:
        values["name"] = name[:255]
    if meal_plan_data is not None:
        values["meal_plan_data"] = meal_plan_data
    if shopping_list is not None:
        values["shopping_list"] = shopping_list

    with get_db_session() as session:
        if not _fetch(session, user_id, plan_id):
            raise NotFoundError("Meal plan not found")
        if values:
            session.execute(
                update(meal_plans)
                .where(meal_plans.c.id == plan_id, meal_plans.c.user_id == user_id)
                .values(**values)
            )
        return _to_public(_fetch(session, user_id, plan_id))


def delete_meal_plan(user_id: str, plan_id: str) -> None:
    with get_db_session() as session:
        result = session.execute(
            delete(meal_plans).where(meal_plans.c.id == plan_id, meal_plans.c.user_id == user_id)
        )
        if result.rowcount == 0:
            raise NotFoundError("Meal plan not found")
