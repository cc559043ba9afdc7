"""
Saved recipes and meal plans are owner-scoped and not metered.
"""
from recipehub.features.meal_plans.service import save_meal_plan
from recipehub.features.recipes.service import save_recipe
from recipehub.features.usage.service import current_month, get_usage
from recipehub.tests.mocks import FAKE_RECIPE


def test_list_get_update_delete_recipe(client, make_user):
    user = make_user()
    saved = save_recipe(user["id"], FAKE_RECIPE)
    save_recipe(user["id"], {**FAKE_RECIPE, "title": "Second"})

    listing = client.get("/api/recipes?page=1&limit=1", headers=user["headers"])
    assert listing.status_code == 200
    data = listing.json()["data"]
    assert len(data["recipes"]) == 1
    assert data["pagination"] == {"page": 1, "limit": 1, "total": 2, "pages": 2}

    fetched = client.get(f"/api/recipes/{saved['id']}", headers=user["headers"])
    assert fetched.json()["data"]["title"] == "Garlic Tomato Pasta"
    assert fetched.json()["data"]["source"] == "AI_GENERATED"

    updated = client.put(
        f"/api/recipes/{saved['id']}",
        json={"title": "Better Pasta", "servings": 4},
        headers=user["headers"],
    )
    assert updated.status_code == 200
    assert updated.json()["data"]["title"] == "Better Pasta"
    assert updated.json()["data"]["servings"] == 4
    assert updated.json()["data"]["ingredients"] == FAKE_RECIPE["ingredients"]

    deleted = client.delete(f"/api/recipes/{saved['id']}", headers=user["headers"])
    assert deleted.status_code == 200
    assert client.get(f"/api/recipes/{saved['id']}", headers=user["headers"]).status_code == 404


def test_other_users_recipe_is_not_found(client, make_user):
    owner = make_user()
    intruder = make_user()
    saved = save_recipe(owner["id"], FAKE_RECIPE)

    for method in ("get", "delete"):
        response = getattr(client, method)(f"/api/recipes/{saved['id']}", headers=intruder["headers"])
        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"
    response = client.put(f"/api/recipes/{saved['id']}", json={"title": "Mine now"}, headers=intruder["headers"])
    assert response.status_code == 404

    assert client.get(f"/api/recipes/{saved['id']}", headers=owner["headers"]).json()["data"]["title"] == FAKE_RECIPE["title"]


def test_listing_is_scoped_to_owner(client, make_user):
    owner = make_user()
    other = make_user()
    save_recipe(owner["id"], FAKE_RECIPE)
    data = client.get("/api/recipes", headers=other["headers"]).json()["data"]
    assert data["recipes"] == []
    assert data["pagination"]["total"] == 0


def test_saved_content_is_not_metered(client, make_user):
    user = make_user()
    for _ in range(8):
        assert client.get("/api/recipes", headers=user["headers"]).status_code == 200
    assert get_usage(user["id"], current_month()).requests_used == 0


def test_saved_content_requires_auth(client):
    assert client.get("/api/recipes").status_code == 401
    assert client.get("/api/meal-plans").status_code == 401


def test_meal_plan_crud(client, make_user):
    user = make_user()
    other = make_user()
    saved = save_meal_plan(user["id"], {"days": [], "shoppingList": ["rice"]}, {"budget": "low"}, 5)
    assert saved["name"] == "5-Day Meal Plan"

    listing = client.get("/api/meal-plans", headers=user["headers"]).json()["data"]
    assert [plan["id"] for plan in listing["mealPlans"]] == [saved["id"]]

    assert client.get(f"/api/meal-plans/{saved['id']}", headers=other["headers"]).status_code == 404

    updated = client.put(
        f"/api/meal-plans/{saved['id']}",
        json={"name": "Rice Week", "shoppingList": ["rice", "beans"]},
        headers=user["headers"],
    )
    assert updated.status_code == 200
    assert updated.json()["data"]["name"] == "Rice Week"
    assert updated.json()["data"]["shoppingList"] == ["rice", "beans"]

    assert client.delete(f"/api/meal-plans/{saved['id']}", headers=other["headers"]).status_code == 404
    assert client.delete(f"/api/meal-plans/{saved['id']}", headers=user["headers"]).status_code == 200
    assert client.get(f"/api/meal-plans/{saved['id']}", headers=user["headers"]).status_code == 404


def test_invalid_pagination(client, make_user):
    user = make_user()
    assert client.get("/api/recipes?page=0", headers=user["headers"]).status_code == 400
    assert client.get("/api/recipes?limit=500", headers=user["headers"]).status_code == 400
