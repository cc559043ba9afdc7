from recipehub.features.plans.service import (
    get_plan,
    get_request_limit,
    list_plans,
    plan_for_price,
    price_for_plan,
)


def test_catalog_limits():
    assert get_request_limit("free") == 5
    assert get_request_limit("basic") == 50
    assert get_request_limit("pro") == -1
    assert get_request_limit("pro_yearly") == -1


def test_unknown_plan_falls_back_to_free_limit():
    assert get_request_limit("enterprise") == 5
    assert get_request_limit(None) == 5


def test_price_lookup_round_trips_through_settings(test_settings, monkeypatch):
    monkeypatch.setattr(test_settings, "STRIPE_PRICE_BASIC", "price_live_basic")
    assert price_for_plan("basic") == "price_live_basic"
    assert plan_for_price("price_live_basic") == "basic"
    assert plan_for_price("price_basic_monthly") is None


def test_free_plan_has_no_price():
    assert price_for_plan("free") is None
    assert plan_for_price("") is None
    assert plan_for_price(None) is None


def test_public_listing(client):
    response = client.get("/api/subscriptions/plans")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    ids = [plan["id"] for plan in body["data"]]
    assert ids == ["free", "basic", "pro", "pro_yearly"]
    yearly = body["data"][3]
    assert yearly["interval"] == "year"
    assert yearly["price"] == 199.99
    assert yearly["requestLimit"] == -1


def test_plan_details():
    plan = get_plan("basic")
    assert plan.name == "Basic Chef"
    assert plan.price == 9.99
    assert not plan.unlimited
    assert get_plan("pro").unlimited
    assert get_plan("gold") is None
    assert len(list_plans()) == 4
