from datetime import datetime, timezone, timedelta

from recipehub.features.usage.service import (
    current_month,
    get_or_create_usage,
    get_usage,
    increment_usage,
    reset_usage,
    set_request_limit,
)
from recipehub.features.users.service import register_user


def _user_id(email="ledger@example.com"):
    return register_user(email, "secret123", "Ledger").id


def test_current_month_is_utc():
    # 23:30 at UTC-5 on Jan 31 is already February in UTC
    local = datetime(2026, 1, 31, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
    assert current_month(local) == "2026-02"
    assert current_month(datetime(2026, 12, 1)) == "2026-12"


def test_get_or_create_is_idempotent():
    user_id = _user_id()
    now = datetime(2026, 5, 2, tzinfo=timezone.utc)
    first = get_or_create_usage(user_id, "basic", now)
    second = get_or_create_usage(user_id, "basic", now)
    assert first == second
    assert first.request_limit == 50
    assert first.requests_used == 0


def test_new_month_starts_a_new_record():
    user_id = _user_id()
    may = get_or_create_usage(user_id, "free", datetime(2026, 5, 31, tzinfo=timezone.utc))
    increment_usage(user_id, may.month)
    june = get_or_create_usage(user_id, "free", datetime(2026, 6, 1, tzinfo=timezone.utc))
    assert june.month == "2026-06"
    assert june.requests_used == 0
    assert get_usage(user_id, "2026-05").requests_used == 1


def test_unknown_plan_gets_free_limit():
    user_id = _user_id()
    record = get_or_create_usage(user_id, "platinum")
    assert record.request_limit == 5


def test_set_request_limit_keeps_requests_used():
    user_id = _user_id()
    record = get_or_create_usage(user_id, "free")
    increment_usage(user_id, record.month)
    updated = set_request_limit(user_id, "pro")
    assert updated.request_limit == -1
    stored = get_usage(user_id, record.month)
    assert stored.request_limit == -1
    assert stored.requests_used == 1


def test_reset_usage_keeps_limit():
    user_id = _user_id()
    record = get_or_create_usage(user_id, "basic")
    for _ in range(3):
        increment_usage(user_id, record.month)
    reset_usage(user_id, "basic")
    stored = get_usage(user_id, record.month)
    assert stored.requests_used == 0
    assert stored.request_limit == 50
