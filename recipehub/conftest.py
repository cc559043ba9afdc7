# recipehub/conftest.py
import os
import tempfile
from pathlib import Path

import pytest

# Settings are read at import time; pin the test environment first
_TEST_DB_DIR = Path(tempfile.mkdtemp(prefix="recipehub-tests-"))
os.environ["ENV"] = "test"
os.environ["TEST_DATABASE_URL"] = f"sqlite:///{_TEST_DB_DIR / 'test.db'}"
os.environ["JWT_SECRET"] = "test-jwt-secret-with-enough-length-123456"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SKIP_ENV_VALIDATION"] = "1"


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    """Create all tables once per test session."""
    from recipehub.core.database import create_all_tables
    create_all_tables()
    yield


@pytest.fixture(autouse=True)
def reset_db():
    """Empty every table before each test."""
    from recipehub.core.database import clear_all_tables
    clear_all_tables()
    yield


@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    """Deterministic settings regardless of any local .env file."""
    from recipehub.core.config import settings
    monkeypatch.setattr(settings, "JWT_SECRET", os.environ["JWT_SECRET"])
    monkeypatch.setattr(settings, "OPENAI_API_KEY", "sk-test")
    monkeypatch.setattr(settings, "STRIPE_SECRET_KEY", None)
    monkeypatch.setattr(settings, "STRIPE_WEBHOOK_SECRET", None)
    monkeypatch.setattr(settings, "STRIPE_PRICE_BASIC", "price_basic_monthly")
    monkeypatch.setattr(settings, "STRIPE_PRICE_PRO", "price_pro_monthly")
    monkeypatch.setattr(settings, "STRIPE_PRICE_PRO_YEARLY", "price_pro_yearly")
    monkeypatch.setattr(settings, "CLIENT_URL", "http://localhost:5173")
    return settings


@pytest.fixture
def billing_settings(test_settings, monkeypatch):
    from recipehub.tests.helpers import TEST_WEBHOOK_SECRET
    monkeypatch.setattr(test_settings, "STRIPE_SECRET_KEY", "sk_test_123")
    monkeypatch.setattr(test_settings, "STRIPE_WEBHOOK_SECRET", TEST_WEBHOOK_SECRET)
    return test_settings


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from recipehub.main import app
    return TestClient(app)


@pytest.fixture
def make_user(client):
    """Register a user through the API; optionally move it onto a plan.

    Returns a dict with id, email, token and auth headers.
    """
    from recipehub.tests.helpers import set_plan

    counter = {"n": 0}

    def _make(email=None, password="secret123", name="Test Cook", plan=None, status="active"):
        counter["n"] += 1
        email = email or f"cook{counter['n']}@example.com"
        response = client.post("/api/auth/register", json={"email": email, "password": password, "name": name})
        assert response.status_code == 201, response.text
        data = response.json()["data"]
        user = {
            "id": data["user"]["id"],
            "email": email,
            "token": data["token"],
            "headers": {"Authorization": f"Bearer {data['token']}"},
        }
        if plan is not None:
            set_plan(user["id"], plan, status)
        return user

    return _make


@pytest.fixture
def fake_openai(monkeypatch):
    """Replace the OpenAI client with an in-memory fake."""
    from recipehub.tests.mocks import FakeOpenAI
    fake = FakeOpenAI()
    monkeypatch.setattr("recipehub.features.ai.service.get_client", lambda: fake)
    return fake
