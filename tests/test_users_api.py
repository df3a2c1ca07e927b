import pytest
from fastapi.testclient import TestClient

from backend.app.core.security import create_access_token
from backend.app.core.settings import get_settings
from backend.app.db.base import Base
from backend.app.db.session import engine
from backend.app.main import app


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def sync(client: TestClient, payload: dict, secret: str | None = None):
    headers = {"X-Webhook-Secret": secret if secret is not None else get_settings().webhook_secret}
    return client.post("/users/sync", json=payload, headers=headers)


def test_sync_requires_webhook_secret():
    client = TestClient(app)
    resp = sync(client, {"external_id": "idp|1"}, secret="wrong")
    assert resp.status_code == 401


def test_sync_creates_then_updates_user():
    client = TestClient(app)

    created = sync(client, {"external_id": "idp|1", "name": "Dana", "email": "dana@example.com"})
    assert created.status_code == 200
    assert created.json()["default_currency"] == "USD"

    updated = sync(client, {"external_id": "idp|1", "name": "Dana S.", "email": "dana@example.com"})
    assert updated.json()["id"] == created.json()["id"]
    assert updated.json()["name"] == "Dana S."


def test_update_default_currency():
    client = TestClient(app)
    user_id = sync(client, {"external_id": "idp|2"}).json()["id"]
    headers = {"Authorization": f"Bearer {create_access_token(user_id)}"}

    resp = client.patch("/users/me/currency", json={"currency": "gbp"}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["default_currency"] == "GBP"

    assert client.patch("/users/me/currency", json={"currency": "pounds"}, headers=headers).status_code == 422
    assert client.get("/users/me", headers=headers).json()["default_currency"] == "GBP"
