from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from backend.app.core.security import create_access_token
from backend.app.core.time import utc_today
from backend.app.db.base import Base
from backend.app.db.session import SessionLocal, engine
from backend.app.main import app
from backend.app.models.user import User


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def auth_headers(external_id: str) -> dict:
    db = SessionLocal()
    try:
        user = User(external_id=external_id)
        db.add(user)
        db.commit()
        db.refresh(user)
        token = create_access_token(user.id)
    finally:
        db.close()
    return {"Authorization": f"Bearer {token}"}


def schedule_body(customer_id: int, start_date, interval: str = "monthly") -> dict:
    return {
        "customer_id": customer_id,
        "currency": "USD",
        "interval": interval,
        "start_date": start_date.isoformat(),
        "line_items": [{"description": "Retainer", "quantity": 1, "unit_price_cents": 50000}],
    }


def test_create_schedule_starting_today_returns_invoice():
    client = TestClient(app)
    headers = auth_headers("owner")
    customer_id = client.post("/customers/", json={"name": "Soylent"}, headers=headers).json()["id"]

    resp = client.post("/recurring/", json=schedule_body(customer_id, utc_today()), headers=headers)
    assert resp.status_code == 201
    created = resp.json()
    assert created["invoice_id"] is not None

    invoice = client.get(f"/invoices/{created['invoice_id']}", headers=headers).json()
    assert invoice["issue_date"] == utc_today().isoformat()
    assert invoice["total_cents"] == 50000

    schedule = client.get(f"/recurring/{created['recurring_id']}", headers=headers).json()
    assert schedule["status"] == "active"
    assert schedule["last_run_date"] == utc_today().isoformat()


def test_future_schedule_and_update_flow():
    client = TestClient(app)
    headers = auth_headers("owner")
    customer_id = client.post("/customers/", json={"name": "Soylent"}, headers=headers).json()["id"]
    start = utc_today() + timedelta(days=30)

    created = client.post("/recurring/", json=schedule_body(customer_id, start, "quarterly"), headers=headers).json()
    assert created["invoice_id"] is None

    paused = client.patch(f"/recurring/{created['recurring_id']}", json={"status": "paused"}, headers=headers)
    assert paused.status_code == 200
    assert paused.json()["status"] == "paused"
    assert paused.json()["interval"] == "quarterly"

    listed = client.get("/recurring/", params={"status": "paused"}, headers=headers).json()
    assert [s["id"] for s in listed] == [created["recurring_id"]]

    assert client.delete(f"/recurring/{created['recurring_id']}", headers=headers).status_code == 204
    assert client.get(f"/recurring/{created['recurring_id']}", headers=headers).status_code == 404


def test_schedule_validation():
    client = TestClient(app)
    headers = auth_headers("owner")
    customer_id = client.post("/customers/", json={"name": "Soylent"}, headers=headers).json()["id"]

    body = schedule_body(customer_id, utc_today(), "fortnightly")
    assert client.post("/recurring/", json=body, headers=headers).status_code == 422

    body = schedule_body(customer_id, utc_today())
    body["line_items"] = []
    assert client.post("/recurring/", json=body, headers=headers).status_code == 422

    other = auth_headers("other")
    resp = client.post("/recurring/", json=schedule_body(customer_id, utc_today()), headers=other)
    assert resp.status_code == 403
