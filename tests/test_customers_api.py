import pytest
from fastapi.testclient import TestClient

from backend.app.core.security import create_access_token
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


def test_customer_crud_and_search():
    client = TestClient(app)
    headers = auth_headers("owner")

    created = client.post(
        "/customers/",
        json={"name": "Wayne Enterprises", "email": "ap@wayne-enterprises.com", "currency": "eur"},
        headers=headers,
    )
    assert created.status_code == 201
    customer = created.json()
    assert customer["currency"] == "EUR"
    client.post("/customers/", json={"name": "Stark Industries"}, headers=headers)

    found = client.get("/customers/", params={"search": "WAYNE"}, headers=headers).json()
    assert [c["name"] for c in found] == ["Wayne Enterprises"]

    updated = client.patch(f"/customers/{customer['id']}", json={"phone": "555-0100"}, headers=headers)
    assert updated.status_code == 200
    assert updated.json()["phone"] == "555-0100"
    assert updated.json()["name"] == "Wayne Enterprises"

    assert client.delete(f"/customers/{customer['id']}", headers=headers).status_code == 204
    assert client.get(f"/customers/{customer['id']}", headers=headers).status_code == 404


def test_invoice_snapshot_survives_customer_deletion():
    client = TestClient(app)
    headers = auth_headers("owner")
    customer_id = client.post("/customers/", json={"name": "Cyberdyne"}, headers=headers).json()["id"]
    invoice = client.post(
        "/invoices/",
        json={
            "customer_id": customer_id,
            "invoice_number": "INV-9",
            "line_items": [{"description": "Chip", "quantity": 1, "unit_price_cents": 100}],
        },
        headers=headers,
    ).json()

    client.delete(f"/customers/{customer_id}", headers=headers)

    resp = client.get(f"/invoices/{invoice['id']}", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["customer_name"] == "Cyberdyne"
    assert resp.json()["customer_id"] == customer_id


def test_customers_are_scoped_to_owner():
    client = TestClient(app)
    owner = auth_headers("owner")
    other = auth_headers("other")
    customer_id = client.post("/customers/", json={"name": "Hooli"}, headers=owner).json()["id"]

    assert client.get(f"/customers/{customer_id}", headers=other).status_code == 404
    assert client.get("/customers/", headers=other).json() == []
