import pytest
from fastapi.testclient import TestClient

from backend.app.core.security import create_access_token
from backend.app.core.time import utc_today
from backend.app.db.base import Base
from backend.app.db.session import SessionLocal, engine
from backend.app.main import app
from backend.app.models.exchange_rate import ExchangeRate
from backend.app.models.user import User


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def auth_headers() -> dict:
    db = SessionLocal()
    try:
        user = User(external_id="idp|dash")
        db.add(user)
        db.add(ExchangeRate(currency="EUR", rate=0.5))
        db.commit()
        db.refresh(user)
        token = create_access_token(user.id)
    finally:
        db.close()
    return {"Authorization": f"Bearer {token}"}


def test_metrics_and_analytics():
    client = TestClient(app)
    headers = auth_headers()
    customer_id = client.post("/customers/", json={"name": "Vandelay"}, headers=headers).json()["id"]
    invoice = client.post(
        "/invoices/",
        json={
            "customer_id": customer_id,
            "invoice_number": "INV-1",
            "issue_date": utc_today().isoformat(),
            "currency": "EUR",
            "line_items": [{"description": "Latex", "quantity": 1, "unit_price_cents": 10000}],
        },
        headers=headers,
    ).json()
    assert invoice["total_cents_usd"] == 20000
    client.patch(f"/invoices/{invoice['id']}/status", json={"status": "paid"}, headers=headers)

    metrics = client.get("/dashboard/metrics", headers=headers)
    assert metrics.status_code == 200
    body = metrics.json()
    assert body["currency"] == "USD"
    assert body["kpis_by_type"]["kpi_paid"]["value_cents"] == 20000
    assert body["totals"]["total_revenue"] == 20000

    analytics = client.get("/dashboard/analytics", headers=headers).json()
    assert analytics["kpis_by_type"]["kpi_month_revenue"]["value_cents"] == 20000
    assert analytics["kpis_by_type"]["kpi_transactions"]["value_count"] == 1
    assert len(analytics["all_chart_data"]) == 15
    assert "kpi_paid" in analytics["dashboard_kpis_by_type"]

    rates = client.get("/rates/", headers=headers).json()
    assert [r["currency"] for r in rates] == ["EUR"]
