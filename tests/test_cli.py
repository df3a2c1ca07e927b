from datetime import date

import pytest

from backend.app import cli
from backend.app.db.base import Base
from backend.app.db.session import SessionLocal, engine
from backend.app.models.customer import Customer
from backend.app.models.invoice import Invoice
from backend.app.models.recurring_schedule import RecurringSchedule
from backend.app.models.user import User


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def seed_schedule(next_run_date):
    db = SessionLocal()
    try:
        user = User(external_id="idp|cli")
        db.add(user)
        db.commit()
        customer = Customer(owner_id=user.id, name="Umbrella")
        db.add(customer)
        db.commit()
        db.add(
            RecurringSchedule(
                owner_id=user.id,
                customer_id=customer.id,
                currency="USD",
                line_items=[{"description": "Licence", "quantity": 1, "unit_price_cents": 9900}],
                interval="monthly",
                next_run_date=next_run_date,
                status="active",
            )
        )
        db.commit()
    finally:
        db.close()


def count_invoices():
    db = SessionLocal()
    try:
        return db.query(Invoice).count()
    finally:
        db.close()


def test_dry_run_lists_without_generating(capsys):
    seed_schedule(date(2030, 1, 1))

    assert cli.main(["process-recurring", "--date", "2030-01-01", "--dry-run"]) == 0

    out = capsys.readouterr().out
    assert "[DRY RUN] Found 1 schedules" in out
    assert count_invoices() == 0


def test_process_recurring_uses_one_day_grace(capsys):
    seed_schedule(date(2030, 1, 2))

    assert cli.main(["process-recurring", "--date", "2030-01-01"]) == 0

    assert "1 successful" in capsys.readouterr().out
    assert count_invoices() == 1


def test_invalid_date_exits_non_zero():
    assert cli.main(["process-recurring", "--date", "01/02/2030"]) == 2


def test_refresh_rates_failure_exits_non_zero(monkeypatch):
    monkeypatch.setattr(cli, "refresh_rates", lambda db: {"success": False, "error": "feed down"})
    assert cli.main(["refresh-rates"]) == 1


def test_daily_runs_both_jobs(monkeypatch):
    calls = []
    monkeypatch.setattr(cli, "run_process_recurring", lambda *args: calls.append("recurring") or 0)
    monkeypatch.setattr(cli, "run_refresh_rates", lambda: calls.append("rates") or 0)

    assert cli.main(["daily"]) == 0
    assert calls == ["recurring", "rates"]
