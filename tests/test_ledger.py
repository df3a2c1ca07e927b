from datetime import date

import pytest

from backend.app.core.errors import AccessDenied, NotFound, ValidationError
from backend.app.db.base import Base
from backend.app.db.session import SessionLocal, engine
from backend.app.models.customer import Customer
from backend.app.models.invoice import Invoice
from backend.app.models.invoice_item import InvoiceItem
from backend.app.models.payment import Payment
from backend.app.models.user import User
from backend.app.schemas.invoice import InvoiceCreate, InvoiceUpdate
from backend.app.schemas.invoice_item import LineItemIn
from backend.app.services import ledger


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def create_user(db, external_id="idp|owner"):
    user = User(external_id=external_id, email=f"{external_id.split('|')[1]}@example.com", default_currency="USD")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_customer(db, owner_id, name="Acme Corp"):
    customer = Customer(owner_id=owner_id, name=name, email="billing@acme.test", billing_address="1 Main St")
    db.add(customer)
    db.commit()
    db.refresh(customer)
    return customer


def invoice_payload(customer_id, **overrides):
    data = {
        "customer_id": customer_id,
        "invoice_number": "INV-1001",
        "issue_date": date(2025, 3, 1),
        "due_date": date(2025, 3, 31),
        "currency": "USD",
        "tax_cents": 500,
        "discount_cents": 200,
        "line_items": [
            LineItemIn(description="Design", quantity=2, unit_price_cents=2500),
            LineItemIn(description="Hosting", quantity=1.5, unit_price_cents=1001),
        ],
    }
    data.update(overrides)
    return InvoiceCreate(**data)


def test_create_invoice_computes_totals_and_snapshot(db):
    owner = create_user(db)
    customer = create_customer(db, owner.id)

    invoice = ledger.create_invoice(db, owner.id, invoice_payload(customer.id))

    assert [item.amount_cents for item in invoice.items] == [5000, 1502]
    assert invoice.subtotal_cents == 6502
    assert invoice.total_cents == 6502 + 500 - 200
    assert invoice.total_cents_usd == invoice.total_cents
    assert invoice.status == "draft"
    assert invoice.customer_name == "Acme Corp"
    assert invoice.customer_address == "1 Main St"
    assert invoice.issue_date == "2025-03-01"


def test_create_invoice_for_foreign_customer_is_denied(db):
    owner = create_user(db)
    other = create_user(db, "idp|other")
    foreign = create_customer(db, other.id)

    with pytest.raises(AccessDenied):
        ledger.create_invoice(db, owner.id, invoice_payload(foreign.id))
    with pytest.raises(NotFound):
        ledger.create_invoice(db, owner.id, invoice_payload(9999))


def test_invoice_of_another_user_is_not_found(db):
    owner = create_user(db)
    other = create_user(db, "idp|other")
    customer = create_customer(db, owner.id)
    invoice = ledger.create_invoice(db, owner.id, invoice_payload(customer.id))

    with pytest.raises(NotFound):
        ledger.get_owned_invoice(db, other.id, invoice.id)


def test_update_replaces_line_items_and_recomputes(db):
    owner = create_user(db)
    customer = create_customer(db, owner.id)
    invoice = ledger.create_invoice(db, owner.id, invoice_payload(customer.id))

    payload = InvoiceUpdate(
        customer_id=customer.id,
        invoice_number="INV-1001",
        currency="USD",
        line_items=[LineItemIn(description="Retainer", quantity=1, unit_price_cents=9000)],
    )
    updated = ledger.update_invoice(db, owner.id, invoice.id, payload)

    assert [item.description for item in updated.items] == ["Retainer"]
    assert updated.subtotal_cents == 9000
    assert updated.total_cents == 9000
    assert db.query(InvoiceItem).filter(InvoiceItem.invoice_id == invoice.id).count() == 1


def test_marking_paid_records_exactly_the_remaining_balance(db):
    owner = create_user(db)
    customer = create_customer(db, owner.id)
    invoice = ledger.create_invoice(
        db,
        owner.id,
        invoice_payload(customer.id, tax_cents=0, discount_cents=0, line_items=[
            LineItemIn(description="Work", quantity=1, unit_price_cents=10000)
        ]),
    )
    ledger.record_payment(db, owner.id, invoice.id, 4000)

    paid = ledger.update_invoice_status(db, owner.id, invoice.id, "paid")

    assert paid.status == "paid"
    amounts = sorted(p.amount_cents for p in paid.payments)
    assert amounts == [4000, 6000]

    # Re-marking a fully paid invoice adds nothing.
    again = ledger.update_invoice_status(db, owner.id, invoice.id, "paid")
    assert len(again.payments) == 2


def test_invalid_status_is_rejected(db):
    owner = create_user(db)
    customer = create_customer(db, owner.id)
    invoice = ledger.create_invoice(db, owner.id, invoice_payload(customer.id))

    with pytest.raises(ValidationError):
        ledger.update_invoice_status(db, owner.id, invoice.id, "archived")


def test_invoice_becomes_paid_only_when_payments_cover_total(db):
    owner = create_user(db)
    customer = create_customer(db, owner.id)
    invoice = ledger.create_invoice(
        db,
        owner.id,
        invoice_payload(customer.id, tax_cents=0, discount_cents=0, line_items=[
            LineItemIn(description="Work", quantity=1, unit_price_cents=10000)
        ]),
    )
    ledger.mark_as_sent(db, owner.id, invoice.id)

    ledger.record_payment(db, owner.id, invoice.id, 3000)
    db.refresh(invoice)
    assert invoice.status == "due"

    ledger.record_payment(db, owner.id, invoice.id, 2000)
    db.refresh(invoice)
    assert invoice.status == "due"

    ledger.record_payment(db, owner.id, invoice.id, 5000)
    db.refresh(invoice)
    assert invoice.status == "paid"


def test_payment_rules(db):
    owner = create_user(db)
    customer = create_customer(db, owner.id)
    invoice = ledger.create_invoice(db, owner.id, invoice_payload(customer.id))

    with pytest.raises(ValidationError):
        ledger.record_payment(db, owner.id, invoice.id, 0)

    ledger.update_invoice_status(db, owner.id, invoice.id, "void")
    with pytest.raises(ValidationError):
        ledger.record_payment(db, owner.id, invoice.id, 100)


def test_delete_removes_items_and_payments(db):
    owner = create_user(db)
    customer = create_customer(db, owner.id)
    invoice = ledger.create_invoice(db, owner.id, invoice_payload(customer.id))
    ledger.record_payment(db, owner.id, invoice.id, 100)
    invoice_id = invoice.id

    ledger.delete_invoice(db, owner.id, invoice_id)

    assert db.get(Invoice, invoice_id) is None
    assert db.query(InvoiceItem).filter(InvoiceItem.invoice_id == invoice_id).count() == 0
    assert db.query(Payment).filter(Payment.invoice_id == invoice_id).count() == 0


def test_status_filter_matches_synonyms(db):
    owner = create_user(db)
    customer = create_customer(db, owner.id)
    for number, status in [("A", "due"), ("B", "sent"), ("C", "overdue"), ("D", "unpaid"), ("E", "draft")]:
        invoice = ledger.create_invoice(db, owner.id, invoice_payload(customer.id, invoice_number=number))
        ledger.update_invoice_status(db, owner.id, invoice.id, status)

    awaiting = {inv.invoice_number for inv in ledger.list_invoices(db, owner.id, status="sent")}
    late = {inv.invoice_number for inv in ledger.list_invoices(db, owner.id, status="overdue")}
    drafts = {inv.invoice_number for inv in ledger.list_invoices(db, owner.id, status="draft")}

    assert awaiting == {"A", "B"}
    assert late == {"C", "D"}
    assert drafts == {"E"}


def test_list_is_bounded_and_customer_filtered(db):
    owner = create_user(db)
    first = create_customer(db, owner.id, "First")
    second = create_customer(db, owner.id, "Second")
    for index in range(5):
        ledger.create_invoice(db, owner.id, invoice_payload(first.id, invoice_number=f"F-{index}"))
    ledger.create_invoice(db, owner.id, invoice_payload(second.id, invoice_number="S-0"))

    assert len(ledger.list_invoices(db, owner.id, limit=3)) == 3
    only_second = ledger.list_invoices(db, owner.id, customer_id=second.id)
    assert [inv.invoice_number for inv in only_second] == ["S-0"]


def test_paged_listing_walks_every_invoice_once(db):
    owner = create_user(db)
    customer = create_customer(db, owner.id)
    for index in range(5):
        ledger.create_invoice(db, owner.id, invoice_payload(customer.id, invoice_number=f"P-{index}"))

    seen = []
    cursor = None
    pages = 0
    while True:
        page = ledger.list_invoices_page(db, owner.id, cursor=cursor, limit=2)
        seen.extend(inv.invoice_number for inv in page["invoices"])
        pages += 1
        if page["is_done"]:
            assert page["cursor"] is None
            break
        cursor = page["cursor"]

    assert pages == 3
    assert seen == ["P-4", "P-3", "P-2", "P-1", "P-0"]


def test_invalid_cursor_is_rejected(db):
    owner = create_user(db)
    with pytest.raises(ValidationError):
        ledger.list_invoices_page(db, owner.id, cursor="not-a-cursor")


def test_discount_larger_than_subtotal_plus_tax_is_rejected(db):
    owner = create_user(db)
    customer = create_customer(db, owner.id)

    with pytest.raises(ValidationError):
        ledger.create_invoice(db, owner.id, invoice_payload(customer.id, tax_cents=0, discount_cents=100000))

    invoice = ledger.create_invoice(db, owner.id, invoice_payload(customer.id))
    with pytest.raises(ValidationError):
        ledger.update_invoice(
            db, owner.id, invoice.id, InvoiceUpdate(**invoice_payload(customer.id, discount_cents=100000).model_dump())
        )
    db.refresh(invoice)
    assert invoice.discount_cents == 200


def test_generated_invoice_numbers_have_six_digits():
    for _ in range(20):
        number = ledger.generate_invoice_number()
        assert number.startswith("INV-")
        assert len(number) == 10
        assert number[4:].isdigit()
