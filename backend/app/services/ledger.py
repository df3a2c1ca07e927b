"""Invoice ledger: invoices, line items, payments and status transitions."""

import base64
import binascii
import json
import logging
import secrets
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from backend.app.core.errors import AccessDenied, NotFound, ValidationError
from backend.app.core.settings import get_settings
from backend.app.core.time import utc_now
from backend.app.models.customer import Customer
from backend.app.models.invoice import Invoice
from backend.app.models.invoice_item import InvoiceItem
from backend.app.models.payment import Payment
from backend.app.schemas.invoice import InvoiceWrite
from backend.app.services.currency import reference_total_for, round_half_up
from backend.app.services.statuses import DRAFT, DUE, INVOICE_STATUSES, PAID, VOID, expand_status_filter

logger = logging.getLogger(__name__)


def generate_invoice_number() -> str:
    return f"INV-{secrets.randbelow(1000000):06d}"


def calculate_line_amount(quantity: Decimal | float | int, unit_price_cents: int) -> int:
    """quantity x unit price in cents; fractional quantities round half up."""
    return round_half_up(Decimal(str(quantity)) * Decimal(int(unit_price_cents)))


def build_line_items(line_items: Iterable) -> Tuple[List[InvoiceItem], int]:
    """Turn line-item payloads (objects or dicts) into rows and return them with the subtotal."""
    items: List[InvoiceItem] = []
    subtotal = 0
    for line in line_items:
        if isinstance(line, dict):
            description = line["description"]
            quantity = line["quantity"]
            unit_price_cents = line["unit_price_cents"]
        else:
            description = line.description
            quantity = line.quantity
            unit_price_cents = line.unit_price_cents
        amount = calculate_line_amount(quantity, unit_price_cents)
        items.append(
            InvoiceItem(
                description=description,
                quantity=Decimal(str(quantity)),
                unit_price_cents=int(unit_price_cents),
                amount_cents=amount,
            )
        )
        subtotal += amount
    return items, subtotal


def calculate_total(subtotal_cents: int, tax_cents: int = 0, discount_cents: int = 0) -> int:
    total = subtotal_cents + (tax_cents or 0) - (discount_cents or 0)
    if total < 0:
        raise ValidationError(
            "Discount exceeds subtotal plus tax",
            subtotal_cents=subtotal_cents,
            tax_cents=tax_cents,
            discount_cents=discount_cents,
        )
    return total


def resolve_customer_for_write(db: Session, owner_id: int, customer_id: int) -> Customer:
    customer = db.get(Customer, customer_id)
    if customer is None:
        raise NotFound("Customer not found", customer_id=customer_id)
    if customer.owner_id != owner_id:
        raise AccessDenied("Access denied to customer", customer_id=customer_id)
    return customer


def get_owned_invoice(db: Session, owner_id: int, invoice_id: int) -> Invoice:
    invoice = db.query(Invoice).filter(Invoice.id == invoice_id, Invoice.owner_id == owner_id).first()
    if not invoice:
        raise NotFound("Invoice not found", invoice_id=invoice_id)
    return invoice


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def new_invoice(
    db: Session,
    *,
    owner_id: int,
    customer: Customer,
    invoice_number: str,
    currency: str,
    line_items: Iterable,
    issue_date: Optional[str] = None,
    due_date: Optional[str] = None,
    tax_cents: int = 0,
    discount_cents: int = 0,
    note: Optional[str] = None,
) -> Invoice:
    """Build a draft invoice with its line items and add it to the session without committing."""
    items, subtotal = build_line_items(line_items)
    total = calculate_total(subtotal, tax_cents, discount_cents)
    invoice = Invoice(
        owner_id=owner_id,
        customer_id=customer.id,
        customer=customer.snapshot(),
        invoice_number=invoice_number,
        issue_date=issue_date,
        due_date=due_date,
        currency=currency,
        subtotal_cents=subtotal,
        tax_cents=tax_cents or 0,
        discount_cents=discount_cents or 0,
        total_cents=total,
        total_cents_usd=reference_total_for(db, total, currency),
        status=DRAFT,
        note=note,
    )
    invoice.items = items
    db.add(invoice)
    return invoice


def create_invoice(db: Session, owner_id: int, payload: InvoiceWrite) -> Invoice:
    customer = resolve_customer_for_write(db, owner_id, payload.customer_id)
    invoice = new_invoice(
        db,
        owner_id=owner_id,
        customer=customer,
        invoice_number=payload.invoice_number,
        currency=payload.currency,
        line_items=payload.line_items,
        issue_date=_iso(payload.issue_date),
        due_date=_iso(payload.due_date),
        tax_cents=payload.tax_cents,
        discount_cents=payload.discount_cents,
        note=payload.note,
    )
    db.commit()
    db.refresh(invoice)
    logger.info("Created invoice %s (%s) for user %s", invoice.id, invoice.invoice_number, owner_id)
    return invoice


def update_invoice(db: Session, owner_id: int, invoice_id: int, payload: InvoiceWrite) -> Invoice:
    invoice = get_owned_invoice(db, owner_id, invoice_id)
    customer = resolve_customer_for_write(db, owner_id, payload.customer_id)

    items, subtotal = build_line_items(payload.line_items)
    total = calculate_total(subtotal, payload.tax_cents, payload.discount_cents)

    invoice.customer_id = customer.id
    invoice.customer = customer.snapshot()
    invoice.invoice_number = payload.invoice_number
    invoice.issue_date = _iso(payload.issue_date)
    invoice.due_date = _iso(payload.due_date)
    invoice.currency = payload.currency
    invoice.subtotal_cents = subtotal
    invoice.tax_cents = payload.tax_cents
    invoice.discount_cents = payload.discount_cents
    invoice.total_cents = total
    invoice.total_cents_usd = reference_total_for(db, total, payload.currency)
    invoice.note = payload.note

    # Replace the whole line-item set.
    invoice.items.clear()
    db.flush()
    invoice.items.extend(items)

    db.commit()
    db.refresh(invoice)
    return invoice


def paid_total(invoice: Invoice) -> int:
    return sum((p.amount_cents for p in invoice.payments if p.amount_cents is not None), 0)


def update_invoice_status(db: Session, owner_id: int, invoice_id: int, status: str) -> Invoice:
    if status not in INVOICE_STATUSES:
        raise ValidationError("Invalid invoice status", status=status)
    invoice = get_owned_invoice(db, owner_id, invoice_id)

    if status == PAID:
        remaining = max(invoice.total_cents - paid_total(invoice), 0)
        if remaining > 0:
            invoice.payments.append(
                Payment(owner_id=invoice.owner_id, amount_cents=remaining, paid_at=utc_now())
            )
            logger.info("Recorded balancing payment of %s on invoice %s", remaining, invoice.id)

    invoice.status = status
    db.commit()
    db.refresh(invoice)
    return invoice


def mark_as_sent(db: Session, owner_id: int, invoice_id: int) -> Invoice:
    return update_invoice_status(db, owner_id, invoice_id, DUE)


def record_payment(
    db: Session,
    owner_id: int,
    invoice_id: int,
    amount_cents: int,
    paid_at: Optional[datetime] = None,
    method: Optional[str] = None,
    reference: Optional[str] = None,
) -> Payment:
    invoice = get_owned_invoice(db, owner_id, invoice_id)
    if invoice.status == VOID:
        raise ValidationError("Cannot apply payment to a void invoice.", invoice_id=invoice_id)
    if amount_cents is None or amount_cents <= 0:
        raise ValidationError("Payment amount must be positive", amount_cents=amount_cents)

    payment = Payment(
        owner_id=owner_id,
        amount_cents=int(amount_cents),
        paid_at=paid_at or utc_now(),
        method=method,
        reference=reference,
    )
    invoice.payments.append(payment)

    if paid_total(invoice) >= invoice.total_cents and invoice.status != PAID:
        invoice.status = PAID
        logger.info("Invoice %s fully paid", invoice.id)

    db.commit()
    db.refresh(payment)
    return payment


def delete_invoice(db: Session, owner_id: int, invoice_id: int) -> None:
    invoice = get_owned_invoice(db, owner_id, invoice_id)
    for item in list(invoice.items):
        db.delete(item)
    db.flush()
    db.delete(invoice)
    db.commit()
    logger.info("Deleted invoice %s for user %s", invoice_id, owner_id)


def _owner_query(db: Session, owner_id: int, status: Optional[str], customer_id: Optional[int]):
    query = db.query(Invoice).filter(Invoice.owner_id == owner_id)
    if status:
        query = query.filter(Invoice.status.in_(expand_status_filter(status)))
    if customer_id:
        query = query.filter(Invoice.customer_id == customer_id)
    return query


def list_invoices(
    db: Session,
    owner_id: int,
    status: Optional[str] = None,
    customer_id: Optional[int] = None,
    limit: Optional[int] = None,
) -> List[Invoice]:
    """Most recent invoices, capped for dashboard use."""
    cap = limit or get_settings().invoice_list_cap
    return (
        _owner_query(db, owner_id, status, customer_id)
        .order_by(Invoice.id.desc())
        .limit(cap)
        .all()
    )


def encode_cursor(invoice_id: int) -> str:
    raw = json.dumps({"before": invoice_id}).encode()
    return base64.urlsafe_b64encode(raw).decode()


def decode_cursor(cursor: str) -> int:
    try:
        data = json.loads(base64.urlsafe_b64decode(cursor.encode()))
        return int(data["before"])
    except (binascii.Error, ValueError, KeyError, TypeError) as exc:
        raise ValidationError("Invalid cursor", cursor=cursor) from exc


def list_invoices_page(
    db: Session,
    owner_id: int,
    status: Optional[str] = None,
    customer_id: Optional[int] = None,
    cursor: Optional[str] = None,
    limit: Optional[int] = None,
) -> dict:
    page_size = limit or get_settings().invoice_page_size
    if page_size <= 0:
        raise ValidationError("limit must be positive", limit=limit)

    query = _owner_query(db, owner_id, status, customer_id)
    if cursor:
        query = query.filter(Invoice.id < decode_cursor(cursor))
    rows = query.order_by(Invoice.id.desc()).limit(page_size + 1).all()

    is_done = len(rows) <= page_size
    page = rows[:page_size]
    next_cursor = encode_cursor(page[-1].id) if page and not is_done else None
    return {"invoices": page, "cursor": next_cursor, "is_done": is_done}


def list_payments(db: Session, owner_id: int, invoice_id: Optional[int] = None) -> List[Payment]:
    query = db.query(Payment).join(Invoice).filter(Payment.owner_id == owner_id, Invoice.owner_id == owner_id)
    if invoice_id is not None:
        query = query.filter(Payment.invoice_id == invoice_id)
    return query.order_by(Payment.paid_at.desc(), Payment.id.desc()).all()
