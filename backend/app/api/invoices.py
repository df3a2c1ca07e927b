"""Invoice routes."""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from backend.app.core.security import get_current_user
from backend.app.db.session import get_db
from backend.app.models.user import User
from backend.app.schemas.invoice import (
    InvoiceCreate,
    InvoiceDetail,
    InvoicePage,
    InvoiceRead,
    InvoiceStatus,
    InvoiceStatusUpdate,
    InvoiceUpdate,
)
from backend.app.schemas.payment import PaymentCreate, PaymentRead
from backend.app.services import ledger

router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.get("/", response_model=List[InvoiceRead])
async def list_invoices(
    status: InvoiceStatus | None = None,
    customer_id: int | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return ledger.list_invoices(db, current_user.id, status=status, customer_id=customer_id)


@router.get("/paged", response_model=InvoicePage)
async def list_invoices_paged(
    status: InvoiceStatus | None = None,
    customer_id: int | None = None,
    cursor: str | None = None,
    limit: int | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return ledger.list_invoices_page(
        db, current_user.id, status=status, customer_id=customer_id, cursor=cursor, limit=limit
    )


@router.post("/", response_model=InvoiceDetail, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    payload: InvoiceCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return ledger.create_invoice(db, current_user.id, payload)


@router.get("/{invoice_id}", response_model=InvoiceDetail)
async def get_invoice(invoice_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return ledger.get_owned_invoice(db, current_user.id, invoice_id)


@router.put("/{invoice_id}", response_model=InvoiceDetail)
async def update_invoice(
    invoice_id: int,
    payload: InvoiceUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return ledger.update_invoice(db, current_user.id, invoice_id, payload)


@router.patch("/{invoice_id}/status", response_model=InvoiceRead)
async def update_invoice_status(
    invoice_id: int,
    payload: InvoiceStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return ledger.update_invoice_status(db, current_user.id, invoice_id, payload.status)


@router.post("/{invoice_id}/send", response_model=InvoiceRead)
async def mark_invoice_sent(invoice_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return ledger.mark_as_sent(db, current_user.id, invoice_id)


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_invoice(invoice_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    ledger.delete_invoice(db, current_user.id, invoice_id)


@router.post("/{invoice_id}/payments", response_model=PaymentRead, status_code=status.HTTP_201_CREATED)
async def create_payment_for_invoice(
    invoice_id: int,
    payload: PaymentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return ledger.record_payment(
        db,
        current_user.id,
        invoice_id,
        payload.amount_cents,
        paid_at=payload.paid_at,
        method=payload.method,
        reference=payload.reference,
    )
