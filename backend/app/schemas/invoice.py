"""Invoice schemas."""

from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from backend.app.schemas.currency import normalize_currency_code
from backend.app.schemas.invoice_item import InvoiceItemRead, LineItemIn

InvoiceStatus = Literal["draft", "due", "unpaid", "paid", "void", "sent", "overdue"]


class InvoiceWrite(BaseModel):
    """Full invoice payload; updates replace every field and the whole line-item set."""

    customer_id: int
    invoice_number: str = Field(min_length=1, max_length=64)
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    currency: str = "USD"
    tax_cents: int = Field(default=0, ge=0)
    discount_cents: int = Field(default=0, ge=0)
    note: Optional[str] = None
    line_items: List[LineItemIn] = Field(default_factory=list)

    @field_validator("currency")
    @classmethod
    def _currency_code(cls, value: str) -> str:
        return normalize_currency_code(value)


class InvoiceCreate(InvoiceWrite):
    pass


class InvoiceUpdate(InvoiceWrite):
    pass


class InvoiceStatusUpdate(BaseModel):
    status: InvoiceStatus


class InvoiceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    customer_id: int

    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None
    shipping_address: Optional[str] = None
    customer_tax_id: Optional[str] = None
    customer_gst: Optional[str] = None

    invoice_number: str
    issue_date: Optional[str] = None
    due_date: Optional[str] = None
    currency: str
    subtotal_cents: int
    tax_cents: int
    discount_cents: int
    total_cents: int
    total_cents_usd: Optional[int] = None
    status: str
    note: Optional[str] = None

    recurring_schedule_id: Optional[int] = None
    occurrence_date: Optional[date] = None

    created_at: datetime
    updated_at: datetime


class InvoiceDetail(InvoiceRead):
    items: List[InvoiceItemRead] = Field(default_factory=list)


class InvoicePage(BaseModel):
    invoices: List[InvoiceRead]
    cursor: Optional[str] = None
    is_done: bool
