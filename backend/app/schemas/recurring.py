"""Recurring schedule schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from backend.app.schemas.currency import normalize_currency_code

Interval = Literal["weekly", "monthly", "quarterly", "biannually", "yearly"]
ScheduleStatus = Literal["active", "paused", "cancelled"]


class TemplateLineItem(BaseModel):
    description: str = Field(min_length=1, max_length=255)
    quantity: Decimal = Field(gt=0)
    unit_price_cents: int = Field(ge=0)


class RecurringCreate(BaseModel):
    customer_id: int
    currency: str = "USD"
    line_items: List[TemplateLineItem] = Field(min_length=1)
    note: Optional[str] = None
    interval: Interval
    start_date: Optional[date] = None
    generate_first_immediately: bool = False

    @field_validator("currency")
    @classmethod
    def _currency_code(cls, value: str) -> str:
        return normalize_currency_code(value)


class RecurringUpdate(BaseModel):
    interval: Optional[Interval] = None
    next_run_date: Optional[date] = None
    status: Optional[ScheduleStatus] = None
    note: Optional[str] = None


class RecurringRead(BaseModel):
    id: int
    owner_id: int
    customer_id: int
    currency: str
    line_items: List[dict]
    note: Optional[str] = None
    interval: str
    next_run_date: date
    last_run_date: Optional[date] = None
    status: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RecurringCreated(BaseModel):
    recurring_id: int
    invoice_id: Optional[int] = None
