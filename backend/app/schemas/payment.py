"""Payment schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PaymentBase(BaseModel):
    method: Optional[str] = None
    reference: Optional[str] = None


class PaymentCreate(PaymentBase):
    amount_cents: int = Field(gt=0)
    paid_at: Optional[datetime] = None


class PaymentRead(PaymentBase):
    id: int
    owner_id: int
    invoice_id: int
    amount_cents: int
    paid_at: datetime
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
