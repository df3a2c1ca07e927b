"""Customer schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from backend.app.schemas.currency import normalize_currency_code


class CustomerBase(BaseModel):
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    billing_address: Optional[str] = None
    shipping_address: Optional[str] = None
    tax_id: Optional[str] = None
    gst_number: Optional[str] = None
    payment_terms_days: Optional[int] = Field(default=None, ge=0)
    currency: Optional[str] = None

    @field_validator("currency")
    @classmethod
    def _currency_code(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return normalize_currency_code(value)


class CustomerCreate(CustomerBase):
    name: str = Field(min_length=1, max_length=255)


class CustomerUpdate(CustomerBase):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)


class CustomerRead(CustomerBase):
    id: int
    owner_id: int
    name: str
    email: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
