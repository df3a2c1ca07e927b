"""User schemas for identity sync and profile responses."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator

from backend.app.schemas.currency import normalize_currency_code


class UserSync(BaseModel):
    external_id: str
    name: Optional[str] = None
    email: Optional[EmailStr] = None


class UserRead(BaseModel):
    id: int
    external_id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    default_currency: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class UserCurrencyUpdate(BaseModel):
    currency: str

    @field_validator("currency")
    @classmethod
    def _currency_code(cls, value: str) -> str:
        return normalize_currency_code(value)
