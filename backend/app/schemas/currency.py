"""Currency code handling and exchange rate schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


def normalize_currency_code(value: str) -> str:
    code = (value or "").strip().upper()
    if len(code) != 3 or not code.isalpha():
        raise ValueError("currency must be a 3-letter ISO code")
    return code


class ExchangeRateRead(BaseModel):
    currency: str
    rate: float
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
