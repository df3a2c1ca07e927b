"""Invoice line item schemas."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class LineItemIn(BaseModel):
    description: str = Field(min_length=1, max_length=255)
    quantity: Decimal = Field(gt=0)
    unit_price_cents: int = Field(ge=0)


class InvoiceItemRead(BaseModel):
    id: int
    invoice_id: int
    description: str
    quantity: Decimal
    unit_price_cents: int
    amount_cents: int

    model_config = ConfigDict(from_attributes=True)
