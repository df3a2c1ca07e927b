"""Exchange rate table: units of a currency per one reference-currency unit."""

from sqlalchemy import Column, DateTime, Float, Integer, String

from backend.app.core.time import utc_now
from backend.app.db.base_class import Base


class ExchangeRate(Base):
    __tablename__ = "exchange_rates"

    id = Column(Integer, primary_key=True, index=True)
    currency = Column(String(3), unique=True, index=True, nullable=False)
    rate = Column(Float, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
