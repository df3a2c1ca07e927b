"""Currency normalization through the reference currency, and the rate refresh job."""

import logging
from decimal import ROUND_FLOOR, Decimal
from typing import Callable, Dict, List, Optional

import requests
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.app.core.settings import get_settings
from backend.app.core.time import utc_now
from backend.app.models.exchange_rate import ExchangeRate

logger = logging.getLogger(__name__)

REFERENCE_CURRENCY = "USD"


def round_half_up(value) -> int:
    """Round to the nearest integer, halves toward positive infinity (-2.5 -> -2, 2.5 -> 3)."""
    return int((Decimal(str(value)) + Decimal("0.5")).to_integral_value(rounding=ROUND_FLOOR))


class RateTable:
    """In-memory view of the exchange rate table.

    A rate is the number of units of a currency per one reference-currency unit.
    Currencies without a rate are unconvertible and contribute zero.
    """

    def __init__(self, rates: Dict[str, float] | None = None, reference: str = REFERENCE_CURRENCY):
        self.reference = reference
        self.rates = {code.upper(): rate for code, rate in (rates or {}).items()}

    @classmethod
    def load(cls, db: Session) -> "RateTable":
        rows = db.query(ExchangeRate).all()
        return cls({row.currency: row.rate for row in rows})

    def rate_for(self, currency: str | None) -> float:
        code = (currency or self.reference).upper()
        if code == self.reference:
            return 1.0
        return self.rates.get(code) or 0.0

    def to_reference(self, amount_cents: int, currency: str | None) -> int:
        code = (currency or self.reference).upper()
        if code == self.reference:
            return int(amount_cents)
        rate = self.rate_for(code)
        if rate <= 0:
            logger.warning("No exchange rate for %s; amount excluded from totals", code)
            return 0
        return round_half_up(Decimal(int(amount_cents)) / Decimal(str(rate)))

    def from_reference(self, amount_cents: int, target: str | None) -> int:
        code = (target or self.reference).upper()
        if code == self.reference:
            return int(amount_cents)
        rate = self.rate_for(code)
        if rate <= 0:
            logger.warning("No exchange rate for %s; converted amount is zero", code)
            return 0
        return round_half_up(Decimal(int(amount_cents)) * Decimal(str(rate)))

    def convert(self, amount_cents: int, source: str | None, target: str | None) -> int:
        return self.from_reference(self.to_reference(amount_cents, source), target)


def reference_total_for(db: Session, total_cents: int, currency: str) -> Optional[int]:
    """Reference-currency total cached on an invoice at write time; None when unconvertible."""
    table = RateTable.load(db)
    if table.rate_for(currency) <= 0:
        return None
    return table.to_reference(total_cents, currency)


def list_rates(db: Session) -> List[ExchangeRate]:
    return db.query(ExchangeRate).order_by(ExchangeRate.currency.asc()).all()


def fetch_rates_from_api() -> Dict[str, float]:
    """Fetch ``{currency: rate}`` against the reference currency from the configured feed."""
    settings = get_settings()
    response = requests.get(settings.rates_api_url, timeout=settings.rates_timeout_seconds)
    response.raise_for_status()
    payload = response.json()
    rates = payload.get("rates") or payload.get("conversion_rates")
    if not rates:
        raise ValueError("Rate feed returned no rates")
    return {str(code).upper(): float(rate) for code, rate in rates.items()}


def refresh_rates(db: Session, fetch: Callable[[], Dict[str, float]] = fetch_rates_from_api) -> dict:
    """Replace the rate table with a fresh fetch.

    Failures are reported, not raised; the existing table stays intact.
    """
    try:
        rates = fetch()
        if not rates:
            raise ValueError("Failed to fetch exchange rates")

        refreshed_at = utc_now()
        existing = {row.currency: row for row in db.query(ExchangeRate).all()}
        count = 0
        for code, rate in rates.items():
            code = code.upper()
            if rate is None or float(rate) <= 0:
                continue
            row = existing.get(code)
            if row is None:
                db.add(ExchangeRate(currency=code, rate=float(rate), updated_at=refreshed_at))
            else:
                row.rate = float(rate)
                row.updated_at = refreshed_at
            count += 1
        db.commit()
    except (requests.RequestException, SQLAlchemyError, ValueError, TypeError) as exc:
        db.rollback()
        logger.exception("Error fetching exchange rates")
        return {"success": False, "error": str(exc)}

    logger.info("Refreshed %s exchange rates", count)
    return {"success": True, "date": refreshed_at.date().isoformat(), "count": count}
