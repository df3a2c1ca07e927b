"""Dashboard KPIs and revenue analytics.

Every amount is normalized to the reference currency before it is summed and only
converted to the user's display currency at the end. Data anomalies (unparseable
issue dates, currencies without a rate) are excluded from the sums instead of
raising; the results are advisory dashboard figures, not ledger balances.
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from dateutil import parser as date_parser
from sqlalchemy.orm import Session

from backend.app.core.time import as_utc, utc_today
from backend.app.models.customer import Customer
from backend.app.models.invoice import Invoice
from backend.app.models.payment import Payment
from backend.app.models.user import User
from backend.app.services.currency import RateTable, round_half_up
from backend.app.services.statuses import DUE_STATUSES, OUTSTANDING_STATUSES, OVERDUE_STATUSES, PAID_STATUSES
from backend.app.services.users import display_currency_for

logger = logging.getLogger(__name__)

MONTH_LABELS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
HISTORY_MONTHS = 12
FORECAST_WINDOW = 6
FORECAST_MONTHS = 3


def format_trend(current: float, previous: float) -> str:
    if previous == 0:
        return "+0%" if current == 0 else "+100%"
    percent = round_half_up((Decimal(str(current)) - Decimal(str(previous))) * 100 / Decimal(str(previous)))
    return f"{'+' if percent >= 0 else ''}{percent}%"


def parse_issue_date(value) -> Optional[date]:
    """Permissive date parsing; anything unparseable yields None."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date_parser.parse(str(value)).date()
    except (ValueError, OverflowError, TypeError):
        return None


def _shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def _last_n_months(today: date, n: int) -> List[Tuple[int, int]]:
    # returns list from oldest to newest
    return [_shift_month(today.year, today.month, -offset) for offset in reversed(range(n))]


def invoice_reference_total(invoice: Invoice, rates: RateTable) -> int:
    """Cached write-time reference total when present, else a live conversion."""
    if invoice.total_cents_usd is not None:
        return invoice.total_cents_usd
    return rates.to_reference(invoice.total_cents or 0, invoice.currency)


def _sum_reference(invoices: Iterable[Invoice], statuses, rates: RateTable, month: Optional[Tuple[int, int]] = None) -> int:
    total = 0
    for invoice in invoices:
        if invoice.status not in statuses:
            continue
        if month is not None:
            issued = parse_issue_date(invoice.issue_date)
            if issued is None or (issued.year, issued.month) != month:
                continue
        total += invoice_reference_total(invoice, rates)
    return total


def get_dashboard_kpis(db: Session, *, owner_id: int, today: Optional[date] = None) -> dict:
    as_of = today or utc_today()
    user = db.get(User, owner_id)
    currency = display_currency_for(user)
    rates = RateTable.load(db)

    def convert(reference_cents: int) -> int:
        return rates.from_reference(reference_cents, currency)

    invoices: List[Invoice] = db.query(Invoice).filter(Invoice.owner_id == owner_id).all()
    customer_count = db.query(Customer).filter(Customer.owner_id == owner_id).count()

    current_month = (as_of.year, as_of.month)
    previous_month = _shift_month(as_of.year, as_of.month, -1)

    groups = {
        "kpi_total_outstanding": ("Total Outstanding", OUTSTANDING_STATUSES),
        "kpi_due": ("Due Soon", DUE_STATUSES),
        "kpi_overdue": ("Overdue", OVERDUE_STATUSES),
        "kpi_paid": ("Paid This Month", PAID_STATUSES),
    }

    kpis_by_type: Dict[str, dict] = {}
    for key, (label, statuses) in groups.items():
        current = _sum_reference(invoices, statuses, rates, current_month)
        previous = _sum_reference(invoices, statuses, rates, previous_month)
        kpis_by_type[key] = {
            "label": label,
            "value_cents": convert(current),
            "trend": format_trend(current, previous),
        }

    totals = {
        "total_revenue": convert(_sum_reference(invoices, PAID_STATUSES, rates)),
        "outstanding_amount": convert(_sum_reference(invoices, OUTSTANDING_STATUSES, rates)),
        "overdue_amount": convert(_sum_reference(invoices, OVERDUE_STATUSES, rates)),
        "due_amount_cents": convert(_sum_reference(invoices, DUE_STATUSES, rates)),
    }

    return {
        "as_of": as_of.isoformat(),
        "currency": currency,
        "totals": totals,
        "kpis_by_type": kpis_by_type,
        "customer_count": customer_count,
        "invoice_count": len(invoices),
    }


def forecast_revenue(history: List[int], months: int = FORECAST_MONTHS, window: int = FORECAST_WINDOW) -> List[int]:
    """Project ``months`` values by compounding the last value at the average growth rate.

    The rate is averaged over consecutive pairs of the trailing ``window`` values whose
    predecessor is non-zero; with no such pair the projection is flat.
    """
    if not history:
        return [0] * months
    recent = history[-window:]
    rates = [
        (current - previous) / previous
        for previous, current in zip(recent, recent[1:])
        if previous != 0
    ]
    average_rate = sum(rates) / len(rates) if rates else 0.0

    projected = []
    value = float(recent[-1])
    for _ in range(months):
        value = value * (1 + average_rate)
        projected.append(round_half_up(value))
    return projected


def _month_point(year: int, month: int, revenue: int, is_forecast: bool) -> dict:
    return {
        "month": f"{year:04d}-{month:02d}",
        "label": MONTH_LABELS[month - 1],
        "revenue": revenue,
        "is_forecast": is_forecast,
    }


def get_revenue_analytics(db: Session, *, owner_id: int, today: Optional[date] = None) -> dict:
    as_of = today or utc_today()
    user = db.get(User, owner_id)
    currency = display_currency_for(user)
    rates = RateTable.load(db)

    rows = (
        db.query(Payment, Invoice.currency)
        .join(Invoice, Payment.invoice_id == Invoice.id)
        .filter(Payment.owner_id == owner_id, Invoice.owner_id == owner_id)
        .all()
    )

    month_keys = _last_n_months(as_of, HISTORY_MONTHS)
    revenue_by_month = {key: 0 for key in month_keys}
    count_by_month = {key: 0 for key in month_keys}
    for payment, invoice_currency in rows:
        if payment.paid_at is None:
            continue
        paid_on = as_utc(payment.paid_at).date()
        key = (paid_on.year, paid_on.month)
        if key not in revenue_by_month:
            continue
        revenue_by_month[key] += rates.convert(payment.amount_cents or 0, invoice_currency, currency)
        count_by_month[key] += 1

    history = [revenue_by_month[key] for key in month_keys]
    chart_data = [_month_point(year, month, revenue_by_month[(year, month)], False) for year, month in month_keys]

    projected = forecast_revenue(history)
    last_year, last_month = month_keys[-1]
    forecast_data = []
    for offset, value in enumerate(projected, start=1):
        year, month = _shift_month(last_year, last_month, offset)
        forecast_data.append(_month_point(year, month, value, True))

    current_key = month_keys[-1]
    previous_key = month_keys[-2]
    month_revenue = revenue_by_month[current_key]
    previous_revenue = revenue_by_month[previous_key]
    month_count = count_by_month[current_key]
    previous_count = count_by_month[previous_key]
    average = round_half_up(month_revenue / month_count) if month_count else 0
    previous_average = round_half_up(previous_revenue / previous_count) if previous_count else 0
    next_forecast = projected[0] if projected else 0

    kpis_by_type = {
        "kpi_month_revenue": {
            "label": "This Month Revenue",
            "value_cents": month_revenue,
            "trend": format_trend(month_revenue, previous_revenue),
        },
        "kpi_transactions": {
            "label": "Transactions",
            "value_count": month_count,
            "trend": format_trend(month_count, previous_count),
        },
        "kpi_avg_transaction": {
            "label": "Average Transaction",
            "value_cents": average,
            "trend": format_trend(average, previous_average),
        },
        "kpi_forecast_next": {
            "label": "Next Month Forecast",
            "value_cents": next_forecast,
            "trend": format_trend(next_forecast, month_revenue),
        },
    }

    return {
        "as_of": as_of.isoformat(),
        "currency": currency,
        "chart_data": chart_data,
        "forecast_data": forecast_data,
        "all_chart_data": chart_data + forecast_data,
        "kpis_by_type": kpis_by_type,
    }
