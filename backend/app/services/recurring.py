"""Recurring billing: schedule definitions, occurrence dates and invoice materialization.

Each materialization creates one draft invoice for an occurrence date and advances
the schedule's ``next_run_date`` in the same transaction. The invoice carries the
``(recurring_schedule_id, occurrence_date)`` pair under a unique constraint, so an
occurrence that was already materialized is never invoiced twice, even when a batch
is retried after a partial failure.
"""

import logging
from datetime import date, timedelta
from typing import Dict, List, Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.app.core.errors import NotFound, ValidationError
from backend.app.core.settings import get_settings
from backend.app.core.time import utc_today, utc_tomorrow
from backend.app.models.customer import Customer
from backend.app.models.invoice import Invoice
from backend.app.models.recurring_schedule import RecurringSchedule
from backend.app.schemas.recurring import RecurringCreate, RecurringUpdate
from backend.app.services.ledger import generate_invoice_number, new_invoice, resolve_customer_for_write

logger = logging.getLogger(__name__)

ACTIVE = "active"
PAUSED = "paused"
CANCELLED = "cancelled"
SCHEDULE_STATUSES = (ACTIVE, PAUSED, CANCELLED)

INTERVAL_STEPS = {
    "weekly": timedelta(days=7),
    "monthly": relativedelta(months=1),
    "quarterly": relativedelta(months=3),
    "biannually": relativedelta(months=6),
    "yearly": relativedelta(years=1),
}


def advance(value: date | str, interval: str) -> date:
    """Next occurrence after ``value``.

    Month-based steps clamp to the last day of the target month when the day does
    not exist there (Jan 31 -> Feb 28/29, Feb 29 -> Feb 28 on non-leap years).
    Pure calendar arithmetic; no timezone is involved.
    """
    if isinstance(value, str):
        value = date.fromisoformat(value)
    try:
        step = INTERVAL_STEPS[interval]
    except KeyError:
        raise ValidationError("Unknown interval", interval=interval) from None
    return value + step


def should_generate_immediately(start_date: date, requested: bool = False, today: Optional[date] = None) -> bool:
    """Materialize at creation when asked to, or when the start is no later than UTC tomorrow.

    The one-day window absorbs callers in timezones ahead of UTC whose local "today"
    is already UTC tomorrow.
    """
    tomorrow = (today + timedelta(days=1)) if today else utc_tomorrow()
    return requested or start_date <= tomorrow


def get_owned_schedule(db: Session, owner_id: int, schedule_id: int) -> RecurringSchedule:
    schedule = (
        db.query(RecurringSchedule)
        .filter(RecurringSchedule.id == schedule_id, RecurringSchedule.owner_id == owner_id)
        .first()
    )
    if not schedule:
        raise NotFound("Recurring invoice not found", schedule_id=schedule_id)
    return schedule


def list_schedules(db: Session, owner_id: int, status: Optional[str] = None) -> List[RecurringSchedule]:
    query = db.query(RecurringSchedule).filter(RecurringSchedule.owner_id == owner_id)
    if status:
        query = query.filter(RecurringSchedule.status == status)
    return query.order_by(RecurringSchedule.next_run_date.asc(), RecurringSchedule.id.asc()).all()


def _template(payload: RecurringCreate) -> List[dict]:
    return [
        {
            "description": item.description,
            "quantity": float(item.quantity),
            "unit_price_cents": item.unit_price_cents,
        }
        for item in payload.line_items
    ]


def create_schedule(db: Session, owner_id: int, payload: RecurringCreate) -> Dict[str, Optional[int]]:
    resolve_customer_for_write(db, owner_id, payload.customer_id)
    start_date = payload.start_date or utc_today()

    schedule = RecurringSchedule(
        owner_id=owner_id,
        customer_id=payload.customer_id,
        currency=payload.currency,
        line_items=_template(payload),
        note=payload.note,
        interval=payload.interval,
        next_run_date=start_date,
        status=ACTIVE,
    )
    db.add(schedule)
    db.commit()
    db.refresh(schedule)
    logger.info("Created recurring schedule %s for user %s starting %s", schedule.id, owner_id, start_date)

    invoice_id = None
    if should_generate_immediately(start_date, payload.generate_first_immediately):
        logger.info("Generating immediate invoice for recurring schedule %s (start %s)", schedule.id, start_date)
        invoice = materialize_occurrence(db, schedule, start_date)
        invoice_id = invoice.id if invoice else None
    else:
        logger.info("Skipping immediate generation for schedule %s (start %s)", schedule.id, start_date)

    return {"recurring_id": schedule.id, "invoice_id": invoice_id}


def update_schedule(db: Session, owner_id: int, schedule_id: int, payload: RecurringUpdate) -> RecurringSchedule:
    schedule = get_owned_schedule(db, owner_id, schedule_id)
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("interval") is not None:
        schedule.interval = changes["interval"]
    if changes.get("next_run_date") is not None:
        schedule.next_run_date = changes["next_run_date"]
    if changes.get("status") is not None:
        schedule.status = changes["status"]
    if "note" in changes:
        schedule.note = changes["note"]
    db.commit()
    db.refresh(schedule)
    return schedule


def delete_schedule(db: Session, owner_id: int, schedule_id: int) -> None:
    # Invoices already materialized from this schedule stay untouched.
    schedule = get_owned_schedule(db, owner_id, schedule_id)
    db.delete(schedule)
    db.commit()
    logger.info("Deleted recurring schedule %s for user %s", schedule_id, owner_id)


def _already_materialized(db: Session, schedule_id: int, occurrence: date) -> Optional[Invoice]:
    return (
        db.query(Invoice)
        .filter(Invoice.recurring_schedule_id == schedule_id, Invoice.occurrence_date == occurrence)
        .first()
    )


def _advance_schedule(schedule: RecurringSchedule, occurrence: date) -> None:
    schedule.last_run_date = occurrence
    schedule.next_run_date = advance(occurrence, schedule.interval)


def materialize_occurrence(db: Session, schedule: RecurringSchedule, occurrence: date) -> Optional[Invoice]:
    """Create the draft invoice for one occurrence and advance the schedule.

    Returns None when the occurrence is skipped: the customer is gone (schedule left
    as is) or the occurrence already has an invoice (schedule advanced only).
    """
    customer = db.get(Customer, schedule.customer_id)
    if customer is None:
        logger.warning(
            "Customer %s not found for recurring schedule %s; skipping %s",
            schedule.customer_id,
            schedule.id,
            occurrence,
        )
        return None

    existing = _already_materialized(db, schedule.id, occurrence)
    if existing is not None:
        logger.info("Occurrence %s of schedule %s already invoiced as %s", occurrence, schedule.id, existing.id)
        if schedule.next_run_date <= occurrence:
            _advance_schedule(schedule, occurrence)
            db.commit()
        return None

    terms_days = get_settings().payment_terms_days
    invoice = new_invoice(
        db,
        owner_id=schedule.owner_id,
        customer=customer,
        invoice_number=generate_invoice_number(),
        currency=schedule.currency,
        line_items=schedule.line_items,
        issue_date=occurrence.isoformat(),
        due_date=(occurrence + timedelta(days=terms_days)).isoformat(),
        note=schedule.note,
    )
    invoice.recurring_schedule_id = schedule.id
    invoice.occurrence_date = occurrence
    _advance_schedule(schedule, occurrence)

    try:
        db.commit()
    except IntegrityError:
        # A concurrent run materialized the same occurrence first.
        db.rollback()
        logger.warning("Duplicate materialization of schedule %s on %s rejected", schedule.id, occurrence)
        return None

    db.refresh(invoice)
    logger.info(
        "Generated invoice %s (%s) for schedule %s occurrence %s; next run %s",
        invoice.id,
        invoice.invoice_number,
        schedule.id,
        occurrence,
        schedule.next_run_date,
    )
    return invoice


def get_due_schedules(db: Session, cutoff: Optional[date] = None) -> List[RecurringSchedule]:
    target = cutoff or utc_tomorrow()
    return (
        db.query(RecurringSchedule)
        .filter(RecurringSchedule.status == ACTIVE, RecurringSchedule.next_run_date <= target)
        .order_by(RecurringSchedule.next_run_date.asc(), RecurringSchedule.id.asc())
        .all()
    )


def process_due_schedules(db: Session, cutoff: Optional[date] = None) -> Dict[str, int]:
    """Materialize the current occurrence of every active schedule due on or before ``cutoff``.

    ``cutoff`` defaults to UTC tomorrow. Each schedule is its own transaction; a
    failure is logged and rolled back without touching its siblings.
    """
    target = cutoff or utc_tomorrow()
    logger.info("Processing recurring invoices due on or before %s", target)

    schedule_ids = [schedule.id for schedule in get_due_schedules(db, target)]
    results = {"total": len(schedule_ids), "success": 0, "failed": 0, "skipped": 0}

    for schedule_id in schedule_ids:
        try:
            schedule = db.get(RecurringSchedule, schedule_id)
            if schedule is None or schedule.status != ACTIVE or schedule.next_run_date > target:
                results["skipped"] += 1
                continue
            invoice = materialize_occurrence(db, schedule, schedule.next_run_date)
        except Exception:
            db.rollback()
            logger.exception("Error generating invoice for recurring schedule %s", schedule_id)
            results["failed"] += 1
            continue

        if invoice is None:
            results["skipped"] += 1
        else:
            results["success"] += 1

    logger.info(
        "Recurring run complete: %s successful, %s failed, %s skipped (of %s total)",
        results["success"],
        results["failed"],
        results["skipped"],
        results["total"],
    )
    return results
