"""Recurring billing schedule model."""

from sqlalchemy import JSON, Column, Date, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from backend.app.core.time import utc_now
from backend.app.db.base_class import Base


class RecurringSchedule(Base):
    __tablename__ = "recurring_schedules"
    # Ids are never reused: invoices key their occurrence on the schedule id.
    __table_args__ = (
        Index("ix_recurring_status_next_run", "status", "next_run_date"),
        {"sqlite_autoincrement": True},
    )

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    customer_id = Column(Integer, nullable=False, index=True)
    currency = Column(String(3), nullable=False, default="USD")
    # [{"description": str, "quantity": number, "unit_price_cents": int}, ...]
    line_items = Column(JSON, nullable=False, default=list)
    note = Column(Text, nullable=True)
    interval = Column(String(20), nullable=False)
    next_run_date = Column(Date, nullable=False)
    last_run_date = Column(Date, nullable=True)
    status = Column(String(20), nullable=False, default="active")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    owner = relationship("User", back_populates="recurring_schedules")
