"""Invoice model for billing."""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import composite, relationship

from backend.app.core.time import utc_now
from backend.app.db.base_class import Base
from backend.app.models.customer import CustomerSnapshot


class Invoice(Base):
    __tablename__ = "invoices"
    # One invoice per recurring occurrence; manual invoices leave both columns NULL.
    __table_args__ = (
        UniqueConstraint("recurring_schedule_id", "occurrence_date", name="uq_invoices_schedule_occurrence"),
    )

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    # Plain reference: customers can be deleted while their invoices survive.
    customer_id = Column(Integer, nullable=False, index=True)

    customer_name = Column(String(255), nullable=True)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(50), nullable=True)
    customer_address = Column(String(512), nullable=True)
    shipping_address = Column(String(512), nullable=True)
    customer_tax_id = Column(String(64), nullable=True)
    customer_gst = Column(String(64), nullable=True)
    customer = composite(
        CustomerSnapshot,
        customer_name,
        customer_email,
        customer_phone,
        customer_address,
        shipping_address,
        customer_tax_id,
        customer_gst,
    )

    invoice_number = Column(String(64), nullable=False)
    issue_date = Column(String(32), nullable=True)
    due_date = Column(String(32), nullable=True)
    currency = Column(String(3), nullable=False, default="USD")

    subtotal_cents = Column(Integer, nullable=False, default=0)
    tax_cents = Column(Integer, nullable=False, default=0)
    discount_cents = Column(Integer, nullable=False, default=0)
    total_cents = Column(Integer, nullable=False, default=0)
    total_cents_usd = Column(Integer, nullable=True)

    status = Column(String(20), default="draft", nullable=False, index=True)
    note = Column(Text, nullable=True)

    recurring_schedule_id = Column(Integer, nullable=True, index=True)
    occurrence_date = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)

    items = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.id",
    )
    owner = relationship("User", back_populates="invoices")
    payments = relationship(
        "Payment",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="Payment.id",
    )
