"""Customer model and the snapshot value object copied onto invoices."""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from backend.app.core.time import utc_now
from backend.app.db.base_class import Base


@dataclass(frozen=True)
class CustomerSnapshot:
    """Customer display fields as they were when an invoice was written."""

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    shipping_address: Optional[str] = None
    tax_id: Optional[str] = None
    gst_number: Optional[str] = None


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False, index=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    billing_address = Column(String(512), nullable=True)
    shipping_address = Column(String(512), nullable=True)
    tax_id = Column(String(64), nullable=True)
    gst_number = Column(String(64), nullable=True)
    payment_terms_days = Column(Integer, nullable=True)
    currency = Column(String(3), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    owner = relationship("User", back_populates="customers")

    def snapshot(self) -> CustomerSnapshot:
        return CustomerSnapshot(
            name=self.name,
            email=self.email,
            phone=self.phone,
            address=self.billing_address,
            shipping_address=self.shipping_address,
            tax_id=self.tax_id,
            gst_number=self.gst_number,
        )
