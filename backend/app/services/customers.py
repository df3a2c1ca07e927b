"""Customer service helpers."""

import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from backend.app.core.errors import NotFound
from backend.app.models.customer import Customer
from backend.app.schemas.customer import CustomerCreate, CustomerUpdate

logger = logging.getLogger(__name__)


def get_owned_customer(db: Session, owner_id: int, customer_id: int) -> Customer:
    customer = db.query(Customer).filter(Customer.id == customer_id, Customer.owner_id == owner_id).first()
    if not customer:
        raise NotFound("Customer not found", customer_id=customer_id)
    return customer


def list_customers(db: Session, owner_id: int, search: Optional[str] = None) -> List[Customer]:
    query = db.query(Customer).filter(Customer.owner_id == owner_id)
    if search:
        query = query.filter(func.lower(Customer.name).contains(search.strip().lower()))
    return query.order_by(Customer.name.asc(), Customer.id.asc()).all()


def get_customer_by_name(db: Session, owner_id: int, name: str) -> Optional[Customer]:
    """Exact, case-insensitive name lookup within one owner's customers."""
    return (
        db.query(Customer)
        .filter(Customer.owner_id == owner_id, func.lower(Customer.name) == name.strip().lower())
        .order_by(Customer.id.asc())
        .first()
    )


def create_customer(db: Session, owner_id: int, payload: CustomerCreate) -> Customer:
    customer = Customer(owner_id=owner_id, **payload.model_dump())
    db.add(customer)
    db.commit()
    db.refresh(customer)
    logger.info("Created customer %s for user %s", customer.id, owner_id)
    return customer


def update_customer(db: Session, owner_id: int, customer_id: int, payload: CustomerUpdate) -> Customer:
    customer = get_owned_customer(db, owner_id, customer_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(customer, field, value)
    db.commit()
    db.refresh(customer)
    return customer


def delete_customer(db: Session, owner_id: int, customer_id: int) -> None:
    # Invoices keep their customer snapshot; nothing cascades.
    customer = get_owned_customer(db, owner_id, customer_id)
    db.delete(customer)
    db.commit()
    logger.info("Deleted customer %s for user %s", customer_id, owner_id)
