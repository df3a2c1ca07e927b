"""User sync from the identity provider and per-user preferences."""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from backend.app.models.user import User

logger = logging.getLogger(__name__)


def sync_user(db: Session, external_id: str, name: Optional[str] = None, email: Optional[str] = None) -> User:
    """Insert or refresh the user row for an identity-provider subject."""
    user = db.query(User).filter(User.external_id == external_id).first()
    if user:
        user.name = name
        user.email = email
    else:
        user = User(external_id=external_id, name=name, email=email, default_currency="USD")
        db.add(user)
        logger.info("Created user for external id %s", external_id)
    db.commit()
    db.refresh(user)
    return user


def update_default_currency(db: Session, user: User, currency: str) -> User:
    user.default_currency = currency
    db.commit()
    db.refresh(user)
    return user


def display_currency_for(user: Optional[User]) -> str:
    return (user.default_currency if user and user.default_currency else "USD").upper()
