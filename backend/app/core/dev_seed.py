import logging
import os

from sqlalchemy.orm import Session

from backend.app.core.security import create_access_token
from backend.app.db.base import Base
from backend.app.db.session import engine
from backend.app.models.user import User

logger = logging.getLogger(__name__)

DEFAULT_DEV_EXTERNAL_ID = "dev|owner"
DEFAULT_DEV_EMAIL = "owner@test.com"


def ensure_schema() -> None:
    Base.metadata.create_all(bind=engine)


def ensure_default_dev_owner(db: Session) -> None:
    """
    Create a default owner for local development and log a bearer token for it.
    Identity normally comes from the upstream provider, so this is the only way to
    call the API locally without one. Skipped outside development and under pytest.
    """
    if os.getenv("PYTEST_CURRENT_TEST") or os.getenv("ENVIRONMENT", "development") != "development":
        return

    user = db.query(User).filter(User.external_id == DEFAULT_DEV_EXTERNAL_ID).first()
    if user is None:
        user = User(external_id=DEFAULT_DEV_EXTERNAL_ID, email=DEFAULT_DEV_EMAIL, name="Dev Owner")
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info("Created development owner %s", DEFAULT_DEV_EMAIL)

    logger.info("Development bearer token for %s: %s", DEFAULT_DEV_EMAIL, create_access_token(user.id))
