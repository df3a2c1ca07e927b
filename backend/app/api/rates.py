"""Exchange rate endpoints."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.app.core.security import get_current_user
from backend.app.db.session import get_db
from backend.app.models.user import User
from backend.app.schemas.currency import ExchangeRateRead
from backend.app.services.currency import list_rates

router = APIRouter(prefix="/rates", tags=["rates"])


@router.get("/", response_model=List[ExchangeRateRead])
async def get_rates(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return list_rates(db)
