"""User sync and preference routes."""

import hmac

from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from backend.app.core.security import get_current_user
from backend.app.core.settings import get_settings
from backend.app.db.session import get_db
from backend.app.models.user import User
from backend.app.schemas.user import UserCurrencyUpdate, UserRead, UserSync
from backend.app.services.users import sync_user, update_default_currency

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/sync", response_model=UserRead)
async def sync_user_from_identity_provider(
    payload: UserSync,
    x_webhook_secret: str | None = Header(default=None),
    db: Session = Depends(get_db),
):
    expected = get_settings().webhook_secret
    if not x_webhook_secret or not hmac.compare_digest(x_webhook_secret, expected):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid webhook secret")
    return sync_user(db, payload.external_id, name=payload.name, email=payload.email)


@router.get("/me", response_model=UserRead)
async def read_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.patch("/me/currency", response_model=UserRead)
async def update_my_currency(
    payload: UserCurrencyUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return update_default_currency(db, current_user, payload.currency)
