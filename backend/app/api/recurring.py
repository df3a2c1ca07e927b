"""Recurring invoice schedule routes."""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from backend.app.core.security import get_current_user
from backend.app.db.session import get_db
from backend.app.models.user import User
from backend.app.schemas.recurring import RecurringCreate, RecurringCreated, RecurringRead, RecurringUpdate, ScheduleStatus
from backend.app.services import recurring as recurring_service

router = APIRouter(prefix="/recurring", tags=["recurring"])


@router.get("/", response_model=List[RecurringRead])
async def list_schedules(
    status: ScheduleStatus | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return recurring_service.list_schedules(db, current_user.id, status=status)


@router.post("/", response_model=RecurringCreated, status_code=status.HTTP_201_CREATED)
async def create_schedule(
    payload: RecurringCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return recurring_service.create_schedule(db, current_user.id, payload)


@router.get("/{schedule_id}", response_model=RecurringRead)
async def get_schedule(schedule_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return recurring_service.get_owned_schedule(db, current_user.id, schedule_id)


@router.patch("/{schedule_id}", response_model=RecurringRead)
async def update_schedule(
    schedule_id: int,
    payload: RecurringUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return recurring_service.update_schedule(db, current_user.id, schedule_id, payload)


@router.delete("/{schedule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_schedule(schedule_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    recurring_service.delete_schedule(db, current_user.id, schedule_id)
