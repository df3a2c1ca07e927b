"""Dashboard KPI and revenue analytics endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.app.core.security import get_current_user
from backend.app.db.session import get_db
from backend.app.models.user import User
from backend.app.services.analytics import get_dashboard_kpis, get_revenue_analytics

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/metrics")
async def get_dashboard_metrics(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return get_dashboard_kpis(db, owner_id=current_user.id)


@router.get("/analytics")
async def get_analytics(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    analytics = get_revenue_analytics(db, owner_id=current_user.id)
    dashboard = get_dashboard_kpis(db, owner_id=current_user.id)
    return {**analytics, "dashboard_kpis_by_type": dashboard["kpis_by_type"]}
