from typing import Optional
from fastapi import APIRouter, HTTPException, Depends
from sqlmodel import Session

from infra.database.connection import get_session
from api.deps import Viewer, get_viewer, require_admin
from api.schemas.common import AnalyticsEventCreate, KpiAggregateRequest
from app.services.analytics_app_service import AnalyticsAppService

router = APIRouter()

@router.post("/api/analytics/events")
def record_event(event: AnalyticsEventCreate, session: Session = Depends(get_session),
                 viewer: Optional[Viewer] = Depends(get_viewer)):
    service = AnalyticsAppService(session)
    try:
        service.record_event(event.event_name, event.session_id,
                             viewer.user_id if viewer else None, event.metadata)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"ok": True}

@router.post("/api/admin/analytics/aggregate")
def aggregate_daily_kpi(req: KpiAggregateRequest, session: Session = Depends(get_session),
                        admin: Viewer = Depends(require_admin)):
    service = AnalyticsAppService(session)
    return service.aggregate_daily_kpi(req.target_date)

@router.get("/api/admin/analytics/kpi")
def get_recent_kpi(days: int = 7, session: Session = Depends(get_session),
                   admin: Viewer = Depends(require_admin)):
    service = AnalyticsAppService(session)
    return service.fetch_recent_kpi(days)
