from fastapi import APIRouter, HTTPException, Depends
from sqlmodel import Session

from infra.database.connection import get_session
from api.deps import Viewer, require_admin
from api.schemas.common import FlagUpdate
from app.services.feature_flag_app_service import FeatureFlagAppService

router = APIRouter()

@router.get("/api/feature-flags")
def get_flag_map(session: Session = Depends(get_session)):
    service = FeatureFlagAppService(session)
    return service.get_flag_map()

@router.get("/api/admin/feature-flags")
def get_flags(session: Session = Depends(get_session), admin: Viewer = Depends(require_admin)):
    service = FeatureFlagAppService(session)
    return service.get_flags()

@router.put("/api/admin/feature-flags/{flag_id}")
def set_flag(flag_id: str, req: FlagUpdate, session: Session = Depends(get_session),
             admin: Viewer = Depends(require_admin)):
    service = FeatureFlagAppService(session)
    flag = service.set_enabled(flag_id, req.enabled)
    if not flag:
        raise HTTPException(status_code=404, detail="Feature flag not found")
    return flag

@router.post("/api/admin/feature-flags/{flag_id}/toggle")
def toggle_flag(flag_id: str, session: Session = Depends(get_session),
                admin: Viewer = Depends(require_admin)):
    service = FeatureFlagAppService(session)
    flag = service.toggle(flag_id)
    if not flag:
        raise HTTPException(status_code=404, detail="Feature flag not found")
    return flag
