from fastapi import APIRouter, Depends
from sqlmodel import Session

from infra.database.connection import get_session
from api.deps import Viewer, require_user
from app.services.notification_app_service import NotificationAppService

router = APIRouter()

@router.get("/api/notifications")
def get_notifications(limit: int = 50, session: Session = Depends(get_session),
                      viewer: Viewer = Depends(require_user)):
    service = NotificationAppService(session)
    return service.get_notifications(viewer.user_id, limit)

@router.post("/api/notifications/read-all")
def mark_all_read(session: Session = Depends(get_session), viewer: Viewer = Depends(require_user)):
    service = NotificationAppService(session)
    return {"updated": service.mark_all_read(viewer.user_id)}
