from fastapi import APIRouter, HTTPException, Depends
from sqlmodel import Session

from infra.database.connection import get_session
from api.deps import Viewer, require_user
from app.services.engagement_app_service import EngagementAppService

router = APIRouter()

@router.get("/api/favorites")
def get_favorites(session: Session = Depends(get_session), viewer: Viewer = Depends(require_user)):
    service = EngagementAppService(session)
    return service.get_favorites(viewer.user_id)

@router.post("/api/prompts/{prompt_id}/favorite")
def toggle_favorite(prompt_id: str, session: Session = Depends(get_session),
                    viewer: Viewer = Depends(require_user)):
    service = EngagementAppService(session)
    result = service.toggle_favorite(viewer.user_id, prompt_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Prompt not found")
    return result

@router.get("/api/likes")
def get_likes(session: Session = Depends(get_session), viewer: Viewer = Depends(require_user)):
    service = EngagementAppService(session)
    return service.get_likes(viewer.user_id)

@router.post("/api/prompts/{prompt_id}/like")
def toggle_like(prompt_id: str, session: Session = Depends(get_session),
                viewer: Viewer = Depends(require_user)):
    service = EngagementAppService(session)
    result = service.toggle_like(viewer.user_id, prompt_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Prompt not found")
    return result
