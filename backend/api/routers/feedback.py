import time
import uuid
from typing import Optional
from fastapi import APIRouter, HTTPException, Depends, UploadFile, File
from sqlmodel import Session

from infra.database.connection import get_session
from infra.storage.object_storage import StorageValidationError, object_storage, extension_for
from domain.constants import SCREENSHOT_BUCKET
from api.deps import Viewer, get_viewer, require_admin
from api.schemas.common import FeedbackCreate, FeedbackLikeRequest, StatusUpdate
from app.services.feedback_app_service import FeedbackAppService

router = APIRouter()

@router.get("/api/feedback")
def get_feedback(status: Optional[str] = None, session: Session = Depends(get_session)):
    service = FeedbackAppService(session)
    return service.get_feedback(status)

@router.post("/api/feedback")
def create_feedback(feedback: FeedbackCreate, session: Session = Depends(get_session),
                    viewer: Optional[Viewer] = Depends(get_viewer)):
    if not feedback.title.strip():
        raise HTTPException(status_code=400, detail="Title is required")
    service = FeedbackAppService(session)
    return service.create_feedback(
        feedback.model_dump(),
        author_id=viewer.user_id if viewer else None,
        author_name=(viewer.display_name or "") if viewer else "",
    )

@router.post("/api/feedback/screenshot")
async def upload_screenshot(file: UploadFile = File(...)):
    data = await file.read()
    content_type = file.content_type or ""
    path = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}.{extension_for(content_type)}"
    try:
        object_storage.upload(SCREENSHOT_BUCKET, path, data, content_type)
    except StorageValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"url": object_storage.get_public_url(SCREENSHOT_BUCKET, path)}

@router.post("/api/feedback/{feedback_id}/like")
def toggle_feedback_like(feedback_id: str, req: FeedbackLikeRequest, session: Session = Depends(get_session)):
    service = FeedbackAppService(session)
    result = service.increment_feedback_like(feedback_id, req.session_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Feedback not found")
    return result

@router.get("/api/feedback/liked")
def get_liked_feedback(session_id: str, session: Session = Depends(get_session)):
    service = FeedbackAppService(session)
    return service.get_liked_ids(session_id)

# --- Admin ---

@router.put("/api/admin/feedback/{feedback_id}/status")
def update_feedback_status(feedback_id: str, req: StatusUpdate, session: Session = Depends(get_session),
                           admin: Viewer = Depends(require_admin)):
    service = FeedbackAppService(session)
    try:
        feedback = service.update_status(feedback_id, req.status)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not feedback:
        raise HTTPException(status_code=404, detail="Feedback not found")
    return feedback

@router.delete("/api/admin/feedback/{feedback_id}")
def delete_feedback(feedback_id: str, session: Session = Depends(get_session),
                    admin: Viewer = Depends(require_admin)):
    service = FeedbackAppService(session)
    if not service.delete_feedback(feedback_id):
        raise HTTPException(status_code=404, detail="Feedback not found")
    return {"ok": True}
