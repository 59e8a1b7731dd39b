import mimetypes
from fastapi import APIRouter, Depends, UploadFile, File, HTTPException
from fastapi.responses import Response
from sqlmodel import Session

from infra.database.connection import get_session
from infra.storage.object_storage import StorageValidationError, object_storage
from api.deps import Viewer, require_user
from api.schemas.common import ProfileUpdate
from app.services.profile_app_service import ProfileAppService

router = APIRouter()

@router.get("/api/profiles/me")
def get_my_profile(session: Session = Depends(get_session), viewer: Viewer = Depends(require_user)):
    service = ProfileAppService(session)
    return service.ensure_profile(viewer.user_id, viewer.display_name, viewer.email)

@router.put("/api/profiles/me")
def update_my_profile(profile: ProfileUpdate, session: Session = Depends(get_session),
                      viewer: Viewer = Depends(require_user)):
    service = ProfileAppService(session)
    service.ensure_profile(viewer.user_id, viewer.display_name, viewer.email)
    return service.update_profile(viewer.user_id, profile.display_name, profile.avatar_url)

@router.get("/api/profiles/{user_id}")
def get_profile(user_id: str, session: Session = Depends(get_session)):
    profile = ProfileAppService(session).get_profile(user_id)
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile

@router.post("/api/profiles/me/avatar")
async def upload_avatar(file: UploadFile = File(...), session: Session = Depends(get_session),
                        viewer: Viewer = Depends(require_user)):
    data = await file.read()
    service = ProfileAppService(session)
    service.ensure_profile(viewer.user_id, viewer.display_name, viewer.email)
    try:
        return service.upload_avatar(viewer.user_id, data, file.content_type or "")
    except StorageValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

@router.get("/storage/{bucket}/{path:path}")
def get_object(bucket: str, path: str):
    """アップロード済みオブジェクトの公開URL"""
    try:
        content = object_storage.download(bucket, path)
    except (FileNotFoundError, StorageValidationError):
        raise HTTPException(status_code=404, detail="Object not found")
    media_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
    return Response(content=content, media_type=media_type)
