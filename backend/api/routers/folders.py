from fastapi import APIRouter, HTTPException, Depends
from sqlmodel import Session

from infra.database.connection import get_session
from api.deps import Viewer, require_user
from api.schemas.common import FolderCreate, FolderUpdate, FolderMove
from app.services.folder_app_service import FolderAppService

router = APIRouter()

@router.get("/api/folders")
def get_folders(session: Session = Depends(get_session), viewer: Viewer = Depends(require_user)):
    service = FolderAppService(session)
    return service.get_folders(viewer.user_id)

@router.post("/api/folders")
def create_folder(folder: FolderCreate, session: Session = Depends(get_session),
                  viewer: Viewer = Depends(require_user)):
    if not folder.name.strip():
        raise HTTPException(status_code=400, detail="Folder name is required")
    service = FolderAppService(session)
    return service.create_folder(viewer.user_id, folder.name.strip(), folder.color)

@router.put("/api/folders/{folder_id}")
def update_folder(folder_id: str, folder: FolderUpdate, session: Session = Depends(get_session),
                  viewer: Viewer = Depends(require_user)):
    service = FolderAppService(session)
    updated = service.update_folder(folder_id, viewer.user_id, folder.model_dump(exclude_unset=True))
    if not updated:
        raise HTTPException(status_code=404, detail="Folder not found")
    return updated

@router.delete("/api/folders/{folder_id}")
def delete_folder(folder_id: str, session: Session = Depends(get_session),
                  viewer: Viewer = Depends(require_user)):
    service = FolderAppService(session)
    if not service.delete_folder(folder_id, viewer.user_id):
        raise HTTPException(status_code=404, detail="Folder not found")
    return {"ok": True}

@router.put("/api/prompts/{prompt_id}/folder")
def move_prompt(prompt_id: str, move: FolderMove, session: Session = Depends(get_session),
                viewer: Viewer = Depends(require_user)):
    service = FolderAppService(session)
    if not service.move_prompt(prompt_id, viewer.user_id, move.folder_id):
        raise HTTPException(status_code=404, detail="Prompt or folder not found")
    return {"ok": True}
