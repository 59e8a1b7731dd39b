from fastapi import APIRouter, Depends, UploadFile, File, HTTPException
from fastapi.responses import Response
from sqlmodel import Session

from infra.database.connection import get_session
from domain.services.import_export import ImportFormatError
from api.deps import Viewer, require_user
from app.services.profile_app_service import ProfileAppService
from app.services.transfer_app_service import TransferAppService

router = APIRouter()

@router.get("/api/export")
def export_prompts(format: str = "json", session: Session = Depends(get_session),
                   viewer: Viewer = Depends(require_user)):
    """自分のプロンプトを JSON / Markdown でダウンロード"""
    service = TransferAppService(session)
    try:
        content, media_type, filename = service.export_prompts(viewer.user_id, format)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )

@router.post("/api/import")
async def import_prompts(file: UploadFile = File(...), session: Session = Depends(get_session),
                         viewer: Viewer = Depends(require_user)):
    content = await file.read()
    try:
        raw = content.decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="JSONの解析に失敗しました")

    ProfileAppService(session).ensure_profile(viewer.user_id, viewer.display_name, viewer.email)
    service = TransferAppService(session)
    try:
        return service.import_prompts(viewer.user_id, raw)
    except ImportFormatError as e:
        raise HTTPException(status_code=400, detail=str(e))
