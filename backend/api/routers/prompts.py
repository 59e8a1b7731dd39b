from typing import Optional
from fastapi import APIRouter, HTTPException, Depends
from sqlmodel import Session

from infra.database.connection import get_session
from api.deps import Viewer, get_viewer, require_user
from api.schemas.common import PromptCreate, PromptUpdate
from app.services.prompt_app_service import PromptAppService, PinLimitError, serialize_prompt
from app.services.profile_app_service import ProfileAppService

router = APIRouter()

def _serialize(session: Session, prompt):
    profile = ProfileAppService(session).get_profile(prompt.user_id)
    return serialize_prompt(prompt, profile)

@router.get("/api/prompts")
def get_prompts(session: Session = Depends(get_session), viewer: Optional[Viewer] = Depends(get_viewer)):
    service = PromptAppService(session)
    return service.get_prompts(viewer.user_id if viewer else None)

@router.get("/api/prompts/{prompt_id}")
def get_prompt(prompt_id: str, session: Session = Depends(get_session),
               viewer: Optional[Viewer] = Depends(get_viewer)):
    service = PromptAppService(session)
    prompt = service.get_visible_prompt(prompt_id, viewer.user_id if viewer else None)
    if not prompt:
        raise HTTPException(status_code=404, detail="Prompt not found")
    return _serialize(session, prompt)

@router.post("/api/prompts")
def create_prompt(prompt: PromptCreate, session: Session = Depends(get_session),
                  viewer: Viewer = Depends(require_user)):
    # プロフィールが無いユーザーはここで作ってから保存する
    ProfileAppService(session).ensure_profile(viewer.user_id, viewer.display_name, viewer.email)
    service = PromptAppService(session)
    created = service.create_prompt(viewer.user_id, prompt.model_dump())
    return _serialize(session, created)

@router.put("/api/prompts/{prompt_id}")
def update_prompt(prompt_id: str, prompt: PromptUpdate, session: Session = Depends(get_session),
                  viewer: Viewer = Depends(require_user)):
    service = PromptAppService(session)
    try:
        db_prompt = service.update_prompt(prompt_id, viewer.user_id, prompt.model_dump(exclude_unset=True))
    except PinLimitError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not db_prompt:
        raise HTTPException(status_code=404, detail="Prompt not found")
    return _serialize(session, db_prompt)

@router.delete("/api/prompts/{prompt_id}")
def delete_prompt(prompt_id: str, session: Session = Depends(get_session),
                  viewer: Viewer = Depends(require_user)):
    service = PromptAppService(session)
    success = service.delete_prompt(prompt_id, viewer.user_id)
    if not success:
        raise HTTPException(status_code=404, detail="Prompt not found")
    return {"ok": True}

@router.post("/api/prompts/{prompt_id}/fork")
def fork_prompt(prompt_id: str, session: Session = Depends(get_session),
                viewer: Viewer = Depends(require_user)):
    ProfileAppService(session).ensure_profile(viewer.user_id, viewer.display_name, viewer.email)
    service = PromptAppService(session)
    forked = service.fork_prompt(prompt_id, viewer.user_id)
    if not forked:
        raise HTTPException(status_code=404, detail="Prompt not found")
    return _serialize(session, forked)

@router.get("/api/prompts/{prompt_id}/history")
def get_history(prompt_id: str, session: Session = Depends(get_session),
                viewer: Optional[Viewer] = Depends(get_viewer)):
    service = PromptAppService(session)
    history = service.get_history(prompt_id, viewer.user_id if viewer else None)
    if history is None:
        raise HTTPException(status_code=404, detail="Prompt not found")
    return history

@router.post("/api/prompts/{prompt_id}/use")
def increment_use_count(prompt_id: str, session: Session = Depends(get_session),
                        viewer: Optional[Viewer] = Depends(get_viewer)):
    service = PromptAppService(session)
    if not service.get_visible_prompt(prompt_id, viewer.user_id if viewer else None):
        raise HTTPException(status_code=404, detail="Prompt not found")
    return {"prompt_id": prompt_id, "use_count": service.increment_use_count(prompt_id)}
