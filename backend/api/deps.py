from typing import Optional
from fastapi import Depends, Header, HTTPException
from pydantic import BaseModel

from config import settings

class Viewer(BaseModel):
    user_id: str
    email: Optional[str] = None
    display_name: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.user_id in settings.ADMIN_USER_IDS

def get_viewer(
    x_user_id: Optional[str] = Header(default=None),
    x_user_email: Optional[str] = Header(default=None),
    x_user_name: Optional[str] = Header(default=None),
) -> Optional[Viewer]:
    """
    認証プロバイダの代わりにリクエストヘッダから閲覧者を取り出す。ヘッダが無ければゲスト (None)。
    """
    if not x_user_id:
        return None
    return Viewer(user_id=x_user_id, email=x_user_email, display_name=x_user_name)

def require_user(viewer: Optional[Viewer] = Depends(get_viewer)) -> Viewer:
    if viewer is None:
        raise HTTPException(status_code=401, detail="ログインが必要です")
    return viewer

def require_admin(viewer: Viewer = Depends(require_user)) -> Viewer:
    if not viewer.is_admin:
        raise HTTPException(status_code=403, detail="Admin only")
    return viewer
