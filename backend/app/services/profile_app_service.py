import time
from typing import Optional
from sqlmodel import Session
from domain.models.profile import Profile
from domain.constants import AVATAR_BUCKET
from infra.repositories.profile_repository import ProfileRepository
from infra.storage.object_storage import LocalObjectStorage, object_storage, extension_for
from utils.logger import get_logger

logger = get_logger(__name__)

def default_display_name(display_name: Optional[str], email: Optional[str]) -> str:
    if display_name:
        return display_name
    if email:
        return email.split("@")[0]
    return "User"

class ProfileAppService:
    def __init__(self, session: Session, storage: Optional[LocalObjectStorage] = None):
        self.session = session
        self.repository = ProfileRepository(session)
        self.storage = storage or object_storage

    def get_profile(self, user_id: str) -> Optional[Profile]:
        return self.repository.get_by_id(user_id)

    def ensure_profile(self, user_id: str, display_name: Optional[str] = None,
                       email: Optional[str] = None, avatar_url: Optional[str] = None) -> Profile:
        """プロフィール行が無い認証ユーザーのために行を作る (既存行はそのまま)"""
        profile = self.repository.get_by_id(user_id)
        if profile:
            return profile
        logger.info(f"Creating missing profile for {user_id}")
        return self.repository.upsert(
            user_id,
            display_name=default_display_name(display_name, email),
            avatar_url=avatar_url or "",
        )

    def update_profile(self, user_id: str, display_name: Optional[str] = None,
                       avatar_url: Optional[str] = None) -> Profile:
        return self.repository.upsert(user_id, display_name=display_name, avatar_url=avatar_url)

    def upload_avatar(self, user_id: str, data: bytes, content_type: str) -> Profile:
        """
        <user_id>.<ext> に保存し、キャッシュ回避用の ?t= を付けた URL をプロフィールに書き込む。
        検証エラーは StorageValidationError として呼び出し元に伝える。
        """
        path = f"{user_id}.{extension_for(content_type)}"
        self.storage.upload(AVATAR_BUCKET, path, data, content_type, upsert=True)
        url = f"{self.storage.get_public_url(AVATAR_BUCKET, path)}?t={int(time.time() * 1000)}"
        return self.repository.upsert(user_id, avatar_url=url)
