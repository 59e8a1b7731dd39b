from datetime import datetime
from typing import Literal, Optional, Tuple
from pydantic import BaseModel, ConfigDict

from domain.constants import VISIBILITY_PRIVATE

class AuthState(BaseModel):
    """
    認証状態。loading の間はストアは何も取得しない。
    """
    model_config = ConfigDict(frozen=True)

    status: Literal["loading", "guest", "authenticated"] = "loading"
    user_id: Optional[str] = None
    email: Optional[str] = None
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None

    @classmethod
    def loading(cls) -> "AuthState":
        return cls(status="loading")

    @classmethod
    def guest(cls) -> "AuthState":
        return cls(status="guest")

    @classmethod
    def authenticated(cls, user_id: str, email: Optional[str] = None,
                      display_name: Optional[str] = None, avatar_url: Optional[str] = None) -> "AuthState":
        return cls(status="authenticated", user_id=user_id, email=email,
                   display_name=display_name, avatar_url=avatar_url)

    @property
    def is_authenticated(self) -> bool:
        return self.status == "authenticated" and bool(self.user_id)

    @property
    def is_guest(self) -> bool:
        return self.status == "guest"

class Lineage(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_original: bool = True
    parent: Optional[str] = None

class PromptEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    content: str
    tags: Tuple[str, ...] = ()
    phase: str = "Implementation"
    visibility: str = VISIBILITY_PRIVATE
    notes: str = ""
    rating: Optional[str] = None
    like_count: int = 0
    use_count: int = 0
    is_pinned: bool = False
    lineage: Lineage = Lineage()
    author_id: str = ""
    author_name: str = ""
    author_avatar_url: Optional[str] = None
    folder_id: Optional[str] = None
    last_used_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class PromptInput(BaseModel):
    title: str
    content: str
    tags: Tuple[str, ...] = ()
    phase: str = "Implementation"
    visibility: str = VISIBILITY_PRIVATE
    notes: str = ""
    lineage: Lineage = Lineage()

class FolderEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    color: str = "#6366f1"
    sort_order: int = 0

class HistoryEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    title: str
    content: str

class AppNotification(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    type: str
    prompt_id: Optional[str] = None
    prompt_title: str = ""
    actor_name: str = ""
    timestamp: datetime
    read: bool = False
