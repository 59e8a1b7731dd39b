from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel

class Notification(SQLModel, table=True):
    __tablename__ = "notifications"
    """
    他ユーザーのいいね/お気に入り/アレンジによって作成される通知
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    type: str
    prompt_id: str
    prompt_title: str = Field(default="")
    actor_id: Optional[str] = Field(default=None)
    actor_name: str = Field(default="")
    read: bool = Field(default=False)
    created_at: datetime = Field(default_factory=datetime.now)
