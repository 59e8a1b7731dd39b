import uuid
from typing import Optional, List
from datetime import datetime
from sqlmodel import Field, SQLModel
from sqlalchemy import JSON, Column

def new_id() -> str:
    return str(uuid.uuid4())

class Prompt(SQLModel, table=True):
    __tablename__ = "prompts"
    """
    プロンプト本体。author の表示名/アバターは profiles から読み出し時に付与する。
    """
    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(index=True)
    title: str
    content: str
    notes: Optional[str] = Field(default=None)
    tags: List[str] = Field(default=[], sa_column=Column(JSON))
    phase: str = Field(default="Implementation")
    visibility: str = Field(default="Private")
    like_count: int = Field(default=0)
    use_count: int = Field(default=0)
    is_pinned: bool = Field(default=False)
    rating: Optional[str] = Field(default=None)
    parent_id: Optional[str] = Field(default=None)
    folder_id: Optional[str] = Field(default=None)
    last_used_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

class PromptHistory(SQLModel, table=True):
    __tablename__ = "prompt_history"
    id: Optional[int] = Field(default=None, primary_key=True)
    prompt_id: str = Field(index=True)
    title: str
    content: str
    created_at: datetime = Field(default_factory=datetime.now)
