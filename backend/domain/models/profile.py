from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel

class Profile(SQLModel, table=True):
    __tablename__ = "profiles"
    id: str = Field(primary_key=True)
    display_name: Optional[str] = Field(default=None)
    avatar_url: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.now)
