from datetime import datetime
from sqlmodel import Field, SQLModel
from domain.models.prompt import new_id

class Folder(SQLModel, table=True):
    __tablename__ = "folders"
    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(index=True)
    name: str
    color: str = Field(default="#6366f1")
    sort_order: int = Field(default=0)
    created_at: datetime = Field(default_factory=datetime.now)
