from datetime import datetime
from sqlmodel import Field, SQLModel

# (user, prompt) ごとに1行。複合主キーで重複を防ぐ
class Favorite(SQLModel, table=True):
    __tablename__ = "favorites"
    user_id: str = Field(primary_key=True)
    prompt_id: str = Field(primary_key=True)
    created_at: datetime = Field(default_factory=datetime.now)

class Like(SQLModel, table=True):
    __tablename__ = "likes"
    user_id: str = Field(primary_key=True)
    prompt_id: str = Field(primary_key=True)
    created_at: datetime = Field(default_factory=datetime.now)
