from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel
from domain.models.prompt import new_id

class Feedback(SQLModel, table=True):
    __tablename__ = "feedback"
    id: str = Field(default_factory=new_id, primary_key=True)
    type: str = Field(default="other")
    title: str = Field(default="")
    description: str = Field(default="")
    screenshot_url: Optional[str] = Field(default=None)
    status: str = Field(default="open")
    like_count: int = Field(default=0)
    author_id: Optional[str] = Field(default=None)
    author_name: str = Field(default="")
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

class FeedbackLike(SQLModel, table=True):
    __tablename__ = "feedback_likes"
    feedback_id: str = Field(primary_key=True)
    session_id: str = Field(primary_key=True)
    created_at: datetime = Field(default_factory=datetime.now)

class Contact(SQLModel, table=True):
    __tablename__ = "contacts"
    id: str = Field(default_factory=new_id, primary_key=True)
    name: str
    email: str
    category: Optional[str] = Field(default=None)
    message: str
    status: str = Field(default="new")
    created_at: datetime = Field(default_factory=datetime.now)

class ChangelogEntry(SQLModel, table=True):
    __tablename__ = "changelog"
    id: str = Field(default_factory=new_id, primary_key=True)
    version: str = Field(default="")
    title: str = Field(default="")
    description: str = Field(default="")
    type: str = Field(default="feature")
    created_at: datetime = Field(default_factory=datetime.now)
