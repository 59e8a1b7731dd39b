from datetime import date
from pydantic import BaseModel
from typing import List, Optional

class PromptCreate(BaseModel):
    title: str
    content: str
    tags: List[str] = []
    phase: str = "Implementation"
    visibility: str = "Private"
    notes: Optional[str] = None
    parent_id: Optional[str] = None

class PromptUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    tags: Optional[List[str]] = None
    phase: Optional[str] = None
    visibility: Optional[str] = None
    notes: Optional[str] = None
    rating: Optional[str] = None
    is_pinned: Optional[bool] = None
    folder_id: Optional[str] = None

class FolderCreate(BaseModel):
    name: str
    color: Optional[str] = None

class FolderUpdate(BaseModel):
    name: Optional[str] = None
    color: Optional[str] = None
    sort_order: Optional[int] = None

class FolderMove(BaseModel):
    folder_id: Optional[str] = None

class ProfileUpdate(BaseModel):
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None

class FeedbackCreate(BaseModel):
    type: str = "other"
    title: str
    description: str = ""
    screenshot_url: Optional[str] = None

class FeedbackLikeRequest(BaseModel):
    session_id: str

class StatusUpdate(BaseModel):
    status: str

class ContactCreate(BaseModel):
    name: str
    email: str
    category: Optional[str] = None
    message: str

class ChangelogCreate(BaseModel):
    version: str
    title: str
    description: str = ""
    type: str = "feature"

class FlagUpdate(BaseModel):
    enabled: bool

class AnalyticsEventCreate(BaseModel):
    event_name: str
    session_id: str = ""
    metadata: dict = {}

class KpiAggregateRequest(BaseModel):
    target_date: date
