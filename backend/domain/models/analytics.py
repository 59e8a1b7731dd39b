import datetime as dt
from typing import Optional, Dict, Any
from sqlmodel import Field, SQLModel
from sqlalchemy import JSON, Column

class AnalyticsEvent(SQLModel, table=True):
    __tablename__ = "analytics_events"
    id: Optional[int] = Field(default=None, primary_key=True)
    event_name: str = Field(index=True)
    session_id: str = Field(default="")
    user_id: Optional[str] = Field(default=None)
    # metadata は SQLModel 側で予約されているため属性名を変える
    event_metadata: Dict[str, Any] = Field(default={}, sa_column=Column("metadata", JSON))
    created_at: dt.datetime = Field(default_factory=dt.datetime.now, index=True)

class DailyKpi(SQLModel, table=True):
    __tablename__ = "daily_kpi"
    date: dt.date = Field(primary_key=True)
    dau: int = Field(default=0)
    new_signups: int = Field(default=0)
    prompts_created: int = Field(default=0)
    copies_executed: int = Field(default=0)
    prompts_published: int = Field(default=0)
    likes_given: int = Field(default=0)
    favorites_given: int = Field(default=0)
    searches: int = Field(default=0)
    feedback_submitted: int = Field(default=0)
