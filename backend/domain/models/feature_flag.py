from datetime import datetime
from sqlmodel import Field, SQLModel

class FeatureFlag(SQLModel, table=True):
    __tablename__ = "feature_flags"
    id: str = Field(primary_key=True)
    label: str = Field(default="")
    description: str = Field(default="")
    enabled: bool = Field(default=True)
    updated_at: datetime = Field(default_factory=datetime.now)
