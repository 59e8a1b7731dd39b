from typing import List, Optional
from datetime import datetime
from sqlmodel import Session, select
from domain.models.feature_flag import FeatureFlag

class FeatureFlagRepository:
    def __init__(self, session: Session):
        self.session = session

    def find_all(self) -> List[FeatureFlag]:
        return self.session.exec(select(FeatureFlag).order_by(FeatureFlag.id)).all()

    def get_by_id(self, flag_id: str) -> Optional[FeatureFlag]:
        return self.session.get(FeatureFlag, flag_id)

    def update(self, flag: FeatureFlag) -> FeatureFlag:
        flag.updated_at = datetime.now()
        self.session.add(flag)
        self.session.commit()
        self.session.refresh(flag)
        return flag
