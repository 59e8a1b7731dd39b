from typing import Dict, List, Optional
from sqlmodel import Session
from domain.models.feature_flag import FeatureFlag
from infra.repositories.feature_flag_repository import FeatureFlagRepository

class FeatureFlagAppService:
    def __init__(self, session: Session):
        self.session = session
        self.repository = FeatureFlagRepository(session)

    def get_flags(self) -> List[FeatureFlag]:
        return self.repository.find_all()

    def get_flag_map(self) -> Dict[str, bool]:
        return {f.id: f.enabled for f in self.repository.find_all()}

    def is_enabled(self, flag_id: str) -> bool:
        # 未登録のフラグは有効として扱う
        flag = self.repository.get_by_id(flag_id)
        return flag.enabled if flag else True

    def set_enabled(self, flag_id: str, enabled: bool) -> Optional[FeatureFlag]:
        flag = self.repository.get_by_id(flag_id)
        if not flag:
            return None
        flag.enabled = enabled
        return self.repository.update(flag)

    def toggle(self, flag_id: str) -> Optional[FeatureFlag]:
        flag = self.repository.get_by_id(flag_id)
        if not flag:
            return None
        return self.set_enabled(flag_id, not flag.enabled)
