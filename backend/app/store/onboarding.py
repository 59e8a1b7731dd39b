from typing import List

from domain.constants import MILESTONE_IDS, PROGRESS_DISMISSED_KEY
from infra.local_state import LocalState

def milestone_key(milestone_id: str) -> str:
    return f"ob_milestone_{milestone_id}"

class MilestoneTracker:
    """オンボーディングの達成状況 (visit, create, copy, ...) をローカルに記録する"""

    def __init__(self, local_state: LocalState):
        self.local_state = local_state

    def mark(self, milestone_id: str) -> bool:
        """初めて達成したときだけ True"""
        if milestone_id not in MILESTONE_IDS or self.is_completed(milestone_id):
            return False
        self.local_state.set(milestone_key(milestone_id), "true")
        return True

    def is_completed(self, milestone_id: str) -> bool:
        return self.local_state.get(milestone_key(milestone_id)) == "true"

    def completed(self) -> List[str]:
        return [m for m in MILESTONE_IDS if self.is_completed(m)]

    def progress(self) -> float:
        return len(self.completed()) / len(MILESTONE_IDS)

    @property
    def all_completed(self) -> bool:
        return len(self.completed()) == len(MILESTONE_IDS)

    def dismiss(self):
        self.local_state.set(PROGRESS_DISMISSED_KEY, "true")

    @property
    def dismissed(self) -> bool:
        return self.local_state.get(PROGRESS_DISMISSED_KEY) == "true"
