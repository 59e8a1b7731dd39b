from typing import List, Optional, Dict, Any
from sqlmodel import Session
from domain.constants import FEEDBACK_STATUSES, FEEDBACK_TYPES
from domain.models.feedback import Feedback
from infra.repositories.feedback_repository import FeedbackRepository
from utils.logger import get_logger

logger = get_logger(__name__)

class FeedbackAppService:
    def __init__(self, session: Session):
        self.session = session
        self.repository = FeedbackRepository(session)

    def get_feedback(self, status: Optional[str] = None) -> List[Feedback]:
        return self.repository.find_all(status)

    def create_feedback(self, data: Dict[str, Any], author_id: Optional[str] = None,
                        author_name: str = "") -> Feedback:
        feedback_type = data.get("type") if data.get("type") in FEEDBACK_TYPES else "other"
        feedback = Feedback(
            type=feedback_type,
            title=data.get("title", ""),
            description=data.get("description", ""),
            screenshot_url=data.get("screenshot_url"),
            author_id=author_id,
            author_name=author_name or "ゲスト",
        )
        return self.repository.create(feedback)

    def update_status(self, feedback_id: str, status: str) -> Optional[Feedback]:
        if status not in FEEDBACK_STATUSES:
            raise ValueError(f"Invalid feedback status: {status}")
        feedback = self.repository.get_by_id(feedback_id)
        if not feedback:
            return None
        feedback.status = status
        return self.repository.update(feedback)

    def delete_feedback(self, feedback_id: str) -> bool:
        feedback = self.repository.get_by_id(feedback_id)
        if not feedback:
            return False
        self.repository.delete(feedback)
        return True

    def increment_feedback_like(self, feedback_id: str, session_id: str) -> Optional[Dict[str, Any]]:
        """
        セッション単位のいいねをトグルし、like_count を行数から再計算する
        """
        feedback = self.repository.get_by_id(feedback_id)
        if not feedback:
            return None

        existing = self.repository.get_like(feedback_id, session_id)
        if existing:
            self.repository.remove_like(existing)
            liked = False
        else:
            self.repository.add_like(feedback_id, session_id)
            liked = True

        feedback.like_count = self.repository.count_likes(feedback_id)
        feedback = self.repository.update(feedback)
        return {"feedback_id": feedback_id, "liked": liked, "like_count": feedback.like_count}

    def get_liked_ids(self, session_id: str) -> List[str]:
        return self.repository.find_liked_ids(session_id)
