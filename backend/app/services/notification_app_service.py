from typing import List, Optional
from sqlmodel import Session
from domain.models.notification import Notification
from domain.models.prompt import Prompt
from infra.repositories.notification_repository import NotificationRepository
from infra.repositories.profile_repository import ProfileRepository
from utils.logger import get_logger

logger = get_logger(__name__)

class NotificationAppService:
    def __init__(self, session: Session):
        self.session = session
        self.repository = NotificationRepository(session)
        self.profile_repository = ProfileRepository(session)

    def get_notifications(self, user_id: str, limit: int = 50) -> List[Notification]:
        return self.repository.find_by_user(user_id, limit)

    def notify(self, notification_type: str, prompt: Prompt, actor_id: str) -> Optional[Notification]:
        """
        actor が prompt にいいね/お気に入り/アレンジしたことを作成者に通知する。
        自分自身のアクションは通知しない。
        """
        if not prompt or prompt.user_id == actor_id:
            return None

        actor = self.profile_repository.get_by_id(actor_id)
        actor_name = (actor.display_name if actor and actor.display_name else "ゲスト")
        notification = Notification(
            user_id=prompt.user_id,
            type=notification_type,
            prompt_id=prompt.id,
            prompt_title=prompt.title,
            actor_id=actor_id,
            actor_name=actor_name,
        )
        logger.info(f"Notify {prompt.user_id}: {notification_type} on {prompt.id} by {actor_id}")
        return self.repository.create(notification)

    def mark_all_read(self, user_id: str) -> int:
        return self.repository.mark_all_read(user_id)
