from typing import List, Optional, Dict, Any
from sqlmodel import Session
from infra.repositories.engagement_repository import EngagementRepository
from infra.repositories.prompt_repository import PromptRepository
from app.services.notification_app_service import NotificationAppService
from app.services.prompt_app_service import PromptAppService

class EngagementAppService:
    def __init__(self, session: Session):
        self.session = session
        self.repository = EngagementRepository(session)
        self.prompt_repository = PromptRepository(session)
        self.prompt_service = PromptAppService(session)
        self.notification_service = NotificationAppService(session)

    def get_favorites(self, user_id: str) -> List[str]:
        return self.repository.find_favorite_ids(user_id)

    def get_likes(self, user_id: str) -> List[str]:
        return self.repository.find_like_ids(user_id)

    def toggle_favorite(self, user_id: str, prompt_id: str) -> Optional[Dict[str, Any]]:
        prompt = self.prompt_service.get_visible_prompt(prompt_id, user_id)
        if not prompt:
            return None

        existing = self.repository.get_favorite(user_id, prompt_id)
        if existing:
            self.repository.delete(existing)
            return {"prompt_id": prompt_id, "favorited": False}

        self.repository.add_favorite(user_id, prompt_id)
        self.notification_service.notify("favorite", prompt, user_id)
        return {"prompt_id": prompt_id, "favorited": True}

    def toggle_like(self, user_id: str, prompt_id: str) -> Optional[Dict[str, Any]]:
        prompt = self.prompt_service.get_visible_prompt(prompt_id, user_id)
        if not prompt:
            return None

        existing = self.repository.get_like(user_id, prompt_id)
        if existing:
            self.repository.delete(existing)
            liked = False
        else:
            self.repository.add_like(user_id, prompt_id)
            liked = True

        # like_count は常に likes の行数から再計算する
        prompt = self.prompt_repository.recount_likes(prompt_id)
        if liked:
            self.notification_service.notify("like", prompt, user_id)
        return {"prompt_id": prompt_id, "liked": liked, "like_count": prompt.like_count}
