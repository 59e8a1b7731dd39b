from typing import List, Optional, Dict, Any
from sqlmodel import Session

from config import settings
from domain.constants import VISIBILITY_PUBLIC, VISIBILITY_PRIVATE
from domain.models.prompt import Prompt, PromptHistory
from domain.models.profile import Profile
from infra.repositories.prompt_repository import PromptRepository
from infra.repositories.profile_repository import ProfileRepository
from infra.repositories.engagement_repository import EngagementRepository
from app.services.notification_app_service import NotificationAppService

UPDATABLE_FIELDS = (
    "title", "content", "notes", "tags", "phase", "visibility",
    "rating", "is_pinned", "folder_id",
)
# 変更しても updated_at を更新しない列
BOOKKEEPING_COLUMNS = {"is_pinned", "last_used_at", "use_count", "like_count", "folder_id"}

class MissingProfileError(Exception):
    """profiles に行が無いユーザーによる書き込み"""

class PinLimitError(Exception):
    pass

def serialize_prompt(prompt: Prompt, profile: Optional[Profile] = None) -> Dict[str, Any]:
    data = prompt.model_dump()
    data["author_name"] = profile.display_name if profile else None
    data["author_avatar_url"] = profile.avatar_url if profile else None
    return data

class PromptAppService:
    def __init__(self, session: Session):
        self.session = session
        self.repository = PromptRepository(session)
        self.profile_repository = ProfileRepository(session)
        self.engagement_repository = EngagementRepository(session)
        self.notification_service = NotificationAppService(session)

    def _with_authors(self, prompts: List[Prompt]) -> List[Dict[str, Any]]:
        profiles = self.profile_repository.find_by_ids([p.user_id for p in prompts])
        return [serialize_prompt(p, profiles.get(p.user_id)) for p in prompts]

    def get_prompts(self, viewer_id: Optional[str]) -> List[Dict[str, Any]]:
        return self._with_authors(self.repository.find_visible(viewer_id))

    def get_visible_prompt(self, prompt_id: str, viewer_id: Optional[str]) -> Optional[Prompt]:
        prompt = self.repository.get_by_id(prompt_id)
        if not prompt:
            return None
        if prompt.visibility != VISIBILITY_PUBLIC and prompt.user_id != viewer_id:
            return None
        return prompt

    def create_prompt(self, user_id: str, data: Dict[str, Any]) -> Prompt:
        # DB 側に FK が無いので、プロフィールの存在チェックはここで行う
        if not self.profile_repository.get_by_id(user_id):
            raise MissingProfileError(user_id)

        values = {k: v for k, v in data.items() if k in UPDATABLE_FIELDS or k == "parent_id"}
        prompt = self.repository.create(Prompt(user_id=user_id, **values))
        self.repository.add_history(prompt.id, prompt.title, prompt.content)

        if prompt.parent_id:
            parent = self.repository.get_by_id(prompt.parent_id)
            self.notification_service.notify("fork", parent, user_id)
        return prompt

    def fork_prompt(self, source_id: str, user_id: str) -> Optional[Prompt]:
        source = self.get_visible_prompt(source_id, user_id)
        if not source:
            return None
        return self.create_prompt(user_id, {
            "title": f"{source.title} (アレンジ)",
            "content": source.content,
            "notes": source.notes,
            "tags": list(source.tags or []),
            "phase": source.phase,
            "visibility": VISIBILITY_PRIVATE,
            "parent_id": source.id,
        })

    def update_prompt(self, prompt_id: str, user_id: str, data: Dict[str, Any]) -> Optional[Prompt]:
        """作成者本人のプロンプトだけを更新する。他人のものは None"""
        prompt = self.repository.get_owned(prompt_id, user_id)
        if not prompt:
            return None

        if data.get("is_pinned") and not prompt.is_pinned:
            if self.repository.count_pinned(user_id) >= settings.PIN_LIMIT:
                raise PinLimitError(f"Pinned prompts are limited to {settings.PIN_LIMIT}")

        content_changed = False
        for key, value in data.items():
            if key not in UPDATABLE_FIELDS:
                continue
            if key in ("title", "content") and getattr(prompt, key) != value:
                content_changed = True
            setattr(prompt, key, value)

        touched = any(k in UPDATABLE_FIELDS and k not in BOOKKEEPING_COLUMNS for k in data)
        prompt = self.repository.update(prompt, touch=touched)
        if content_changed:
            self.repository.add_history(prompt.id, prompt.title, prompt.content)
        return prompt

    def delete_prompt(self, prompt_id: str, user_id: str) -> bool:
        prompt = self.repository.get_owned(prompt_id, user_id)
        if not prompt:
            return False
        self.delete_dependents(prompt_id)
        self.repository.delete(prompt)
        return True

    def delete_dependents(self, prompt_id: str):
        self.engagement_repository.clear_for_prompt(prompt_id)
        self.repository.delete_history(prompt_id)

    def get_history(self, prompt_id: str, viewer_id: Optional[str]) -> Optional[List[PromptHistory]]:
        if not self.get_visible_prompt(prompt_id, viewer_id):
            return None
        return self.repository.get_history(prompt_id)

    def increment_use_count(self, prompt_id: str) -> Optional[int]:
        prompt = self.repository.increment_use_count(prompt_id)
        return prompt.use_count if prompt else None
