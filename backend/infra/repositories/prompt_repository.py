from typing import List, Optional
from datetime import datetime
from sqlmodel import Session, select, desc, or_, func
from domain.models.prompt import Prompt, PromptHistory
from domain.models.engagement import Like

class PromptRepository:
    def __init__(self, session: Session):
        self.session = session

    def find_visible(self, viewer_id: Optional[str]) -> List[Prompt]:
        # Private は作成者本人にしか見せない
        query = select(Prompt)
        if viewer_id:
            query = query.where(or_(Prompt.user_id == viewer_id, Prompt.visibility == "Public"))
        else:
            query = query.where(Prompt.visibility == "Public")
        return self.session.exec(query.order_by(desc(Prompt.updated_at))).all()

    def find_by_ids(self, prompt_ids: List[str]) -> List[Prompt]:
        if not prompt_ids:
            return []
        return self.session.exec(select(Prompt).where(Prompt.id.in_(prompt_ids))).all()

    def get_by_id(self, prompt_id: str) -> Optional[Prompt]:
        return self.session.get(Prompt, prompt_id)

    def get_owned(self, prompt_id: str, user_id: str) -> Optional[Prompt]:
        prompt = self.session.get(Prompt, prompt_id)
        if not prompt or prompt.user_id != user_id:
            return None
        return prompt

    def create(self, prompt: Prompt) -> Prompt:
        self.session.add(prompt)
        self.session.commit()
        self.session.refresh(prompt)
        return prompt

    def update(self, prompt: Prompt, touch: bool = True) -> Prompt:
        if touch:
            prompt.updated_at = datetime.now()
        self.session.add(prompt)
        self.session.commit()
        self.session.refresh(prompt)
        return prompt

    def delete(self, prompt: Prompt):
        self.session.delete(prompt)
        self.session.commit()

    def count_pinned(self, user_id: str) -> int:
        query = select(func.count()).select_from(Prompt).where(
            Prompt.user_id == user_id, Prompt.is_pinned == True
        )
        return self.session.exec(query).one()

    def increment_use_count(self, prompt_id: str) -> Optional[Prompt]:
        prompt = self.session.get(Prompt, prompt_id)
        if not prompt:
            return None
        prompt.use_count = (prompt.use_count or 0) + 1
        prompt.last_used_at = datetime.now()
        self.session.add(prompt)
        self.session.commit()
        self.session.refresh(prompt)
        return prompt

    def recount_likes(self, prompt_id: str) -> Optional[Prompt]:
        """likes テーブルの行数で like_count を再計算する"""
        prompt = self.session.get(Prompt, prompt_id)
        if not prompt:
            return None
        count = self.session.exec(
            select(func.count()).select_from(Like).where(Like.prompt_id == prompt_id)
        ).one()
        prompt.like_count = count
        self.session.add(prompt)
        self.session.commit()
        self.session.refresh(prompt)
        return prompt

    def detach_folder(self, folder_id: str):
        prompts = self.session.exec(select(Prompt).where(Prompt.folder_id == folder_id)).all()
        for p in prompts:
            p.folder_id = None
            self.session.add(p)
        self.session.commit()

    def add_history(self, prompt_id: str, title: str, content: str) -> PromptHistory:
        entry = PromptHistory(prompt_id=prompt_id, title=title, content=content)
        self.session.add(entry)
        self.session.commit()
        self.session.refresh(entry)
        return entry

    def get_history(self, prompt_id: str) -> List[PromptHistory]:
        query = (
            select(PromptHistory)
            .where(PromptHistory.prompt_id == prompt_id)
            .order_by(PromptHistory.created_at, PromptHistory.id)
        )
        return self.session.exec(query).all()

    def delete_history(self, prompt_id: str):
        entries = self.session.exec(select(PromptHistory).where(PromptHistory.prompt_id == prompt_id)).all()
        for e in entries:
            self.session.delete(e)
        self.session.commit()
