from typing import List, Optional
from sqlmodel import Session, select
from domain.models.engagement import Favorite, Like

class EngagementRepository:
    """お気に入り・いいねのメンバーシップ行を扱う"""

    def __init__(self, session: Session):
        self.session = session

    def find_favorite_ids(self, user_id: str) -> List[str]:
        rows = self.session.exec(select(Favorite).where(Favorite.user_id == user_id)).all()
        return [r.prompt_id for r in rows]

    def find_like_ids(self, user_id: str) -> List[str]:
        rows = self.session.exec(select(Like).where(Like.user_id == user_id)).all()
        return [r.prompt_id for r in rows]

    def get_favorite(self, user_id: str, prompt_id: str) -> Optional[Favorite]:
        return self.session.get(Favorite, (user_id, prompt_id))

    def get_like(self, user_id: str, prompt_id: str) -> Optional[Like]:
        return self.session.get(Like, (user_id, prompt_id))

    def add_favorite(self, user_id: str, prompt_id: str) -> Favorite:
        fav = Favorite(user_id=user_id, prompt_id=prompt_id)
        self.session.add(fav)
        self.session.commit()
        self.session.refresh(fav)
        return fav

    def add_like(self, user_id: str, prompt_id: str) -> Like:
        like = Like(user_id=user_id, prompt_id=prompt_id)
        self.session.add(like)
        self.session.commit()
        self.session.refresh(like)
        return like

    def delete(self, row):
        self.session.delete(row)
        self.session.commit()

    def clear_for_prompt(self, prompt_id: str):
        for model in (Favorite, Like):
            rows = self.session.exec(select(model).where(model.prompt_id == prompt_id)).all()
            for r in rows:
                self.session.delete(r)
        self.session.commit()
