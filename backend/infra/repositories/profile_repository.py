from typing import List, Optional, Dict
from sqlmodel import Session, select
from domain.models.profile import Profile

class ProfileRepository:
    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, user_id: str) -> Optional[Profile]:
        return self.session.get(Profile, user_id)

    def find_by_ids(self, user_ids: List[str]) -> Dict[str, Profile]:
        if not user_ids:
            return {}
        rows = self.session.exec(select(Profile).where(Profile.id.in_(list(set(user_ids))))).all()
        return {p.id: p for p in rows}

    def upsert(self, user_id: str, display_name: Optional[str] = None, avatar_url: Optional[str] = None) -> Profile:
        profile = self.session.get(Profile, user_id)
        if not profile:
            profile = Profile(id=user_id, display_name=display_name, avatar_url=avatar_url)
        else:
            if display_name is not None:
                profile.display_name = display_name
            if avatar_url is not None:
                profile.avatar_url = avatar_url
        self.session.add(profile)
        self.session.commit()
        self.session.refresh(profile)
        return profile

    def delete(self, profile: Profile):
        self.session.delete(profile)
        self.session.commit()
