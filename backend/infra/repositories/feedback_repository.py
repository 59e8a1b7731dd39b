from typing import List, Optional
from datetime import datetime
from sqlmodel import Session, select, desc, func
from domain.models.feedback import Feedback, FeedbackLike, Contact, ChangelogEntry

class FeedbackRepository:
    def __init__(self, session: Session):
        self.session = session

    def find_all(self, status: Optional[str] = None) -> List[Feedback]:
        query = select(Feedback)
        if status:
            query = query.where(Feedback.status == status)
        return self.session.exec(query.order_by(desc(Feedback.like_count), desc(Feedback.created_at))).all()

    def get_by_id(self, feedback_id: str) -> Optional[Feedback]:
        return self.session.get(Feedback, feedback_id)

    def create(self, feedback: Feedback) -> Feedback:
        self.session.add(feedback)
        self.session.commit()
        self.session.refresh(feedback)
        return feedback

    def update(self, feedback: Feedback) -> Feedback:
        feedback.updated_at = datetime.now()
        self.session.add(feedback)
        self.session.commit()
        self.session.refresh(feedback)
        return feedback

    def delete(self, feedback: Feedback):
        likes = self.session.exec(select(FeedbackLike).where(FeedbackLike.feedback_id == feedback.id)).all()
        for like in likes:
            self.session.delete(like)
        self.session.delete(feedback)
        self.session.commit()

    def get_like(self, feedback_id: str, session_id: str) -> Optional[FeedbackLike]:
        return self.session.get(FeedbackLike, (feedback_id, session_id))

    def add_like(self, feedback_id: str, session_id: str):
        self.session.add(FeedbackLike(feedback_id=feedback_id, session_id=session_id))
        self.session.commit()

    def remove_like(self, like: FeedbackLike):
        self.session.delete(like)
        self.session.commit()

    def count_likes(self, feedback_id: str) -> int:
        query = select(func.count()).select_from(FeedbackLike).where(FeedbackLike.feedback_id == feedback_id)
        return self.session.exec(query).one()

    def find_liked_ids(self, session_id: str) -> List[str]:
        rows = self.session.exec(select(FeedbackLike).where(FeedbackLike.session_id == session_id)).all()
        return [r.feedback_id for r in rows]

class ContactRepository:
    def __init__(self, session: Session):
        self.session = session

    def find_all(self) -> List[Contact]:
        return self.session.exec(select(Contact).order_by(desc(Contact.created_at))).all()

    def get_by_id(self, contact_id: str) -> Optional[Contact]:
        return self.session.get(Contact, contact_id)

    def create(self, contact: Contact) -> Contact:
        self.session.add(contact)
        self.session.commit()
        self.session.refresh(contact)
        return contact

    def update(self, contact: Contact) -> Contact:
        self.session.add(contact)
        self.session.commit()
        self.session.refresh(contact)
        return contact

    def delete(self, contact: Contact):
        self.session.delete(contact)
        self.session.commit()

class ChangelogRepository:
    def __init__(self, session: Session):
        self.session = session

    def find_all(self) -> List[ChangelogEntry]:
        return self.session.exec(select(ChangelogEntry).order_by(desc(ChangelogEntry.created_at))).all()

    def get_by_id(self, entry_id: str) -> Optional[ChangelogEntry]:
        return self.session.get(ChangelogEntry, entry_id)

    def create(self, entry: ChangelogEntry) -> ChangelogEntry:
        self.session.add(entry)
        self.session.commit()
        self.session.refresh(entry)
        return entry

    def delete(self, entry: ChangelogEntry):
        self.session.delete(entry)
        self.session.commit()
