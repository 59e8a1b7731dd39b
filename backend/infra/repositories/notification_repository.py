from typing import List
from sqlmodel import Session, select, desc
from domain.models.notification import Notification

class NotificationRepository:
    def __init__(self, session: Session):
        self.session = session

    def find_by_user(self, user_id: str, limit: int = 50) -> List[Notification]:
        query = (
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(desc(Notification.created_at), desc(Notification.id))
            .limit(limit)
        )
        return self.session.exec(query).all()

    def create(self, notification: Notification) -> Notification:
        self.session.add(notification)
        self.session.commit()
        self.session.refresh(notification)
        return notification

    def mark_all_read(self, user_id: str) -> int:
        rows = self.session.exec(
            select(Notification).where(Notification.user_id == user_id, Notification.read == False)
        ).all()
        for n in rows:
            n.read = True
            self.session.add(n)
        self.session.commit()
        return len(rows)
