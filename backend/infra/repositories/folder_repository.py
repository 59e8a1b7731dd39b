from typing import List, Optional
from sqlmodel import Session, select, func
from domain.models.folder import Folder

class FolderRepository:
    def __init__(self, session: Session):
        self.session = session

    def find_by_user(self, user_id: str) -> List[Folder]:
        query = select(Folder).where(Folder.user_id == user_id).order_by(Folder.sort_order, Folder.created_at)
        return self.session.exec(query).all()

    def get_owned(self, folder_id: str, user_id: str) -> Optional[Folder]:
        folder = self.session.get(Folder, folder_id)
        if not folder or folder.user_id != user_id:
            return None
        return folder

    def count_by_user(self, user_id: str) -> int:
        return self.session.exec(select(func.count()).select_from(Folder).where(Folder.user_id == user_id)).one()

    def create(self, folder: Folder) -> Folder:
        self.session.add(folder)
        self.session.commit()
        self.session.refresh(folder)
        return folder

    def update(self, folder: Folder) -> Folder:
        self.session.add(folder)
        self.session.commit()
        self.session.refresh(folder)
        return folder

    def delete(self, folder: Folder):
        self.session.delete(folder)
        self.session.commit()
