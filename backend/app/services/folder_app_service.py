from typing import List, Optional, Dict, Any
from sqlmodel import Session
from domain.models.folder import Folder
from infra.repositories.folder_repository import FolderRepository
from infra.repositories.prompt_repository import PromptRepository

class FolderAppService:
    def __init__(self, session: Session):
        self.session = session
        self.repository = FolderRepository(session)
        self.prompt_repository = PromptRepository(session)

    def get_folders(self, user_id: str) -> List[Folder]:
        return self.repository.find_by_user(user_id)

    def create_folder(self, user_id: str, name: str, color: Optional[str] = None,
                      sort_order: Optional[int] = None) -> Folder:
        if sort_order is None:
            sort_order = self.repository.count_by_user(user_id)
        folder = Folder(user_id=user_id, name=name, sort_order=sort_order)
        if color:
            folder.color = color
        return self.repository.create(folder)

    def update_folder(self, folder_id: str, user_id: str, data: Dict[str, Any]) -> Optional[Folder]:
        folder = self.repository.get_owned(folder_id, user_id)
        if not folder:
            return None
        for key in ("name", "color", "sort_order"):
            if key in data and data[key] is not None:
                setattr(folder, key, data[key])
        return self.repository.update(folder)

    def delete_folder(self, folder_id: str, user_id: str) -> bool:
        """フォルダを削除し、所属していたプロンプトは未分類に戻す"""
        folder = self.repository.get_owned(folder_id, user_id)
        if not folder:
            return False
        self.prompt_repository.detach_folder(folder_id)
        self.repository.delete(folder)
        return True

    def move_prompt(self, prompt_id: str, user_id: str, folder_id: Optional[str]) -> bool:
        prompt = self.prompt_repository.get_owned(prompt_id, user_id)
        if not prompt:
            return False
        if folder_id and not self.repository.get_owned(folder_id, user_id):
            return False
        prompt.folder_id = folder_id
        self.prompt_repository.update(prompt, touch=False)
        return True
