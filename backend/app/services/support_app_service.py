from typing import List, Optional, Dict, Any
from sqlmodel import Session
from domain.constants import CONTACT_STATUSES, CHANGELOG_TYPES
from domain.models.feedback import Contact, ChangelogEntry
from infra.repositories.feedback_repository import ContactRepository, ChangelogRepository

class ContactAppService:
    def __init__(self, session: Session):
        self.session = session
        self.repository = ContactRepository(session)

    def get_contacts(self) -> List[Contact]:
        return self.repository.find_all()

    def create_contact(self, data: Dict[str, Any]) -> Contact:
        contact = Contact(
            name=data["name"],
            email=data["email"],
            category=data.get("category"),
            message=data["message"],
        )
        return self.repository.create(contact)

    def update_status(self, contact_id: str, status: str) -> Optional[Contact]:
        if status not in CONTACT_STATUSES:
            raise ValueError(f"Invalid contact status: {status}")
        contact = self.repository.get_by_id(contact_id)
        if not contact:
            return None
        contact.status = status
        return self.repository.update(contact)

    def delete_contact(self, contact_id: str) -> bool:
        contact = self.repository.get_by_id(contact_id)
        if not contact:
            return False
        self.repository.delete(contact)
        return True

class ChangelogAppService:
    def __init__(self, session: Session):
        self.session = session
        self.repository = ChangelogRepository(session)

    def get_entries(self) -> List[ChangelogEntry]:
        return self.repository.find_all()

    def create_entry(self, data: Dict[str, Any]) -> ChangelogEntry:
        entry_type = data.get("type") if data.get("type") in CHANGELOG_TYPES else "feature"
        entry = ChangelogEntry(
            version=data.get("version", ""),
            title=data.get("title", ""),
            description=data.get("description", ""),
            type=entry_type,
        )
        return self.repository.create(entry)

    def delete_entry(self, entry_id: str) -> bool:
        entry = self.repository.get_by_id(entry_id)
        if not entry:
            return False
        self.repository.delete(entry)
        return True
