from fastapi import APIRouter, HTTPException, Depends
from sqlmodel import Session

from infra.database.connection import get_session
from api.deps import Viewer, require_admin
from api.schemas.common import ContactCreate, ChangelogCreate, StatusUpdate
from app.services.support_app_service import ContactAppService, ChangelogAppService

router = APIRouter()

# --- Contacts ---

@router.post("/api/contacts")
def create_contact(contact: ContactCreate, session: Session = Depends(get_session)):
    if not contact.message.strip():
        raise HTTPException(status_code=400, detail="Message is required")
    service = ContactAppService(session)
    return service.create_contact(contact.model_dump())

@router.get("/api/admin/contacts")
def get_contacts(session: Session = Depends(get_session), admin: Viewer = Depends(require_admin)):
    service = ContactAppService(session)
    return service.get_contacts()

@router.put("/api/admin/contacts/{contact_id}/status")
def update_contact_status(contact_id: str, req: StatusUpdate, session: Session = Depends(get_session),
                          admin: Viewer = Depends(require_admin)):
    service = ContactAppService(session)
    try:
        contact = service.update_status(contact_id, req.status)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not contact:
        raise HTTPException(status_code=404, detail="Contact not found")
    return contact

@router.delete("/api/admin/contacts/{contact_id}")
def delete_contact(contact_id: str, session: Session = Depends(get_session),
                   admin: Viewer = Depends(require_admin)):
    service = ContactAppService(session)
    if not service.delete_contact(contact_id):
        raise HTTPException(status_code=404, detail="Contact not found")
    return {"ok": True}

# --- Changelog ---

@router.get("/api/changelog")
def get_changelog(session: Session = Depends(get_session)):
    service = ChangelogAppService(session)
    return service.get_entries()

@router.post("/api/admin/changelog")
def create_changelog(entry: ChangelogCreate, session: Session = Depends(get_session),
                     admin: Viewer = Depends(require_admin)):
    service = ChangelogAppService(session)
    return service.create_entry(entry.model_dump())

@router.delete("/api/admin/changelog/{entry_id}")
def delete_changelog(entry_id: str, session: Session = Depends(get_session),
                     admin: Viewer = Depends(require_admin)):
    service = ChangelogAppService(session)
    if not service.delete_entry(entry_id):
        raise HTTPException(status_code=404, detail="Changelog entry not found")
    return {"ok": True}
