from typing import Optional

from fastapi import APIRouter

from db import SessionDep
from schemas import (
    AnonymousContactCreate,
    ContactCreate,
    ContactPriority,
    ContactRead,
    ContactStatus,
    ContactUpdate,
    envelope,
)
from services import contacts as contact_service
from .auth import AdminDep, CurrentUserDep

router = APIRouter(tags=["contacts"])


def _read_all(contacts) -> list[ContactRead]:
    return [ContactRead.model_validate(contact) for contact in contacts]


@router.post("/contact", status_code=201)
def send_message(data: ContactCreate, session: SessionDep, current: CurrentUserDep):
    contact = contact_service.create_for_user(session, current, data)
    return envelope(ContactRead.model_validate(contact), message="Message sent")


@router.post("/contact/anonymous", status_code=201)
def send_anonymous_message(data: AnonymousContactCreate, session: SessionDep):
    contact = contact_service.create_anonymous(session, data)
    return envelope(ContactRead.model_validate(contact), message="Message sent")


@router.get("/my-contacts")
def my_messages(session: SessionDep, current: CurrentUserDep):
    contacts = contact_service.list_for_user(session, current.id)
    return envelope(_read_all(contacts), count=len(contacts))


@router.get("/contact/{contact_id}")
def get_message(contact_id: int, session: SessionDep, current: CurrentUserDep):
    contact = contact_service.get_for_viewer(session, contact_id, current)
    return envelope(ContactRead.model_validate(contact))


@router.get("/admin/contacts")
def list_messages(
    session: SessionDep,
    admin: AdminDep,
    status: Optional[ContactStatus] = None,
    priority: Optional[ContactPriority] = None,
):
    """
    Unread first, then most urgent, then newest.
    """
    contacts = contact_service.list_all(session, status=status, priority=priority)
    return envelope(
        _read_all(contacts),
        count=len(contacts),
        filters={"status": status, "priority": priority},
    )


@router.get("/admin/contacts/stats")
def message_stats(session: SessionDep, admin: AdminDep):
    return envelope(contact_service.contact_stats(session))


@router.put("/admin/contacts/{contact_id}")
def update_message(contact_id: int, data: ContactUpdate, session: SessionDep, admin: AdminDep):
    contact = contact_service.update_contact(session, contact_id, data.changes())
    return envelope(ContactRead.model_validate(contact), message="Message updated")


@router.patch("/admin/contacts/{contact_id}/read")
def mark_read(contact_id: int, session: SessionDep, admin: AdminDep):
    contact = contact_service.mark_read(session, contact_id)
    return envelope(ContactRead.model_validate(contact), message="Message marked as read")


@router.patch("/admin/contacts/{contact_id}/reply")
def mark_replied(contact_id: int, session: SessionDep, admin: AdminDep):
    contact = contact_service.mark_replied(session, contact_id)
    return envelope(ContactRead.model_validate(contact), message="Message marked as replied")


@router.delete("/admin/contacts/{contact_id}")
def delete_message(contact_id: int, session: SessionDep, admin: AdminDep):
    contact_service.delete_contact(session, contact_id)
    return envelope(message="Message deleted")
