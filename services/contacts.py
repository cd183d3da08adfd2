import logging
from typing import Any, Optional

from sqlalchemy import case, func
from sqlmodel import Session, col, select

from errors import ForbiddenError, NotFoundError, ValidationError
from models import CONTACT_PRIORITIES, CONTACT_STATUSES, Contact, User, utcnow
from schemas import AnonymousContactCreate, ContactCreate

logger = logging.getLogger(__name__)

# unread first, then most urgent
_STATUS_RANK = case({status: rank for rank, status in enumerate(CONTACT_STATUSES)}, value=Contact.status)
_PRIORITY_RANK = case(
    {priority: rank for rank, priority in enumerate(reversed(CONTACT_PRIORITIES))},
    value=Contact.priority,
)


def _get_contact(session: Session, contact_id: int) -> Contact:
    contact = session.get(Contact, contact_id)
    if contact is None:
        raise NotFoundError("Message not found")
    return contact


def create_for_user(session: Session, user: User, data: ContactCreate) -> Contact:
    """Name and email come from the account; the phone falls back to it too."""
    contact = Contact(
        user_id=user.id,
        firstname=user.firstname,
        lastname=user.lastname,
        email=user.email,
        phone=data.phone or user.phone,
        subject=data.subject,
        message=data.message,
        priority=data.priority,
        status="new",
    )
    return _save_new(session, contact)


def create_anonymous(session: Session, data: AnonymousContactCreate) -> Contact:
    contact = Contact(**data.model_dump(), status="new")
    return _save_new(session, contact)


def _save_new(session: Session, contact: Contact) -> Contact:
    session.add(contact)
    session.commit()
    session.refresh(contact)
    logger.info(f"Contact message {contact.id} received ({contact.priority})")
    return contact


def list_for_user(session: Session, user_id: int) -> list[Contact]:
    query = (
        select(Contact)
        .where(Contact.user_id == user_id)
        .order_by(col(Contact.created_at).desc(), col(Contact.id).desc())
    )
    return list(session.exec(query).all())


def get_for_viewer(session: Session, contact_id: int, viewer: User) -> Contact:
    contact = _get_contact(session, contact_id)
    if viewer.role != "admin" and contact.user_id != viewer.id:
        raise ForbiddenError("You can only view your own messages")
    return contact


def list_all(
    session: Session,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    limit: Optional[int] = None,
) -> list[Contact]:
    query = select(Contact)
    if status:
        if status not in CONTACT_STATUSES:
            raise ValidationError(
                f"status: must be one of {', '.join(CONTACT_STATUSES)}", field="status"
            )
        query = query.where(Contact.status == status)
    if priority:
        if priority not in CONTACT_PRIORITIES:
            raise ValidationError(
                f"priority: must be one of {', '.join(CONTACT_PRIORITIES)}", field="priority"
            )
        query = query.where(Contact.priority == priority)
    query = query.order_by(
        _STATUS_RANK, _PRIORITY_RANK, col(Contact.created_at).desc(), col(Contact.id).desc()
    )
    if limit is not None:
        query = query.limit(limit)
    return list(session.exec(query).all())


def update_contact(session: Session, contact_id: int, changes: dict[str, Any]) -> Contact:
    """Moving a message to "replied" stamps replied_at."""
    contact = _get_contact(session, contact_id)
    for key, value in changes.items():
        setattr(contact, key, value)
    now = utcnow()
    if changes.get("status") == "replied":
        contact.replied_at = now
    contact.updated_at = now
    session.add(contact)
    session.commit()
    session.refresh(contact)
    return contact


def mark_read(session: Session, contact_id: int) -> Contact:
    return update_contact(session, contact_id, {"status": "read"})


def mark_replied(session: Session, contact_id: int) -> Contact:
    contact = update_contact(session, contact_id, {"status": "replied"})
    logger.info(f"Contact message {contact_id} replied")
    return contact


def delete_contact(session: Session, contact_id: int) -> None:
    contact = _get_contact(session, contact_id)
    session.delete(contact)
    session.commit()
    logger.info(f"Contact message {contact_id} deleted")


def count_by(session: Session, column, values: tuple[str, ...]) -> dict[str, int]:
    counts = {value: 0 for value in values}
    rows = session.exec(select(column, func.count()).group_by(column)).all()
    counts.update({value: count for value, count in rows})
    return counts


def contact_stats(session: Session) -> dict[str, Any]:
    by_status = count_by(session, Contact.status, CONTACT_STATUSES)
    total = sum(by_status.values())
    return {
        "totalMessages": total,
        "statusStats": by_status,
        "priorityStats": count_by(session, Contact.priority, CONTACT_PRIORITIES),
        "responseRate": round(by_status["replied"] / total * 100) if total else 0,
    }
