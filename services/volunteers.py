import logging
from typing import Any, Optional

from sqlalchemy import func
from sqlmodel import Session, col, select

from errors import ConflictError, NotFoundError, ValidationError
from models import VOLUNTEER_STATUSES, Volunteer, utcnow
from schemas import VolunteerCreate

logger = logging.getLogger(__name__)


def _newest_first(query):
    return query.order_by(col(Volunteer.created_at).desc(), col(Volunteer.id).desc())


def _email_taken(session: Session, email: str, exclude_id: Optional[int] = None) -> bool:
    query = select(Volunteer.id).where(Volunteer.email == email)
    if exclude_id is not None:
        query = query.where(Volunteer.id != exclude_id)
    return session.exec(query).first() is not None


def _check_status(status: str) -> None:
    if status not in VOLUNTEER_STATUSES:
        raise ValidationError(
            f"status: must be one of {', '.join(VOLUNTEER_STATUSES)}", field="status"
        )


def get_volunteer(session: Session, volunteer_id: int) -> Volunteer:
    volunteer = session.get(Volunteer, volunteer_id)
    if volunteer is None:
        raise NotFoundError("Volunteer not found")
    return volunteer


def apply(session: Session, data: VolunteerCreate) -> Volunteer:
    """Record a volunteer application; one application per email address."""
    if _email_taken(session, data.email):
        raise ConflictError("An application already exists for this email")

    volunteer = Volunteer(**data.model_dump(), status="pending")
    session.add(volunteer)
    session.commit()
    session.refresh(volunteer)
    logger.info(f"Volunteer application {volunteer.id} received")
    return volunteer


def status_by_email(session: Session, email: str) -> Volunteer:
    volunteer = session.exec(
        select(Volunteer).where(Volunteer.email == email.strip().lower())
    ).first()
    if volunteer is None:
        raise NotFoundError("No application found for this email")
    return volunteer


def list_volunteers(session: Session, status: Optional[str] = None) -> list[Volunteer]:
    query = select(Volunteer)
    if status is not None:
        _check_status(status)
        query = query.where(Volunteer.status == status)
    return list(session.exec(_newest_first(query)).all())


def search_volunteers(
    session: Session,
    city: Optional[str] = None,
    skills: Optional[str] = None,
    status: Optional[str] = None,
    min_age: Optional[int] = None,
    max_age: Optional[int] = None,
) -> list[Volunteer]:
    if min_age is not None and max_age is not None and min_age > max_age:
        raise ValidationError("minAge: must not be greater than maxAge", field="minAge")

    query = select(Volunteer)
    if city:
        query = query.where(col(Volunteer.city).ilike(f"%{city}%"))
    if skills:
        query = query.where(col(Volunteer.skills).ilike(f"%{skills}%"))
    if status:
        _check_status(status)
        query = query.where(Volunteer.status == status)
    if min_age is not None:
        query = query.where(Volunteer.age >= min_age)
    if max_age is not None:
        query = query.where(Volunteer.age <= max_age)
    return list(session.exec(_newest_first(query)).all())


def update_volunteer(session: Session, volunteer_id: int, changes: dict[str, Any]) -> Volunteer:
    volunteer = get_volunteer(session, volunteer_id)
    if "email" in changes and _email_taken(session, changes["email"], exclude_id=volunteer_id):
        raise ConflictError("Another volunteer already uses this email")

    for key, value in changes.items():
        setattr(volunteer, key, value)
    volunteer.updated_at = utcnow()
    session.add(volunteer)
    session.commit()
    session.refresh(volunteer)
    return volunteer


def set_status(session: Session, volunteer_id: int, status: str) -> Volunteer:
    """Approve, reject or reset an application; a no-op transition is a conflict."""
    _check_status(status)
    volunteer = get_volunteer(session, volunteer_id)
    if volunteer.status == status:
        raise ConflictError(f"This application is already {status}")
    logger.info(f"Volunteer {volunteer_id}: {volunteer.status} -> {status}")
    return update_volunteer(session, volunteer_id, {"status": status})


def delete_volunteer(session: Session, volunteer_id: int) -> None:
    volunteer = get_volunteer(session, volunteer_id)
    session.delete(volunteer)
    session.commit()
    logger.info(f"Volunteer {volunteer_id} deleted")


def count_by_status(session: Session) -> dict[str, int]:
    rows = session.exec(select(Volunteer.status, func.count()).group_by(Volunteer.status)).all()
    counts = {status: 0 for status in VOLUNTEER_STATUSES}
    counts.update({status: count for status, count in rows})
    return counts


def volunteer_stats(session: Session) -> dict[str, Any]:
    counts = count_by_status(session)
    by_city = session.exec(
        select(Volunteer.city, func.count())
        .group_by(Volunteer.city)
        .order_by(func.count().desc(), Volunteer.city)
        .limit(10)
    ).all()
    by_age = session.exec(
        select(Volunteer.age, func.count()).group_by(Volunteer.age).order_by(Volunteer.age)
    ).all()
    return {
        "total": sum(counts.values()),
        **counts,
        "byCity": [{"city": city, "count": count} for city, count in by_city],
        "byAge": [{"age": age, "count": count} for age, count in by_age],
    }
