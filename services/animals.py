import logging
from typing import Any, Optional

from sqlalchemy import delete, func
from sqlmodel import Session, col, select

from errors import ConflictError, NotFoundError, ValidationError
from models import ANIMAL_STATUSES, Adoption, Animal, User, utcnow
from schemas import AnimalCreate

logger = logging.getLogger(__name__)


def get_animal(session: Session, animal_id: int) -> Animal:
    animal = session.get(Animal, animal_id)
    if animal is None:
        raise NotFoundError("Animal not found")
    return animal


def list_available(session: Session) -> list[Animal]:
    """Animals open for adoption, newest first."""
    query = (
        select(Animal)
        .where(Animal.status == "available")
        .order_by(col(Animal.created_at).desc(), col(Animal.id).desc())
    )
    return list(session.exec(query).all())


def list_all(session: Session) -> list[Animal]:
    query = select(Animal).order_by(col(Animal.created_at).desc(), col(Animal.id).desc())
    return list(session.exec(query).all())


def search_animals(
    session: Session,
    type: Optional[str] = None,
    city: Optional[str] = None,
    breed: Optional[str] = None,
    min_age: Optional[int] = None,
    max_age: Optional[int] = None,
    status: Optional[str] = None,
) -> list[Animal]:
    """
    Text filters are case-insensitive substring matches, ages are inclusive.
    Without a status only available animals are returned; "all" disables it.
    """
    if min_age is not None and max_age is not None and min_age > max_age:
        raise ValidationError("minAge: must not be greater than maxAge", field="minAge")

    status = status or "available"
    if status != "all" and status not in ANIMAL_STATUSES:
        raise ValidationError(
            f"status: must be one of {', '.join(ANIMAL_STATUSES)} or all", field="status"
        )

    query = select(Animal)
    if type:
        query = query.where(col(Animal.type).ilike(f"%{type}%"))
    if city:
        query = query.where(col(Animal.city).ilike(f"%{city}%"))
    if breed:
        query = query.where(col(Animal.breed).ilike(f"%{breed}%"))
    if min_age is not None:
        query = query.where(Animal.age >= min_age)
    if max_age is not None:
        query = query.where(Animal.age <= max_age)
    if status != "all":
        query = query.where(Animal.status == status)

    query = query.order_by(col(Animal.created_at).desc(), col(Animal.id).desc())
    return list(session.exec(query).all())


def animal_history(session: Session, animal_id: int) -> list[tuple[Adoption, User]]:
    """Every adoption request made for the animal with its applicant."""
    query = (
        select(Adoption, User)
        .join(User, col(User.id) == Adoption.user_id)
        .where(Adoption.animal_id == animal_id)
        .order_by(col(Adoption.created_at).desc(), col(Adoption.id).desc())
    )
    return list(session.exec(query).all())


def create_animal(session: Session, data: AnimalCreate) -> Animal:
    animal = Animal(**data.model_dump(), status="available")
    session.add(animal)
    session.commit()
    session.refresh(animal)
    logger.info(f"Animal {animal.id} ({animal.name}) created")
    return animal


def update_animal(session: Session, animal_id: int, changes: dict[str, Any]) -> Animal:
    animal = get_animal(session, animal_id)
    for key, value in changes.items():
        setattr(animal, key, value)
    animal.updated_at = utcnow()
    session.add(animal)
    session.commit()
    session.refresh(animal)
    return animal


def delete_animal(session: Session, animal_id: int) -> None:
    """Refused while a pending request references the animal."""
    animal = get_animal(session, animal_id)

    pending = session.exec(
        select(Adoption.id).where(
            Adoption.animal_id == animal_id,
            Adoption.status == "pending",
        )
    ).first()
    if pending is not None:
        raise ConflictError("Cannot delete an animal with pending adoption requests")

    # closed requests go with the animal
    session.exec(delete(Adoption).where(col(Adoption.animal_id) == animal_id))
    session.delete(animal)
    session.commit()
    logger.info(f"Animal {animal_id} deleted")


def mark_adopted(session: Session, animal_id: int) -> Animal:
    animal = get_animal(session, animal_id)
    if animal.status == "adopted":
        raise ConflictError("This animal is already adopted")
    return update_animal(session, animal_id, {"status": "adopted"})


def mark_available(session: Session, animal_id: int) -> Animal:
    get_animal(session, animal_id)
    return update_animal(session, animal_id, {"status": "available"})


def count_by_status(session: Session) -> dict[str, int]:
    rows = session.exec(select(Animal.status, func.count()).group_by(Animal.status)).all()
    counts = {status: 0 for status in ANIMAL_STATUSES}
    counts.update({status: count for status, count in rows})
    return counts


def count_by_type(session: Session) -> list[dict[str, Any]]:
    rows = session.exec(
        select(Animal.type, func.count())
        .group_by(Animal.type)
        .order_by(func.count().desc(), Animal.type)
    ).all()
    return [{"type": animal_type, "count": count} for animal_type, count in rows]


def animal_stats(session: Session) -> dict[str, Any]:
    by_status = count_by_status(session)
    by_city = session.exec(
        select(Animal.city, func.count())
        .group_by(Animal.city)
        .order_by(func.count().desc(), Animal.city)
        .limit(10)
    ).all()
    return {
        "total": sum(by_status.values()),
        **by_status,
        "byType": count_by_type(session),
        "byCity": [{"city": city, "count": count} for city, count in by_city],
    }
