import logging
from typing import Any, Optional

from sqlalchemy import func, update
from sqlmodel import Session, col, select

from errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from models import ACTIVE_ADOPTION_STATUSES, ADOPTION_STATUSES, Adoption, Animal, User, start_of_month, utcnow
from schemas import AdoptionCreate, AdoptionRead, AnimalSummary, UserSummary

logger = logging.getLogger(__name__)

AUTO_REJECT_COMMENT = "Automatically rejected: animal adopted by another applicant"


def to_read(
    adoption: Adoption,
    animal: Optional[Animal] = None,
    user: Optional[User] = None,
) -> AdoptionRead:
    read = AdoptionRead.model_validate(adoption)
    return read.model_copy(
        update={
            "animal": AnimalSummary.model_validate(animal) if animal is not None else None,
            "user": UserSummary.model_validate(user) if user is not None else None,
        }
    )


def _get_adoption(session: Session, adoption_id: int) -> Adoption:
    adoption = session.get(Adoption, adoption_id)
    if adoption is None:
        raise NotFoundError("Adoption request not found")
    return adoption


def _count_pending(session: Session, animal_id: int) -> int:
    return session.exec(
        select(func.count())
        .select_from(Adoption)
        .where(Adoption.animal_id == animal_id, Adoption.status == "pending")
    ).one()


def create_adoption(session: Session, user_id: int, data: AdoptionCreate) -> AdoptionRead:
    """
    File a pending request for an available animal.

    The animal keeps its status; it only changes when a request is decided.
    """
    animal = session.get(Animal, data.animal_id)
    if animal is None:
        raise NotFoundError("Animal not found")
    if animal.status != "available":
        raise ConflictError("This animal is no longer available for adoption")

    existing = session.exec(
        select(Adoption.id).where(
            Adoption.user_id == user_id,
            Adoption.animal_id == data.animal_id,
            col(Adoption.status).in_(ACTIVE_ADOPTION_STATUSES),
        )
    ).first()
    if existing is not None:
        raise ConflictError("You already have an adoption request for this animal")

    adoption = Adoption(
        user_id=user_id,
        animal_id=data.animal_id,
        firstname=data.firstname,
        lastname=data.lastname,
        phone=data.phone,
        status="pending",
    )
    session.add(adoption)
    session.commit()
    session.refresh(adoption)
    logger.info(f"Adoption request {adoption.id} filed by user {user_id} for animal {animal.id}")
    return to_read(adoption, animal=animal)


def decide_adoption(
    session: Session,
    adoption_id: int,
    status: str,
    admin_comment: Optional[str] = None,
) -> AdoptionRead:
    """
    Approve or reject a pending request in a single transaction.

    Approval claims the animal with a conditional update: if it is already
    adopted nothing is written and the request stays pending. Every other
    pending request for the animal is then rejected. Rejecting the last
    pending request of an animal that is not adopted makes it available.
    """
    if status not in ("approved", "rejected"):
        raise ValidationError("status: must be approved or rejected", field="status")

    adoption = _get_adoption(session, adoption_id)
    if adoption.status != "pending":
        raise ConflictError(f"This adoption request is already {adoption.status}")

    animal_id = adoption.animal_id
    now = utcnow()
    try:
        claimed = session.exec(
            update(Adoption)
            .where(col(Adoption.id) == adoption_id, col(Adoption.status) == "pending")
            .values(status=status, admin_comment=admin_comment, updated_at=now)
        )
        if claimed.rowcount != 1:
            raise ConflictError("This adoption request has already been processed")

        if status == "approved":
            adopted = session.exec(
                update(Animal)
                .where(col(Animal.id) == animal_id, col(Animal.status) != "adopted")
                .values(status="adopted", updated_at=now)
            )
            if adopted.rowcount != 1:
                raise ConflictError("This animal has already been adopted")

            rejected = session.exec(
                update(Adoption)
                .where(
                    col(Adoption.animal_id) == animal_id,
                    col(Adoption.id) != adoption_id,
                    col(Adoption.status) == "pending",
                )
                .values(status="rejected", admin_comment=AUTO_REJECT_COMMENT, updated_at=now)
            )
            logger.info(
                f"Adoption {adoption_id} approved, animal {animal_id} adopted, "
                f"{rejected.rowcount} competing request(s) rejected"
            )
        else:
            if _count_pending(session, animal_id) == 0:
                session.exec(
                    update(Animal)
                    .where(col(Animal.id) == animal_id, col(Animal.status) != "adopted")
                    .values(status="available", updated_at=now)
                )
            logger.info(f"Adoption {adoption_id} rejected")

        session.commit()
    except Exception:
        session.rollback()
        raise

    return get_adoption_detail(session, adoption_id)


def get_adoption_detail(session: Session, adoption_id: int) -> AdoptionRead:
    row = session.exec(
        select(Adoption, Animal, User)
        .join(Animal, col(Animal.id) == Adoption.animal_id)
        .join(User, col(User.id) == Adoption.user_id)
        .where(Adoption.id == adoption_id)
    ).first()
    if row is None:
        raise NotFoundError("Adoption request not found")
    adoption, animal, user = row
    return to_read(adoption, animal=animal, user=user)


def get_for_user(session: Session, adoption_id: int, user_id: int) -> AdoptionRead:
    adoption = _get_adoption(session, adoption_id)
    if adoption.user_id != user_id:
        raise ForbiddenError("You can only view your own adoption requests")
    return to_read(adoption, animal=session.get(Animal, adoption.animal_id))


def list_for_user(session: Session, user_id: int, limit: Optional[int] = None) -> list[AdoptionRead]:
    query = (
        select(Adoption, Animal)
        .join(Animal, col(Animal.id) == Adoption.animal_id)
        .where(Adoption.user_id == user_id)
        .order_by(col(Adoption.created_at).desc(), col(Adoption.id).desc())
    )
    if limit is not None:
        query = query.limit(limit)
    return [to_read(adoption, animal=animal) for adoption, animal in session.exec(query).all()]


def list_all(session: Session, status: Optional[str] = None, limit: Optional[int] = None) -> list[AdoptionRead]:
    """Admin listing; a missing status or "all" disables the filter."""
    query = (
        select(Adoption, Animal, User)
        .join(Animal, col(Animal.id) == Adoption.animal_id)
        .join(User, col(User.id) == Adoption.user_id)
    )
    if status and status != "all":
        if status not in ADOPTION_STATUSES:
            raise ValidationError(
                f"status: must be one of {', '.join(ADOPTION_STATUSES)} or all", field="status"
            )
        query = query.where(Adoption.status == status)
    query = query.order_by(col(Adoption.created_at).desc(), col(Adoption.id).desc())
    if limit is not None:
        query = query.limit(limit)
    return [
        to_read(adoption, animal=animal, user=user)
        for adoption, animal, user in session.exec(query).all()
    ]


def cancel_adoption(session: Session, adoption_id: int, requester_id: int) -> None:
    """Applicants may withdraw their own request while it is pending."""
    adoption = _get_adoption(session, adoption_id)
    if adoption.user_id != requester_id:
        raise ForbiddenError("You can only cancel your own adoption requests")
    if adoption.status != "pending":
        raise ConflictError("Only pending adoption requests can be cancelled")
    session.delete(adoption)
    session.commit()
    logger.info(f"Adoption {adoption_id} cancelled by user {requester_id}")


def admin_delete(session: Session, adoption_id: int) -> None:
    adoption = _get_adoption(session, adoption_id)
    if adoption.status == "approved":
        raise ConflictError("An approved adoption cannot be deleted")
    session.delete(adoption)
    session.commit()
    logger.info(f"Adoption {adoption_id} deleted by an admin")


def count_by_status(session: Session, user_id: Optional[int] = None) -> dict[str, int]:
    query = select(Adoption.status, func.count()).group_by(Adoption.status)
    if user_id is not None:
        query = query.where(Adoption.user_id == user_id)
    counts = {status: 0 for status in ADOPTION_STATUSES}
    counts.update({status: count for status, count in session.exec(query).all()})
    return counts


def adoption_stats(session: Session) -> dict[str, Any]:
    counts = count_by_status(session)
    this_month = session.exec(
        select(func.count())
        .select_from(Adoption)
        .where(Adoption.created_at >= start_of_month(utcnow()))
    ).one()
    return {
        "total": sum(counts.values()),
        **counts,
        "thisMonth": this_month,
        "recent": list_all(session, limit=10),
    }
