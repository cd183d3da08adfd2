import logging
from typing import Any, Optional

from sqlalchemy import func
from sqlmodel import Session, col, select

from errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from models import DONATION_STATUSES, Donation, User, utcnow
from schemas import DonationCreate

logger = logging.getLogger(__name__)


def _get_donation(session: Session, donation_id: int) -> Donation:
    donation = session.get(Donation, donation_id)
    if donation is None:
        raise NotFoundError("Donation not found")
    return donation


def create_donation(session: Session, data: DonationCreate, user_id: Optional[int] = None) -> Donation:
    """
    Record a pending donation. Without a user it is anonymous whatever
    the body says.
    """
    values = data.model_dump()
    if user_id is None:
        values["is_anonymous"] = True

    donation = Donation(**values, user_id=user_id, status="pending")
    session.add(donation)
    session.commit()
    session.refresh(donation)
    logger.info(f"Donation {donation.id} of {donation.amount:.2f} recorded (user={user_id})")
    return donation


def list_for_user(session: Session, user_id: int, limit: Optional[int] = None) -> list[Donation]:
    query = (
        select(Donation)
        .where(Donation.user_id == user_id)
        .order_by(col(Donation.created_at).desc(), col(Donation.id).desc())
    )
    if limit is not None:
        query = query.limit(limit)
    return list(session.exec(query).all())


def get_for_viewer(session: Session, donation_id: int, viewer: User) -> Donation:
    """Donors see their own donations, admins see all of them."""
    donation = _get_donation(session, donation_id)
    if viewer.role != "admin" and donation.user_id != viewer.id:
        raise ForbiddenError("You can only view your own donations")
    return donation


def list_all(session: Session, status: Optional[str] = None, limit: Optional[int] = None) -> list[Donation]:
    query = select(Donation)
    if status and status != "all":
        if status not in DONATION_STATUSES:
            raise ValidationError(
                f"status: must be one of {', '.join(DONATION_STATUSES)}", field="status"
            )
        query = query.where(Donation.status == status)
    query = query.order_by(col(Donation.created_at).desc(), col(Donation.id).desc())
    if limit is not None:
        query = query.limit(limit)
    return list(session.exec(query).all())


def update_donation(session: Session, donation_id: int, changes: dict[str, Any]) -> Donation:
    donation = _get_donation(session, donation_id)
    for key, value in changes.items():
        setattr(donation, key, value)
    donation.updated_at = utcnow()
    session.add(donation)
    session.commit()
    session.refresh(donation)
    if "status" in changes:
        logger.info(f"Donation {donation_id} marked {donation.status}")
    return donation


def delete_donation(session: Session, donation_id: int) -> None:
    donation = _get_donation(session, donation_id)
    if donation.status == "completed":
        raise ConflictError("A completed donation cannot be deleted")
    session.delete(donation)
    session.commit()
    logger.info(f"Donation {donation_id} deleted")


def completed_total(session: Session, *conditions) -> tuple[float, int]:
    """(sum, count) of completed donations matching the extra conditions."""
    amount, count = session.exec(
        select(func.coalesce(func.sum(Donation.amount), 0.0), func.count())
        .where(Donation.status == "completed", *conditions)
    ).one()
    return float(amount), count


def count_by_status(session: Session, user_id: Optional[int] = None) -> dict[str, int]:
    query = select(Donation.status, func.count()).group_by(Donation.status)
    if user_id is not None:
        query = query.where(Donation.user_id == user_id)
    counts = {status: 0 for status in DONATION_STATUSES}
    counts.update({status: count for status, count in session.exec(query).all()})
    return counts


def donation_stats(session: Session) -> dict[str, Any]:
    counts = count_by_status(session)
    total_amount, _ = completed_total(session)
    return {
        "totalAmount": total_amount,
        "totalDonations": sum(counts.values()),
        "completedDonations": counts["completed"],
        "pendingDonations": counts["pending"],
        "failedDonations": counts["failed"],
        "refundedDonations": counts["refunded"],
    }
