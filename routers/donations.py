from typing import Optional

from fastapi import APIRouter

from db import SessionDep
from schemas import DonationCreate, DonationRead, DonationStatus, DonationUpdate, envelope
from services import donations as donation_service
from .auth import AdminDep, CurrentUserDep

router = APIRouter(tags=["donations"])


def _read_all(donations) -> list[DonationRead]:
    return [DonationRead.model_validate(donation) for donation in donations]


@router.post("/donations", status_code=201)
def create_donation(data: DonationCreate, session: SessionDep, current: CurrentUserDep):
    donation = donation_service.create_donation(session, data, user_id=current.id)
    return envelope(DonationRead.model_validate(donation), message="Donation recorded")


@router.post("/donations/anonymous", status_code=201)
def create_anonymous_donation(data: DonationCreate, session: SessionDep):
    donation = donation_service.create_donation(session, data)
    return envelope(DonationRead.model_validate(donation), message="Donation recorded")


@router.get("/my-donations")
def my_donations(session: SessionDep, current: CurrentUserDep):
    donations = donation_service.list_for_user(session, current.id)
    return envelope(_read_all(donations), count=len(donations))


@router.get("/donations/{donation_id}")
def get_donation(donation_id: int, session: SessionDep, current: CurrentUserDep):
    donation = donation_service.get_for_viewer(session, donation_id, current)
    return envelope(DonationRead.model_validate(donation))


@router.get("/admin/donations")
def list_donations(session: SessionDep, admin: AdminDep, status: Optional[DonationStatus] = None):
    donations = donation_service.list_all(session, status=status)
    return envelope(_read_all(donations), count=len(donations))


@router.get("/admin/donations/stats")
def donation_stats(session: SessionDep, admin: AdminDep):
    return envelope(donation_service.donation_stats(session))


@router.put("/admin/donations/{donation_id}")
def update_donation(donation_id: int, data: DonationUpdate, session: SessionDep, admin: AdminDep):
    donation = donation_service.update_donation(session, donation_id, data.changes())
    return envelope(DonationRead.model_validate(donation), message="Donation updated")


@router.delete("/admin/donations/{donation_id}")
def delete_donation(donation_id: int, session: SessionDep, admin: AdminDep):
    """
    Completed donations cannot be deleted.
    """
    donation_service.delete_donation(session, donation_id)
    return envelope(message="Donation deleted")
