from typing import Annotated, Optional

from fastapi import APIRouter, Query

from db import SessionDep
from schemas import (
    VolunteerCreate,
    VolunteerRead,
    VolunteerStatus,
    VolunteerStatusRead,
    VolunteerUpdate,
    envelope,
)
from services import volunteers as volunteer_service
from .auth import AdminDep

router = APIRouter(tags=["volunteers"])


def _read_all(volunteers) -> list[VolunteerRead]:
    return [VolunteerRead.model_validate(volunteer) for volunteer in volunteers]


@router.post("/apply", status_code=201)
def apply(data: VolunteerCreate, session: SessionDep):
    """
    Public volunteer application; one per email address.
    """
    volunteer = volunteer_service.apply(session, data)
    return envelope(VolunteerRead.model_validate(volunteer), message="Application received")


@router.get("/status/{email}")
def application_status(email: str, session: SessionDep):
    volunteer = volunteer_service.status_by_email(session, email)
    return envelope(VolunteerStatusRead.model_validate(volunteer))


# static admin paths are declared before /admin/{volunteer_id}

@router.get("/admin/all")
def list_volunteers(session: SessionDep, admin: AdminDep):
    volunteers = volunteer_service.list_volunteers(session)
    return envelope(_read_all(volunteers), count=len(volunteers))


@router.get("/admin/status/{status}")
def list_by_status(status: VolunteerStatus, session: SessionDep, admin: AdminDep):
    volunteers = volunteer_service.list_volunteers(session, status=status)
    return envelope(_read_all(volunteers), count=len(volunteers))


@router.get("/admin/search")
def search_volunteers(
    session: SessionDep,
    admin: AdminDep,
    city: Optional[str] = None,
    skills: Optional[str] = None,
    status: Optional[VolunteerStatus] = None,
    min_age: Annotated[Optional[int], Query(alias="minAge", ge=0)] = None,
    max_age: Annotated[Optional[int], Query(alias="maxAge", ge=0)] = None,
):
    volunteers = volunteer_service.search_volunteers(
        session,
        city=city,
        skills=skills,
        status=status,
        min_age=min_age,
        max_age=max_age,
    )
    return envelope(_read_all(volunteers), count=len(volunteers))


@router.get("/admin/stats")
def volunteer_stats(session: SessionDep, admin: AdminDep):
    return envelope(volunteer_service.volunteer_stats(session))


@router.get("/admin/{volunteer_id}")
def get_volunteer(volunteer_id: int, session: SessionDep, admin: AdminDep):
    volunteer = volunteer_service.get_volunteer(session, volunteer_id)
    return envelope(VolunteerRead.model_validate(volunteer))


@router.put("/admin/{volunteer_id}")
def update_volunteer(volunteer_id: int, data: VolunteerUpdate, session: SessionDep, admin: AdminDep):
    volunteer = volunteer_service.update_volunteer(session, volunteer_id, data.changes())
    return envelope(VolunteerRead.model_validate(volunteer), message="Volunteer updated")


@router.delete("/admin/{volunteer_id}")
def delete_volunteer(volunteer_id: int, session: SessionDep, admin: AdminDep):
    volunteer_service.delete_volunteer(session, volunteer_id)
    return envelope(message="Volunteer deleted")


@router.patch("/admin/{volunteer_id}/approve")
def approve_volunteer(volunteer_id: int, session: SessionDep, admin: AdminDep):
    volunteer = volunteer_service.set_status(session, volunteer_id, "approved")
    return envelope(VolunteerRead.model_validate(volunteer), message="Application approved")


@router.patch("/admin/{volunteer_id}/reject")
def reject_volunteer(volunteer_id: int, session: SessionDep, admin: AdminDep):
    volunteer = volunteer_service.set_status(session, volunteer_id, "rejected")
    return envelope(VolunteerRead.model_validate(volunteer), message="Application rejected")


@router.patch("/admin/{volunteer_id}/pending")
def reset_volunteer(volunteer_id: int, session: SessionDep, admin: AdminDep):
    volunteer = volunteer_service.set_status(session, volunteer_id, "pending")
    return envelope(VolunteerRead.model_validate(volunteer), message="Application reset to pending")
