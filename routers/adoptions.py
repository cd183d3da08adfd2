from typing import Optional

from fastapi import APIRouter

from db import SessionDep
from schemas import AdoptionCreate, AdoptionDecision, envelope
from services import adoptions as adoption_service
from .auth import AdminDep, CurrentUserDep

router = APIRouter(tags=["adoptions"])


@router.post("/adoptions", status_code=201)
def create_adoption(data: AdoptionCreate, session: SessionDep, current: CurrentUserDep):
    adoption = adoption_service.create_adoption(session, current.id, data)
    return envelope(adoption, message="Adoption request created")


@router.get("/my-adoption")
def my_adoptions(session: SessionDep, current: CurrentUserDep):
    adoptions = adoption_service.list_for_user(session, current.id)
    return envelope(adoptions, count=len(adoptions))


@router.delete("/adoption/{adoption_id}")
def cancel_adoption(adoption_id: int, session: SessionDep, current: CurrentUserDep):
    """
    Applicants can withdraw their own request while it is still pending.
    """
    adoption_service.cancel_adoption(session, adoption_id, current.id)
    return envelope(message="Adoption request cancelled")


@router.get("/adoptions/{adoption_id}")
def get_adoption(adoption_id: int, session: SessionDep, current: CurrentUserDep):
    return envelope(adoption_service.get_for_user(session, adoption_id, current.id))


@router.get("/admin/adoptions")
def list_adoptions(session: SessionDep, admin: AdminDep, status: Optional[str] = None):
    adoptions = adoption_service.list_all(session, status=status)
    return envelope(adoptions, count=len(adoptions))


@router.get("/admin/adoptions/stats")
def adoption_stats(session: SessionDep, admin: AdminDep):
    return envelope(adoption_service.adoption_stats(session))


@router.put("/admin/adoptions/{adoption_id}")
def decide_adoption(
    adoption_id: int,
    decision: AdoptionDecision,
    session: SessionDep,
    admin: AdminDep,
):
    """
    Approve or reject a pending request.

    Approving adopts the animal and rejects the other pending requests for it.
    """
    adoption = adoption_service.decide_adoption(
        session, adoption_id, decision.status, decision.admin_comment
    )
    return envelope(adoption, message=f"Adoption request {decision.status}")


@router.delete("/admin/adoptions/{adoption_id}")
def delete_adoption(adoption_id: int, session: SessionDep, admin: AdminDep):
    adoption_service.admin_delete(session, adoption_id)
    return envelope(message="Adoption request deleted")
