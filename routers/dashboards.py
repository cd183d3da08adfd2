from typing import Annotated, Optional

from fastapi import APIRouter, Query

from db import SessionDep
from models import utcnow
from schemas import envelope
from services import adoptions as adoption_service
from services import dashboards as dashboard_service
from .auth import AdminDep, CurrentUserDep

user_router = APIRouter(tags=["user dashboard"])
admin_router = APIRouter(tags=["admin dashboard"])


@user_router.get("/dashboard")
def user_dashboard(session: SessionDep, current: CurrentUserDep):
    return envelope(dashboard_service.user_dashboard(session, current))


@user_router.get("/dashboard/donations")
def user_donations(
    session: SessionDep,
    current: CurrentUserDep,
    year: Annotated[Optional[int], Query(ge=2000, le=2100)] = None,
):
    year = year or utcnow().year
    return envelope(dashboard_service.user_donations(session, current.id, year))


@user_router.get("/dashboard/adoptions")
def user_adoptions(session: SessionDep, current: CurrentUserDep):
    adoptions = adoption_service.list_for_user(session, current.id)
    return envelope(adoptions, count=len(adoptions))


@user_router.get("/dashboard/stats")
def user_quick_stats(session: SessionDep, current: CurrentUserDep):
    return envelope(dashboard_service.user_quick_stats(session, current.id))


@admin_router.get("/admin/dashboard")
def admin_dashboard(session: SessionDep, admin: AdminDep):
    return envelope(dashboard_service.admin_dashboard(session))


@admin_router.get("/admin/dashboard/stats")
def admin_quick_stats(session: SessionDep, admin: AdminDep):
    return envelope(dashboard_service.admin_quick_stats(session))
