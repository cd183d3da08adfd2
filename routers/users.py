# routers/users.py
from fastapi import APIRouter

from db import SessionDep
from schemas import AdminUserCreate, AdminUserUpdate, RoleUpdate, UserRead, envelope
from services import users as user_service
from .auth import AdminDep, CurrentUserDep

router = APIRouter(tags=["user admin"])
admin_router = APIRouter(tags=["admins"])


@router.get("/admin/users")
def list_users(session: SessionDep, admin: AdminDep):
    """
    All accounts, newest first, with adoption and donation counts.
    """
    users = user_service.list_with_stats(session)
    return envelope(users, count=len(users))


@router.post("/admin/users", status_code=201)
def create_user(data: AdminUserCreate, session: SessionDep, admin: AdminDep):
    user, temporary_password = user_service.admin_create(session, data)
    body = UserRead.model_validate(user).model_dump(by_alias=True, mode="json")
    if temporary_password is not None:
        body["temporaryPassword"] = temporary_password
    return envelope(body, message="User created")


@router.get("/admin/users-stats")
def user_stats(session: SessionDep, admin: AdminDep):
    return envelope(user_service.user_stats(session))


@router.get("/admin/users/{user_id}")
def get_user(user_id: int, session: SessionDep, admin: AdminDep):
    user = user_service.get_user(session, user_id)
    return envelope(user_service.with_stats(session, user))


@router.put("/admin/users/{user_id}")
def update_user(user_id: int, data: AdminUserUpdate, session: SessionDep, admin: AdminDep):
    user = user_service.admin_update(session, admin, user_id, data.changes())
    return envelope(UserRead.model_validate(user), message="User updated")


@router.delete("/admin/users/{user_id}")
def delete_user(user_id: int, session: SessionDep, admin: AdminDep):
    """
    Admins cannot delete their own account.
    """
    user_service.delete_user(session, admin, user_id)
    return envelope(message="User deleted")


@router.patch("/admin/users/{user_id}/role")
def change_role(user_id: int, data: RoleUpdate, session: SessionDep, admin: AdminDep):
    user = user_service.change_role(session, admin, user_id, data.role)
    return envelope(UserRead.model_validate(user), message=f"Role changed to {user.role}")


@admin_router.get("/admins")
def list_admins(session: SessionDep, admin: AdminDep):
    admins = [UserRead.model_validate(user) for user in user_service.list_users(session, role="admin")]
    return envelope(admins, count=len(admins))


@admin_router.post("/promote/{user_id}")
def promote(user_id: int, session: SessionDep, admin: AdminDep):
    user = user_service.promote(session, admin, user_id)
    return envelope(UserRead.model_validate(user), message="User promoted to admin")


@admin_router.post("/demote/{user_id}")
def demote(user_id: int, session: SessionDep, admin: AdminDep):
    user = user_service.demote(session, admin, user_id)
    return envelope(UserRead.model_validate(user), message="Admin demoted to user")


@admin_router.get("/stats")
def admin_stats(session: SessionDep, admin: AdminDep):
    admins = [UserRead.model_validate(user) for user in user_service.list_users(session, role="admin")]
    return envelope({"totalAdmins": len(admins), "admins": admins})


@admin_router.get("/check")
def check_admin(current: CurrentUserDep):
    return envelope({"isAdmin": current.role == "admin", "userId": current.id})
