import logging
import secrets
from datetime import timedelta
from typing import Any, Optional

from sqlalchemy import func, or_
from sqlmodel import Session, col, select

from errors import AuthError, ConflictError, ForbiddenError, NotFoundError
from models import Adoption, Contact, Donation, User, utcnow
from schemas import AdminUserCreate, AdminUserRead, RegisterData
from security import hash_password, verify_password

logger = logging.getLogger(__name__)


def get_user(session: Session, user_id: int) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def get_by_email(session: Session, email: str) -> Optional[User]:
    return session.exec(select(User).where(User.email == email.strip().lower())).first()


def _ensure_email_free(session: Session, email: str, exclude_id: Optional[int] = None) -> None:
    existing = get_by_email(session, email)
    if existing is not None and existing.id != exclude_id:
        raise ConflictError("Email already registered")


def register(session: Session, data: RegisterData, role: str = "user") -> User:
    _ensure_email_free(session, data.email)
    user = User(
        firstname=data.firstname,
        lastname=data.lastname,
        email=data.email,
        phone=data.phone,
        password_hash=hash_password(data.password),
        role=role,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info(f"User {user.id} registered ({user.role})")
    return user


def authenticate(session: Session, email: str, password: str) -> User:
    user = get_by_email(session, email)
    if user is None or not verify_password(password, user.password_hash):
        raise AuthError("Invalid email or password")
    return user


def update_user(session: Session, user: User, changes: dict[str, Any]) -> User:
    if "email" in changes:
        _ensure_email_free(session, changes["email"], exclude_id=user.id)
    for key, value in changes.items():
        setattr(user, key, value)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def with_stats(session: Session, user: User) -> AdminUserRead:
    """Account plus adoption counts and completed donation totals."""
    adoption_counts = dict(
        session.exec(
            select(Adoption.status, func.count())
            .where(Adoption.user_id == user.id)
            .group_by(Adoption.status)
        ).all()
    )
    donation_count, donation_amount = session.exec(
        select(func.count(), func.coalesce(func.sum(Donation.amount), 0.0))
        .where(Donation.user_id == user.id, Donation.status == "completed")
    ).one()
    return AdminUserRead.model_validate(user).model_copy(
        update={
            "total_adoptions": sum(adoption_counts.values()),
            "pending_adoptions": adoption_counts.get("pending", 0),
            "approved_adoptions": adoption_counts.get("approved", 0),
            "total_donations": donation_count,
            "total_donation_amount": float(donation_amount),
        }
    )


def list_users(session: Session, role: Optional[str] = None) -> list[User]:
    query = select(User)
    if role is not None:
        query = query.where(User.role == role)
    query = query.order_by(col(User.created_at).desc(), col(User.id).desc())
    return list(session.exec(query).all())


def list_with_stats(session: Session) -> list[AdminUserRead]:
    return [with_stats(session, user) for user in list_users(session)]


def admin_create(session: Session, data: AdminUserCreate) -> tuple[User, Optional[str]]:
    """
    Create an account for someone else. When no password is given a
    temporary one is generated and returned once.
    """
    temporary_password = None
    if data.password is None:
        temporary_password = secrets.token_urlsafe(9)
    register_data = RegisterData(
        firstname=data.firstname,
        lastname=data.lastname,
        email=data.email,
        phone=data.phone,
        password=data.password or temporary_password,
    )
    user = register(session, register_data, role=data.role)
    return user, temporary_password


def admin_update(session: Session, actor: User, user_id: int, changes: dict[str, Any]) -> User:
    user = get_user(session, user_id)
    if "role" in changes and user.id == actor.id and changes["role"] != user.role:
        raise ForbiddenError("You cannot change your own role")
    if "role" in changes and changes["role"] != user.role:
        logger.info(f"Admin {actor.id} set role of user {user_id} to {changes['role']}")
    return update_user(session, user, changes)


def change_role(session: Session, actor: User, user_id: int, role: str) -> User:
    user = get_user(session, user_id)
    if user.id == actor.id:
        raise ForbiddenError("You cannot change your own role")
    if user.role == role:
        raise ConflictError(f"User is already {role}")
    user = update_user(session, user, {"role": role})
    logger.info(f"Admin {actor.id} set role of user {user_id} to {role}")
    return user


def promote(session: Session, actor: User, user_id: int) -> User:
    return change_role(session, actor, user_id, "admin")


def demote(session: Session, actor: User, user_id: int) -> User:
    return change_role(session, actor, user_id, "user")


def delete_user(session: Session, actor: User, user_id: int) -> None:
    """
    Remove an account. Its open and rejected adoption requests go with it;
    donations and messages are kept but detached from the account.
    """
    user = get_user(session, user_id)
    if user.id == actor.id:
        raise ForbiddenError("You cannot delete your own account")

    adoptions = session.exec(select(Adoption).where(Adoption.user_id == user_id)).all()
    if any(adoption.status == "approved" for adoption in adoptions):
        raise ConflictError("Cannot delete a user with an approved adoption")
    for adoption in adoptions:
        session.delete(adoption)

    for donation in session.exec(select(Donation).where(Donation.user_id == user_id)).all():
        donation.user_id = None
        session.add(donation)
    for contact in session.exec(select(Contact).where(Contact.user_id == user_id)).all():
        contact.user_id = None
        session.add(contact)

    session.delete(user)
    session.commit()
    logger.info(f"Admin {actor.id} deleted user {user_id}")


def active_user_count(session: Session, since=None) -> int:
    """Users with at least one adoption, donation or message (optionally since a date)."""
    adoption_q = select(Adoption.user_id)
    donation_q = select(Donation.user_id)
    contact_q = select(Contact.user_id)
    if since is not None:
        adoption_q = adoption_q.where(Adoption.created_at >= since)
        donation_q = donation_q.where(Donation.created_at >= since)
        contact_q = contact_q.where(Contact.created_at >= since)
    return session.exec(
        select(func.count())
        .select_from(User)
        .where(
            or_(
                col(User.id).in_(adoption_q),
                col(User.id).in_(donation_q),
                col(User.id).in_(contact_q),
            )
        )
    ).one()


def user_stats(session: Session) -> dict[str, Any]:
    by_role = dict(session.exec(select(User.role, func.count()).group_by(User.role)).all())
    recent = session.exec(
        select(func.count())
        .select_from(User)
        .where(User.created_at >= utcnow() - timedelta(days=30))
    ).one()
    return {
        "totalUsers": sum(by_role.values()),
        "totalAdmins": by_role.get("admin", 0),
        "totalRegularUsers": by_role.get("user", 0),
        "recentUsers": recent,
        "activeUsers": active_user_count(session),
    }
