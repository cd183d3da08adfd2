import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from db import SessionDep
from errors import AuthError, ForbiddenError
from models import User
from schemas import LoginData, ProfileUpdate, RegisterData, UserRead, envelope
from security import create_token, verify_token
from services import adoptions as adoption_service
from services import users as user_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

bearer_scheme = HTTPBearer(auto_error=False)
BearerDep = Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)]


def _user_from_token(session: SessionDep, token: str) -> Optional[User]:
    data = verify_token(token)
    if not data:
        return None
    return session.get(User, data["user_id"])


def get_current_user(session: SessionDep, credentials: BearerDep) -> User:
    """
    Reads the bearer token, verifies it and loads the account from the
    database. Raises 401 if the token is missing, invalid or stale.
    """
    if credentials is None:
        raise AuthError("Missing authentication token")

    data = verify_token(credentials.credentials)
    if not data:
        raise AuthError("Invalid or expired token")

    user = session.get(User, data["user_id"])
    if user is None:
        raise AuthError("User not found for this token")
    return user


CurrentUserDep = Annotated[User, Depends(get_current_user)]


def get_optional_user(session: SessionDep, credentials: BearerDep) -> Optional[User]:
    """
    Like get_current_user, but returns None instead of raising 401.
    """
    if credentials is None:
        return None
    return _user_from_token(session, credentials.credentials)


OptionalUserDep = Annotated[Optional[User], Depends(get_optional_user)]


def require_admin(user: CurrentUserDep) -> User:
    # role comes from the row just loaded, never from the token
    if user.role != "admin":
        raise ForbiddenError("Admin access required")
    return user


AdminDep = Annotated[User, Depends(require_admin)]


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _session_payload(user: User) -> dict:
    return {
        "token": create_token(user.id, user.email, user.role),
        "user": UserRead.model_validate(user),
    }


@router.post("/register", status_code=201)
def register(data: RegisterData, session: SessionDep):
    """
    Create a regular account and return a token for it.
    """
    user = user_service.register(session, data)
    return envelope(_session_payload(user), message="Registration successful")


@router.post("/login")
def login(data: LoginData, request: Request, session: SessionDep):
    logger.info(f"Login attempt - email: {data.email}, ip: {_client_ip(request)}")
    try:
        user = user_service.authenticate(session, data.email, data.password)
    except AuthError:
        logger.warning(f"Login failed - email: {data.email}, ip: {_client_ip(request)}")
        raise
    return envelope(_session_payload(user), message="Login successful")


@router.get("/profile")
def read_profile(current: CurrentUserDep, session: SessionDep):
    """
    The logged-in account with its adoption history.
    """
    return envelope({
        "user": UserRead.model_validate(current),
        "adoptions": adoption_service.list_for_user(session, current.id),
    })


@router.put("/profile")
def update_profile(data: ProfileUpdate, current: CurrentUserDep, session: SessionDep):
    user = user_service.update_user(session, current, data.changes())
    return envelope(UserRead.model_validate(user), message="Profile updated")
