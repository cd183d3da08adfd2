from typing import Any, Optional

from itsdangerous import BadSignature, URLSafeTimedSerializer
from passlib.context import CryptContext

from config import settings

serializer = URLSafeTimedSerializer(settings.SECRET_KEY, salt="auth-token")

pwd_context = CryptContext(
    schemes=["pbkdf2_sha256"],
    deprecated="auto",
)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_token(user_id: int, email: str, role: str) -> str:
    """
    Sign the identity carried by a bearer token.
    Example data:
        {"user_id": 3, "email": "ana@mail.com", "role": "user"}
    """
    return serializer.dumps({"user_id": user_id, "email": email, "role": role})


def verify_token(token: str, max_age_seconds: Optional[int] = None) -> Optional[dict[str, Any]]:
    """
    Returns the token payload if valid,
    or None if the token is tampered with or expired.
    """
    if max_age_seconds is None:
        max_age_seconds = settings.TOKEN_MAX_AGE_SECONDS
    try:
        data = serializer.loads(token, max_age=max_age_seconds)
    except BadSignature:
        return None
    if not isinstance(data, dict) or "user_id" not in data:
        return None
    return data
