from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel


ANIMAL_STATUSES = ("available", "pending", "adopted")
ADOPTION_STATUSES = ("pending", "approved", "rejected")
ACTIVE_ADOPTION_STATUSES = ("pending", "approved")
VOLUNTEER_STATUSES = ("pending", "approved", "rejected")
DONATION_STATUSES = ("pending", "completed", "failed", "refunded")
CONTACT_STATUSES = ("new", "read", "replied", "closed")
CONTACT_PRIORITIES = ("low", "normal", "high", "urgent")


def utcnow() -> datetime:
    """Timezone-aware UTC timestamp; every datetime column stores UTC."""
    return datetime.now(timezone.utc)


def start_of_year(year: int) -> datetime:
    return datetime(year, 1, 1, tzinfo=timezone.utc)


def start_of_month(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    firstname: str
    lastname: str
    email: str = Field(index=True, unique=True)
    phone: Optional[str] = None
    password_hash: str
    role: str = "user"  # user | admin
    created_at: datetime = Field(default_factory=utcnow, index=True)


class Animal(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    type: str = Field(index=True)
    name: str
    city: str
    age: int
    breed: str
    description: Optional[str] = None
    status: str = Field(default="available", index=True)  # available | pending | adopted

    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)


class Adoption(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    animal_id: int = Field(foreign_key="animal.id", index=True)

    firstname: str
    lastname: str
    phone: str
    status: str = Field(default="pending", index=True)  # pending | approved | rejected
    admin_comment: Optional[str] = None

    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)


class Volunteer(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    firstname: str
    lastname: str
    email: str = Field(index=True, unique=True)
    phone: str
    city: str
    age: int
    motivation: Optional[str] = None
    experience: Optional[str] = None
    availability: Optional[str] = None
    skills: Optional[str] = None
    status: str = Field(default="pending", index=True)  # pending | approved | rejected

    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)


class Donation(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = Field(default=None, foreign_key="user.id", index=True)

    firstname: str
    lastname: str
    email: str
    phone: Optional[str] = None
    amount: float
    message: Optional[str] = None
    is_anonymous: bool = False
    payment_method: Optional[str] = None
    payment_id: Optional[str] = None
    status: str = Field(default="pending", index=True)  # pending | completed | failed | refunded

    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)


class Contact(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = Field(default=None, foreign_key="user.id", index=True)

    firstname: str
    lastname: str
    email: str
    phone: Optional[str] = None
    subject: str
    message: str
    priority: str = Field(default="normal", index=True)  # low | normal | high | urgent
    status: str = Field(default="new", index=True)  # new | read | replied | closed
    replied_at: Optional[datetime] = None

    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)
