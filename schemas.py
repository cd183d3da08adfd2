import re
from datetime import datetime
from typing import Annotated, Any, ClassVar, Literal, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


# French numbers: 0X XX XX XX XX or +33 X XX XX XX XX
PHONE_RE = re.compile(r"^(?:(?:\+33|0)[1-9][0-9]{8})$")


def is_valid_phone(value: str) -> bool:
    return bool(PHONE_RE.match(re.sub(r"[\s.\-]", "", value)))


def _check_phone(value: Optional[str]) -> Optional[str]:
    if value is not None and not is_valid_phone(value):
        raise ValueError("Invalid phone number (French format expected)")
    return value


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    return value or None


def _lower(value: Optional[str]) -> Optional[str]:
    return value.lower() if value else value


Role = Literal["user", "admin"]
AnimalStatus = Literal["available", "pending", "adopted"]
AdoptionDecisionStatus = Literal["approved", "rejected"]
VolunteerStatus = Literal["pending", "approved", "rejected"]
DonationStatus = Literal["pending", "completed", "failed", "refunded"]
ContactStatus = Literal["new", "read", "replied", "closed"]
ContactPriority = Literal["low", "normal", "high", "urgent"]

Email = Annotated[EmailStr, AfterValidator(_lower)]
Phone = Annotated[str, AfterValidator(_check_phone)]
OptionalText = Annotated[Optional[str], AfterValidator(_blank_to_none)]


def envelope(data: Any = None, message: Optional[str] = None, **extra: Any) -> dict[str, Any]:
    """Standard success body: {"success": true, "message"?, "data"?, ...}."""
    body: dict[str, Any] = {"success": True}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    body.update({key: value for key, value in extra.items() if value is not None})
    return body


class InputModel(BaseModel):
    """Request bodies: camelCase or snake_case keys, unknown keys rejected."""

    model_config = ConfigDict(
        extra="forbid",
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class ReadModel(BaseModel):
    """Response shapes built from ORM rows, serialized with camelCase keys."""

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class PartialUpdate(InputModel):
    """
    Update bodies must carry at least one field. An explicit null is only
    accepted for fields listed in `nullable_fields` (nullable columns).
    """

    nullable_fields: ClassVar[frozenset[str]] = frozenset()

    @field_validator("*")
    @classmethod
    def _reject_null(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None and info.field_name not in cls.nullable_fields:
            raise ValueError("must not be null")
        return value

    @model_validator(mode="after")
    def _require_one_field(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


# =============================================================================
# Users / auth
# =============================================================================

class RegisterData(InputModel):
    firstname: str = Field(min_length=1, max_length=100)
    lastname: str = Field(min_length=1, max_length=100)
    email: Email
    password: str = Field(min_length=6, max_length=128)
    phone: OptionalText = Field(default=None, max_length=30)


class LoginData(InputModel):
    email: Email
    password: str = Field(min_length=1)


class ProfileUpdate(PartialUpdate):
    nullable_fields = frozenset({"phone"})

    firstname: Optional[str] = Field(default=None, min_length=1, max_length=100)
    lastname: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[Email] = None
    phone: OptionalText = Field(default=None, max_length=30)


class AdminUserCreate(RegisterData):
    role: Role = "user"
    password: Optional[str] = Field(default=None, min_length=6, max_length=128)


class AdminUserUpdate(ProfileUpdate):
    role: Optional[Role] = None


class RoleUpdate(InputModel):
    role: Role


class UserSummary(ReadModel):
    id: int
    firstname: str
    lastname: str
    email: str


class UserRead(UserSummary):
    phone: Optional[str] = None
    role: str
    created_at: datetime


class AdminUserRead(UserRead):
    total_adoptions: int = 0
    pending_adoptions: int = 0
    approved_adoptions: int = 0
    total_donations: int = 0
    total_donation_amount: float = 0.0


# =============================================================================
# Animals
# =============================================================================

class AnimalCreate(InputModel):
    type: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=2, max_length=50)
    city: str = Field(min_length=1, max_length=100)
    age: int = Field(ge=1, le=30)
    breed: str = Field(min_length=1, max_length=100)
    description: OptionalText = Field(default=None, max_length=2000)


class AnimalUpdate(PartialUpdate):
    nullable_fields = frozenset({"description"})

    type: Optional[str] = Field(default=None, min_length=1, max_length=50)
    name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    city: Optional[str] = Field(default=None, min_length=1, max_length=100)
    age: Optional[int] = Field(default=None, ge=1, le=30)
    breed: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: OptionalText = Field(default=None, max_length=2000)
    status: Optional[AnimalStatus] = None


class AnimalSummary(ReadModel):
    id: int
    name: str
    type: str
    breed: str
    age: int
    city: str
    description: Optional[str] = None
    status: str


class AnimalRead(AnimalSummary):
    created_at: datetime
    updated_at: datetime


# =============================================================================
# Adoptions
# =============================================================================

class AdoptionCreate(InputModel):
    animal_id: int = Field(gt=0)
    firstname: str = Field(min_length=1, max_length=100)
    lastname: str = Field(min_length=1, max_length=100)
    phone: Phone = Field(max_length=30)


class AdoptionDecision(InputModel):
    status: AdoptionDecisionStatus
    admin_comment: OptionalText = Field(default=None, max_length=500)


class AdoptionRead(ReadModel):
    id: int
    user_id: int
    animal_id: int
    firstname: str
    lastname: str
    phone: str
    status: str
    admin_comment: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    animal: Optional[AnimalSummary] = None
    user: Optional[UserSummary] = None


class AnimalDetail(AnimalRead):
    adoptions: list[AdoptionRead] = []


# =============================================================================
# Volunteers
# =============================================================================

class VolunteerCreate(InputModel):
    firstname: str = Field(min_length=2, max_length=100)
    lastname: str = Field(min_length=2, max_length=100)
    email: Email
    phone: Phone = Field(max_length=30)
    city: str = Field(min_length=1, max_length=100)
    age: int = Field(ge=16, le=100)
    motivation: OptionalText = Field(default=None, max_length=2000)
    experience: OptionalText = Field(default=None, max_length=2000)
    availability: OptionalText = Field(default=None, max_length=500)
    skills: OptionalText = Field(default=None, max_length=500)


class VolunteerUpdate(PartialUpdate):
    nullable_fields = frozenset({"motivation", "experience", "availability", "skills"})

    firstname: Optional[str] = Field(default=None, min_length=2, max_length=100)
    lastname: Optional[str] = Field(default=None, min_length=2, max_length=100)
    email: Optional[Email] = None
    phone: Optional[Phone] = Field(default=None, max_length=30)
    city: Optional[str] = Field(default=None, min_length=1, max_length=100)
    age: Optional[int] = Field(default=None, ge=16, le=100)
    motivation: OptionalText = Field(default=None, max_length=2000)
    experience: OptionalText = Field(default=None, max_length=2000)
    availability: OptionalText = Field(default=None, max_length=500)
    skills: OptionalText = Field(default=None, max_length=500)
    status: Optional[VolunteerStatus] = None


class VolunteerStatusRead(ReadModel):
    firstname: str
    lastname: str
    email: str
    status: str
    created_at: datetime


class VolunteerRead(VolunteerStatusRead):
    id: int
    phone: str
    city: str
    age: int
    motivation: Optional[str] = None
    experience: Optional[str] = None
    availability: Optional[str] = None
    skills: Optional[str] = None
    updated_at: datetime


# =============================================================================
# Donations
# =============================================================================

class DonationCreate(InputModel):
    firstname: str = Field(min_length=1, max_length=100)
    lastname: str = Field(min_length=1, max_length=100)
    email: Email
    phone: OptionalText = Field(default=None, max_length=30)
    amount: float = Field(gt=0, le=1_000_000)
    message: OptionalText = Field(default=None, max_length=2000)
    is_anonymous: bool = False
    payment_method: OptionalText = Field(default=None, max_length=50)


class DonationUpdate(PartialUpdate):
    nullable_fields = frozenset({"payment_id", "payment_method"})

    status: Optional[DonationStatus] = None
    payment_id: OptionalText = Field(default=None, max_length=200)
    payment_method: OptionalText = Field(default=None, max_length=50)


class DonationRead(ReadModel):
    id: int
    user_id: Optional[int] = None
    firstname: str
    lastname: str
    email: str
    phone: Optional[str] = None
    amount: float
    message: Optional[str] = None
    is_anonymous: bool
    payment_method: Optional[str] = None
    payment_id: Optional[str] = None
    status: str
    created_at: datetime
    updated_at: datetime


# =============================================================================
# Contacts
# =============================================================================

class ContactCreate(InputModel):
    subject: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1, max_length=5000)
    priority: ContactPriority = "normal"
    phone: OptionalText = Field(default=None, max_length=30)


class AnonymousContactCreate(ContactCreate):
    firstname: str = Field(min_length=1, max_length=100)
    lastname: str = Field(min_length=1, max_length=100)
    email: Email


class ContactUpdate(PartialUpdate):
    status: Optional[ContactStatus] = None
    priority: Optional[ContactPriority] = None


class ContactRead(ReadModel):
    id: int
    user_id: Optional[int] = None
    firstname: str
    lastname: str
    email: str
    phone: Optional[str] = None
    subject: str
    message: str
    priority: str
    status: str
    replied_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
