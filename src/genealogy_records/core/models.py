"""
Core data models for genealogy record keeping.

Records mirror the rows held by the record store:
- Identity (User) accounts created through the external auth provider
- Genealogies (family trees) owned by exactly one identity
- Persons belonging to exactly one genealogy
- Typed relationships between two persons
- Dated life events attached to a person

Input models validate and normalize request bodies before they reach a service.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from enum import Enum
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


# =============================================================================
# Enumerations
# =============================================================================

class UserRole(str, Enum):
    """Account role."""
    ADMIN = "admin"
    USER = "user"


class UserStatus(str, Enum):
    """Account status. Only active accounts may act."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    BANNED = "banned"


class PrivacyLevel(str, Enum):
    """Who may read a genealogy."""
    PUBLIC = "public"    # Any authenticated identity may read
    PRIVATE = "private"  # Owner only
    FAMILY = "family"    # Owner only, as enforced today


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    UNKNOWN = "unknown"


class RelationshipType(str, Enum):
    """
    Relationship kinds.

    PARENT is directional: person1 is the parent of person2.
    SPOUSE and SIBLING are symmetric. CHILD is accepted on input only and is
    stored as PARENT with the endpoints swapped.
    """
    PARENT = "parent"
    SPOUSE = "spouse"
    SIBLING = "sibling"
    CHILD = "child"


class EventType(str, Enum):
    BIRTH = "birth"
    DEATH = "death"
    MARRIAGE = "marriage"
    EDUCATION = "education"
    CAREER = "career"
    OTHER = "other"


# =============================================================================
# Normalization helpers
# =============================================================================

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9]{3,30}$")
PHONE_PATTERN = re.compile(r"^1[3-9]\d{9}$")
PASSWORD_PATTERN = re.compile(
    r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?])"
)


def clean_text(value: Any) -> Any:
    """Trim strings and turn empty ones into None."""
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _genealogy_name(value: Any) -> str:
    if value is None or not str(value).strip():
        raise ValueError("Genealogy name cannot be empty")
    value = str(value).strip()
    if len(value) < 2:
        raise ValueError("Genealogy name must be at least 2 characters")
    if len(value) > 50:
        raise ValueError("Genealogy name cannot exceed 50 characters")
    return value


def _privacy_level(value: Any) -> Any:
    if value is None or value == "":
        return PrivacyLevel.PRIVATE
    if value == "family_only":
        return PrivacyLevel.FAMILY
    return value


def _person_name(value: Any) -> str:
    if value is None or not str(value).strip():
        raise ValueError("Name cannot be empty")
    return str(value).strip()


def _new_password(value: str) -> str:
    if len(value) < 8:
        raise ValueError("Password must be at least 8 characters")
    if len(value) > 128:
        raise ValueError("Password cannot exceed 128 characters")
    if not PASSWORD_PATTERN.match(value):
        raise ValueError(
            "Password must contain upper and lower case letters, a digit and a special character"
        )
    return value


def _phone(value: Any) -> Any:
    value = clean_text(value)
    if value is not None and not PHONE_PATTERN.match(value):
        raise ValueError("Invalid phone number")
    return value


# =============================================================================
# Records
# =============================================================================

class User(BaseModel):
    """An authenticated account. Referenced by ownership fields elsewhere."""
    model_config = ConfigDict(extra="ignore")

    id: str
    email: str
    username: str
    full_name: str | None = None
    avatar_url: str | None = None
    phone: str | None = None
    role: UserRole = UserRole.USER
    status: UserStatus = UserStatus.ACTIVE
    last_login_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE


class GenealogySummary(BaseModel):
    """The slice of a genealogy embedded in person responses."""
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    owner_id: str
    privacy_level: PrivacyLevel


class Genealogy(BaseModel):
    """A named, privacy-scoped family tree owned by one identity."""
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    description: str | None = None
    owner_id: str
    privacy_level: PrivacyLevel = PrivacyLevel.PRIVATE
    created_at: datetime | None = None
    updated_at: datetime | None = None

    # Only present on list responses
    person_count: int | None = None

    def summary(self) -> GenealogySummary:
        return GenealogySummary(
            id=self.id,
            name=self.name,
            owner_id=self.owner_id,
            privacy_level=self.privacy_level,
        )


class PersonSummary(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str


class Person(BaseModel):
    """An individual within exactly one genealogy."""
    model_config = ConfigDict(extra="ignore")

    id: str
    genealogy_id: str
    name: str
    gender: Gender = Gender.UNKNOWN
    birth_date: date | None = None
    death_date: date | None = None
    birth_place: str | None = None
    death_place: str | None = None
    occupation: str | None = None
    biography: str | None = None
    photo_url: str | None = None
    generation: int | None = None  # Display layout hint only
    created_at: datetime | None = None
    updated_at: datetime | None = None

    genealogy: GenealogySummary | None = None

    def summary(self) -> PersonSummary:
        return PersonSummary(id=self.id, name=self.name)


class Relationship(BaseModel):
    """A typed link between two persons."""
    model_config = ConfigDict(extra="ignore")

    id: str
    genealogy_id: str
    person1_id: str
    person2_id: str
    relationship_type: RelationshipType
    created_at: datetime | None = None
    updated_at: datetime | None = None

    person1: PersonSummary | None = None
    person2: PersonSummary | None = None

    def involves(self, person_id: str) -> bool:
        return person_id in (self.person1_id, self.person2_id)

    def other(self, person_id: str) -> str:
        """Return the endpoint that is not ``person_id``."""
        return self.person2_id if self.person1_id == person_id else self.person1_id


class PersonEvent(BaseModel):
    """A dated life event attached to one person."""
    model_config = ConfigDict(extra="ignore")

    id: str
    person_id: str
    event_type: EventType
    event_date: date | None = None
    event_place: str | None = None
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


# =============================================================================
# Genealogy / Person / Relationship / Event input
# =============================================================================

class GenealogyCreate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    description: str | None = Field(None, max_length=500)
    privacy_level: PrivacyLevel = PrivacyLevel.PRIVATE

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v: Any) -> str:
        return _genealogy_name(v)

    @field_validator("description", mode="before")
    @classmethod
    def validate_description(cls, v: Any) -> Any:
        return clean_text(v)

    @field_validator("privacy_level", mode="before")
    @classmethod
    def validate_privacy_level(cls, v: Any) -> Any:
        return _privacy_level(v)


class GenealogyUpdate(BaseModel):
    """Partial update. Ownership is not updatable."""
    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    description: str | None = Field(None, max_length=500)
    privacy_level: PrivacyLevel | None = None

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v: Any) -> str:
        return _genealogy_name(v)

    @field_validator("description", mode="before")
    @classmethod
    def validate_description(cls, v: Any) -> Any:
        return clean_text(v)

    @field_validator("privacy_level", mode="before")
    @classmethod
    def validate_privacy_level(cls, v: Any) -> Any:
        return _privacy_level(v)


class _PersonFields(BaseModel):
    model_config = ConfigDict(extra="ignore")

    gender: Gender = Gender.UNKNOWN
    birth_date: date | None = None
    death_date: date | None = None
    birth_place: str | None = Field(None, max_length=200)
    death_place: str | None = Field(None, max_length=200)
    occupation: str | None = Field(None, max_length=100)
    biography: str | None = None
    photo_url: str | None = None
    generation: int | None = None

    @field_validator("gender", mode="before")
    @classmethod
    def validate_gender(cls, v: Any) -> Any:
        return v or Gender.UNKNOWN

    @field_validator(
        "birth_date", "death_date", "birth_place", "death_place",
        "occupation", "biography", "photo_url", "generation",
        mode="before",
    )
    @classmethod
    def validate_optional(cls, v: Any) -> Any:
        return clean_text(v)


class PersonCreate(_PersonFields):
    genealogy_id: str
    name: str = Field(..., max_length=100)

    @field_validator("genealogy_id", mode="before")
    @classmethod
    def validate_genealogy_id(cls, v: Any) -> str:
        v = clean_text(v)
        if v is None:
            raise ValueError("Genealogy ID is required")
        return str(v)

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v: Any) -> str:
        return _person_name(v)


class PersonUpdate(_PersonFields):
    """Partial update. The owning genealogy is not updatable."""
    name: str | None = Field(None, max_length=100)
    gender: Gender | None = None

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v: Any) -> str:
        return _person_name(v)


class RelationshipCreate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    person2_id: str
    relationship_type: RelationshipType


class PersonEventCreate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    event_type: EventType
    event_date: date | None = None
    event_place: str | None = Field(None, max_length=200)
    description: str | None = None

    @field_validator("event_date", "event_place", "description", mode="before")
    @classmethod
    def validate_optional(cls, v: Any) -> Any:
        return clean_text(v)


class PersonEventUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    event_type: EventType | None = None
    event_date: date | None = None
    event_place: str | None = Field(None, max_length=200)
    description: str | None = None

    @field_validator("event_date", "event_place", "description", mode="before")
    @classmethod
    def validate_optional(cls, v: Any) -> Any:
        return clean_text(v)


# =============================================================================
# Identity input
# =============================================================================

class RegisterRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    email: EmailStr
    password: str
    username: str
    full_name: str | None = Field(None, max_length=100)
    phone: str | None = None

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _new_password(v)

    @field_validator("username", mode="before")
    @classmethod
    def validate_username(cls, v: Any) -> str:
        v = str(v or "").strip()
        if not USERNAME_PATTERN.match(v):
            raise ValueError("Username must be 3-30 letters or digits")
        return v.lower()

    @field_validator("full_name", mode="before")
    @classmethod
    def validate_full_name(cls, v: Any) -> Any:
        return clean_text(v)

    @field_validator("phone", mode="before")
    @classmethod
    def validate_phone(cls, v: Any) -> Any:
        return _phone(v)


class LoginRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v


class RefreshTokenRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class ChangePasswordRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    current_password: str = Field(..., min_length=1)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        return _new_password(v)


class UpdateProfileRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    full_name: str | None = Field(None, max_length=100)
    phone: str | None = None
    avatar_url: str | None = None

    @field_validator("full_name", mode="before")
    @classmethod
    def validate_full_name(cls, v: Any) -> Any:
        return clean_text(v)

    @field_validator("phone", mode="before")
    @classmethod
    def validate_phone(cls, v: Any) -> Any:
        return _phone(v)

    @field_validator("avatar_url", mode="before")
    @classmethod
    def validate_avatar_url(cls, v: Any) -> Any:
        v = clean_text(v)
        if v is None:
            return v
        parsed = urlparse(str(v))
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("Invalid avatar URL")
        return v


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class LoginResult(BaseModel):
    user: User
    access_token: str
    refresh_token: str
    expires_in: int


class RefreshResult(BaseModel):
    access_token: str
    expires_in: int
