"""User Schemas — accounts, custom roles and login payloads.

Invariants:
    - UserRead never exposes the password hash
    - Passwords are 8-100 characters; emails are normalized to lowercase
"""

from datetime import datetime
from uuid import UUID

from pydantic import EmailStr, Field, field_validator

from app.core.domain_types import UserRole
from app.schemas.common import CamelModel, Phone, RequiredStr, UpdateModel


def _lower(value: str | None) -> str | None:
    return value.strip().lower() if value else value


class UserCreate(CamelModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=100)
    name: RequiredStr = Field(max_length=200)
    role: UserRole
    phone: Phone | None = None
    school_id: UUID | None = None
    is_active: bool = True

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return _lower(v)


class UserUpdate(UpdateModel):
    nullable_fields = frozenset({"phone"})

    name: RequiredStr | None = Field(None, max_length=200)
    phone: Phone | None = None
    role: UserRole | None = None
    is_active: bool | None = None


class UserRead(CamelModel):
    id: UUID
    email: str
    first_name: str
    last_name: str
    phone: str | None
    role: UserRole
    school_id: UUID | None
    is_active: bool
    last_login: datetime | None
    created_at: datetime


class CustomRoleCreate(CamelModel):
    name: RequiredStr = Field(max_length=100)
    description: str | None = None
    permissions: dict[str, bool] = Field(default_factory=dict)
    school_id: UUID | None = None
    is_active: bool = True


class CustomRoleUpdate(UpdateModel):
    nullable_fields = frozenset({"description"})

    name: RequiredStr | None = Field(None, max_length=100)
    description: str | None = None
    permissions: dict[str, bool] | None = None
    is_active: bool | None = None


class CustomRoleRead(CamelModel):
    id: UUID
    school_id: UUID
    name: str
    description: str | None
    permissions: dict[str, bool]
    is_active: bool


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return _lower(v)


class LoginResponse(CamelModel):
    token: str
    expires_in: int
    user: UserRead


class MobileLoginResponse(CamelModel):
    token: str
    expires_in: int
    user: UserRead
    message: str
    timestamp: datetime
