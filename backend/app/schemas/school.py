"""School Schemas — schools, branches, academic years and per-school settings."""

from datetime import date, datetime
from typing import Literal
from uuid import UUID

from pydantic import EmailStr, Field, model_validator

from app.schemas.common import CamelModel, Phone, RequiredStr, UpdateModel


class SchoolCreate(CamelModel):
    name: RequiredStr = Field(max_length=200)
    code: RequiredStr = Field(max_length=50)
    address: str | None = None
    phone: Phone | None = None
    email: EmailStr | None = None
    website: str | None = None
    logo: str | None = None
    description: str | None = None
    is_active: bool = True


class SchoolUpdate(UpdateModel):
    nullable_fields = frozenset({"address", "phone", "email", "website", "logo", "description"})

    name: RequiredStr | None = Field(None, max_length=200)
    code: RequiredStr | None = Field(None, max_length=50)
    address: str | None = None
    phone: Phone | None = None
    email: EmailStr | None = None
    website: str | None = None
    logo: str | None = None
    description: str | None = None
    is_active: bool | None = None


class SchoolRead(CamelModel):
    id: UUID
    name: str
    code: str
    address: str | None
    phone: str | None
    email: str | None
    website: str | None
    logo: str | None
    description: str | None
    is_active: bool
    created_at: datetime


class BranchCreate(CamelModel):
    name: RequiredStr = Field(max_length=200)
    code: RequiredStr = Field(max_length=50)
    school_id: UUID | None = None
    address: str | None = None
    phone: Phone | None = None
    email: EmailStr | None = None
    is_active: bool = True


class BranchRead(CamelModel):
    id: UUID
    school_id: UUID
    name: str
    code: str
    address: str | None
    phone: str | None
    email: str | None
    is_active: bool


class AcademicYearCreate(CamelModel):
    name: RequiredStr = Field(max_length=100)
    school_id: UUID | None = None
    start_date: date
    end_date: date
    is_current: bool = False

    @model_validator(mode="after")
    def check_range(self) -> "AcademicYearCreate":
        if self.end_date <= self.start_date:
            raise ValueError("endDate must be after startDate")
        return self


class AcademicYearUpdate(UpdateModel):
    name: RequiredStr | None = Field(None, max_length=100)
    start_date: date | None = None
    end_date: date | None = None


class AcademicYearRead(CamelModel):
    id: UUID
    school_id: UUID
    name: str
    start_date: date
    end_date: date
    is_current: bool


DateFormat = Literal["DD/MM/YYYY", "MM/DD/YYYY", "YYYY-MM-DD"]
MONTH_DAY = r"^(0[1-9]|1[0-2])-(0[1-9]|[12]\d|3[01])$"
TIMEZONE = r"^[A-Za-z_]+(/[A-Za-z0-9_+-]+)*$"


class SchoolSettings(CamelModel):
    """Preferences stored on School.settings; unset keys read as these defaults."""

    academic_year_start: str | None = None
    academic_year_end: str | None = None
    enable_email_notifications: bool = True
    enable_sms_notifications: bool = Field(False, alias="enableSMSNotifications")
    enable_push_notifications: bool = True
    default_language: str = "en"
    date_format: DateFormat = "DD/MM/YYYY"
    currency: str = "INR"
    timezone: str = "Asia/Kolkata"


class SettingsUpdate(UpdateModel):
    nullable_fields = frozenset({"academic_year_start", "academic_year_end"})

    academic_year_start: str | None = Field(None, pattern=MONTH_DAY)
    academic_year_end: str | None = Field(None, pattern=MONTH_DAY)
    enable_email_notifications: bool | None = None
    enable_sms_notifications: bool | None = Field(None, alias="enableSMSNotifications")
    enable_push_notifications: bool | None = None
    default_language: str | None = Field(None, min_length=2, max_length=10)
    date_format: DateFormat | None = None
    currency: str | None = Field(None, pattern=r"^[A-Z]{3}$")
    timezone: str | None = Field(None, pattern=TIMEZONE)
