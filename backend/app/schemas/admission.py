"""Admission Schemas — inquiries through enrollment."""

from datetime import date, datetime
from typing import Any
from uuid import UUID

from pydantic import EmailStr, Field

from app.core.domain_types import AdmissionStatus, Gender
from app.schemas.common import CamelModel, Phone, RequiredStr, UpdateModel


class AdmissionCreate(CamelModel):
    inquiry_number: str | None = Field(None, max_length=50)
    school_id: UUID | None = None
    first_name: RequiredStr = Field(max_length=100)
    last_name: RequiredStr = Field(max_length=100)
    date_of_birth: date | None = None
    gender: Gender | None = None
    applied_class: RequiredStr
    previous_school: str | None = None
    parent_name: RequiredStr = Field(max_length=200)
    parent_phone: Phone
    parent_email: EmailStr | None = None
    address: str | None = None
    status: AdmissionStatus = AdmissionStatus.INQUIRY
    test_date: datetime | None = None
    test_score: float | None = Field(None, ge=0)
    interview_date: datetime | None = None
    interview_notes: str | None = None
    documents: dict[str, Any] | None = None


class AdmissionUpdate(UpdateModel):
    nullable_fields = frozenset({
        "date_of_birth", "gender", "previous_school", "parent_email", "address",
        "test_date", "test_score", "interview_date", "interview_notes", "documents",
    })

    first_name: RequiredStr | None = Field(None, max_length=100)
    last_name: RequiredStr | None = Field(None, max_length=100)
    date_of_birth: date | None = None
    gender: Gender | None = None
    applied_class: RequiredStr | None = None
    previous_school: str | None = None
    parent_name: RequiredStr | None = Field(None, max_length=200)
    parent_phone: Phone | None = None
    parent_email: EmailStr | None = None
    address: str | None = None
    status: AdmissionStatus | None = None
    test_date: datetime | None = None
    test_score: float | None = Field(None, ge=0)
    interview_date: datetime | None = None
    interview_notes: str | None = None
    documents: dict[str, Any] | None = None


class AdmissionRead(CamelModel):
    id: UUID
    school_id: UUID
    student_id: UUID | None
    inquiry_number: str
    first_name: str
    last_name: str
    date_of_birth: date | None
    gender: Gender | None
    applied_class: str
    parent_name: str
    parent_phone: str
    parent_email: str | None
    status: AdmissionStatus
    test_date: datetime | None
    test_score: float | None
    interview_date: datetime | None
    created_at: datetime


class AdmissionEnroll(CamelModel):
    admission_number: RequiredStr = Field(max_length=50)
    class_id: UUID
    section_id: UUID | None = None
    date_of_birth: date | None = None
