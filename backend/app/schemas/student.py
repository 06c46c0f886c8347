"""Student Schemas — field-level validation for student and guardian payloads.

Invariants:
    - StudentUpdate cannot carry schoolId or admissionNumber (immutable after create)
    - Guardians nested in StudentCreate are created with the student
    - BulkPromote needs at least one student id
"""

from datetime import date, datetime
from typing import Any
from uuid import UUID

from pydantic import EmailStr, Field

from app.core.domain_types import BloodGroup, Gender
from app.schemas.common import CamelModel, Phone, RequiredStr, UpdateModel


class GuardianCreate(CamelModel):
    first_name: RequiredStr = Field(max_length=100)
    last_name: RequiredStr = Field(max_length=100)
    relation: RequiredStr = Field(max_length=50)
    phone: Phone
    email: EmailStr | None = None
    occupation: str | None = None
    address: str | None = None
    is_primary: bool = False


class GuardianRead(CamelModel):
    id: UUID
    first_name: str
    last_name: str
    relation: str
    phone: str
    email: str | None
    occupation: str | None
    is_primary: bool


class GuardianAdd(GuardianCreate):
    student_id: UUID


class GuardianDetail(GuardianRead):
    student_id: UUID
    address: str | None


class _StudentFields(CamelModel):
    first_name: RequiredStr = Field(max_length=100)
    last_name: RequiredStr = Field(max_length=100)
    email: EmailStr | None = None
    phone: Phone | None = None
    date_of_birth: date
    gender: Gender
    blood_group: BloodGroup | None = None
    nationality: str | None = None
    religion: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    pincode: str | None = None
    branch_id: UUID | None = None
    class_id: UUID
    section_id: UUID | None = None
    roll_number: str | None = None
    admission_date: date | None = None
    previous_school: str | None = None
    medical_info: dict[str, Any] | None = None
    photo: str | None = None
    is_active: bool = True


class StudentCreate(_StudentFields):
    school_id: UUID | None = None
    admission_number: RequiredStr = Field(max_length=50)
    guardians: list[GuardianCreate] = Field(default_factory=list)


class StudentUpdate(UpdateModel):
    nullable_fields = frozenset({
        "email", "phone", "date_of_birth", "blood_group", "nationality", "religion",
        "address", "city", "state", "pincode", "branch_id", "section_id", "roll_number",
        "admission_date", "previous_school", "medical_info", "photo",
    })

    first_name: RequiredStr | None = Field(None, max_length=100)
    last_name: RequiredStr | None = Field(None, max_length=100)
    email: EmailStr | None = None
    phone: Phone | None = None
    date_of_birth: date | None = None
    gender: Gender | None = None
    blood_group: BloodGroup | None = None
    nationality: str | None = None
    religion: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    pincode: str | None = None
    branch_id: UUID | None = None
    class_id: UUID | None = None
    section_id: UUID | None = None
    roll_number: str | None = None
    admission_date: date | None = None
    previous_school: str | None = None
    medical_info: dict[str, Any] | None = None
    photo: str | None = None
    is_active: bool | None = None


class StudentRead(CamelModel):
    id: UUID
    school_id: UUID
    branch_id: UUID | None
    class_id: UUID
    section_id: UUID | None
    admission_number: str
    roll_number: str | None
    first_name: str
    last_name: str
    email: str | None
    phone: str | None
    date_of_birth: date | None
    gender: Gender
    blood_group: BloodGroup | None
    address: str | None
    city: str | None
    admission_date: date | None
    is_active: bool
    created_at: datetime
    guardians: list[GuardianRead] = Field(default_factory=list)


class BulkPromote(CamelModel):
    student_ids: list[UUID] = Field(min_length=1)
    next_class_id: UUID
    next_section_id: UUID | None = None
