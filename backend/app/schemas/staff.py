"""Staff Schemas — employees, attendance, leave and payroll.

Invariants:
    - StaffRead carries no salary or bank details; StaffDetail adds them
    - StaffUpdate cannot change employeeId
    - A leave request ends on or after the day it starts
    - Payroll allowances and deductions are named non-negative amounts; the net
      salary is computed by the server
"""

import datetime as dt
from typing import Any
from uuid import UUID

from pydantic import EmailStr, Field, model_validator

from app.core.domain_types import (
    AttendanceStatus, BloodGroup, Gender, LeaveStatus, PaymentMode, StaffType,
)
from app.schemas.common import CamelModel, Phone, RequiredStr, UpdateModel


class StaffCreate(CamelModel):
    first_name: RequiredStr = Field(max_length=100)
    last_name: RequiredStr = Field(max_length=100)
    email: EmailStr
    phone: Phone
    date_of_birth: dt.date
    gender: Gender
    blood_group: BloodGroup | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    pincode: str | None = None
    school_id: UUID | None = None
    branch_id: UUID | None = None
    employee_id: RequiredStr = Field(max_length=50)
    staff_type: StaffType
    designation: RequiredStr
    department: str | None = None
    joining_date: dt.date
    qualification: str | None = None
    experience: int | None = Field(None, ge=0)
    salary: float | None = Field(None, ge=0)
    bank_details: dict[str, Any] | None = None
    is_active: bool = True


class StaffUpdate(UpdateModel):
    nullable_fields = frozenset({
        "date_of_birth", "blood_group", "address", "city", "state", "pincode",
        "branch_id", "department", "qualification", "experience", "salary",
        "bank_details",
    })

    first_name: RequiredStr | None = Field(None, max_length=100)
    last_name: RequiredStr | None = Field(None, max_length=100)
    email: EmailStr | None = None
    phone: Phone | None = None
    date_of_birth: dt.date | None = None
    gender: Gender | None = None
    blood_group: BloodGroup | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    pincode: str | None = None
    branch_id: UUID | None = None
    staff_type: StaffType | None = None
    designation: RequiredStr | None = None
    department: str | None = None
    joining_date: dt.date | None = None
    qualification: str | None = None
    experience: int | None = Field(None, ge=0)
    salary: float | None = Field(None, ge=0)
    bank_details: dict[str, Any] | None = None
    is_active: bool | None = None


class StaffRead(CamelModel):
    id: UUID
    school_id: UUID
    employee_id: str
    first_name: str
    last_name: str
    email: str
    phone: str
    gender: Gender
    staff_type: StaffType
    designation: str
    department: str | None
    joining_date: dt.date
    qualification: str | None
    experience: int | None
    is_active: bool
    created_at: dt.datetime


class StaffDetail(StaffRead):
    salary: float | None
    bank_details: dict[str, Any] | None


class AttendanceMark(CamelModel):
    staff_id: UUID
    date: dt.date
    status: AttendanceStatus
    check_in: dt.datetime | None = None
    check_out: dt.datetime | None = None
    remarks: str | None = None


class AttendanceRead(CamelModel):
    id: UUID
    staff_id: UUID
    date: dt.date
    status: AttendanceStatus
    check_in: dt.datetime | None
    check_out: dt.datetime | None
    remarks: str | None


class LeaveCreate(CamelModel):
    staff_id: UUID
    start_date: dt.date
    end_date: dt.date
    reason: RequiredStr = Field(max_length=500)
    leave_type: RequiredStr = Field(max_length=50)

    @model_validator(mode="after")
    def check_range(self) -> "LeaveCreate":
        if self.end_date < self.start_date:
            raise ValueError("endDate cannot be before startDate")
        return self


class LeaveDecision(CamelModel):
    status: LeaveStatus


class LeaveRead(CamelModel):
    id: UUID
    staff_id: UUID
    start_date: dt.date
    end_date: dt.date
    leave_type: str
    reason: str
    status: LeaveStatus
    decided_by: UUID | None
    decided_at: dt.datetime | None


class PayrollCreate(CamelModel):
    staff_id: UUID
    month: int = Field(ge=1, le=12)
    year: int = Field(ge=2000, le=2100)
    basic_salary: float = Field(gt=0)
    allowances: dict[str, float] | None = None
    deductions: dict[str, float] | None = None
    is_paid: bool = False
    payment_date: dt.date | None = None
    payment_mode: PaymentMode | None = None

    @model_validator(mode="after")
    def check_components(self) -> "PayrollCreate":
        for name in ("allowances", "deductions"):
            if any(value < 0 for value in (getattr(self, name) or {}).values()):
                raise ValueError(f"{name} cannot contain negative amounts")
        return self


class PayrollStaff(CamelModel):
    id: UUID
    first_name: str
    last_name: str
    employee_id: str
    department: str | None
    designation: str


class PayrollRead(CamelModel):
    id: UUID
    staff_id: UUID
    month: int
    year: int
    basic_salary: float
    allowances: dict[str, float] | None
    deductions: dict[str, float] | None
    net_salary: float
    is_paid: bool
    payment_date: dt.date | None
    payment_mode: PaymentMode | None
    staff: PayrollStaff
