"""Finance Schemas — fee structures, fee assignments, collections and expenses."""

from datetime import date, datetime
from uuid import UUID

from pydantic import Field

from app.core.domain_types import FeeFrequency, FeeType, PaymentMode, PaymentStatus
from app.schemas.common import CamelModel, RequiredStr, UpdateModel


class FeeCreate(CamelModel):
    name: RequiredStr = Field(max_length=200)
    school_id: UUID | None = None
    class_id: UUID | None = None
    type: FeeType
    amount: float = Field(gt=0)
    frequency: FeeFrequency
    description: str | None = None
    is_active: bool = True


class FeeUpdate(UpdateModel):
    nullable_fields = frozenset({"class_id", "description"})

    name: RequiredStr | None = Field(None, max_length=200)
    class_id: UUID | None = None
    type: FeeType | None = None
    amount: float | None = Field(None, gt=0)
    frequency: FeeFrequency | None = None
    description: str | None = None
    is_active: bool | None = None


class FeeRead(CamelModel):
    id: UUID
    school_id: UUID
    class_id: UUID | None
    name: str
    type: FeeType
    amount: float
    frequency: FeeFrequency
    description: str | None
    is_active: bool


class FeeAssign(CamelModel):
    student_id: UUID
    fee_id: UUID
    due_date: date
    amount: float | None = Field(None, gt=0)
    notes: str | None = None


class FeeCollect(CamelModel):
    amount: float = Field(gt=0)
    payment_mode: PaymentMode
    transaction_id: str | None = None
    notes: str | None = None


class FeePaymentRead(CamelModel):
    id: UUID
    school_id: UUID
    student_id: UUID
    fee_id: UUID
    amount: float
    paid_amount: float
    due_date: date
    status: PaymentStatus
    payment_date: datetime | None
    payment_mode: PaymentMode | None
    transaction_id: str | None
    receipt_number: str | None
    notes: str | None


class ExpenseCreate(CamelModel):
    school_id: UUID | None = None
    category: RequiredStr = Field(max_length=100)
    amount: float = Field(gt=0)
    description: str | None = None
    expense_date: date = Field(alias="date")
    paid_to: str | None = Field(None, max_length=200)
    payment_mode: PaymentMode | None = None
    bill_number: str | None = Field(None, max_length=100)
    approved_by: UUID | None = None


class ExpenseRead(CamelModel):
    id: UUID
    school_id: UUID
    category: str
    amount: float
    description: str | None
    expense_date: date
    paid_to: str | None
    payment_mode: PaymentMode | None
    bill_number: str | None
    approved_by: UUID | None
    created_at: datetime
