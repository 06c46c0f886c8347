"""Library Schemas — books, issues and returns."""

from datetime import date
from uuid import UUID

from pydantic import Field, model_validator

from app.core.domain_types import IssueStatus
from app.schemas.common import CamelModel, RequiredStr


class BookCreate(CamelModel):
    title: RequiredStr = Field(max_length=300)
    school_id: UUID | None = None
    author: str | None = None
    isbn: str | None = None
    publisher: str | None = None
    category: str | None = None
    edition: str | None = None
    language: str | None = None
    pages: int | None = Field(None, ge=0)
    quantity: int = Field(1, gt=0)
    available: int | None = Field(None, ge=0)
    price: float | None = Field(None, ge=0)
    location: str | None = None
    barcode: str | None = None
    description: str | None = None
    is_active: bool = True

    @model_validator(mode="after")
    def default_available(self) -> "BookCreate":
        if self.available is None:
            self.available = self.quantity
        elif self.available > self.quantity:
            raise ValueError("available cannot exceed quantity")
        return self


class BookRead(CamelModel):
    id: UUID
    school_id: UUID
    title: str
    author: str | None
    isbn: str | None
    publisher: str | None
    category: str | None
    quantity: int
    available: int
    location: str | None
    is_active: bool


class IssueCreate(CamelModel):
    book_id: UUID
    student_id: UUID
    issue_date: date
    due_date: date
    notes: str | None = None

    @model_validator(mode="after")
    def check_due(self) -> "IssueCreate":
        if self.due_date < self.issue_date:
            raise ValueError("dueDate cannot be before issueDate")
        return self


class IssueReturn(CamelModel):
    return_date: date | None = None
    status: IssueStatus = IssueStatus.RETURNED
    fine: float = Field(0.0, ge=0)
    notes: str | None = None

    @model_validator(mode="after")
    def check_closing_status(self) -> "IssueReturn":
        if self.status not in (IssueStatus.RETURNED, IssueStatus.LOST, IssueStatus.DAMAGED):
            raise ValueError("status must be RETURNED, LOST or DAMAGED")
        return self


class IssueRead(CamelModel):
    id: UUID
    book_id: UUID
    student_id: UUID
    issue_date: date
    due_date: date
    return_date: date | None
    status: IssueStatus
    fine: float
    notes: str | None
