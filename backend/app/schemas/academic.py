"""Academic Schemas — classes, sections and subjects."""

from uuid import UUID

from pydantic import Field

from app.schemas.common import CamelModel, RequiredStr, UpdateModel


class ClassCreate(CamelModel):
    name: RequiredStr = Field(max_length=100)
    grade: int = Field(ge=1, le=12)
    school_id: UUID | None = None
    branch_id: UUID | None = None
    academic_year_id: UUID
    capacity: int = Field(30, ge=0)
    description: str | None = None
    is_active: bool = True


class ClassUpdate(UpdateModel):
    nullable_fields = frozenset({"branch_id", "description"})

    name: RequiredStr | None = Field(None, max_length=100)
    grade: int | None = Field(None, ge=1, le=12)
    branch_id: UUID | None = None
    academic_year_id: UUID | None = None
    capacity: int | None = Field(None, ge=0)
    description: str | None = None
    is_active: bool | None = None


class ClassRead(CamelModel):
    id: UUID
    school_id: UUID
    branch_id: UUID | None
    academic_year_id: UUID
    name: str
    grade: int
    capacity: int
    description: str | None
    is_active: bool


class SectionCreate(CamelModel):
    name: RequiredStr = Field(max_length=50)
    class_id: UUID
    teacher_id: UUID | None = None
    capacity: int = Field(40, ge=0)
    is_active: bool = True


class SectionRead(CamelModel):
    id: UUID
    class_id: UUID
    teacher_id: UUID | None
    name: str
    capacity: int
    is_active: bool


class SubjectCreate(CamelModel):
    name: RequiredStr = Field(max_length=100)
    code: RequiredStr = Field(max_length=20)
    school_id: UUID | None = None
    class_id: UUID | None = None
    description: str | None = None
    is_active: bool = True


class SubjectRead(CamelModel):
    id: UUID
    school_id: UUID
    class_id: UUID | None
    name: str
    code: str
    description: str | None
    is_active: bool
