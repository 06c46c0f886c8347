"""Class Routes — grade-level classes within an academic year.

Invariants:
    - The academic year (and branch, when given) belongs to the class's school
    - (school, academic year, name, grade) is unique
    - A class with enrolled students cannot be deleted
    - Lists default to grade then name ordering
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import list_query, require_module
from app.core.domain_types import AuditAction
from app.core.envelope import paginated_response, success_response
from app.core.errors import BusinessRuleError, ValidationFailedError
from app.core.pagination import ListQuery, parse_bool_flag
from app.core.tenancy import CurrentUser, resolve_school_id
from app.infrastructure.database import get_db
from app.models.academic import SchoolClass
from app.models.school import AcademicYear, Branch
from app.models.student import Student
from app.schemas.academic import ClassCreate, ClassRead, ClassUpdate
from app.services.audit import record_audit, snapshot
from app.services.querying import (
    apply_changes, apply_search, apply_sort, count_rows, get_scoped_or_404,
    paginate, row_exists, scope_to_school,
)

router = APIRouter(prefix="/api/classes", tags=["classes"])

SORTABLE = {
    "grade": SchoolClass.grade, "name": SchoolClass.name,
    "createdAt": SchoolClass.created_at,
}

_DUPLICATE = "Class with this name and grade already exists for this academic year"


async def _check_refs(
    db: AsyncSession, school_id: UUID,
    academic_year_id: UUID | None, branch_id: UUID | None,
) -> None:
    if academic_year_id and not await row_exists(
        db, AcademicYear, AcademicYear.id == academic_year_id,
        AcademicYear.school_id == school_id,
    ):
        raise ValidationFailedError.single("academicYearId", "Invalid academic year")
    if branch_id and not await row_exists(
        db, Branch, Branch.id == branch_id, Branch.school_id == school_id,
    ):
        raise ValidationFailedError.single("branchId", "Invalid branch")


async def _check_unique(
    db: AsyncSession, school_id: UUID, academic_year_id: UUID, name: str, grade: int,
    exclude_id: UUID | None = None,
) -> None:
    others = [SchoolClass.id != exclude_id] if exclude_id else []
    if await row_exists(
        db, SchoolClass, SchoolClass.school_id == school_id,
        SchoolClass.academic_year_id == academic_year_id,
        SchoolClass.name == name, SchoolClass.grade == grade, *others,
    ):
        raise ValidationFailedError.single("name", _DUPLICATE)


@router.get("")
async def list_classes(
    query: ListQuery = Depends(list_query),
    grade: int | None = Query(None),
    academic_year_id: UUID | None = Query(None, alias="academicYearId"),
    is_active: str | None = Query(None, alias="isActive"),
    user: CurrentUser = Depends(require_module("classes")),
    db: AsyncSession = Depends(get_db),
):
    stmt = scope_to_school(select(SchoolClass), SchoolClass, user)
    stmt = apply_search(stmt, query.search, [SchoolClass.name])
    if grade is not None:
        stmt = stmt.where(SchoolClass.grade == grade)
    if academic_year_id:
        stmt = stmt.where(SchoolClass.academic_year_id == academic_year_id)
    active = parse_bool_flag(is_active)
    if active is not None:
        stmt = stmt.where(SchoolClass.is_active == active)
    if query.sort_by:
        stmt = apply_sort(stmt, query, SORTABLE)
    else:
        stmt = stmt.order_by(SchoolClass.grade.asc(), SchoolClass.name.asc())
    rows, total = await paginate(db, stmt, query)
    return paginated_response(
        [ClassRead.model_validate(c) for c in rows], total, query.pagination,
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_class(
    body: ClassCreate,
    user: CurrentUser = Depends(require_module("classes")),
    db: AsyncSession = Depends(get_db),
):
    school_id = resolve_school_id(user, body.school_id)
    await _check_refs(db, school_id, body.academic_year_id, body.branch_id)
    await _check_unique(db, school_id, body.academic_year_id, body.name, body.grade)

    school_class = SchoolClass(**body.model_dump(exclude={"school_id"}), school_id=school_id)
    db.add(school_class)
    await db.flush()
    record_audit(
        db, user, AuditAction.CREATE, "Class", school_class.id,
        school_id=school_id, new_value=snapshot(school_class),
    )
    await db.commit()
    return success_response(ClassRead.model_validate(school_class), "Class created successfully")


@router.get("/{class_id}")
async def get_class(
    class_id: UUID,
    user: CurrentUser = Depends(require_module("classes")),
    db: AsyncSession = Depends(get_db),
):
    school_class = await get_scoped_or_404(db, SchoolClass, class_id, user, "Class")
    return success_response(ClassRead.model_validate(school_class))


@router.put("/{class_id}")
async def update_class(
    class_id: UUID,
    body: ClassUpdate,
    user: CurrentUser = Depends(require_module("classes")),
    db: AsyncSession = Depends(get_db),
):
    school_class = await get_scoped_or_404(db, SchoolClass, class_id, user, "Class")
    changes = body.model_dump(exclude_unset=True)
    await _check_refs(
        db, school_class.school_id,
        changes.get("academic_year_id"), changes.get("branch_id"),
    )
    if {"name", "grade", "academic_year_id"} & changes.keys():
        await _check_unique(
            db, school_class.school_id,
            changes.get("academic_year_id") or school_class.academic_year_id,
            changes.get("name") or school_class.name,
            changes.get("grade") or school_class.grade,
            exclude_id=school_class.id,
        )

    before = snapshot(school_class)
    apply_changes(school_class, changes)
    await db.flush()
    record_audit(
        db, user, AuditAction.UPDATE, "Class", school_class.id,
        school_id=school_class.school_id, old_value=before, new_value=snapshot(school_class),
    )
    await db.commit()
    return success_response(ClassRead.model_validate(school_class), "Class updated successfully")


@router.delete("/{class_id}")
async def delete_class(
    class_id: UUID,
    user: CurrentUser = Depends(require_module("classes")),
    db: AsyncSession = Depends(get_db),
):
    school_class = await get_scoped_or_404(db, SchoolClass, class_id, user, "Class")
    enrolled = await count_rows(db, Student, Student.class_id == class_id)
    if enrolled:
        raise BusinessRuleError(
            f"Cannot delete class with {enrolled} enrolled students",
        )
    before = snapshot(school_class)
    await db.delete(school_class)
    record_audit(
        db, user, AuditAction.DELETE, "Class", class_id,
        school_id=school_class.school_id, old_value=before,
    )
    await db.commit()
    return success_response({"message": "Class deleted successfully"})
