"""School Routes — tenant root CRUD.

Invariants:
    - Only SUPER_ADMIN lists every school, creates or deletes schools
    - Other roles see their own school only (one-item list, 403 on another id)
    - SCHOOL_ADMIN may update their own school; code and name stay globally unique
    - A school with users, students or staff cannot be deleted (deactivate instead)
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import list_query, require_module
from app.core.domain_types import AuditAction, UserRole
from app.core.envelope import paginated_response, success_response
from app.core.errors import (
    BusinessRuleError, ForbiddenError, ResourceNotFoundError, ValidationFailedError,
)
from app.core.pagination import ListQuery, parse_bool_flag
from app.core.tenancy import CurrentUser
from app.infrastructure.database import get_db
from app.models.school import School
from app.models.staff import Staff
from app.models.student import Student
from app.models.user import User
from app.schemas.school import SchoolCreate, SchoolRead, SchoolUpdate
from app.services.audit import record_audit, snapshot
from app.services.querying import (
    apply_changes, apply_search, apply_sort, count_rows, paginate, row_exists,
)

router = APIRouter(prefix="/api/schools", tags=["schools"])

SORTABLE = {
    "createdAt": School.created_at, "name": School.name, "code": School.code,
}


async def _check_unique(
    db: AsyncSession, code: str | None, name: str | None, exclude_id: UUID | None = None,
) -> None:
    others = [School.id != exclude_id] if exclude_id else []
    if code and await row_exists(db, School, School.code == code, *others):
        raise ValidationFailedError.single("code", "School code already exists")
    if name and await row_exists(db, School, School.name == name, *others):
        raise ValidationFailedError.single("name", "School name already exists")


async def _get_school(db: AsyncSession, school_id: UUID) -> School:
    school = await db.get(School, school_id)
    if school is None:
        raise ResourceNotFoundError("School", str(school_id))
    return school


@router.get("")
async def list_schools(
    query: ListQuery = Depends(list_query),
    is_active: str | None = Query(None, alias="isActive"),
    user: CurrentUser = Depends(require_module("schools")),
    db: AsyncSession = Depends(get_db),
):
    if not user.is_super_admin:
        school = await db.get(School, user.school_id) if user.school_id else None
        items = [SchoolRead.model_validate(school)] if school else []
        return paginated_response(items, len(items), query.pagination)

    stmt = apply_search(select(School), query.search, [School.name, School.code])
    active = parse_bool_flag(is_active)
    if active is not None:
        stmt = stmt.where(School.is_active == active)
    rows, total = await paginate(db, apply_sort(stmt, query, SORTABLE), query)
    return paginated_response(
        [SchoolRead.model_validate(s) for s in rows], total, query.pagination,
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_school(
    body: SchoolCreate,
    user: CurrentUser = Depends(require_module("schools")),
    db: AsyncSession = Depends(get_db),
):
    if not user.is_super_admin:
        raise ForbiddenError("Only super admins can create schools")
    await _check_unique(db, body.code, body.name)

    data = body.model_dump()
    if data.get("email"):
        data["email"] = data["email"].lower()
    school = School(**data)
    db.add(school)
    await db.flush()
    record_audit(
        db, user, AuditAction.CREATE, "School", school.id,
        school_id=school.id, new_value=snapshot(school),
    )
    await db.commit()
    return success_response(SchoolRead.model_validate(school), "School created successfully")


@router.get("/{school_id}")
async def get_school(
    school_id: UUID,
    user: CurrentUser = Depends(require_module("schools")),
    db: AsyncSession = Depends(get_db),
):
    if not user.is_super_admin and user.school_id != school_id:
        raise ForbiddenError("Access denied")
    return success_response(SchoolRead.model_validate(await _get_school(db, school_id)))


@router.put("/{school_id}")
async def update_school(
    school_id: UUID,
    body: SchoolUpdate,
    user: CurrentUser = Depends(require_module("schools")),
    db: AsyncSession = Depends(get_db),
):
    own_admin = user.role == UserRole.SCHOOL_ADMIN and user.school_id == school_id
    if not (user.is_super_admin or own_admin):
        raise ForbiddenError("Access denied")
    school = await _get_school(db, school_id)
    changes = body.model_dump(exclude_unset=True)
    await _check_unique(
        db,
        changes.get("code") if changes.get("code") != school.code else None,
        changes.get("name") if changes.get("name") != school.name else None,
        exclude_id=school.id,
    )
    if changes.get("email"):
        changes["email"] = changes["email"].lower()

    before = snapshot(school)
    apply_changes(school, changes)
    await db.flush()
    record_audit(
        db, user, AuditAction.UPDATE, "School", school.id, school_id=school.id,
        old_value=before, new_value=snapshot(school),
    )
    await db.commit()
    return success_response(SchoolRead.model_validate(school), "School updated successfully")


@router.delete("/{school_id}")
async def delete_school(
    school_id: UUID,
    user: CurrentUser = Depends(require_module("schools")),
    db: AsyncSession = Depends(get_db),
):
    if not user.is_super_admin:
        raise ForbiddenError("Only super admins can delete schools")
    school = await _get_school(db, school_id)
    in_use = (
        await count_rows(db, User, User.school_id == school_id)
        or await count_rows(db, Student, Student.school_id == school_id)
        or await count_rows(db, Staff, Staff.school_id == school_id)
    )
    if in_use:
        raise BusinessRuleError(
            "Cannot delete school with existing users, students, or staff. "
            "Deactivate instead.",
        )
    before = snapshot(school)
    await db.delete(school)
    record_audit(
        db, user, AuditAction.DELETE, "School", school_id, school_id=None,
        old_value=before,
    )
    await db.commit()
    return success_response({"message": "School deleted successfully"})
