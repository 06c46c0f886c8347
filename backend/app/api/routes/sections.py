"""Section Routes — divisions of a class.

Invariants:
    - Sections carry no school_id: tenancy is enforced through the parent class
    - The class teacher, when given, is staff of the same school
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import list_query, require_module
from app.core.domain_types import AuditAction
from app.core.envelope import paginated_response, success_response
from app.core.errors import ResourceNotFoundError, ValidationFailedError
from app.core.pagination import ListQuery
from app.core.tenancy import CurrentUser
from app.infrastructure.database import get_db
from app.models.academic import SchoolClass, Section
from app.models.staff import Staff
from app.schemas.academic import SectionCreate, SectionRead
from app.services.audit import record_audit, snapshot
from app.services.querying import (
    apply_search, apply_sort, paginate, row_exists, scope_to_school,
)

router = APIRouter(prefix="/api/sections", tags=["sections"])

SORTABLE = {"name": Section.name, "createdAt": Section.created_at}


def _scoped_sections(user: CurrentUser):
    stmt = select(Section).join(SchoolClass, SchoolClass.id == Section.class_id)
    return scope_to_school(stmt, SchoolClass, user)


@router.get("")
async def list_sections(
    query: ListQuery = Depends(list_query),
    class_id: UUID | None = Query(None, alias="classId"),
    user: CurrentUser = Depends(require_module("sections")),
    db: AsyncSession = Depends(get_db),
):
    stmt = apply_search(_scoped_sections(user), query.search, [Section.name])
    if class_id:
        stmt = stmt.where(Section.class_id == class_id)
    rows, total = await paginate(db, apply_sort(stmt, query, SORTABLE), query)
    return paginated_response(
        [SectionRead.model_validate(s) for s in rows], total, query.pagination,
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_section(
    body: SectionCreate,
    user: CurrentUser = Depends(require_module("sections")),
    db: AsyncSession = Depends(get_db),
):
    class_stmt = scope_to_school(
        select(SchoolClass).where(SchoolClass.id == body.class_id), SchoolClass, user,
    )
    school_class = (await db.execute(class_stmt)).scalar_one_or_none()
    if school_class is None:
        raise ValidationFailedError.single("classId", "Invalid class")
    if body.teacher_id and not await row_exists(
        db, Staff, Staff.id == body.teacher_id, Staff.school_id == school_class.school_id,
    ):
        raise ValidationFailedError.single("teacherId", "Invalid teacher")
    if await row_exists(
        db, Section, Section.class_id == body.class_id, Section.name == body.name,
    ):
        raise ValidationFailedError.single("name", "Section already exists in this class")

    section = Section(**body.model_dump())
    db.add(section)
    await db.flush()
    record_audit(
        db, user, AuditAction.CREATE, "Section", section.id,
        school_id=school_class.school_id, new_value=snapshot(section),
    )
    await db.commit()
    return success_response(SectionRead.model_validate(section), "Section created successfully")


@router.get("/{section_id}")
async def get_section(
    section_id: UUID,
    user: CurrentUser = Depends(require_module("sections")),
    db: AsyncSession = Depends(get_db),
):
    stmt = _scoped_sections(user).where(Section.id == section_id)
    section = (await db.execute(stmt)).scalar_one_or_none()
    if section is None:
        raise ResourceNotFoundError("Section", str(section_id))
    return success_response(SectionRead.model_validate(section))
