"""Guardian Routes — parents and guardians of enrolled students.

Invariants:
    - Guardians have no school_id; they are scoped through their student
    - A guardian can only be added to a student of the caller's school
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import list_query, require_module
from app.core.domain_types import AuditAction
from app.core.envelope import paginated_response, success_response
from app.core.errors import ValidationFailedError
from app.core.pagination import ListQuery
from app.core.tenancy import CurrentUser
from app.infrastructure.database import get_db
from app.models.student import Guardian, Student
from app.schemas.student import GuardianAdd, GuardianDetail
from app.services.audit import record_audit, snapshot
from app.services.querying import apply_search, paginate, scope_to_school

router = APIRouter(prefix="/api/guardians", tags=["guardians"])


@router.get("")
async def list_guardians(
    query: ListQuery = Depends(list_query),
    student_id: UUID | None = Query(None, alias="studentId"),
    user: CurrentUser = Depends(require_module("students")),
    db: AsyncSession = Depends(get_db),
):
    stmt = scope_to_school(
        select(Guardian).join(Student, Guardian.student_id == Student.id), Student, user,
    )
    stmt = apply_search(stmt, query.search, [
        Guardian.first_name, Guardian.last_name, Guardian.phone, Guardian.email,
    ])
    if student_id:
        stmt = stmt.where(Guardian.student_id == student_id)
    stmt = stmt.order_by(Guardian.created_at.desc())
    rows, total = await paginate(db, stmt, query)
    return paginated_response(
        [GuardianDetail.model_validate(g) for g in rows], total, query.pagination,
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_guardian(
    body: GuardianAdd,
    user: CurrentUser = Depends(require_module("students")),
    db: AsyncSession = Depends(get_db),
):
    student = (await db.execute(scope_to_school(
        select(Student).where(Student.id == body.student_id), Student, user,
    ))).scalar_one_or_none()
    if student is None:
        raise ValidationFailedError.single("studentId", "Student not found")

    guardian = Guardian(**body.model_dump())
    db.add(guardian)
    await db.flush()
    record_audit(
        db, user, AuditAction.CREATE, "Guardian", guardian.id,
        school_id=student.school_id, new_value=snapshot(guardian),
    )
    await db.commit()
    return success_response(GuardianDetail.model_validate(guardian), "Guardian added successfully")
