"""Subject Routes — school subjects, optionally bound to a class."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import list_query, require_module
from app.core.domain_types import AuditAction
from app.core.envelope import paginated_response, success_response
from app.core.errors import ValidationFailedError
from app.core.pagination import ListQuery
from app.core.tenancy import CurrentUser, resolve_school_id
from app.infrastructure.database import get_db
from app.models.academic import SchoolClass, Subject
from app.schemas.academic import SubjectCreate, SubjectRead
from app.services.audit import record_audit, snapshot
from app.services.querying import (
    apply_search, apply_sort, get_scoped_or_404, paginate, row_exists, scope_to_school,
)

router = APIRouter(prefix="/api/subjects", tags=["subjects"])

SORTABLE = {"name": Subject.name, "code": Subject.code, "createdAt": Subject.created_at}


@router.get("")
async def list_subjects(
    query: ListQuery = Depends(list_query),
    class_id: UUID | None = Query(None, alias="classId"),
    user: CurrentUser = Depends(require_module("subjects")),
    db: AsyncSession = Depends(get_db),
):
    stmt = scope_to_school(select(Subject), Subject, user)
    stmt = apply_search(stmt, query.search, [Subject.name, Subject.code])
    if class_id:
        stmt = stmt.where(Subject.class_id == class_id)
    rows, total = await paginate(db, apply_sort(stmt, query, SORTABLE), query)
    return paginated_response(
        [SubjectRead.model_validate(s) for s in rows], total, query.pagination,
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_subject(
    body: SubjectCreate,
    user: CurrentUser = Depends(require_module("subjects")),
    db: AsyncSession = Depends(get_db),
):
    school_id = resolve_school_id(user, body.school_id)
    if body.class_id and not await row_exists(
        db, SchoolClass, SchoolClass.id == body.class_id, SchoolClass.school_id == school_id,
    ):
        raise ValidationFailedError.single("classId", "Invalid class")
    if await row_exists(db, Subject, Subject.school_id == school_id, Subject.code == body.code):
        raise ValidationFailedError.single("code", "Subject code already exists in this school")

    subject = Subject(**body.model_dump(exclude={"school_id"}), school_id=school_id)
    db.add(subject)
    await db.flush()
    record_audit(
        db, user, AuditAction.CREATE, "Subject", subject.id,
        school_id=school_id, new_value=snapshot(subject),
    )
    await db.commit()
    return success_response(SubjectRead.model_validate(subject), "Subject created successfully")


@router.get("/{subject_id}")
async def get_subject(
    subject_id: UUID,
    user: CurrentUser = Depends(require_module("subjects")),
    db: AsyncSession = Depends(get_db),
):
    subject = await get_scoped_or_404(db, Subject, subject_id, user, "Subject")
    return success_response(SubjectRead.model_validate(subject))
