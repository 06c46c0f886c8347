"""Academic Year Routes — school calendars and the current-year flag.

Invariants:
    - At most one year per school is current; setting one clears the others in
      the same transaction
    - endDate is after startDate, on create and after partial updates
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import list_query, require_module
from app.core.domain_types import AuditAction
from app.core.envelope import paginated_response, success_response
from app.core.errors import ValidationFailedError
from app.core.pagination import ListQuery
from app.core.tenancy import CurrentUser, resolve_school_id
from app.infrastructure.database import get_db
from app.models.school import AcademicYear
from app.schemas.school import AcademicYearCreate, AcademicYearRead, AcademicYearUpdate
from app.services.audit import record_audit, snapshot
from app.services.querying import (
    apply_changes, apply_search, apply_sort, get_scoped_or_404, paginate, scope_to_school,
)

router = APIRouter(prefix="/api/academic-years", tags=["academic-years"])

SORTABLE = {
    "startDate": AcademicYear.start_date, "createdAt": AcademicYear.created_at,
    "name": AcademicYear.name,
}


async def _clear_current(db: AsyncSession, school_id: UUID, keep_id: UUID) -> None:
    await db.execute(
        update(AcademicYear)
        .where(AcademicYear.school_id == school_id, AcademicYear.id != keep_id)
        .values(is_current=False),
    )


@router.get("")
async def list_academic_years(
    query: ListQuery = Depends(list_query),
    user: CurrentUser = Depends(require_module("academic-years")),
    db: AsyncSession = Depends(get_db),
):
    stmt = scope_to_school(select(AcademicYear), AcademicYear, user)
    stmt = apply_search(stmt, query.search, [AcademicYear.name])
    rows, total = await paginate(db, apply_sort(stmt, query, SORTABLE), query)
    return paginated_response(
        [AcademicYearRead.model_validate(y) for y in rows], total, query.pagination,
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_academic_year(
    body: AcademicYearCreate,
    user: CurrentUser = Depends(require_module("academic-years")),
    db: AsyncSession = Depends(get_db),
):
    school_id = resolve_school_id(user, body.school_id)
    year = AcademicYear(**body.model_dump(exclude={"school_id"}), school_id=school_id)
    db.add(year)
    await db.flush()
    if year.is_current:
        await _clear_current(db, school_id, year.id)
    record_audit(
        db, user, AuditAction.CREATE, "AcademicYear", year.id,
        school_id=school_id, new_value=snapshot(year),
    )
    await db.commit()
    return success_response(
        AcademicYearRead.model_validate(year), "Academic year created successfully",
    )


@router.get("/{year_id}")
async def get_academic_year(
    year_id: UUID,
    user: CurrentUser = Depends(require_module("academic-years")),
    db: AsyncSession = Depends(get_db),
):
    year = await get_scoped_or_404(db, AcademicYear, year_id, user, "Academic year")
    return success_response(AcademicYearRead.model_validate(year))


@router.put("/{year_id}")
async def update_academic_year(
    year_id: UUID,
    body: AcademicYearUpdate,
    user: CurrentUser = Depends(require_module("academic-years")),
    db: AsyncSession = Depends(get_db),
):
    year = await get_scoped_or_404(db, AcademicYear, year_id, user, "Academic year")
    changes = body.model_dump(exclude_unset=True)
    start = changes.get("start_date", year.start_date)
    end = changes.get("end_date", year.end_date)
    if end <= start:
        raise ValidationFailedError.single("endDate", "endDate must be after startDate")

    before = snapshot(year)
    apply_changes(year, changes)
    await db.flush()
    record_audit(
        db, user, AuditAction.UPDATE, "AcademicYear", year.id, school_id=year.school_id,
        old_value=before, new_value=snapshot(year),
    )
    await db.commit()
    return success_response(
        AcademicYearRead.model_validate(year), "Academic year updated successfully",
    )


@router.post("/{year_id}/set-current")
async def set_current_academic_year(
    year_id: UUID,
    user: CurrentUser = Depends(require_module("academic-years")),
    db: AsyncSession = Depends(get_db),
):
    year = await get_scoped_or_404(db, AcademicYear, year_id, user, "Academic year")
    await _clear_current(db, year.school_id, year.id)
    year.is_current = True
    await db.flush()
    record_audit(
        db, user, AuditAction.UPDATE, "AcademicYear", year.id, school_id=year.school_id,
        new_value={"isCurrent": True},
    )
    await db.commit()
    return success_response(
        AcademicYearRead.model_validate(year), "Academic year set as current",
    )
