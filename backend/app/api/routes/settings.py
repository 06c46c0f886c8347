"""Settings Routes — per-school preferences (notifications, locale, academic calendar).

Invariants:
    - Settings belong to one school; SUPER_ADMIN names it with ?schoolId=
    - PUT merges the supplied keys into what is stored; omitted keys keep their value
    - GET always returns every key, filling unset ones with defaults
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_module
from app.core.domain_types import AuditAction
from app.core.envelope import success_response
from app.core.errors import ResourceNotFoundError
from app.core.tenancy import CurrentUser, resolve_school_id
from app.infrastructure.database import get_db
from app.models.school import School
from app.schemas.school import SchoolSettings, SettingsUpdate
from app.services.audit import record_audit

router = APIRouter(prefix="/api/settings", tags=["settings"])


async def _school(db: AsyncSession, user: CurrentUser, school_id: UUID | None) -> School:
    school = await db.get(School, resolve_school_id(user, school_id))
    if school is None:
        raise ResourceNotFoundError("School", str(school_id))
    return school


@router.get("")
async def read_settings(
    school_id: UUID | None = Query(None, alias="schoolId"),
    user: CurrentUser = Depends(require_module("settings")),
    db: AsyncSession = Depends(get_db),
):
    school = await _school(db, user, school_id)
    return success_response(SchoolSettings.model_validate(school.settings or {}))


@router.put("")
async def update_settings(
    body: SettingsUpdate,
    school_id: UUID | None = Query(None, alias="schoolId"),
    user: CurrentUser = Depends(require_module("settings")),
    db: AsyncSession = Depends(get_db),
):
    school = await _school(db, user, school_id)
    before = dict(school.settings or {})
    # reassign so the JSON column is marked dirty
    school.settings = {**before, **body.model_dump(exclude_unset=True)}
    record_audit(
        db, user, AuditAction.UPDATE, "SchoolSettings", school.id, school_id=school.id,
        old_value=before, new_value=school.settings,
    )
    await db.commit()
    return success_response(
        SchoolSettings.model_validate(school.settings), "Settings updated successfully",
    )
