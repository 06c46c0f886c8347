"""Security Routes — audit trail browsing, backup requests and compliance records.

Invariants:
    - Audit logs are read-only over the API; tenants see only their school's rows
    - A backup request records metadata (PENDING); nothing here runs a backup
    - The compliance score is the rounded share of COMPLIANT records of one type,
      0 when the school has none
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import list_query, require_module
from app.core.domain_types import AuditAction, BackupStatus, ComplianceStatus
from app.core.envelope import paginated_response, success_response
from app.core.errors import ValidationFailedError
from app.core.numbering import new_backup_filename
from app.core.pagination import ListQuery
from app.core.tenancy import CurrentUser, resolve_school_id
from app.infrastructure.database import get_db
from app.models.audit import AuditLog, ComplianceRecord, DataBackup
from app.models.school import School
from app.schemas.security import (
    AuditLogRead, BackupCreate, BackupRead, ComplianceCreate, ComplianceRead, ComplianceSummary,
)
from app.services.audit import record_audit, snapshot
from app.services.querying import apply_sort, paginate, scope_to_school

router = APIRouter(prefix="/api/security", tags=["security"])


@router.get("/audit-logs")
async def list_audit_logs(
    query: ListQuery = Depends(list_query),
    entity: str | None = Query(None),
    action: AuditAction | None = Query(None),
    entity_id: str | None = Query(None, alias="entityId"),
    user_id: UUID | None = Query(None, alias="userId"),
    user: CurrentUser = Depends(require_module("security")),
    db: AsyncSession = Depends(get_db),
):
    stmt = scope_to_school(select(AuditLog), AuditLog, user)
    if entity:
        stmt = stmt.where(AuditLog.entity == entity)
    if action:
        stmt = stmt.where(AuditLog.action == action)
    if entity_id:
        stmt = stmt.where(AuditLog.entity_id == entity_id)
    if user_id:
        stmt = stmt.where(AuditLog.user_id == user_id)
    stmt = apply_sort(stmt, query, {
        "createdAt": AuditLog.created_at, "entity": AuditLog.entity,
        "action": AuditLog.action,
    })
    rows, total = await paginate(db, stmt, query)
    return paginated_response(
        [AuditLogRead.model_validate(r) for r in rows], total, query.pagination,
    )


@router.get("/backups")
async def list_backups(
    query: ListQuery = Depends(list_query),
    backup_status: BackupStatus | None = Query(None, alias="status"),
    user: CurrentUser = Depends(require_module("security")),
    db: AsyncSession = Depends(get_db),
):
    stmt = scope_to_school(select(DataBackup), DataBackup, user)
    if backup_status:
        stmt = stmt.where(DataBackup.status == backup_status)
    stmt = apply_sort(stmt, query, {"createdAt": DataBackup.created_at})
    rows, total = await paginate(db, stmt, query)
    return paginated_response(
        [BackupRead.model_validate(b) for b in rows], total, query.pagination,
    )


@router.post("/backups", status_code=status.HTTP_201_CREATED)
async def request_backup(
    body: BackupCreate,
    user: CurrentUser = Depends(require_module("security")),
    db: AsyncSession = Depends(get_db),
):
    school_id = resolve_school_id(user, body.school_id)
    school = await db.get(School, school_id)
    if school is None:
        raise ValidationFailedError.single("schoolId", "Invalid school")

    backup = DataBackup(
        school_id=school_id, requested_by=user.id,
        filename=new_backup_filename(school.code, date.today()),
        status=BackupStatus.PENDING, type=body.type, notes=body.notes,
    )
    db.add(backup)
    await db.flush()
    record_audit(
        db, user, AuditAction.CREATE, "DataBackup", backup.id,
        school_id=school_id, new_value=snapshot(backup),
    )
    await db.commit()
    return success_response(BackupRead.model_validate(backup), "Backup requested successfully")


@router.get("/compliance")
async def compliance_summary(
    compliance_type: str = Query("GDPR", alias="type"),
    user: CurrentUser = Depends(require_module("security")),
    db: AsyncSession = Depends(get_db),
):
    stmt = scope_to_school(select(ComplianceRecord), ComplianceRecord, user)
    stmt = stmt.where(ComplianceRecord.compliance_type == compliance_type)
    records = list((await db.execute(
        stmt.order_by(ComplianceRecord.created_at.desc()),
    )).scalars().all())
    compliant = sum(1 for r in records if r.status == ComplianceStatus.COMPLIANT)
    # half-up rounding to a whole percent
    score = (compliant * 200 + len(records)) // (2 * len(records)) if records else 0
    return success_response(ComplianceSummary(
        compliance_type=compliance_type,
        records=[ComplianceRead.model_validate(r) for r in records],
        compliance_score=score,
    ))


@router.post("/compliance", status_code=status.HTTP_201_CREATED)
async def create_compliance_record(
    body: ComplianceCreate,
    user: CurrentUser = Depends(require_module("security")),
    db: AsyncSession = Depends(get_db),
):
    school_id = resolve_school_id(user, body.school_id)
    valid_from = body.valid_from or date.today()
    if body.valid_until and body.valid_until < valid_from:
        raise ValidationFailedError.single("validUntil", "validUntil cannot be before validFrom")

    record = ComplianceRecord(
        **body.model_dump(exclude={"school_id", "valid_from"}),
        school_id=school_id, valid_from=valid_from,
    )
    db.add(record)
    await db.flush()
    record_audit(
        db, user, AuditAction.CREATE, "ComplianceRecord", record.id,
        school_id=school_id, new_value=snapshot(record),
    )
    await db.commit()
    return success_response(
        ComplianceRead.model_validate(record), "Compliance record created successfully",
    )
