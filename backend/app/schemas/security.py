"""Security Schemas — audit trail, backup requests and compliance records."""

from datetime import date, datetime
from typing import Any
from uuid import UUID

from pydantic import Field

from app.core.domain_types import AuditAction, BackupStatus, BackupType, ComplianceStatus
from app.schemas.common import CamelModel, RequiredStr


class AuditLogRead(CamelModel):
    id: UUID
    school_id: UUID | None
    user_id: UUID | None
    action: AuditAction
    entity: str
    entity_id: str | None
    old_value: dict[str, Any] | None
    new_value: dict[str, Any] | None
    ip_address: str | None
    created_at: datetime


class BackupCreate(CamelModel):
    school_id: UUID | None = None
    type: BackupType = BackupType.FULL
    notes: str | None = None


class BackupRead(CamelModel):
    id: UUID
    school_id: UUID
    requested_by: UUID | None
    filename: str
    size: int
    status: BackupStatus
    type: BackupType
    notes: str | None
    created_at: datetime


class ComplianceCreate(CamelModel):
    school_id: UUID | None = None
    compliance_type: RequiredStr = Field("GDPR", max_length=50)
    description: str | None = None
    status: ComplianceStatus = ComplianceStatus.ACTIVE
    valid_from: date | None = None
    valid_until: date | None = None
    is_active: bool = True


class ComplianceRead(CamelModel):
    id: UUID
    school_id: UUID
    compliance_type: str
    description: str | None
    status: ComplianceStatus
    valid_from: date
    valid_until: date | None
    is_active: bool
    created_at: datetime


class ComplianceSummary(CamelModel):
    compliance_type: str
    records: list[ComplianceRead]
    compliance_score: int


class DashboardStats(CamelModel):
    total_students: int
    active_students: int
    total_staff: int
    active_staff: int
    total_classes: int
    fee_collected: float
