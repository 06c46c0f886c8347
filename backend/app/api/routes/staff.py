"""Staff Routes — employees, daily attendance, leave requests and payroll.

Invariants:
    - employeeId is unique within a school; email is unique across all staff
    - Salary and bank details are only returned to PRINCIPAL and above, never in lists
    - Delete needs at least SCHOOL_ADMIN and only deactivates the employee
    - Attendance is one row per staff member per date; marking again overwrites it
    - Leave decisions (APPROVED/REJECTED) need at least PRINCIPAL
    - Payroll is read and written by PRINCIPAL and above only; one entry per
      staff member per month, net salary computed by core.ledger.net_salary

Design Decisions:
    - /attendance, /leaves and /payroll are declared before /{staff_id} so they are not
      swallowed by the id route
"""

import datetime as dt
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import ensure_minimum_role, list_query, require_module
from app.core.access_control import has_minimum_role
from app.core.domain_types import AuditAction, LeaveStatus, StaffType, UserRole
from app.core.envelope import paginated_response, success_response
from app.core.errors import BusinessRuleError, ValidationFailedError
from app.core.ledger import net_salary
from app.core.pagination import ListQuery, parse_bool_flag
from app.core.tenancy import CurrentUser, resolve_school_id
from app.db.base import utcnow
from app.infrastructure.database import get_db
from app.models.staff import LeaveRequest, Payroll, Staff, StaffAttendance
from app.schemas.staff import (
    AttendanceMark, AttendanceRead, LeaveCreate, LeaveDecision, LeaveRead,
    PayrollCreate, PayrollRead, StaffCreate, StaffDetail, StaffRead, StaffUpdate,
)
from app.services.audit import record_audit, snapshot
from app.services.querying import (
    apply_changes, apply_search, apply_sort, get_scoped_or_404, paginate,
    row_exists, scope_to_school,
)

router = APIRouter(prefix="/api/staff", tags=["staff"])

SORTABLE = {
    "createdAt": Staff.created_at, "firstName": Staff.first_name,
    "lastName": Staff.last_name, "employeeId": Staff.employee_id,
    "joiningDate": Staff.joining_date,
}


def _present(user: CurrentUser, staff: Staff) -> StaffRead:
    if has_minimum_role(user.role, UserRole.PRINCIPAL):
        return StaffDetail.model_validate(staff)
    return StaffRead.model_validate(staff)


async def _staff_in_scope(db: AsyncSession, user: CurrentUser, staff_id: UUID) -> Staff:
    stmt = scope_to_school(select(Staff).where(Staff.id == staff_id), Staff, user)
    staff = (await db.execute(stmt)).scalar_one_or_none()
    if staff is None:
        raise ValidationFailedError.single("staffId", "Invalid staff member")
    return staff


async def _ensure_email_free(db: AsyncSession, email: str, exclude_id: UUID | None = None) -> None:
    others = [Staff.id != exclude_id] if exclude_id else []
    if await row_exists(db, Staff, Staff.email == email, *others):
        raise ValidationFailedError.single("email", "Staff with this email already exists")


@router.get("")
async def list_staff(
    query: ListQuery = Depends(list_query),
    staff_type: StaffType | None = Query(None, alias="staffType"),
    department: str | None = Query(None),
    is_active: str | None = Query(None, alias="isActive"),
    user: CurrentUser = Depends(require_module("staff")),
    db: AsyncSession = Depends(get_db),
):
    stmt = scope_to_school(select(Staff), Staff, user)
    stmt = apply_search(stmt, query.search, [
        Staff.first_name, Staff.last_name, Staff.employee_id, Staff.email,
    ])
    if staff_type:
        stmt = stmt.where(Staff.staff_type == staff_type)
    if department:
        stmt = stmt.where(Staff.department == department)
    active = parse_bool_flag(is_active)
    if active is not None:
        stmt = stmt.where(Staff.is_active == active)
    rows, total = await paginate(db, apply_sort(stmt, query, SORTABLE), query)
    return paginated_response(
        [StaffRead.model_validate(s) for s in rows], total, query.pagination,
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_staff(
    body: StaffCreate,
    user: CurrentUser = Depends(require_module("staff")),
    db: AsyncSession = Depends(get_db),
):
    school_id = resolve_school_id(user, body.school_id)
    if await row_exists(
        db, Staff, Staff.school_id == school_id, Staff.employee_id == body.employee_id,
    ):
        raise ValidationFailedError.single(
            "employeeId", "Employee ID already exists in this school",
        )
    email = body.email.lower()
    await _ensure_email_free(db, email)

    staff = Staff(
        **body.model_dump(exclude={"school_id", "email"}), email=email, school_id=school_id,
    )
    db.add(staff)
    await db.flush()
    record_audit(
        db, user, AuditAction.CREATE, "Staff", staff.id,
        school_id=school_id, new_value=snapshot(staff),
    )
    await db.commit()
    return success_response(_present(user, staff), "Staff member created successfully")


# ─── ATTENDANCE ─────────────────────────────────────────────────

@router.get("/attendance")
async def list_attendance(
    query: ListQuery = Depends(list_query),
    on_date: dt.date | None = Query(None, alias="date"),
    staff_id: UUID | None = Query(None, alias="staffId"),
    user: CurrentUser = Depends(require_module("staff")),
    db: AsyncSession = Depends(get_db),
):
    stmt = scope_to_school(select(StaffAttendance), StaffAttendance, user)
    if on_date:
        stmt = stmt.where(StaffAttendance.date == on_date)
    if staff_id:
        stmt = stmt.where(StaffAttendance.staff_id == staff_id)
    stmt = stmt.order_by(StaffAttendance.date.desc(), StaffAttendance.created_at.desc())
    rows, total = await paginate(db, stmt, query)
    return paginated_response(
        [AttendanceRead.model_validate(a) for a in rows], total, query.pagination,
    )


@router.post("/attendance")
async def mark_attendance(
    body: AttendanceMark,
    user: CurrentUser = Depends(require_module("staff")),
    db: AsyncSession = Depends(get_db),
):
    staff = await _staff_in_scope(db, user, body.staff_id)
    existing = (await db.execute(
        select(StaffAttendance).where(
            StaffAttendance.staff_id == staff.id, StaffAttendance.date == body.date,
        ),
    )).scalar_one_or_none()

    fields = body.model_dump(exclude={"staff_id", "date"})
    if existing is None:
        record = StaffAttendance(
            staff_id=staff.id, school_id=staff.school_id, date=body.date, **fields,
        )
        db.add(record)
        action, before = AuditAction.CREATE, None
    else:
        record, action, before = existing, AuditAction.UPDATE, snapshot(existing)
        apply_changes(record, fields)
    await db.flush()
    record_audit(
        db, user, action, "StaffAttendance", record.id, school_id=staff.school_id,
        old_value=before, new_value=snapshot(record),
    )
    await db.commit()
    return success_response(AttendanceRead.model_validate(record), "Attendance marked")


# ─── LEAVES ─────────────────────────────────────────────────────

@router.get("/leaves")
async def list_leaves(
    query: ListQuery = Depends(list_query),
    leave_status: LeaveStatus | None = Query(None, alias="status"),
    staff_id: UUID | None = Query(None, alias="staffId"),
    user: CurrentUser = Depends(require_module("staff")),
    db: AsyncSession = Depends(get_db),
):
    stmt = scope_to_school(select(LeaveRequest), LeaveRequest, user)
    if leave_status:
        stmt = stmt.where(LeaveRequest.status == leave_status)
    if staff_id:
        stmt = stmt.where(LeaveRequest.staff_id == staff_id)
    stmt = apply_sort(stmt, query, {
        "createdAt": LeaveRequest.created_at, "startDate": LeaveRequest.start_date,
    })
    rows, total = await paginate(db, stmt, query)
    return paginated_response(
        [LeaveRead.model_validate(leave) for leave in rows], total, query.pagination,
    )


@router.post("/leaves", status_code=status.HTTP_201_CREATED)
async def create_leave(
    body: LeaveCreate,
    user: CurrentUser = Depends(require_module("staff")),
    db: AsyncSession = Depends(get_db),
):
    staff = await _staff_in_scope(db, user, body.staff_id)
    leave = LeaveRequest(**body.model_dump(), school_id=staff.school_id)
    db.add(leave)
    await db.flush()
    record_audit(
        db, user, AuditAction.CREATE, "LeaveRequest", leave.id,
        school_id=staff.school_id, new_value=snapshot(leave),
    )
    await db.commit()
    return success_response(LeaveRead.model_validate(leave), "Leave request submitted")


@router.put("/leaves/{leave_id}")
async def decide_leave(
    leave_id: UUID,
    body: LeaveDecision,
    user: CurrentUser = Depends(require_module("staff")),
    db: AsyncSession = Depends(get_db),
):
    ensure_minimum_role(user, UserRole.PRINCIPAL, "Only principals and admins can decide leave requests")
    leave = await get_scoped_or_404(db, LeaveRequest, leave_id, user, "Leave request")
    if body.status == LeaveStatus.PENDING:
        raise ValidationFailedError.single("status", "Decision must be APPROVED or REJECTED")
    if leave.status != LeaveStatus.PENDING:
        raise BusinessRuleError(f"Leave request is already {leave.status.value}")

    before = snapshot(leave)
    leave.status = body.status
    leave.decided_by = user.id
    leave.decided_at = utcnow()
    await db.flush()
    record_audit(
        db, user, AuditAction.UPDATE, "LeaveRequest", leave.id, school_id=leave.school_id,
        old_value=before, new_value=snapshot(leave),
    )
    await db.commit()
    return success_response(LeaveRead.model_validate(leave), f"Leave request {body.status.value.lower()}")


# ─── PAYROLL ────────────────────────────────────────────────────

@router.get("/payroll")
async def list_payroll(
    query: ListQuery = Depends(list_query),
    staff_id: UUID | None = Query(None, alias="staffId"),
    month: int | None = Query(None, ge=1, le=12),
    year: int | None = Query(None),
    is_paid: str | None = Query(None, alias="isPaid"),
    user: CurrentUser = Depends(require_module("staff")),
    db: AsyncSession = Depends(get_db),
):
    ensure_minimum_role(user, UserRole.PRINCIPAL, "Only principals and admins can view payroll")
    stmt = scope_to_school(select(Payroll), Payroll, user)
    if staff_id:
        stmt = stmt.where(Payroll.staff_id == staff_id)
    if month:
        stmt = stmt.where(Payroll.month == month)
    if year:
        stmt = stmt.where(Payroll.year == year)
    paid = parse_bool_flag(is_paid)
    if paid is not None:
        stmt = stmt.where(Payroll.is_paid == paid)
    stmt = stmt.order_by(Payroll.year.desc(), Payroll.month.desc())
    rows, total = await paginate(db, stmt, query)
    return paginated_response(
        [PayrollRead.model_validate(p) for p in rows], total, query.pagination,
    )


@router.post("/payroll", status_code=status.HTTP_201_CREATED)
async def create_payroll(
    body: PayrollCreate,
    user: CurrentUser = Depends(require_module("staff")),
    db: AsyncSession = Depends(get_db),
):
    ensure_minimum_role(user, UserRole.PRINCIPAL, "Only principals and admins can manage payroll")
    staff = await _staff_in_scope(db, user, body.staff_id)
    if await row_exists(
        db, Payroll, Payroll.staff_id == staff.id,
        Payroll.month == body.month, Payroll.year == body.year,
    ):
        raise ValidationFailedError.single(
            "month", "Payroll entry already exists for this month and year",
        )

    payroll = Payroll(
        **body.model_dump(exclude={"staff_id"}),
        staff=staff, school_id=staff.school_id,
        net_salary=net_salary(body.basic_salary, body.allowances, body.deductions),
    )
    db.add(payroll)
    await db.flush()
    record_audit(
        db, user, AuditAction.CREATE, "Payroll", payroll.id,
        school_id=staff.school_id, new_value=snapshot(payroll),
    )
    await db.commit()
    return success_response(PayrollRead.model_validate(payroll), "Payroll entry created")


# ─── STAFF BY ID ────────────────────────────────────────────────

@router.get("/{staff_id}")
async def get_staff(
    staff_id: UUID,
    user: CurrentUser = Depends(require_module("staff")),
    db: AsyncSession = Depends(get_db),
):
    staff = await get_scoped_or_404(db, Staff, staff_id, user, "Staff member")
    return success_response(_present(user, staff))


@router.put("/{staff_id}")
async def update_staff(
    staff_id: UUID,
    body: StaffUpdate,
    user: CurrentUser = Depends(require_module("staff")),
    db: AsyncSession = Depends(get_db),
):
    staff = await get_scoped_or_404(db, Staff, staff_id, user, "Staff member")
    changes = body.model_dump(exclude_unset=True)
    if not has_minimum_role(user.role, UserRole.PRINCIPAL):
        changes.pop("salary", None)
        changes.pop("bank_details", None)
    if changes.get("email"):
        changes["email"] = changes["email"].lower()
        if changes["email"] != staff.email:
            await _ensure_email_free(db, changes["email"], exclude_id=staff.id)

    before = snapshot(staff)
    apply_changes(staff, changes)
    await db.flush()
    record_audit(
        db, user, AuditAction.UPDATE, "Staff", staff.id, school_id=staff.school_id,
        old_value=before, new_value=snapshot(staff),
    )
    await db.commit()
    return success_response(_present(user, staff), "Staff member updated successfully")


@router.delete("/{staff_id}")
async def delete_staff(
    staff_id: UUID,
    user: CurrentUser = Depends(require_module("staff")),
    db: AsyncSession = Depends(get_db),
):
    ensure_minimum_role(user, UserRole.SCHOOL_ADMIN, "Only school admins can delete staff members")
    staff = await get_scoped_or_404(db, Staff, staff_id, user, "Staff member")
    staff.is_active = False
    await db.flush()
    record_audit(
        db, user, AuditAction.DELETE, "Staff", staff.id, school_id=staff.school_id,
        old_value={"isActive": True}, new_value={"isActive": False},
    )
    await db.commit()
    return success_response({"message": "Staff member deactivated successfully"})
