"""Fee Routes — fee structures, per-student assignments and collections.

Invariants:
    - A fee's class, and the student a fee is assigned to, belong to the fee's school
    - paid_amount accumulates over collections and never exceeds amount
    - Each collection issues a fresh receipt number and stamps payment_date
    - Deleting a fee structure deactivates it (assigned payments keep their fee)
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import list_query, require_module
from app.core.domain_types import AuditAction, FeeFrequency, FeeType, PaymentStatus
from app.core.envelope import paginated_response, success_response
from app.core.errors import BusinessRuleError, ValidationFailedError
from app.core.pagination import ListQuery, parse_bool_flag
from app.core.tenancy import CurrentUser, resolve_school_id
from app.infrastructure.database import get_db
from app.models.academic import SchoolClass
from app.models.finance import Fee, FeePayment
from app.models.student import Student
from app.schemas.finance import (
    FeeAssign, FeeCollect, FeeCreate, FeePaymentRead, FeeRead, FeeUpdate,
)
from app.services import fee_collection
from app.services.audit import record_audit, snapshot
from app.services.querying import (
    apply_changes, apply_search, apply_sort, get_scoped_or_404, paginate,
    row_exists, scope_to_school,
)

router = APIRouter(prefix="/api/fees", tags=["fees"])

SORTABLE = {
    "createdAt": Fee.created_at, "name": Fee.name, "amount": Fee.amount,
}


async def _check_class(db: AsyncSession, school_id: UUID, class_id: UUID | None) -> None:
    if class_id and not await row_exists(
        db, SchoolClass, SchoolClass.id == class_id, SchoolClass.school_id == school_id,
    ):
        raise ValidationFailedError.single("classId", "Invalid class")


@router.get("")
async def list_fees(
    query: ListQuery = Depends(list_query),
    fee_type: FeeType | None = Query(None, alias="type"),
    frequency: FeeFrequency | None = Query(None),
    class_id: UUID | None = Query(None, alias="classId"),
    is_active: str | None = Query(None, alias="isActive"),
    user: CurrentUser = Depends(require_module("fees")),
    db: AsyncSession = Depends(get_db),
):
    stmt = scope_to_school(select(Fee), Fee, user)
    stmt = apply_search(stmt, query.search, [Fee.name, Fee.description])
    if fee_type:
        stmt = stmt.where(Fee.type == fee_type)
    if frequency:
        stmt = stmt.where(Fee.frequency == frequency)
    if class_id:
        stmt = stmt.where(Fee.class_id == class_id)
    active = parse_bool_flag(is_active)
    if active is not None:
        stmt = stmt.where(Fee.is_active == active)
    rows, total = await paginate(db, apply_sort(stmt, query, SORTABLE), query)
    return paginated_response(
        [FeeRead.model_validate(f) for f in rows], total, query.pagination,
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_fee(
    body: FeeCreate,
    user: CurrentUser = Depends(require_module("fees")),
    db: AsyncSession = Depends(get_db),
):
    school_id = resolve_school_id(user, body.school_id)
    await _check_class(db, school_id, body.class_id)
    fee = Fee(**body.model_dump(exclude={"school_id"}), school_id=school_id)
    db.add(fee)
    await db.flush()
    record_audit(
        db, user, AuditAction.CREATE, "Fee", fee.id,
        school_id=school_id, new_value=snapshot(fee),
    )
    await db.commit()
    return success_response(FeeRead.model_validate(fee), "Fee created successfully")


# ─── PAYMENTS ───────────────────────────────────────────────────

@router.get("/payments")
async def list_payments(
    query: ListQuery = Depends(list_query),
    student_id: UUID | None = Query(None, alias="studentId"),
    payment_status: PaymentStatus | None = Query(None, alias="status"),
    user: CurrentUser = Depends(require_module("finance")),
    db: AsyncSession = Depends(get_db),
):
    stmt = scope_to_school(select(FeePayment), FeePayment, user)
    if student_id:
        stmt = stmt.where(FeePayment.student_id == student_id)
    if payment_status:
        stmt = stmt.where(FeePayment.status == payment_status)
    stmt = apply_sort(stmt, query, {
        "createdAt": FeePayment.created_at, "dueDate": FeePayment.due_date,
        "amount": FeePayment.amount,
    })
    rows, total = await paginate(db, stmt, query)
    return paginated_response(
        [FeePaymentRead.model_validate(p) for p in rows], total, query.pagination,
    )


@router.post("/payments", status_code=status.HTTP_201_CREATED)
async def assign_fee(
    body: FeeAssign,
    user: CurrentUser = Depends(require_module("finance")),
    db: AsyncSession = Depends(get_db),
):
    """Charge a fee structure to a student."""
    fee = await get_scoped_or_404(db, Fee, body.fee_id, user, "Fee")
    if not fee.is_active:
        raise BusinessRuleError("Fee is not active")
    if not await row_exists(
        db, Student, Student.id == body.student_id, Student.school_id == fee.school_id,
    ):
        raise ValidationFailedError.single("studentId", "Invalid student")

    payment = FeePayment(
        school_id=fee.school_id, student_id=body.student_id, fee_id=fee.id,
        amount=body.amount or fee.amount, paid_amount=0.0, due_date=body.due_date,
        status=PaymentStatus.PENDING, notes=body.notes,
    )
    db.add(payment)
    await db.flush()
    record_audit(
        db, user, AuditAction.CREATE, "FeePayment", payment.id,
        school_id=fee.school_id, new_value=snapshot(payment),
    )
    await db.commit()
    return success_response(FeePaymentRead.model_validate(payment), "Fee assigned successfully")


@router.post("/payments/{payment_id}/collect")
async def collect_payment(
    payment_id: UUID,
    body: FeeCollect,
    user: CurrentUser = Depends(require_module("finance")),
    db: AsyncSession = Depends(get_db),
):
    payment = await get_scoped_or_404(db, FeePayment, payment_id, user, "Fee payment")
    before = snapshot(payment)
    await fee_collection.collect(db, payment, body)
    record_audit(
        db, user, AuditAction.UPDATE, "FeePayment", payment.id,
        school_id=payment.school_id, old_value=before, new_value=snapshot(payment),
    )
    await db.commit()
    return success_response(FeePaymentRead.model_validate(payment), "Payment collected successfully")


@router.get("/due")
async def list_due_fees(
    query: ListQuery = Depends(list_query),
    student_id: UUID | None = Query(None, alias="studentId"),
    user: CurrentUser = Depends(require_module("finance")),
    db: AsyncSession = Depends(get_db),
):
    """Outstanding payments, earliest due date first."""
    outstanding = FeePayment.status.in_(fee_collection.OUTSTANDING)
    stmt = scope_to_school(select(FeePayment).where(outstanding), FeePayment, user)
    if student_id:
        stmt = stmt.where(FeePayment.student_id == student_id)
    stmt = stmt.order_by(FeePayment.due_date.asc(), FeePayment.created_at.asc())
    rows, total = await paginate(db, stmt, query)
    return paginated_response(
        [FeePaymentRead.model_validate(p) for p in rows], total, query.pagination,
    )


# ─── FEE BY ID ──────────────────────────────────────────────────

@router.get("/{fee_id}")
async def get_fee(
    fee_id: UUID,
    user: CurrentUser = Depends(require_module("fees")),
    db: AsyncSession = Depends(get_db),
):
    fee = await get_scoped_or_404(db, Fee, fee_id, user, "Fee")
    return success_response(FeeRead.model_validate(fee))


@router.put("/{fee_id}")
async def update_fee(
    fee_id: UUID,
    body: FeeUpdate,
    user: CurrentUser = Depends(require_module("fees")),
    db: AsyncSession = Depends(get_db),
):
    fee = await get_scoped_or_404(db, Fee, fee_id, user, "Fee")
    changes = body.model_dump(exclude_unset=True)
    await _check_class(db, fee.school_id, changes.get("class_id"))
    before = snapshot(fee)
    apply_changes(fee, changes)
    await db.flush()
    record_audit(
        db, user, AuditAction.UPDATE, "Fee", fee.id, school_id=fee.school_id,
        old_value=before, new_value=snapshot(fee),
    )
    await db.commit()
    return success_response(FeeRead.model_validate(fee), "Fee updated successfully")


@router.delete("/{fee_id}")
async def delete_fee(
    fee_id: UUID,
    user: CurrentUser = Depends(require_module("fees")),
    db: AsyncSession = Depends(get_db),
):
    fee = await get_scoped_or_404(db, Fee, fee_id, user, "Fee")
    fee.is_active = False
    await db.flush()
    record_audit(
        db, user, AuditAction.DELETE, "Fee", fee.id, school_id=fee.school_id,
        old_value={"isActive": True}, new_value={"isActive": False},
    )
    await db.commit()
    return success_response({"message": "Fee deactivated successfully"})
