"""Admission Routes — inquiries, the admission pipeline and enrolment.

Invariants:
    - inquiryNumber is unique within a school; when omitted it continues the
      school's INQ<yy><nnnn> sequence for the current year
    - Only APPROVED admissions can be enrolled; enrolment creates the student,
      links it and marks the admission ADMITTED in one commit
    - ADMITTED admissions cannot be edited back into the pipeline or deleted
    - /applications, /tests and /interviews list the same rows filtered by pipeline
      stage (tests and interviews need a scheduled date); POST /applications opens
      an admission at PROSPECT
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import list_query, require_module
from app.core.domain_types import AdmissionStatus, AuditAction, Gender
from app.core.envelope import paginated_response, success_response
from app.core.errors import BusinessRuleError, ValidationFailedError
from app.core.numbering import next_inquiry_number
from app.core.pagination import ListQuery
from app.core.tenancy import CurrentUser, resolve_school_id
from app.infrastructure.database import get_db
from app.models.admission import Admission
from app.models.student import Guardian, Student
from app.schemas.admission import (
    AdmissionCreate, AdmissionEnroll, AdmissionRead, AdmissionUpdate,
)
from app.schemas.student import StudentRead
from app.services.audit import record_audit, snapshot
from app.services.querying import (
    apply_changes, apply_search, apply_sort, get_scoped_or_404, paginate,
    row_exists, scope_to_school,
)
from app.services.students import ensure_admission_number_free, validate_placement

router = APIRouter(prefix="/api/admissions", tags=["admissions"])

SORTABLE = {
    "createdAt": Admission.created_at, "firstName": Admission.first_name,
    "inquiryNumber": Admission.inquiry_number, "status": Admission.status,
}

APPLICATION_STAGES = (
    AdmissionStatus.PROSPECT, AdmissionStatus.TEST_SCHEDULED, AdmissionStatus.TEST_COMPLETED,
    AdmissionStatus.INTERVIEW_SCHEDULED, AdmissionStatus.APPROVED,
)
TEST_STAGES = (
    AdmissionStatus.TEST_SCHEDULED, AdmissionStatus.TEST_COMPLETED,
    AdmissionStatus.INTERVIEW_SCHEDULED, AdmissionStatus.APPROVED,
)
INTERVIEW_STAGES = (AdmissionStatus.INTERVIEW_SCHEDULED, AdmissionStatus.APPROVED)


async def _generate_inquiry_number(db: AsyncSession, school_id: UUID, today: date) -> str:
    prefix = f"INQ{today:%y}"
    last = await db.scalar(
        select(Admission.inquiry_number)
        .where(Admission.school_id == school_id, Admission.inquiry_number.like(f"{prefix}%"))
        # numeric order: INQ2610000 sorts after INQ269999
        .order_by(func.length(Admission.inquiry_number).desc(), Admission.inquiry_number.desc())
        .limit(1),
    )
    return next_inquiry_number(last, today)


@router.get("")
async def list_admissions(
    query: ListQuery = Depends(list_query),
    admission_status: AdmissionStatus | None = Query(None, alias="status"),
    applied_class: str | None = Query(None, alias="appliedClass"),
    user: CurrentUser = Depends(require_module("admissions")),
    db: AsyncSession = Depends(get_db),
):
    stmt = scope_to_school(select(Admission), Admission, user)
    stmt = apply_search(stmt, query.search, [
        Admission.first_name, Admission.last_name, Admission.inquiry_number,
        Admission.parent_name, Admission.parent_email,
    ])
    if admission_status:
        stmt = stmt.where(Admission.status == admission_status)
    if applied_class:
        stmt = stmt.where(Admission.applied_class == applied_class)
    rows, total = await paginate(db, apply_sort(stmt, query, SORTABLE), query)
    return paginated_response(
        [AdmissionRead.model_validate(a) for a in rows], total, query.pagination,
    )


async def _insert_admission(
    db: AsyncSession, user: CurrentUser, body: AdmissionCreate,
    initial_status: AdmissionStatus | None = None,
) -> Admission:
    school_id = resolve_school_id(user, body.school_id)
    inquiry_number = body.inquiry_number or await _generate_inquiry_number(
        db, school_id, date.today(),
    )
    if await row_exists(
        db, Admission, Admission.school_id == school_id,
        Admission.inquiry_number == inquiry_number,
    ):
        raise ValidationFailedError.single("inquiryNumber", "Inquiry number already exists")

    data = body.model_dump(exclude={"school_id", "inquiry_number"})
    if initial_status is not None:
        data["status"] = initial_status
    if data.get("parent_email"):
        data["parent_email"] = data["parent_email"].lower()
    admission = Admission(**data, school_id=school_id, inquiry_number=inquiry_number)
    db.add(admission)
    await db.flush()
    record_audit(
        db, user, AuditAction.CREATE, "Admission", admission.id,
        school_id=school_id, new_value=snapshot(admission),
    )
    await db.commit()
    return admission


async def _stage_page(
    db: AsyncSession, user: CurrentUser, query: ListQuery,
    statuses: tuple[AdmissionStatus, ...], scheduled_on=None,
) -> dict:
    stmt = scope_to_school(select(Admission), Admission, user)
    stmt = stmt.where(Admission.status.in_(statuses))
    if scheduled_on is None:
        stmt = stmt.order_by(Admission.created_at.desc())
    else:
        stmt = stmt.where(scheduled_on.is_not(None)).order_by(scheduled_on.desc())
    rows, total = await paginate(db, stmt, query)
    return paginated_response(
        [AdmissionRead.model_validate(a) for a in rows], total, query.pagination,
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_admission(
    body: AdmissionCreate,
    user: CurrentUser = Depends(require_module("admissions")),
    db: AsyncSession = Depends(get_db),
):
    admission = await _insert_admission(db, user, body)
    return success_response(AdmissionRead.model_validate(admission), "Admission created successfully")


# ─── PIPELINE VIEWS ─────────────────────────────────────────────

@router.get("/applications")
async def list_applications(
    query: ListQuery = Depends(list_query),
    user: CurrentUser = Depends(require_module("admissions")),
    db: AsyncSession = Depends(get_db),
):
    return await _stage_page(db, user, query, APPLICATION_STAGES)


@router.post("/applications", status_code=status.HTTP_201_CREATED)
async def create_application(
    body: AdmissionCreate,
    user: CurrentUser = Depends(require_module("admissions")),
    db: AsyncSession = Depends(get_db),
):
    admission = await _insert_admission(db, user, body, AdmissionStatus.PROSPECT)
    return success_response(
        AdmissionRead.model_validate(admission), "Application created successfully",
    )


@router.get("/tests")
async def list_entrance_tests(
    query: ListQuery = Depends(list_query),
    user: CurrentUser = Depends(require_module("admissions")),
    db: AsyncSession = Depends(get_db),
):
    return await _stage_page(db, user, query, TEST_STAGES, Admission.test_date)


@router.get("/interviews")
async def list_interviews(
    query: ListQuery = Depends(list_query),
    user: CurrentUser = Depends(require_module("admissions")),
    db: AsyncSession = Depends(get_db),
):
    return await _stage_page(db, user, query, INTERVIEW_STAGES, Admission.interview_date)


# ─── ADMISSION BY ID ────────────────────────────────────────────

@router.get("/{admission_id}")
async def get_admission(
    admission_id: UUID,
    user: CurrentUser = Depends(require_module("admissions")),
    db: AsyncSession = Depends(get_db),
):
    admission = await get_scoped_or_404(db, Admission, admission_id, user, "Admission")
    return success_response(AdmissionRead.model_validate(admission))


@router.put("/{admission_id}")
async def update_admission(
    admission_id: UUID,
    body: AdmissionUpdate,
    user: CurrentUser = Depends(require_module("admissions")),
    db: AsyncSession = Depends(get_db),
):
    admission = await get_scoped_or_404(db, Admission, admission_id, user, "Admission")
    changes = body.model_dump(exclude_unset=True)
    if changes.get("status") == AdmissionStatus.ADMITTED and admission.student_id is None:
        raise BusinessRuleError("Use the enroll action to admit a student")
    if admission.status == AdmissionStatus.ADMITTED and changes.get("status") not in (
        None, AdmissionStatus.ADMITTED,
    ):
        raise BusinessRuleError("Admitted applications cannot change status")

    before = snapshot(admission)
    apply_changes(admission, changes)
    await db.flush()
    record_audit(
        db, user, AuditAction.UPDATE, "Admission", admission.id,
        school_id=admission.school_id, old_value=before, new_value=snapshot(admission),
    )
    await db.commit()
    return success_response(AdmissionRead.model_validate(admission), "Admission updated successfully")


@router.delete("/{admission_id}")
async def delete_admission(
    admission_id: UUID,
    user: CurrentUser = Depends(require_module("admissions")),
    db: AsyncSession = Depends(get_db),
):
    admission = await get_scoped_or_404(db, Admission, admission_id, user, "Admission")
    if admission.status == AdmissionStatus.ADMITTED:
        raise BusinessRuleError("Admitted applications cannot be deleted")
    before = snapshot(admission)
    await db.delete(admission)
    record_audit(
        db, user, AuditAction.DELETE, "Admission", admission_id,
        school_id=admission.school_id, old_value=before,
    )
    await db.commit()
    return success_response({"message": "Admission deleted successfully"})


@router.post("/{admission_id}/enroll", status_code=status.HTTP_201_CREATED)
async def enroll_admission(
    admission_id: UUID,
    body: AdmissionEnroll,
    user: CurrentUser = Depends(require_module("admissions")),
    db: AsyncSession = Depends(get_db),
):
    """Turn an APPROVED admission into an enrolled student."""
    admission = await get_scoped_or_404(db, Admission, admission_id, user, "Admission")
    if admission.status != AdmissionStatus.APPROVED:
        raise BusinessRuleError("Only approved admissions can be enrolled")
    school_id = admission.school_id
    await ensure_admission_number_free(db, school_id, body.admission_number)
    await validate_placement(db, school_id, body.class_id, body.section_id)

    parent_first, _, parent_last = admission.parent_name.partition(" ")
    student = Student(
        school_id=school_id, class_id=body.class_id, section_id=body.section_id,
        admission_number=body.admission_number,
        first_name=admission.first_name, last_name=admission.last_name,
        date_of_birth=body.date_of_birth or admission.date_of_birth,
        gender=admission.gender or Gender.MALE,
        address=admission.address, previous_school=admission.previous_school,
        admission_date=date.today(), is_active=True,
        guardians=[Guardian(
            first_name=parent_first, last_name=parent_last, relation="Parent",
            phone=admission.parent_phone, email=admission.parent_email, is_primary=True,
        )],
    )
    db.add(student)
    await db.flush()

    admission.student_id = student.id
    admission.status = AdmissionStatus.ADMITTED
    record_audit(
        db, user, AuditAction.CREATE, "Student", student.id,
        school_id=school_id, new_value=snapshot(student),
    )
    record_audit(
        db, user, AuditAction.UPDATE, "Admission", admission.id, school_id=school_id,
        old_value={"status": AdmissionStatus.APPROVED.value},
        new_value={"status": AdmissionStatus.ADMITTED.value, "studentId": str(student.id)},
    )
    await db.commit()
    return success_response(
        {"admission": AdmissionRead.model_validate(admission),
         "student": StudentRead.model_validate(student)},
        "Student enrolled successfully",
    )
