"""Student Routes — enrolment records, CSV bulk upload and class promotion.

Invariants:
    - Every read and write is limited to the caller's school (404 outside it)
    - admissionNumber is unique within a school and immutable after creation
    - Delete needs at least PRINCIPAL and only deactivates the student
    - Bulk upload reports per-row failures; valid rows are created in one commit
    - Bulk promote moves every listed student or none of them

Design Decisions:
    - Static paths (/bulk-upload, /bulk-promote) are declared before /{student_id}
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import ensure_minimum_role, list_query, require_module
from app.config import get_settings
from app.core.domain_types import AuditAction, UserRole
from app.core.envelope import paginated_response, success_response
from app.core.errors import BusinessRuleError, ValidationFailedError
from app.core.pagination import ListQuery, parse_bool_flag
from app.core.tenancy import CurrentUser, resolve_school_id
from app.infrastructure.database import get_db
from app.models.academic import SchoolClass
from app.models.student import Guardian, Student
from app.schemas.common import CountResult
from app.schemas.student import BulkPromote, StudentCreate, StudentRead, StudentUpdate
from app.services.audit import record_audit, snapshot
from app.services.querying import (
    apply_changes, apply_search, apply_sort, count_rows, get_scoped_or_404,
    paginate, scope_to_school,
)
from app.services.students import (
    ensure_admission_number_free, import_students_csv, validate_placement,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/students", tags=["students"])

SORTABLE = {
    "createdAt": Student.created_at, "firstName": Student.first_name,
    "lastName": Student.last_name, "admissionNumber": Student.admission_number,
}


@router.get("")
async def list_students(
    query: ListQuery = Depends(list_query),
    class_id: UUID | None = Query(None, alias="classId"),
    section_id: UUID | None = Query(None, alias="sectionId"),
    is_active: str | None = Query(None, alias="isActive"),
    user: CurrentUser = Depends(require_module("students")),
    db: AsyncSession = Depends(get_db),
):
    stmt = scope_to_school(select(Student), Student, user)
    stmt = apply_search(stmt, query.search, [
        Student.first_name, Student.last_name, Student.admission_number, Student.email,
    ])
    if class_id:
        stmt = stmt.where(Student.class_id == class_id)
    if section_id:
        stmt = stmt.where(Student.section_id == section_id)
    active = parse_bool_flag(is_active)
    if active is not None:
        stmt = stmt.where(Student.is_active == active)
    rows, total = await paginate(db, apply_sort(stmt, query, SORTABLE), query)
    return paginated_response(
        [StudentRead.model_validate(s) for s in rows], total, query.pagination,
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_student(
    body: StudentCreate,
    user: CurrentUser = Depends(require_module("students")),
    db: AsyncSession = Depends(get_db),
):
    school_id = resolve_school_id(user, body.school_id)
    await ensure_admission_number_free(db, school_id, body.admission_number)
    await validate_placement(db, school_id, body.class_id, body.section_id)

    data = body.model_dump(exclude={"school_id", "guardians"})
    student = Student(
        **data, school_id=school_id,
        guardians=[Guardian(**g.model_dump()) for g in body.guardians],
    )
    db.add(student)
    await db.flush()
    record_audit(
        db, user, AuditAction.CREATE, "Student", student.id,
        school_id=school_id, new_value=snapshot(student),
    )
    await db.commit()
    return success_response(StudentRead.model_validate(student), "Student created successfully")


@router.post("/bulk-upload")
async def bulk_upload_students(
    file: UploadFile | None = File(None),
    school_id: UUID | None = Form(None, alias="schoolId"),
    user: CurrentUser = Depends(require_module("students")),
    db: AsyncSession = Depends(get_db),
):
    """Create students from a CSV file; answers a per-row report."""
    if file is None:
        raise BusinessRuleError("File is required")
    target_school = resolve_school_id(user, school_id)
    try:
        text = (await file.read()).decode("utf-8-sig")
    except UnicodeDecodeError:
        raise BusinessRuleError("CSV file must be UTF-8 encoded")

    report, created = await import_students_csv(
        db, target_school, text, get_settings().bulk_upload_max_rows,
    )
    if created:
        record_audit(
            db, user, AuditAction.CREATE, "Student", school_id=target_school,
            new_value={
                "bulkUpload": file.filename, "created": report.created,
                "admissionNumbers": [s.admission_number for s in created],
            },
        )
    await db.commit()
    return report.to_dict()


@router.post("/bulk-promote")
async def bulk_promote_students(
    body: BulkPromote,
    user: CurrentUser = Depends(require_module("students")),
    db: AsyncSession = Depends(get_db),
):
    class_stmt = scope_to_school(
        select(SchoolClass).where(SchoolClass.id == body.next_class_id), SchoolClass, user,
    )
    target = (await db.execute(class_stmt)).scalar_one_or_none()
    if target is None:
        raise ValidationFailedError.single("nextClassId", "Invalid class")
    await validate_placement(
        db, target.school_id, target.id, body.next_section_id,
        class_field="nextClassId", section_field="nextSectionId",
    )
    student_ids = set(body.student_ids)
    found = await count_rows(
        db, Student, Student.id.in_(student_ids), Student.school_id == target.school_id,
    )
    if found != len(student_ids):
        raise ValidationFailedError.single(
            "studentIds", "One or more students not found in this school",
        )

    await db.execute(
        update(Student)
        .where(Student.id.in_(student_ids))
        .values(class_id=target.id, section_id=body.next_section_id),
    )
    record_audit(
        db, user, AuditAction.UPDATE, "Student", school_id=target.school_id,
        new_value={
            "classId": str(target.id),
            "sectionId": str(body.next_section_id) if body.next_section_id else None,
            "studentIds": sorted(str(s) for s in student_ids),
        },
    )
    await db.commit()
    count = len(student_ids)
    return success_response(
        CountResult(message=f"Successfully promoted {count} students", count=count),
    )


@router.get("/{student_id}")
async def get_student(
    student_id: UUID,
    user: CurrentUser = Depends(require_module("students")),
    db: AsyncSession = Depends(get_db),
):
    student = await get_scoped_or_404(db, Student, student_id, user, "Student")
    return success_response(StudentRead.model_validate(student))


@router.put("/{student_id}")
async def update_student(
    student_id: UUID,
    body: StudentUpdate,
    user: CurrentUser = Depends(require_module("students")),
    db: AsyncSession = Depends(get_db),
):
    student = await get_scoped_or_404(db, Student, student_id, user, "Student")
    changes = body.model_dump(exclude_unset=True)
    if "class_id" in changes:
        # a new class invalidates the old section unless one is sent along
        changes.setdefault("section_id", None)
    if "class_id" in changes or changes.get("section_id"):
        await validate_placement(
            db, student.school_id,
            changes.get("class_id", student.class_id), changes.get("section_id"),
        )

    before = snapshot(student)
    apply_changes(student, changes)
    await db.flush()
    record_audit(
        db, user, AuditAction.UPDATE, "Student", student.id, school_id=student.school_id,
        old_value=before, new_value=snapshot(student),
    )
    await db.commit()
    return success_response(StudentRead.model_validate(student), "Student updated successfully")


@router.delete("/{student_id}")
async def delete_student(
    student_id: UUID,
    user: CurrentUser = Depends(require_module("students")),
    db: AsyncSession = Depends(get_db),
):
    ensure_minimum_role(user, UserRole.PRINCIPAL, "Only principals and admins can delete students")
    student = await get_scoped_or_404(db, Student, student_id, user, "Student")
    student.is_active = False
    await db.flush()
    record_audit(
        db, user, AuditAction.DELETE, "Student", student.id, school_id=student.school_id,
        old_value={"isActive": True}, new_value={"isActive": False},
    )
    await db.commit()
    return success_response({"message": "Student deactivated successfully"})
