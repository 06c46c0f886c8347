"""Student Service — placement checks, enrolment and CSV bulk import.

Invariants:
    - A student's class belongs to the student's school; a section belongs to that class
    - admission_number is unique within the school, including rows of the same upload
    - Bulk import creates every valid row and reports every invalid one as
      "Row N: <reason>"; a bad row never aborts the rest
    - Class names in a CSV resolve to the current academic year's class when the
      school has several classes of that name

Design Decisions:
    - Rows are validated before they reach the session: no savepoints needed,
      one commit for the whole upload
    - An unknown sectionName is ignored rather than rejected (class placement is
      what matters; sections can be assigned later)
"""

import logging
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ValidationFailedError
from app.core.student_import import (
    BulkUploadReport, RowError, StudentDraft, draft_from_row, read_csv_rows,
)
from app.models.academic import SchoolClass, Section
from app.models.school import AcademicYear
from app.models.student import Guardian, Student
from app.services.querying import row_exists

logger = logging.getLogger(__name__)

DUPLICATE_ADMISSION = "Admission number already exists in this school"


async def ensure_admission_number_free(
    db: AsyncSession, school_id: UUID, admission_number: str,
) -> None:
    if await row_exists(
        db, Student, Student.school_id == school_id,
        Student.admission_number == admission_number,
    ):
        raise ValidationFailedError.single("admissionNumber", DUPLICATE_ADMISSION)


async def validate_placement(
    db: AsyncSession, school_id: UUID, class_id: UUID, section_id: UUID | None,
    class_field: str = "classId", section_field: str = "sectionId",
) -> None:
    """Class must be in school_id; section (if any) must be in that class."""
    if not await row_exists(
        db, SchoolClass, SchoolClass.id == class_id, SchoolClass.school_id == school_id,
    ):
        raise ValidationFailedError.single(class_field, "Invalid class")
    if section_id and not await row_exists(
        db, Section, Section.id == section_id, Section.class_id == class_id,
    ):
        raise ValidationFailedError.single(
            section_field, "Section does not belong to the selected class",
        )


class _ClassDirectory:
    """Per-upload cache of class/section lookups by name."""

    def __init__(self, db: AsyncSession, school_id: UUID):
        self._db = db
        self._school_id = school_id
        self._classes: dict[str, UUID | None] = {}
        self._sections: dict[tuple[UUID, str], UUID | None] = {}
        self._current_year: UUID | None = None
        self._year_loaded = False

    async def _current_year_id(self) -> UUID | None:
        if not self._year_loaded:
            self._current_year = await self._db.scalar(
                select(AcademicYear.id).where(
                    AcademicYear.school_id == self._school_id,
                    AcademicYear.is_current.is_(True),
                ),
            )
            self._year_loaded = True
        return self._current_year

    async def class_id(self, name: str) -> UUID | None:
        if name not in self._classes:
            rows = (await self._db.execute(
                select(SchoolClass.id, SchoolClass.academic_year_id).where(
                    SchoolClass.school_id == self._school_id, SchoolClass.name == name,
                ),
            )).all()
            current = await self._current_year_id()
            preferred = [r.id for r in rows if r.academic_year_id == current]
            ids = preferred or [r.id for r in rows]
            self._classes[name] = ids[0] if ids else None
        return self._classes[name]

    async def section_id(self, class_id: UUID, name: str | None) -> UUID | None:
        if not name:
            return None
        key = (class_id, name)
        if key not in self._sections:
            self._sections[key] = await self._db.scalar(
                select(Section.id).where(Section.class_id == class_id, Section.name == name),
            )
        return self._sections[key]


def _student_from_draft(
    draft: StudentDraft, school_id: UUID, class_id: UUID,
    section_id: UUID | None, today: date,
) -> Student:
    guardians = []
    if draft.guardian:
        guardians.append(Guardian(
            first_name=draft.guardian.first_name,
            last_name=draft.guardian.last_name,
            relation=draft.guardian.relation,
            phone=draft.guardian.phone,
            email=draft.guardian.email,
            is_primary=True,
        ))
    return Student(
        school_id=school_id, class_id=class_id, section_id=section_id,
        admission_number=draft.admission_number,
        first_name=draft.first_name, last_name=draft.last_name,
        date_of_birth=draft.date_of_birth, gender=draft.gender,
        blood_group=draft.blood_group, email=draft.email, phone=draft.phone,
        address=draft.address, city=draft.city, state=draft.state,
        pincode=draft.pincode, nationality=draft.nationality,
        religion=draft.religion, admission_date=today, is_active=True,
        guardians=guardians,
    )


async def import_students_csv(
    db: AsyncSession, school_id: UUID, text: str, max_rows: int,
    today: date | None = None,
) -> tuple[BulkUploadReport, list[Student]]:
    """Parse, validate and stage every usable row. Caller commits."""
    today = today or date.today()
    rows = read_csv_rows(text, max_rows)
    report = BulkUploadReport(total=len(rows))
    directory = _ClassDirectory(db, school_id)
    seen: set[str] = set()
    created: list[Student] = []

    for row_number, row in rows:
        try:
            draft = draft_from_row(row_number, row)
            if draft.admission_number in seen or await row_exists(
                db, Student, Student.school_id == school_id,
                Student.admission_number == draft.admission_number,
            ):
                raise RowError(f"Admission number {draft.admission_number} already exists")
            class_id = await directory.class_id(draft.class_name)
            if class_id is None:
                raise RowError(f"Class {draft.class_name} not found")
            section_id = await directory.section_id(class_id, draft.section_name)
        except RowError as e:
            report.add_error(row_number, str(e))
            continue

        student = _student_from_draft(draft, school_id, class_id, section_id, today)
        db.add(student)
        seen.add(draft.admission_number)
        created.append(student)
        report.created += 1

    await db.flush()
    logger.info(
        "Bulk student import staged",
        extra={
            "school_id": school_id, "created_count": report.created,
            "failed_count": len(report.errors),
        },
    )
    return report, created
