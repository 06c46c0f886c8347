"""Student CSV Import — pure parsing and per-row validation for bulk upload.

Invariants:
    - Blank lines are ignored; the first non-blank line is the header row
    - Row numbers count the header as row 1, so the first data row is "Row 2"
    - A row failing any check produces exactly one "Row N: <reason>" error and
      never aborts the remaining rows
    - Cells longer than their column (COLUMN_LIMITS) fail the row, not the upload
    - gender defaults to MALE; bloodGroup accepts "A+" style or enum names,
      anything else becomes None

Design Decisions:
    - csv module over str.split(","): quoted fields with commas survive
    - DB-dependent checks (duplicates, class lookup) live in the service;
      this module only knows the file format
"""

import csv
import io
from dataclasses import dataclass, field
from datetime import date

from app.core.domain_types import BloodGroup, Gender
from app.core.errors import BusinessRuleError

REQUIRED_COLUMNS = ("admissionNumber", "firstName", "lastName")

# widths of the String columns each cell lands in
COLUMN_LIMITS = {
    "admissionNumber": 50, "firstName": 100, "lastName": 100, "email": 255, "phone": 30,
    "city": 100, "state": 100, "pincode": 20, "nationality": 100, "religion": 100,
    "guardianFirstName": 100, "guardianLastName": 100, "guardianRelation": 50,
    "guardianPhone": 30, "guardianEmail": 255,
}


class RowError(ValueError):
    """A single CSV row is unusable; message is reported verbatim."""


@dataclass(frozen=True)
class GuardianDraft:
    first_name: str
    last_name: str
    relation: str
    phone: str
    email: str | None


@dataclass(frozen=True)
class StudentDraft:
    row_number: int
    admission_number: str
    first_name: str
    last_name: str
    class_name: str
    section_name: str | None
    gender: Gender
    blood_group: BloodGroup | None
    date_of_birth: date | None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    pincode: str | None = None
    nationality: str | None = None
    religion: str | None = None
    guardian: GuardianDraft | None = None


@dataclass
class BulkUploadReport:
    total: int
    created: int = 0
    errors: list[str] = field(default_factory=list)

    def add_error(self, row_number: int, reason: str) -> None:
        self.errors.append(f"Row {row_number}: {reason}")

    def to_dict(self) -> dict:
        return {
            "success": self.created > 0,
            "message": (
                f"Successfully uploaded {self.created} students"
                if self.created else "No students were uploaded"
            ),
            "created": self.created,
            "errors": self.errors,
            "total": self.total,
        }


def read_csv_rows(text: str, max_rows: int) -> list[tuple[int, dict[str, str]]]:
    """Split CSV text into (row_number, {header: value}) pairs."""
    lines = [line for line in text.splitlines() if line.strip()]
    if len(lines) < 2:
        raise BusinessRuleError("No data rows found in CSV file")
    if len(lines) - 1 > max_rows:
        raise BusinessRuleError(f"Maximum {max_rows} students per upload")
    reader = csv.reader(io.StringIO("\n".join(lines)))
    headers = [h.strip() for h in next(reader)]
    rows = []
    for row_number, values in enumerate(reader, start=2):
        cells = [v.strip() for v in values]
        rows.append((
            row_number,
            {h: cells[i] if i < len(cells) else "" for i, h in enumerate(headers)},
        ))
    return rows


def normalize_gender(raw: str | None) -> Gender:
    try:
        return Gender((raw or "").strip().upper())
    except ValueError:
        return Gender.MALE


def normalize_blood_group(raw: str | None) -> BloodGroup | None:
    """"AB+" → AB_POSITIVE, "o-" → O_NEGATIVE, enum names pass through."""
    if not raw:
        return None
    value = raw.strip().upper().replace("+", "_POSITIVE").replace("-", "_NEGATIVE")
    try:
        return BloodGroup(value)
    except ValueError:
        return None


def _parse_date(raw: str, column: str) -> date | None:
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        raise RowError(f"Invalid {column} '{raw}' (expected YYYY-MM-DD)")


def draft_from_row(row_number: int, row: dict[str, str]) -> StudentDraft:
    """Validate one CSV row; raises RowError with the reason when unusable."""
    if any(not row.get(col) for col in REQUIRED_COLUMNS):
        raise RowError(
            "Missing required fields (admissionNumber, firstName, lastName)",
        )
    if not row.get("className"):
        raise RowError("Missing className")
    for column, limit in COLUMN_LIMITS.items():
        if len(row.get(column) or "") > limit:
            raise RowError(f"{column} exceeds {limit} characters")

    guardian = None
    if row.get("guardianFirstName"):
        guardian = GuardianDraft(
            first_name=row["guardianFirstName"],
            last_name=row.get("guardianLastName", ""),
            relation=row.get("guardianRelation") or "Parent",
            phone=row.get("guardianPhone", ""),
            email=row.get("guardianEmail") or None,
        )

    return StudentDraft(
        row_number=row_number,
        admission_number=row["admissionNumber"],
        first_name=row["firstName"],
        last_name=row["lastName"],
        class_name=row["className"],
        section_name=row.get("sectionName") or None,
        gender=normalize_gender(row.get("gender")),
        blood_group=normalize_blood_group(row.get("bloodGroup")),
        date_of_birth=_parse_date(row.get("dateOfBirth", ""), "dateOfBirth"),
        email=row.get("email") or None,
        phone=row.get("phone") or None,
        address=row.get("address") or None,
        city=row.get("city") or None,
        state=row.get("state") or None,
        pincode=row.get("pincode") or None,
        nationality=row.get("nationality") or None,
        religion=row.get("religion") or None,
        guardian=guardian,
    )
