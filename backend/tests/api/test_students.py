"""Student routes — create, tenant isolation, paging, deletion rights, CSV upload and guardians.

Invariants:
    - Duplicate admission number within a school → 400 with a field-keyed detail
    - Another school's student reads as 404, never 403
    - page/limit slice the list and the pagination block reports totals
    - Only PRINCIPAL and above may delete; deletion is soft
"""

from sqlalchemy import func, select

from app.models.student import Student


def _student_body(seed, **overrides) -> dict:
    body = {
        "admissionNumber": "ADM-100",
        "firstName": "Asha",
        "lastName": "Rao",
        "dateOfBirth": "2014-02-11",
        "gender": "FEMALE",
        "classId": str(seed.classes["ALPHA"].id),
        "guardians": [{
            "firstName": "Vikram", "lastName": "Rao", "relation": "Father",
            "phone": "+91 98450 12345",
        }],
    }
    body.update(overrides)
    return body


async def test_create_student_returns_envelope(client, seed, auth_headers):
    res = await client.post(
        "/api/students", json=_student_body(seed), headers=auth_headers("admin"),
    )
    assert res.status_code == 201
    body = res.json()
    assert body["success"] is True
    assert body["message"] == "Student created successfully"
    assert body["data"]["admissionNumber"] == "ADM-100"
    assert body["data"]["schoolId"] == str(seed.alpha.id)


async def test_duplicate_admission_number_is_rejected(
    client, seed, auth_headers, make_student,
):
    await make_student("ADM-100")
    res = await client.post(
        "/api/students", json=_student_body(seed), headers=auth_headers("admin"),
    )
    assert res.status_code == 400
    body = res.json()
    assert body["success"] is False
    assert body["error"] == "Validation failed"
    assert body["details"]["admissionNumber"] == [
        "Admission number already exists in this school",
    ]


async def test_same_admission_number_allowed_in_another_school(
    client, seed, auth_headers, make_student,
):
    await make_student("ADM-100", school_code="BETA")
    res = await client.post(
        "/api/students", json=_student_body(seed), headers=auth_headers("admin"),
    )
    assert res.status_code == 201


async def test_class_from_another_school_is_invalid(client, seed, auth_headers):
    body = _student_body(seed, classId=str(seed.classes["BETA"].id))
    res = await client.post("/api/students", json=body, headers=auth_headers("admin"))
    assert res.status_code == 400
    assert res.json()["details"]["classId"] == ["Invalid class"]


async def test_naming_another_school_is_forbidden(client, seed, auth_headers):
    body = _student_body(seed, schoolId=str(seed.beta.id))
    res = await client.post("/api/students", json=body, headers=auth_headers("admin"))
    assert res.status_code == 403


async def test_missing_required_field_reports_camel_case_key(client, seed, auth_headers):
    body = _student_body(seed)
    del body["firstName"]
    res = await client.post("/api/students", json=body, headers=auth_headers("admin"))
    assert res.status_code == 400
    assert "firstName" in res.json()["details"]


async def test_other_school_student_reads_as_not_found(
    client, seed, auth_headers, make_student,
):
    student = await make_student("BETA-1", school_code="BETA")
    res = await client.get(f"/api/students/{student.id}", headers=auth_headers("admin"))
    assert res.status_code == 404
    assert res.json() == {
        "success": False, "error": "Student not found", "code": "RESOURCE_NOT_FOUND",
    }


async def test_super_admin_sees_every_school(client, seed, auth_headers, make_student):
    await make_student("A-1")
    await make_student("B-1", school_code="BETA")
    res = await client.get("/api/students", headers=auth_headers("super_admin"))
    assert res.json()["pagination"]["total"] == 2


async def test_list_is_scoped_to_callers_school(client, seed, auth_headers, make_student):
    await make_student("A-1")
    await make_student("B-1", school_code="BETA")
    res = await client.get("/api/students", headers=auth_headers("admin"))
    data = res.json()["data"]
    assert [s["admissionNumber"] for s in data] == ["A-1"]


async def test_second_page_of_twenty_five(client, seed, auth_headers, make_student):
    for n in range(25):
        await make_student(f"ADM-{n:03d}")
    res = await client.get(
        "/api/students?page=2&limit=10&sortBy=admissionNumber&sortOrder=asc",
        headers=auth_headers("admin"),
    )
    body = res.json()
    assert res.status_code == 200
    assert len(body["data"]) == 10
    assert body["data"][0]["admissionNumber"] == "ADM-010"
    assert body["pagination"] == {
        "page": 2, "limit": 10, "total": 25, "totalPages": 3, "hasMore": True,
    }


async def test_non_numeric_paging_falls_back_to_defaults(
    client, seed, auth_headers, make_student,
):
    await make_student("ADM-1")
    res = await client.get(
        "/api/students?page=abc&limit=-5", headers=auth_headers("admin"),
    )
    assert res.status_code == 200
    assert res.json()["pagination"]["page"] == 1
    assert res.json()["pagination"]["limit"] == 1


async def test_search_matches_name(client, seed, auth_headers, make_student):
    await make_student("ADM-1", first_name="Meera")
    await make_student("ADM-2", first_name="Kabir")
    res = await client.get("/api/students?search=meer", headers=auth_headers("admin"))
    assert [s["firstName"] for s in res.json()["data"]] == ["Meera"]


async def test_teacher_cannot_delete_student(client, seed, auth_headers, make_student):
    student = await make_student("ADM-1")
    res = await client.delete(f"/api/students/{student.id}", headers=auth_headers("teacher"))
    assert res.status_code == 403
    assert res.json()["error"] == "Only principals and admins can delete students"


async def test_principal_delete_is_soft(
    client, seed, auth_headers, make_student, session_factory,
):
    student = await make_student("ADM-1")
    res = await client.delete(
        f"/api/students/{student.id}", headers=auth_headers("principal"),
    )
    assert res.status_code == 200
    async with session_factory() as db:
        row = await db.scalar(select(Student).where(Student.id == student.id))
    assert row is not None
    assert row.is_active is False


async def test_librarian_has_no_student_module(client, seed, auth_headers):
    res = await client.get("/api/students", headers=auth_headers("librarian"))
    assert res.status_code == 403
    assert res.json()["code"] == "FORBIDDEN"


async def test_missing_token_is_unauthorized(client, seed):
    res = await client.get("/api/students")
    assert res.status_code == 401
    assert res.json()["success"] is False


# ─── BULK UPLOAD ────────────────────────────────────────────────

CSV_HEADER = "admissionNumber,firstName,lastName,className,sectionName,gender,bloodGroup\n"


async def test_bulk_upload_reports_each_bad_row(
    client, seed, auth_headers, make_student, session_factory,
):
    await make_student("EXIST-1")
    csv_text = CSV_HEADER + (
        "NEW-1,Riya,Shah,Grade 5,A,female,B+\n"
        "EXIST-1,Dup,Licate,Grade 5,,,\n"
        "NEW-2,Omar,Khan,Grade 9,,MALE,\n"
        ",Missing,Number,Grade 5,,,\n"
        "NEW-1,Same,File,Grade 5,,,\n"
    )
    res = await client.post(
        "/api/students/bulk-upload",
        files={"file": ("students.csv", csv_text.encode("utf-8"), "text/csv")},
        headers=auth_headers("admin"),
    )
    assert res.status_code == 200
    report = res.json()
    assert report["success"] is True
    assert report["created"] == 1
    assert report["total"] == 5
    assert report["errors"] == [
        "Row 3: Admission number EXIST-1 already exists",
        "Row 4: Class Grade 9 not found",
        "Row 5: Missing required fields (admissionNumber, firstName, lastName)",
        "Row 6: Admission number NEW-1 already exists",
    ]

    async with session_factory() as db:
        created = await db.scalar(select(Student).where(Student.admission_number == "NEW-1"))
    assert created.section_id == seed.section.id
    assert created.blood_group.value == "B_POSITIVE"


async def test_bulk_upload_reports_overlong_cells_per_row(
    client, seed, auth_headers, session_factory,
):
    csv_text = (
        CSV_HEADER
        + f"{'X' * 60},Long,Number,Grade 5,,,\n"
        + "OK-1,Tara,Menon,Grade 5,A,FEMALE,\n"
    )
    res = await client.post(
        "/api/students/bulk-upload",
        files={"file": ("students.csv", csv_text.encode("utf-8"), "text/csv")},
        headers=auth_headers("admin"),
    )
    assert res.status_code == 200
    assert res.json()["created"] == 1
    assert res.json()["errors"] == ["Row 2: admissionNumber exceeds 50 characters"]
    async with session_factory() as db:
        count = await db.scalar(select(func.count()).select_from(Student))
    assert count == 1


async def test_bulk_upload_without_file_is_rejected(client, seed, auth_headers):
    res = await client.post(
        "/api/students/bulk-upload", data={}, headers=auth_headers("admin"),
    )
    assert res.status_code == 400
    assert res.json()["error"] == "File is required"


async def test_bulk_upload_with_header_only_is_rejected(client, seed, auth_headers):
    res = await client.post(
        "/api/students/bulk-upload",
        files={"file": ("students.csv", CSV_HEADER.encode("utf-8"), "text/csv")},
        headers=auth_headers("admin"),
    )
    assert res.status_code == 400
    assert res.json()["error"] == "No data rows found in CSV file"


# ─── UPDATE ─────────────────────────────────────────────────────

async def test_null_first_name_is_a_field_error(client, seed, auth_headers, make_student):
    student = await make_student("ADM-200")
    res = await client.put(
        f"/api/students/{student.id}", json={"firstName": None, "classId": None},
        headers=auth_headers("admin"),
    )
    assert res.status_code == 400
    assert res.json()["details"] == {
        "firstName": ["Field cannot be null"], "classId": ["Field cannot be null"],
    }


async def test_optional_fields_can_be_cleared(client, seed, auth_headers, make_student):
    student = await make_student("ADM-201", phone="+91 90000 00001", religion="Jain")
    res = await client.put(
        f"/api/students/{student.id}", json={"phone": None, "religion": None},
        headers=auth_headers("admin"),
    )
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["phone"] is None
    assert data["firstName"] == "Student"


async def test_other_school_student_cannot_be_updated(
    client, seed, auth_headers, make_student, session_factory,
):
    outsider = await make_student("BETA-9", school_code="BETA")
    res = await client.put(
        f"/api/students/{outsider.id}", json={"firstName": "Hijacked"},
        headers=auth_headers("admin"),
    )
    assert res.status_code == 404
    async with session_factory() as db:
        assert (await db.get(Student, outsider.id)).first_name == "Student"


# ─── BULK PROMOTE ───────────────────────────────────────────────

async def _grade_six(client, seed, auth_headers) -> str:
    res = await client.post(
        "/api/classes",
        json={"name": "Grade 6", "grade": 6, "academicYearId": str(seed.years["ALPHA"].id)},
        headers=auth_headers("admin"),
    )
    assert res.status_code == 201, res.text
    return res.json()["data"]["id"]


async def test_bulk_promote_moves_every_student(
    client, seed, auth_headers, make_student, session_factory,
):
    first = await make_student("PRM-1", section_id=seed.section.id)
    second = await make_student("PRM-2")
    next_class = await _grade_six(client, seed, auth_headers)

    res = await client.post(
        "/api/students/bulk-promote",
        json={"studentIds": [str(first.id), str(second.id)], "nextClassId": next_class},
        headers=auth_headers("admin"),
    )
    assert res.status_code == 200
    assert res.json()["data"] == {"message": "Successfully promoted 2 students", "count": 2}
    async with session_factory() as db:
        rows = (await db.execute(
            select(Student).where(Student.id.in_([first.id, second.id])),
        )).scalars().all()
    assert {str(s.class_id) for s in rows} == {next_class}
    assert all(s.section_id is None for s in rows)


async def test_bulk_promote_rejects_foreign_student(
    client, seed, auth_headers, make_student, session_factory,
):
    mine = await make_student("PRM-3")
    theirs = await make_student("PRM-4", school_code="BETA")
    next_class = await _grade_six(client, seed, auth_headers)

    res = await client.post(
        "/api/students/bulk-promote",
        json={"studentIds": [str(mine.id), str(theirs.id)], "nextClassId": next_class},
        headers=auth_headers("admin"),
    )
    assert res.status_code == 400
    assert res.json()["details"] == {
        "studentIds": ["One or more students not found in this school"],
    }
    async with session_factory() as db:
        assert (await db.get(Student, mine.id)).class_id == seed.classes["ALPHA"].id


async def test_bulk_promote_into_other_school_class_is_invalid(
    client, seed, auth_headers, make_student,
):
    mine = await make_student("PRM-5")
    res = await client.post(
        "/api/students/bulk-promote",
        json={"studentIds": [str(mine.id)], "nextClassId": str(seed.classes["BETA"].id)},
        headers=auth_headers("admin"),
    )
    assert res.status_code == 400
    assert res.json()["details"] == {"nextClassId": ["Invalid class"]}


# ─── GUARDIANS ──────────────────────────────────────────────────

def _guardian_body(student, **overrides) -> dict:
    body = {
        "studentId": str(student.id), "firstName": "Kiran", "lastName": "Rao",
        "relation": "Father", "phone": "+91 98860 44321", "address": "14 Residency Road",
    }
    body.update(overrides)
    return body


async def test_guardian_is_added_to_own_student(client, seed, auth_headers, make_student):
    student = await make_student("A-1")
    res = await client.post(
        "/api/guardians", json=_guardian_body(student, isPrimary=True),
        headers=auth_headers("teacher"),
    )
    assert res.status_code == 201, res.text
    data = res.json()["data"]
    assert res.json()["message"] == "Guardian added successfully"
    assert data["studentId"] == str(student.id)
    assert data["address"] == "14 Residency Road"
    assert data["isPrimary"] is True

    listed = await client.get(
        "/api/guardians", params={"studentId": str(student.id)}, headers=auth_headers("admin"),
    )
    assert [g["id"] for g in listed.json()["data"]] == [data["id"]]


async def test_guardian_for_other_school_student_is_rejected(
    client, seed, auth_headers, make_student,
):
    student = await make_student("B-1", school_code="BETA")
    res = await client.post(
        "/api/guardians", json=_guardian_body(student), headers=auth_headers("admin"),
    )
    assert res.status_code == 400
    assert res.json()["details"] == {"studentId": ["Student not found"]}


async def test_guardian_list_follows_student_school(client, seed, auth_headers, make_student):
    own = await make_student("A-1")
    other = await make_student("B-1", school_code="BETA")
    for student, key in ((own, "admin"), (other, "beta_admin")):
        res = await client.post(
            "/api/guardians", json=_guardian_body(student), headers=auth_headers(key),
        )
        assert res.status_code == 201

    alpha = await client.get("/api/guardians", headers=auth_headers("admin"))
    assert [g["studentId"] for g in alpha.json()["data"]] == [str(own.id)]

    everyone = await client.get(
        "/api/guardians", params={"search": "kiran"}, headers=auth_headers("super_admin"),
    )
    assert everyone.json()["pagination"]["total"] == 2
