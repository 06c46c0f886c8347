"""Admissions — inquiry numbering, pipeline views and enrolment of approved applications."""

from datetime import date


def _inquiry(**overrides) -> dict:
    body = {
        "firstName": "Kiran", "lastName": "Iyer", "appliedClass": "Grade 5",
        "parentName": "Lakshmi Iyer", "parentPhone": "+91 98860 22334",
        "parentEmail": "Lakshmi.Iyer@Example.com", "gender": "MALE",
        "dateOfBirth": "2015-03-09",
    }
    body.update(overrides)
    return body


async def _create(client, auth_headers, **overrides) -> dict:
    res = await client.post("/api/admissions", json=_inquiry(**overrides), headers=auth_headers("admin"))
    assert res.status_code == 201, res.text
    return res.json()["data"]


async def test_inquiry_numbers_follow_yearly_sequence(client, seed, auth_headers):
    year = date.today().strftime("%y")
    first = await _create(client, auth_headers)
    second = await _create(client, auth_headers, firstName="Anil")
    assert first["inquiryNumber"] == f"INQ{year}0001"
    assert second["inquiryNumber"] == f"INQ{year}0002"
    assert first["status"] == "INQUIRY"
    assert first["parentEmail"] == "lakshmi.iyer@example.com"


async def test_sequence_is_per_school(client, seed, auth_headers):
    year = date.today().strftime("%y")
    await _create(client, auth_headers)
    res = await client.post("/api/admissions", json=_inquiry(), headers=auth_headers("beta_admin"))
    assert res.json()["data"]["inquiryNumber"] == f"INQ{year}0001"


async def test_sequence_continues_past_four_digits(client, seed, auth_headers):
    year = date.today().strftime("%y")
    await _create(client, auth_headers, inquiryNumber=f"INQ{year}9999")
    await _create(client, auth_headers, inquiryNumber=f"INQ{year}10000", firstName="Anil")
    generated = await _create(client, auth_headers, firstName="Ravi")
    assert generated["inquiryNumber"] == f"INQ{year}10001"


async def test_explicit_duplicate_inquiry_number_rejected(client, seed, auth_headers):
    await _create(client, auth_headers, inquiryNumber="WALKIN-7")
    res = await client.post(
        "/api/admissions", json=_inquiry(inquiryNumber="WALKIN-7"), headers=auth_headers("admin"),
    )
    assert res.status_code == 400
    assert res.json()["details"] == {"inquiryNumber": ["Inquiry number already exists"]}


async def test_enrolment_requires_approval(client, seed, auth_headers):
    admission = await _create(client, auth_headers)
    res = await client.post(
        f"/api/admissions/{admission['id']}/enroll",
        json={"admissionNumber": "ADM-500", "classId": str(seed.classes["ALPHA"].id)},
        headers=auth_headers("admin"),
    )
    assert res.status_code == 400
    assert res.json()["error"] == "Only approved admissions can be enrolled"


async def test_approved_admission_enrolls_student(client, seed, auth_headers):
    admission = await _create(client, auth_headers)
    approved = await client.put(
        f"/api/admissions/{admission['id']}", json={"status": "APPROVED"},
        headers=auth_headers("admin"),
    )
    assert approved.status_code == 200

    res = await client.post(
        f"/api/admissions/{admission['id']}/enroll",
        json={
            "admissionNumber": "ADM-500", "classId": str(seed.classes["ALPHA"].id),
            "sectionId": str(seed.section.id),
        },
        headers=auth_headers("admin"),
    )
    assert res.status_code == 201, res.text
    data = res.json()["data"]
    assert data["admission"]["status"] == "ADMITTED"
    assert data["admission"]["studentId"] == data["student"]["id"]
    assert data["student"]["admissionNumber"] == "ADM-500"
    assert data["student"]["firstName"] == "Kiran"

    students = await client.get("/api/students?search=ADM-500", headers=auth_headers("admin"))
    assert students.json()["pagination"]["total"] == 1

    delete = await client.delete(
        f"/api/admissions/{admission['id']}", headers=auth_headers("admin"),
    )
    assert delete.status_code == 400


async def test_status_cannot_jump_to_admitted(client, seed, auth_headers):
    admission = await _create(client, auth_headers)
    res = await client.put(
        f"/api/admissions/{admission['id']}", json={"status": "ADMITTED"},
        headers=auth_headers("admin"),
    )
    assert res.status_code == 400
    assert res.json()["error"] == "Use the enroll action to admit a student"


async def test_enrolment_into_foreign_class_is_invalid(client, seed, auth_headers):
    admission = await _create(client, auth_headers, status="APPROVED")
    res = await client.post(
        f"/api/admissions/{admission['id']}/enroll",
        json={"admissionNumber": "ADM-501", "classId": str(seed.classes["BETA"].id)},
        headers=auth_headers("admin"),
    )
    assert res.status_code == 400
    assert res.json()["details"]["classId"] == ["Invalid class"]


# ─── PIPELINE VIEWS ─────────────────────────────────────────────

async def _move(client, auth_headers, admission, **changes) -> dict:
    res = await client.put(
        f"/api/admissions/{admission['id']}", json=changes, headers=auth_headers("admin"),
    )
    assert res.status_code == 200, res.text
    return res.json()["data"]


async def test_application_opens_at_prospect(client, seed, auth_headers):
    res = await client.post(
        "/api/admissions/applications", json=_inquiry(status="APPROVED"),
        headers=auth_headers("admin"),
    )
    assert res.status_code == 201, res.text
    assert res.json()["message"] == "Application created successfully"
    application = res.json()["data"]
    assert application["status"] == "PROSPECT"

    await _create(client, auth_headers, firstName="Anil")
    listed = await client.get("/api/admissions/applications", headers=auth_headers("admin"))
    assert [a["id"] for a in listed.json()["data"]] == [application["id"]]


async def test_test_and_interview_views_follow_the_stage(client, seed, auth_headers):
    early = await _create(client, auth_headers)
    late = await _create(client, auth_headers, firstName="Anil")
    unscheduled = await _create(client, auth_headers, firstName="Ravi")

    await _move(
        client, auth_headers, early, status="TEST_SCHEDULED", testDate="2025-02-03T09:00:00Z",
    )
    await _move(
        client, auth_headers, late, status="INTERVIEW_SCHEDULED",
        testDate="2025-02-10T09:00:00Z", interviewDate="2025-02-20T11:00:00Z",
    )
    await _move(client, auth_headers, unscheduled, status="TEST_SCHEDULED")

    tests = await client.get("/api/admissions/tests", headers=auth_headers("admin"))
    assert [a["id"] for a in tests.json()["data"]] == [late["id"], early["id"]]

    interviews = await client.get("/api/admissions/interviews", headers=auth_headers("admin"))
    assert [a["id"] for a in interviews.json()["data"]] == [late["id"]]

    other_school = await client.get(
        "/api/admissions/interviews", headers=auth_headers("beta_admin"),
    )
    assert other_school.json()["pagination"]["total"] == 0
