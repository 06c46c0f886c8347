"""Request logging — client errors keep their status with logging at INFO.

Invariants:
    - Domain errors, module denials and CSV imports log with app-specific extras
    - Logging never turns a 4xx into a 500
"""

import logging

import pytest


@pytest.fixture(autouse=True)
def info_logging(caplog):
    caplog.set_level(logging.INFO)
    return caplog


async def test_duplicate_admission_number_logs_and_returns_400(
    client, seed, auth_headers, make_student, info_logging,
):
    await make_student("ADM-7")
    res = await client.post(
        "/api/students",
        json={
            "admissionNumber": "ADM-7", "firstName": "Asha", "lastName": "Rao",
            "dateOfBirth": "2014-02-11", "gender": "FEMALE",
            "classId": str(seed.classes["ALPHA"].id),
        },
        headers=auth_headers("admin"),
    )
    assert res.status_code == 400
    assert res.json()["details"] == {
        "admissionNumber": ["Admission number already exists in this school"],
    }
    assert any(r.getMessage().startswith("SchoolHubError") for r in info_logging.records)


async def test_module_denial_logs_app_module(client, seed, auth_headers, info_logging):
    res = await client.get("/api/library/books", headers=auth_headers("accountant"))
    assert res.status_code == 403
    denied = [r for r in info_logging.records if r.getMessage() == "Module access denied"]
    assert denied and denied[0].app_module == "library"


async def test_missing_student_is_404_with_logging(client, seed, auth_headers):
    res = await client.get(
        "/api/students/00000000-0000-0000-0000-000000000000",
        headers=auth_headers("admin"),
    )
    assert res.status_code == 404
    assert res.json()["code"] == "RESOURCE_NOT_FOUND"


async def test_bulk_upload_logs_counts(client, seed, auth_headers, info_logging):
    csv_text = "admissionNumber,firstName,lastName,className\nCSV-1,Riya,Shah,Grade 5\n"
    res = await client.post(
        "/api/students/bulk-upload",
        files={"file": ("students.csv", csv_text.encode("utf-8"), "text/csv")},
        headers=auth_headers("admin"),
    )
    assert res.status_code == 200
    assert res.json()["created"] == 1
    staged = [r for r in info_logging.records if r.getMessage() == "Bulk student import staged"]
    assert staged[0].created_count == 1
    assert staged[0].failed_count == 0
