"""Library issues — available copies never go below zero or above quantity."""

from uuid import UUID

from sqlalchemy import select

from app.models.library import Book


async def _add_book(client, auth_headers, quantity=1) -> dict:
    res = await client.post(
        "/api/library/books",
        json={"title": "The Jungle Book", "author": "Rudyard Kipling", "quantity": quantity},
        headers=auth_headers("librarian"),
    )
    assert res.status_code == 201, res.text
    return res.json()["data"]


async def _available(session_factory, book_id) -> int:
    async with session_factory() as db:
        return await db.scalar(select(Book.available).where(Book.id == UUID(str(book_id))))


def _issue_body(book, student, **overrides) -> dict:
    body = {
        "bookId": book["id"], "studentId": str(student.id),
        "issueDate": "2025-07-01", "dueDate": "2025-07-15",
    }
    body.update(overrides)
    return body


async def test_new_book_has_all_copies_available(client, seed, auth_headers):
    book = await _add_book(client, auth_headers, quantity=3)
    assert book["available"] == 3
    assert book["schoolId"] == str(seed.alpha.id)


async def test_issue_and_return_moves_one_copy(
    client, seed, auth_headers, make_student, session_factory,
):
    student = await make_student("ADM-1")
    book = await _add_book(client, auth_headers, quantity=2)

    issued = await client.post(
        "/api/library/issues", json=_issue_body(book, student), headers=auth_headers("librarian"),
    )
    assert issued.status_code == 201, issued.text
    issue = issued.json()["data"]
    assert issue["status"] == "ISSUED"
    assert await _available(session_factory, book["id"]) == 1

    returned = await client.post(
        f"/api/library/issues/{issue['id']}/return",
        json={"returnDate": "2025-07-20", "fine": 10},
        headers=auth_headers("librarian"),
    )
    assert returned.status_code == 200
    assert returned.json()["data"]["status"] == "RETURNED"
    assert returned.json()["data"]["fine"] == 10
    assert await _available(session_factory, book["id"]) == 2

    twice = await client.post(
        f"/api/library/issues/{issue['id']}/return", json={},
        headers=auth_headers("librarian"),
    )
    assert twice.status_code == 400
    assert await _available(session_factory, book["id"]) == 2


async def test_last_copy_cannot_be_issued_twice(
    client, seed, auth_headers, make_student, session_factory,
):
    first, second = await make_student("ADM-1"), await make_student("ADM-2")
    book = await _add_book(client, auth_headers, quantity=1)

    ok = await client.post(
        "/api/library/issues", json=_issue_body(book, first), headers=auth_headers("librarian"),
    )
    denied = await client.post(
        "/api/library/issues", json=_issue_body(book, second), headers=auth_headers("librarian"),
    )
    assert ok.status_code == 201
    assert denied.status_code == 400
    assert denied.json()["error"] == "No copies of 'The Jungle Book' are available"
    assert await _available(session_factory, book["id"]) == 0


async def test_lost_book_does_not_return_copy(
    client, seed, auth_headers, make_student, session_factory,
):
    student = await make_student("ADM-1")
    book = await _add_book(client, auth_headers, quantity=1)
    issued = await client.post(
        "/api/library/issues", json=_issue_body(book, student), headers=auth_headers("librarian"),
    )
    res = await client.post(
        f"/api/library/issues/{issued.json()['data']['id']}/return",
        json={"status": "LOST", "fine": 350},
        headers=auth_headers("librarian"),
    )
    assert res.status_code == 200
    assert await _available(session_factory, book["id"]) == 0


async def test_due_date_before_issue_date_is_invalid(
    client, seed, auth_headers, make_student,
):
    student = await make_student("ADM-1")
    book = await _add_book(client, auth_headers)
    res = await client.post(
        "/api/library/issues",
        json=_issue_body(book, student, dueDate="2025-06-01"),
        headers=auth_headers("librarian"),
    )
    assert res.status_code == 400
    assert res.json()["code"] == "VALIDATION_ERROR"


async def test_student_of_other_school_cannot_borrow(
    client, seed, auth_headers, make_student,
):
    outsider = await make_student("B-1", school_code="BETA")
    book = await _add_book(client, auth_headers)
    res = await client.post(
        "/api/library/issues", json=_issue_body(book, outsider), headers=auth_headers("librarian"),
    )
    assert res.status_code == 400
    assert res.json()["details"] == {"studentId": ["Invalid student"]}


async def test_overdue_lists_open_issues_past_due(
    client, seed, auth_headers, make_student,
):
    student = await make_student("ADM-1")
    book = await _add_book(client, auth_headers, quantity=2)
    await client.post(
        "/api/library/issues", json=_issue_body(book, student), headers=auth_headers("librarian"),
    )
    await client.post(
        "/api/library/issues",
        json=_issue_body(book, student, issueDate="2099-01-01", dueDate="2099-01-15"),
        headers=auth_headers("librarian"),
    )
    overdue = await client.get("/api/library/overdue", headers=auth_headers("librarian"))
    issued = await client.get("/api/library/issued", headers=auth_headers("librarian"))
    assert [i["dueDate"] for i in overdue.json()["data"]] == ["2025-07-15"]
    assert issued.json()["pagination"]["total"] == 2
