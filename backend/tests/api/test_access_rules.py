"""Role rules on destructive and privileged operations.

Invariants:
    - Staff deletion needs SCHOOL_ADMIN or above; PRINCIPAL gets 403
    - School deletion is SUPER_ADMIN only, and blocked while the school has people
    - Users can only create or promote accounts strictly below their own rank
    - Module permissions gate whole route groups
"""

from sqlalchemy import select

from app.models.audit import AuditLog
from app.models.school import School
from app.models.staff import Staff


def _staff_body(**overrides) -> dict:
    body = {
        "firstName": "Nina", "lastName": "Das", "email": "nina.das@alpha-school.edu",
        "phone": "+91 99000 11122", "dateOfBirth": "1988-09-14", "gender": "FEMALE",
        "employeeId": "EMP-001", "staffType": "TEACHING", "designation": "Math Teacher",
        "joiningDate": "2020-06-01", "salary": 42000,
    }
    body.update(overrides)
    return body


async def _create_staff(client, auth_headers, **overrides) -> dict:
    res = await client.post(
        "/api/staff", json=_staff_body(**overrides), headers=auth_headers("admin"),
    )
    assert res.status_code == 201, res.text
    return res.json()["data"]


# ─── STAFF ──────────────────────────────────────────────────────

async def test_principal_cannot_delete_staff(client, seed, auth_headers):
    staff = await _create_staff(client, auth_headers)
    res = await client.delete(f"/api/staff/{staff['id']}", headers=auth_headers("principal"))
    assert res.status_code == 403
    assert res.json()["error"] == "Only school admins can delete staff members"


async def test_admin_deletes_staff_softly_and_audits(
    client, seed, auth_headers, session_factory,
):
    staff = await _create_staff(client, auth_headers)
    res = await client.delete(f"/api/staff/{staff['id']}", headers=auth_headers("admin"))
    assert res.status_code == 200

    async with session_factory() as db:
        row = await db.scalar(select(Staff).where(Staff.email == "nina.das@alpha-school.edu"))
        actions = (await db.execute(
            select(AuditLog.action).where(AuditLog.entity == "Staff"),
        )).scalars().all()
    assert row.is_active is False
    assert sorted(a.value for a in actions) == ["CREATE", "DELETE"]


async def test_duplicate_employee_id_rejected(client, seed, auth_headers):
    await _create_staff(client, auth_headers)
    res = await client.post(
        "/api/staff",
        json=_staff_body(email="other@alpha-school.edu"),
        headers=auth_headers("admin"),
    )
    assert res.status_code == 400
    assert res.json()["details"]["employeeId"] == ["Employee ID already exists in this school"]


async def test_admin_sees_salary_in_staff_detail(client, seed, auth_headers):
    staff = await _create_staff(client, auth_headers)
    admin_view = await client.get(f"/api/staff/{staff['id']}", headers=auth_headers("admin"))
    assert admin_view.json()["data"]["salary"] == 42000


# ─── SCHOOLS ────────────────────────────────────────────────────

async def test_school_admin_cannot_delete_school(client, seed, auth_headers):
    res = await client.delete(f"/api/schools/{seed.alpha.id}", headers=auth_headers("admin"))
    assert res.status_code == 403
    assert res.json()["error"] == "Only super admins can delete schools"


async def test_school_with_users_cannot_be_deleted(client, seed, auth_headers):
    res = await client.delete(
        f"/api/schools/{seed.alpha.id}", headers=auth_headers("super_admin"),
    )
    assert res.status_code == 400
    assert res.json()["code"] == "BUSINESS_RULE_VIOLATION"


async def test_super_admin_creates_and_deletes_empty_school(client, seed, auth_headers):
    created = await client.post(
        "/api/schools",
        json={"name": "Gamma School", "code": "GAMMA", "email": "Office@Gamma.edu"},
        headers=auth_headers("super_admin"),
    )
    assert created.status_code == 201
    school = created.json()["data"]
    assert school["email"] == "office@gamma.edu"

    res = await client.delete(
        f"/api/schools/{school['id']}", headers=auth_headers("super_admin"),
    )
    assert res.status_code == 200


async def test_duplicate_school_code_rejected(client, seed, auth_headers):
    res = await client.post(
        "/api/schools", json={"name": "Another Alpha", "code": "ALPHA"},
        headers=auth_headers("super_admin"),
    )
    assert res.status_code == 400
    assert res.json()["details"] == {"code": ["School code already exists"]}


async def test_tenant_lists_only_own_school(client, seed, auth_headers):
    res = await client.get("/api/schools", headers=auth_headers("teacher"))
    assert [s["code"] for s in res.json()["data"]] == ["ALPHA"]


async def test_tenant_cannot_read_other_school(client, seed, auth_headers):
    res = await client.get(f"/api/schools/{seed.beta.id}", headers=auth_headers("admin"))
    assert res.status_code == 403


# ─── USERS ──────────────────────────────────────────────────────

async def test_admin_cannot_create_peer_admin(client, seed, auth_headers):
    res = await client.post(
        "/api/users",
        json={
            "email": "second.admin@alpha-school.edu", "password": "longenough1",
            "name": "Second Admin", "role": "SCHOOL_ADMIN",
        },
        headers=auth_headers("admin"),
    )
    assert res.status_code == 403
    assert res.json()["error"] == "Cannot create user with equal or higher privileges"


async def test_admin_creates_teacher_in_own_school(client, seed, auth_headers):
    res = await client.post(
        "/api/users",
        json={
            "email": "New.Teacher@Alpha-School.edu", "password": "longenough1",
            "name": "Ravi Kumar Menon", "role": "TEACHER",
        },
        headers=auth_headers("admin"),
    )
    assert res.status_code == 201
    data = res.json()["data"]
    assert data["email"] == "new.teacher@alpha-school.edu"
    assert data["firstName"] == "Ravi"
    assert data["lastName"] == "Kumar Menon"
    assert data["schoolId"] == str(seed.alpha.id)
    assert "password" not in data


async def test_admin_cannot_demote_self(client, seed, auth_headers):
    admin = seed.users["admin"]
    res = await client.put(
        f"/api/users/{admin.id}", json={"role": "TEACHER"}, headers=auth_headers("admin"),
    )
    assert res.status_code == 403
    assert res.json()["error"] == "You cannot change your own role"


async def test_teacher_cannot_list_users(client, seed, auth_headers):
    res = await client.get("/api/users", headers=auth_headers("teacher"))
    assert res.status_code == 403


async def test_accountant_reaches_finance_not_library(client, seed, auth_headers):
    ok = await client.get("/api/fees/payments", headers=auth_headers("accountant"))
    denied = await client.get("/api/library/books", headers=auth_headers("accountant"))
    assert ok.status_code == 200
    assert denied.status_code == 403


async def test_null_role_or_status_is_a_field_error(client, seed, auth_headers):
    teacher = seed.users["teacher"]
    res = await client.put(
        f"/api/users/{teacher.id}", json={"role": None, "isActive": None},
        headers=auth_headers("admin"),
    )
    assert res.status_code == 400
    assert res.json()["details"] == {
        "role": ["Field cannot be null"], "isActive": ["Field cannot be null"],
    }


async def test_phone_can_be_cleared(client, seed, auth_headers):
    teacher = seed.users["teacher"]
    res = await client.put(
        f"/api/users/{teacher.id}", json={"phone": None}, headers=auth_headers("admin"),
    )
    assert res.status_code == 200
    assert res.json()["data"]["phone"] is None


async def test_user_of_deactivated_school_is_forbidden(
    client, seed, auth_headers, session_factory,
):
    async with session_factory() as db:
        school = await db.get(School, seed.alpha.id)
        school.is_active = False
        await db.commit()
    res = await client.get("/api/students", headers=auth_headers("teacher"))
    assert res.status_code == 403
    assert res.json()["error"] == "Your school's account has been deactivated"


# ─── CUSTOM ROLES ───────────────────────────────────────────────

async def test_custom_role_lifecycle(client, seed, auth_headers):
    created = await client.post(
        "/api/roles",
        json={"name": "Exam Cell", "permissions": {"students": True, "fees": False}},
        headers=auth_headers("admin"),
    )
    assert created.status_code == 201
    role_id = created.json()["data"]["id"]

    dup = await client.post(
        "/api/roles", json={"name": "Exam Cell"}, headers=auth_headers("admin"),
    )
    assert dup.status_code == 400
    assert dup.json()["details"] == {"name": ["Role with this name already exists"]}

    updated = await client.put(
        f"/api/roles/{role_id}", json={"description": "Board exams", "isActive": False},
        headers=auth_headers("admin"),
    )
    assert updated.json()["data"]["description"] == "Board exams"
    assert updated.json()["data"]["permissions"] == {"students": True, "fees": False}

    hidden = await client.get(f"/api/roles/{role_id}", headers=auth_headers("beta_admin"))
    assert hidden.status_code == 404

    deleted = await client.delete(f"/api/roles/{role_id}", headers=auth_headers("admin"))
    assert deleted.status_code == 200
    gone = await client.get(f"/api/roles/{role_id}", headers=auth_headers("admin"))
    assert gone.status_code == 404


async def test_same_role_name_allowed_in_another_school(client, seed, auth_headers):
    body = {"name": "Exam Cell"}
    first = await client.post("/api/roles", json=body, headers=auth_headers("admin"))
    other = await client.post("/api/roles", json=body, headers=auth_headers("beta_admin"))
    assert first.status_code == other.status_code == 201
