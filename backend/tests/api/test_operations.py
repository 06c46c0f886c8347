"""Health, messaging, notifications, events, audit, compliance and dashboard counts."""


# ─── HEALTH ─────────────────────────────────────────────────────

async def test_liveness(client):
    res = await client.get("/api/health/")
    assert res.status_code == 200
    assert res.json()["status"] == "healthy"


async def test_readiness_with_database(client):
    res = await client.get("/api/health/ready")
    assert res.status_code == 200
    assert res.json() == {"status": "ready", "checks": {"database": "healthy"}}


async def test_unknown_route_uses_failure_envelope(client):
    res = await client.get("/api/does-not-exist")
    assert res.status_code == 404
    assert res.json()["success"] is False


# ─── MESSAGES ───────────────────────────────────────────────────

async def test_message_inbox_sent_and_read(client, seed, auth_headers):
    teacher = seed.users["teacher"]
    sent = await client.post(
        "/api/communication/messages",
        json={"receiverId": str(teacher.id), "subject": "PTM", "content": "Meeting on Friday"},
        headers=auth_headers("admin"),
    )
    assert sent.status_code == 201
    message = sent.json()["data"]
    assert message["isRead"] is False

    inbox = await client.get("/api/communication/messages", headers=auth_headers("teacher"))
    outbox = await client.get(
        "/api/communication/messages?type=sent", headers=auth_headers("admin"),
    )
    admin_inbox = await client.get("/api/communication/messages", headers=auth_headers("admin"))
    assert [m["id"] for m in inbox.json()["data"]] == [message["id"]]
    assert [m["id"] for m in outbox.json()["data"]] == [message["id"]]
    assert admin_inbox.json()["pagination"]["total"] == 0

    sender_marks = await client.put(
        f"/api/communication/messages/{message['id']}/read", headers=auth_headers("admin"),
    )
    assert sender_marks.status_code == 404

    read = await client.put(
        f"/api/communication/messages/{message['id']}/read", headers=auth_headers("teacher"),
    )
    assert read.json()["data"]["isRead"] is True
    assert read.json()["data"]["readAt"] is not None

    stranger = await client.get(
        f"/api/communication/messages/{message['id']}", headers=auth_headers("principal"),
    )
    assert stranger.status_code == 404


async def test_message_to_other_school_rejected(client, seed, auth_headers):
    res = await client.post(
        "/api/communication/messages",
        json={
            "receiverId": str(seed.users["beta_admin"].id),
            "subject": "Hello", "content": "Cross-school note",
        },
        headers=auth_headers("admin"),
    )
    assert res.status_code == 400
    assert res.json()["details"] == {"receiverId": ["Recipient not found"]}


async def test_read_all_notifications_counts_updates(client, seed, auth_headers):
    teacher = seed.users["teacher"]
    for title in ("Timetable updated", "Exam schedule"):
        res = await client.post(
            "/api/communication/notifications",
            json={"userId": str(teacher.id), "title": title, "message": "Please check the portal"},
            headers=auth_headers("admin"),
        )
        assert res.status_code == 201

    res = await client.put(
        "/api/communication/notifications/read-all", headers=auth_headers("teacher"),
    )
    assert res.json()["data"]["count"] == 2

    unread = await client.get(
        "/api/communication/notifications?isRead=false", headers=auth_headers("teacher"),
    )
    assert unread.json()["pagination"]["total"] == 0

    again = await client.put(
        "/api/communication/notifications/read-all", headers=auth_headers("teacher"),
    )
    assert again.json()["data"]["count"] == 0


async def test_announcement_author_is_caller(client, seed, auth_headers):
    res = await client.post(
        "/api/communication/announcements",
        json={"title": "Sports Day", "content": "Sports day on 12 Dec", "targetRole": "TEACHER"},
        headers=auth_headers("principal"),
    )
    assert res.status_code == 201
    data = res.json()["data"]
    assert data["authorId"] == str(seed.users["principal"].id)
    assert data["targetRole"] == "TEACHER"
    assert data["publishedAt"] is not None


# ─── EVENTS ─────────────────────────────────────────────────────

async def _event(client, auth_headers, title, when, key="principal") -> dict:
    res = await client.post(
        "/api/communication/events",
        json={"title": title, "eventDate": when, "location": "Main Hall"},
        headers=auth_headers(key),
    )
    assert res.status_code == 201, res.text
    return res.json()["data"]


async def test_upcoming_events_exclude_past_ones(client, seed, auth_headers):
    await _event(client, auth_headers, "Annual Day 2001", "2001-12-20T17:00:00Z")
    fair = await _event(client, auth_headers, "Science Fair", "2099-02-10T09:30:00Z")

    every = await client.get("/api/communication/events", headers=auth_headers("teacher"))
    assert [e["title"] for e in every.json()["data"]] == ["Annual Day 2001", "Science Fair"]

    upcoming = await client.get(
        "/api/communication/events", params={"upcoming": "true"},
        headers=auth_headers("teacher"),
    )
    assert [e["id"] for e in upcoming.json()["data"]] == [fair["id"]]


async def test_event_update_and_soft_delete(client, seed, auth_headers):
    event = await _event(client, auth_headers, "PTA Meeting", "2099-03-01T10:00:00Z")

    moved = await client.put(
        f"/api/communication/events/{event['id']}",
        json={"location": None, "organizer": "Parent Council"},
        headers=auth_headers("principal"),
    )
    assert moved.status_code == 200
    assert moved.json()["data"]["location"] is None
    assert moved.json()["data"]["organizer"] == "Parent Council"

    untitled = await client.put(
        f"/api/communication/events/{event['id']}", json={"title": None},
        headers=auth_headers("principal"),
    )
    assert untitled.status_code == 400

    foreign = await client.delete(
        f"/api/communication/events/{event['id']}", headers=auth_headers("beta_admin"),
    )
    assert foreign.status_code == 404

    removed = await client.delete(
        f"/api/communication/events/{event['id']}", headers=auth_headers("principal"),
    )
    assert removed.status_code == 200
    active = await client.get(
        "/api/communication/events", params={"isActive": "true"},
        headers=auth_headers("principal"),
    )
    assert active.json()["data"] == []


# ─── AUDIT & BACKUPS ────────────────────────────────────────────

async def test_audit_logs_are_tenant_scoped(client, seed, auth_headers):
    for key in ("admin", "beta_admin"):
        res = await client.post(
            "/api/admissions",
            json={
                "firstName": "Tara", "lastName": "Sen", "appliedClass": "Grade 1",
                "parentName": "Mohan Sen", "parentPhone": "+91 90000 00001",
            },
            headers=auth_headers(key),
        )
        assert res.status_code == 201

    own = await client.get(
        "/api/security/audit-logs?entity=Admission", headers=auth_headers("admin"),
    )
    everyone = await client.get(
        "/api/security/audit-logs?entity=Admission", headers=auth_headers("super_admin"),
    )
    assert [log["schoolId"] for log in own.json()["data"]] == [str(seed.alpha.id)]
    assert own.json()["data"][0]["action"] == "CREATE"
    assert everyone.json()["pagination"]["total"] == 2

    denied = await client.get("/api/security/audit-logs", headers=auth_headers("principal"))
    assert denied.status_code == 403


async def test_backup_request_is_recorded_pending(client, seed, auth_headers):
    res = await client.post("/api/security/backups", json={}, headers=auth_headers("admin"))
    assert res.status_code == 201
    backup = res.json()["data"]
    assert backup["status"] == "PENDING"
    assert backup["type"] == "FULL"
    assert backup["filename"].startswith("backup-alpha-")

    listed = await client.get("/api/security/backups", headers=auth_headers("beta_admin"))
    assert listed.json()["pagination"]["total"] == 0


# ─── DASHBOARD ──────────────────────────────────────────────────

async def test_dashboard_counts_per_tenant(client, seed, auth_headers, make_student):
    await make_student("A-1")
    await make_student("A-2", is_active=False)
    await make_student("B-1", school_code="BETA")

    own = await client.get("/api/dashboard/stats", headers=auth_headers("teacher"))
    assert own.json()["data"] == {
        "totalStudents": 2, "activeStudents": 1, "totalStaff": 0,
        "activeStaff": 0, "totalClasses": 1, "feeCollected": 0.0,
    }

    everyone = await client.get("/api/dashboard/stats", headers=auth_headers("super_admin"))
    assert everyone.json()["data"]["totalStudents"] == 3
    assert everyone.json()["data"]["totalClasses"] == 2


# ─── COMPLIANCE ─────────────────────────────────────────────────

async def _compliance(client, auth_headers, status, key="admin", **extra) -> dict:
    res = await client.post(
        "/api/security/compliance",
        json={"description": "Consent records audit", "status": status, **extra},
        headers=auth_headers(key),
    )
    assert res.status_code == 201, res.text
    return res.json()["data"]


async def test_compliance_score_rounds_half_up(client, seed, auth_headers):
    empty = await client.get("/api/security/compliance", headers=auth_headers("admin"))
    assert empty.json()["data"]["complianceScore"] == 0

    for status in ("COMPLIANT", "COMPLIANT", "NON_COMPLIANT"):
        record = await _compliance(client, auth_headers, status)
    assert record["complianceType"] == "GDPR"
    assert record["validFrom"] is not None
    await _compliance(client, auth_headers, "COMPLIANT", complianceType="POCSO")
    await _compliance(client, auth_headers, "NON_COMPLIANT", key="beta_admin")

    res = await client.get("/api/security/compliance", headers=auth_headers("admin"))
    summary = res.json()["data"]
    assert summary["complianceType"] == "GDPR"
    assert len(summary["records"]) == 3
    assert summary["complianceScore"] == 67

    pocso = await client.get(
        "/api/security/compliance", params={"type": "POCSO"}, headers=auth_headers("admin"),
    )
    assert pocso.json()["data"]["complianceScore"] == 100


async def test_compliance_validity_window(client, seed, auth_headers):
    res = await client.post(
        "/api/security/compliance",
        json={"validFrom": "2025-04-01", "validUntil": "2025-03-31"},
        headers=auth_headers("admin"),
    )
    assert res.status_code == 400
    assert res.json()["details"] == {"validUntil": ["validUntil cannot be before validFrom"]}


async def test_compliance_is_admin_only(client, seed, auth_headers):
    res = await client.get("/api/security/compliance", headers=auth_headers("accountant"))
    assert res.status_code == 403
