"""Fee collection — partial payments, overpayment guard and the due list."""

from uuid import UUID

import pytest

from app.core.domain_types import PaymentMode, PaymentStatus
from app.core.errors import BusinessRuleError
from app.models.finance import FeePayment
from app.schemas.finance import FeeCollect
from app.services import fee_collection


async def _assign(client, seed, auth_headers, student, amount=12000.0) -> dict:
    fee = await client.post(
        "/api/fees",
        json={
            "name": "Term 1 Tuition", "type": "TUITION", "amount": amount,
            "frequency": "QUARTERLY", "classId": str(seed.classes["ALPHA"].id),
        },
        headers=auth_headers("accountant"),
    )
    assert fee.status_code == 201, fee.text
    payment = await client.post(
        "/api/fees/payments",
        json={
            "studentId": str(student.id), "feeId": fee.json()["data"]["id"],
            "dueDate": "2025-06-30",
        },
        headers=auth_headers("accountant"),
    )
    assert payment.status_code == 201, payment.text
    return payment.json()["data"]


async def _collect(client, auth_headers, payment, amount):
    return await client.post(
        f"/api/fees/payments/{payment['id']}/collect",
        json={"amount": amount, "paymentMode": "UPI", "transactionId": "UPI-88231"},
        headers=auth_headers("accountant"),
    )


async def test_partial_then_full_collection(client, seed, auth_headers, make_student):
    student = await make_student("ADM-1")
    payment = await _assign(client, seed, auth_headers, student)
    assert payment["status"] == "PENDING"
    assert payment["amount"] == 12000.0

    partial = await _collect(client, auth_headers, payment, 5000)
    assert partial.status_code == 200
    assert partial.json()["data"]["status"] == "PARTIAL"
    assert partial.json()["data"]["paidAmount"] == 5000
    assert partial.json()["data"]["receiptNumber"].startswith("RCP-")

    full = await _collect(client, auth_headers, payment, 7000)
    assert full.json()["data"]["status"] == "PAID"

    closed = await _collect(client, auth_headers, payment, 1)
    assert closed.status_code == 400
    assert closed.json()["error"] == "Fee payment is already PAID"


async def test_overpayment_is_rejected(client, seed, auth_headers, make_student):
    student = await make_student("ADM-1")
    payment = await _assign(client, seed, auth_headers, student, amount=3000.0)
    res = await _collect(client, auth_headers, payment, 3500)
    assert res.status_code == 400
    assert res.json()["error"] == "Payment exceeds outstanding balance of 3000.00"


async def test_due_list_drops_paid_payments(client, seed, auth_headers, make_student):
    paid_student, owing_student = await make_student("ADM-1"), await make_student("ADM-2")
    paid = await _assign(client, seed, auth_headers, paid_student, amount=1500.0)
    await _assign(client, seed, auth_headers, owing_student, amount=1500.0)
    await _collect(client, auth_headers, paid, 1500)

    res = await client.get("/api/fees/due", headers=auth_headers("accountant"))
    assert [p["studentId"] for p in res.json()["data"]] == [str(owing_student.id)]


async def test_fee_cannot_target_other_school_class(client, seed, auth_headers):
    res = await client.post(
        "/api/fees",
        json={
            "name": "Lab Fee", "type": "LABORATORY", "amount": 800,
            "frequency": "YEARLY", "classId": str(seed.classes["BETA"].id),
        },
        headers=auth_headers("accountant"),
    )
    assert res.status_code == 400
    assert res.json()["details"] == {"classId": ["Invalid class"]}


async def test_collection_from_stale_read_does_not_overwrite(
    client, seed, auth_headers, make_student, session_factory,
):
    student = await make_student("ADM-1")
    payment = await _assign(client, seed, auth_headers, student, amount=4000.0)
    async with session_factory() as db:
        stale = await db.get(FeePayment, UUID(payment["id"]))

    first = await _collect(client, auth_headers, payment, 2500)
    assert first.json()["data"]["paidAmount"] == 2500

    async with session_factory() as db:
        with pytest.raises(BusinessRuleError, match="updated by another collection"):
            await fee_collection.collect(
                db, stale, FeeCollect(amount=1000, payment_mode=PaymentMode.CASH),
            )
        await db.rollback()

    async with session_factory() as db:
        row = await db.get(FeePayment, UUID(payment["id"]))
    assert row.paid_amount == 2500
    assert row.status == PaymentStatus.PARTIAL
    assert row.payment_mode == PaymentMode.UPI
