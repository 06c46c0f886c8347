"""Marketplace orders — atomic stock decrements, cancellation and inventory view.

Invariants:
    - An order that cannot be fully served changes no stock and writes no rows
    - Totals come from catalogue prices; repeated product lines are merged
    - Cancel restores stock once; delete restores stock unless already cancelled
"""

from uuid import UUID

import pytest
from sqlalchemy import func, select

from app.core.domain_types import MarketplaceOrderStatus, ProductCategory
from app.core.errors import BusinessRuleError, ResourceNotFoundError
from app.models.marketplace import MarketplaceOrder, MarketplaceOrderItem, Product
from app.services import marketplace_orders


@pytest.fixture
def make_product(session_factory, seed):

    async def create(name: str, price: float, stock: int, school=None, **fields) -> Product:
        async with session_factory() as db:
            product = Product(
                school_id=(school or seed.alpha).id, name=name, price=price, stock=stock,
                category=fields.pop("category", ProductCategory.STATIONERY), **fields,
            )
            db.add(product)
            await db.commit()
            return product

    return create


async def _stock(session_factory, product_id) -> int:
    async with session_factory() as db:
        return await db.scalar(select(Product.stock).where(Product.id == product_id))


async def _order_count(session_factory) -> int:
    async with session_factory() as db:
        return await db.scalar(select(func.count()).select_from(MarketplaceOrder))


async def test_order_decrements_stock_and_prices_server_side(
    client, seed, auth_headers, make_student, make_product, session_factory,
):
    student = await make_student("ADM-1")
    notebook = await make_product("Notebook", 40.0, 10)
    pen = await make_product("Pen", 12.5, 5)

    res = await client.post(
        "/api/marketplace/orders",
        json={
            "studentId": str(student.id),
            "items": [
                {"productId": str(notebook.id), "quantity": 2},
                {"productId": str(pen.id), "quantity": 1},
                {"productId": str(notebook.id), "quantity": 1},
            ],
        },
        headers=auth_headers("accountant"),
    )
    assert res.status_code == 201, res.text
    order = res.json()["data"]
    assert order["totalAmount"] == 132.5
    assert order["status"] == "PENDING"
    assert order["orderNumber"].startswith("ORD-")
    assert {(i["productId"], i["quantity"]) for i in order["items"]} == {
        (str(notebook.id), 3), (str(pen.id), 1),
    }
    assert await _stock(session_factory, notebook.id) == 7
    assert await _stock(session_factory, pen.id) == 4


async def test_insufficient_stock_rejects_whole_order(
    client, seed, auth_headers, make_student, make_product, session_factory,
):
    student = await make_student("ADM-1")
    notebook = await make_product("Notebook", 40.0, 10)
    globe = await make_product("Desk Globe", 900.0, 1)

    res = await client.post(
        "/api/marketplace/orders",
        json={
            "studentId": str(student.id),
            "items": [
                {"productId": str(notebook.id), "quantity": 3},
                {"productId": str(globe.id), "quantity": 2},
            ],
        },
        headers=auth_headers("admin"),
    )
    assert res.status_code == 400
    body = res.json()
    assert body["code"] == "INSUFFICIENT_STOCK"
    assert body["error"] == "Insufficient stock for product: Desk Globe"
    assert body["details"] == {"items": ["Insufficient stock for product: Desk Globe"]}
    assert await _stock(session_factory, notebook.id) == 10
    assert await _stock(session_factory, globe.id) == 1
    assert await _order_count(session_factory) == 0


async def test_student_of_other_school_is_rejected(
    client, seed, auth_headers, make_student, make_product,
):
    student = await make_student("B-1", school_code="BETA")
    notebook = await make_product("Notebook", 40.0, 10)
    res = await client.post(
        "/api/marketplace/orders",
        json={"studentId": str(student.id), "items": [{"productId": str(notebook.id), "quantity": 1}]},
        headers=auth_headers("admin"),
    )
    assert res.status_code == 400
    assert res.json()["details"] == {
        "studentId": ["You can only create orders for students in your school"],
    }


async def test_inactive_or_foreign_product_is_rejected(
    client, seed, auth_headers, make_student, make_product,
):
    student = await make_student("ADM-1")
    retired = await make_product("Old Atlas", 300.0, 4, is_active=False)
    foreign = await make_product("Beta Tie", 150.0, 4, school=seed.beta)
    for product in (retired, foreign):
        res = await client.post(
            "/api/marketplace/orders",
            json={"studentId": str(student.id), "items": [{"productId": str(product.id), "quantity": 1}]},
            headers=auth_headers("admin"),
        )
        assert res.status_code == 400
        assert res.json()["details"] == {"items": ["One or more products not found or inactive"]}


async def test_empty_order_fails_validation(client, seed, auth_headers, make_student):
    student = await make_student("ADM-1")
    res = await client.post(
        "/api/marketplace/orders",
        json={"studentId": str(student.id), "items": []},
        headers=auth_headers("admin"),
    )
    assert res.status_code == 400
    assert "items" in res.json()["details"]


async def _place(client, auth_headers, student, product, quantity) -> dict:
    res = await client.post(
        "/api/marketplace/orders",
        json={"studentId": str(student.id), "items": [{"productId": str(product.id), "quantity": quantity}]},
        headers=auth_headers("admin"),
    )
    assert res.status_code == 201, res.text
    return res.json()["data"]


async def test_cancel_restores_stock_once(
    client, seed, auth_headers, make_student, make_product, session_factory,
):
    student = await make_student("ADM-1")
    blazer = await make_product("Blazer", 1200.0, 5, category=ProductCategory.UNIFORM)
    order = await _place(client, auth_headers, student, blazer, 2)
    assert await _stock(session_factory, blazer.id) == 3

    res = await client.put(
        f"/api/marketplace/orders/{order['id']}", json={"status": "CANCELLED"},
        headers=auth_headers("admin"),
    )
    assert res.status_code == 200
    assert res.json()["data"]["status"] == "CANCELLED"
    assert await _stock(session_factory, blazer.id) == 5

    again = await client.put(
        f"/api/marketplace/orders/{order['id']}", json={"status": "CANCELLED"},
        headers=auth_headers("admin"),
    )
    assert again.status_code == 200
    assert await _stock(session_factory, blazer.id) == 5

    reopen = await client.put(
        f"/api/marketplace/orders/{order['id']}", json={"status": "PENDING"},
        headers=auth_headers("admin"),
    )
    assert reopen.status_code == 400


async def test_delete_restores_stock_and_removes_items(
    client, seed, auth_headers, make_student, make_product, session_factory,
):
    student = await make_student("ADM-1")
    pen = await make_product("Pen", 12.5, 5)
    order = await _place(client, auth_headers, student, pen, 4)

    res = await client.delete(
        f"/api/marketplace/orders/{order['id']}", headers=auth_headers("admin"),
    )
    assert res.status_code == 200
    assert res.json()["message"] == "Order deleted successfully"
    assert await _stock(session_factory, pen.id) == 5
    assert await _order_count(session_factory) == 0
    async with session_factory() as db:
        items = await db.scalar(select(func.count()).select_from(MarketplaceOrderItem))
    assert items == 0


async def test_other_school_order_reads_as_not_found(
    client, seed, auth_headers, make_student, make_product,
):
    student = await make_student("ADM-1")
    pen = await make_product("Pen", 12.5, 5)
    order = await _place(client, auth_headers, student, pen, 1)
    res = await client.get(
        f"/api/marketplace/orders/{order['id']}", headers=auth_headers("beta_admin"),
    )
    assert res.status_code == 404


async def test_duplicate_sku_rejected(client, seed, auth_headers):
    body = {"name": "Scale", "category": "STATIONERY", "price": 20, "stock": 3, "sku": "SC-1"}
    first = await client.post("/api/marketplace/products", json=body, headers=auth_headers("admin"))
    second = await client.post("/api/marketplace/products", json=body, headers=auth_headers("admin"))
    assert first.status_code == 201
    assert second.status_code == 400
    assert second.json()["details"] == {"sku": ["SKU already exists in this school"]}


async def test_inventory_flags_low_and_empty_stock(
    client, seed, auth_headers, make_product,
):
    await make_product("Eraser", 5.0, 0)
    await make_product("Crayons", 60.0, 4)
    await make_product("Notebook", 40.0, 50)
    await make_product("Retired", 10.0, 1, is_active=False)

    res = await client.get("/api/marketplace/inventory", headers=auth_headers("admin"))
    assert res.status_code == 200
    body = res.json()
    assert [i["name"] for i in body["data"]] == ["Eraser", "Crayons", "Notebook"]
    assert [i["lowStockAlert"] for i in body["data"]] == [True, True, False]
    assert body["data"][2]["totalValue"] == 2000.0
    assert body["summary"] == {
        "totalProducts": 3, "totalValue": 2240.0, "lowStockCount": 2, "outOfStockCount": 1,
    }

    low = await client.get(
        "/api/marketplace/inventory?lowStock=true&threshold=3", headers=auth_headers("admin"),
    )
    assert [i["name"] for i in low.json()["data"]] == ["Eraser"]


async def test_stale_cancel_or_delete_cannot_restore_stock_twice(
    client, seed, auth_headers, make_student, make_product, session_factory,
):
    student = await make_student("ADM-1")
    tie = await make_product("School Tie", 150.0, 10, category=ProductCategory.UNIFORM)
    order = await _place(client, auth_headers, student, tie, 3)
    async with session_factory() as db:
        stale = await db.get(MarketplaceOrder, UUID(order["id"]))
    assert await _stock(session_factory, tie.id) == 7

    res = await client.put(
        f"/api/marketplace/orders/{order['id']}", json={"status": "CANCELLED"},
        headers=auth_headers("admin"),
    )
    assert res.status_code == 200
    assert await _stock(session_factory, tie.id) == 10

    async with session_factory() as db:
        with pytest.raises(BusinessRuleError, match="changed from PENDING to CANCELLED"):
            await marketplace_orders.change_status(db, stale, MarketplaceOrderStatus.CANCELLED)
        await db.rollback()
    async with session_factory() as db:
        with pytest.raises(BusinessRuleError, match="reload and retry"):
            await marketplace_orders.remove_order(db, stale)
        await db.rollback()

    assert await _stock(session_factory, tie.id) == 10
    assert await _order_count(session_factory) == 1


async def test_stale_delete_after_delete_is_not_found(
    client, seed, auth_headers, make_student, make_product, session_factory,
):
    student = await make_student("ADM-1")
    pen = await make_product("Pen", 12.5, 5)
    order = await _place(client, auth_headers, student, pen, 2)
    async with session_factory() as db:
        stale = await db.get(MarketplaceOrder, UUID(order["id"]))

    res = await client.delete(
        f"/api/marketplace/orders/{order['id']}", headers=auth_headers("admin"),
    )
    assert res.status_code == 200

    async with session_factory() as db:
        with pytest.raises(ResourceNotFoundError):
            await marketplace_orders.remove_order(db, stale)
        await db.rollback()
    assert await _stock(session_factory, pen.id) == 5
