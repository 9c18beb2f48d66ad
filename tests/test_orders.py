import re
from datetime import datetime

import pytest
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import generate_password_hash

from app.dashflow import create_app
from app.dashflow.db import session_scope
from app.dashflow.models import Base, OrderStatus, User
from app.dashflow.modules.orders.models import Order

ORDER_NUMBER_RE = re.compile(r"^ORD-\d{8}-[0-9A-Z]{4}$")

SEED_ORDERS = [
    ("ORD-2024-001", "John Doe", OrderStatus.DELIVERED, datetime(2024, 1, 15)),
    ("ORD-2024-002", "Jane Smith", OrderStatus.SHIPPED, datetime(2024, 2, 20)),
    ("ORD-2024-003", "Bob Johnson", OrderStatus.PROCESSING, datetime(2024, 3, 10)),
    ("ORD-2024-004", "John Doe", OrderStatus.PENDING, datetime(2024, 4, 5)),
    ("ORD-2024-005", "Jane Smith", OrderStatus.CANCELLED, datetime(2024, 5, 12)),
]


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("CSRF_ENABLED", "0")

    app = create_app()
    Base.metadata.create_all(bind=app.extensions["sqlalchemy_engine"])

    with session_scope(app) as s:
        s.add(
            User(
                first_name="John",
                last_name="Doe",
                email="john.doe@example.com",
                password_hash=generate_password_hash("Password123"),
                mobile_number="+1234567890",
                address="123 Main St, Anytown",
                is_active=True,
            )
        )
        for number, buyer, status, order_date in SEED_ORDERS:
            s.add(Order(order_number=number, buyer_name=buyer, status=status, order_date=order_date))
    return app


@pytest.fixture()
def client(app):
    c = app.test_client()
    r = c.post("/auth/login", json={"username": "john.doe@example.com", "password": "Password123"})
    assert r.status_code == 200
    return c


def test_create_order_generates_number(client):
    r = client.post("/api/orders", json={"buyer_name": "Alice Walker"})
    assert r.status_code == 201
    data = r.json["data"]
    assert ORDER_NUMBER_RE.match(data["order_number"])
    assert data["status"] == "PENDING"
    assert data["order_date"]


def test_create_order_with_explicit_fields(client):
    r = client.post(
        "/api/orders",
        json={
            "order_number": "ORD-X-1",
            "buyer_name": "Alice Walker",
            "status": "shipped",
            "order_date": "2024-06-01T12:00:00Z",
        },
    )
    assert r.status_code == 201
    data = r.json["data"]
    assert data["order_number"] == "ORD-X-1"
    assert data["status"] == "SHIPPED"
    assert data["order_date"] == "2024-06-01T12:00:00"


def test_create_order_validation(client):
    r = client.post("/api/orders", json={"buyer_name": ""})
    assert r.status_code == 400
    assert r.json["error"] == "Buyer name is required."

    r = client.post("/api/orders", json={"buyer_name": "Alice", "status": "LOST"})
    assert r.status_code == 400

    r = client.post("/api/orders", json={"buyer_name": "Alice", "order_date": "yesterday"})
    assert r.status_code == 400


def test_create_order_duplicate_number(client):
    r = client.post("/api/orders", json={"order_number": "ORD-2024-001", "buyer_name": "Someone"})
    assert r.status_code == 409
    assert r.json["error"] == "Order with this order number already exists"


def test_order_detail_and_404(client):
    r = client.get("/api/orders/1")
    assert r.status_code == 200
    assert r.json["data"]["order_number"] == "ORD-2024-001"

    assert client.get("/api/orders/999").status_code == 404


def test_update_order_status(client):
    r = client.patch("/api/orders/4/status", json={"status": "processing"})
    assert r.status_code == 200
    assert r.json["data"]["status"] == "PROCESSING"

    r = client.patch("/api/orders/4/status", json={"status": "NOPE"})
    assert r.status_code == 400
    assert client.get("/api/orders/4").json["data"]["status"] == "PROCESSING"

    r = client.post("/api/orders/999/status", json={"status": "SHIPPED"})
    assert r.status_code == 404


def test_delete_order(client):
    r = client.delete("/api/orders/5")
    assert r.status_code == 200
    assert client.get("/api/orders/5").status_code == 404
    assert client.delete("/api/orders/5").status_code == 404


def test_orders_list_is_cached_until_a_write(client, app):
    r = client.get("/api/orders")
    assert r.status_code == 200
    assert len(r.json["data"]) == 5

    # Written behind the API's back, so the cached list stays stale.
    with session_scope(app) as s:
        s.add(Order(order_number="ORD-SIDE-1", buyer_name="Side Door", status=OrderStatus.PENDING))
    assert len(client.get("/api/orders").json["data"]) == 5

    r = client.post("/api/orders", json={"buyer_name": "Alice Walker"})
    assert r.status_code == 201
    assert len(client.get("/api/orders").json["data"]) == 7


def test_orders_list_cache_disabled_with_zero_ttl(client, app):
    app.config["ORDERS_CACHE_TTL"] = 0
    assert len(client.get("/api/orders").json["data"]) == 5
    with session_scope(app) as s:
        s.add(Order(order_number="ORD-SIDE-2", buyer_name="Side Door", status=OrderStatus.PENDING))
    assert len(client.get("/api/orders").json["data"]) == 6


def test_search_query_and_filters(client):
    r = client.get("/api/orders/search?q=smith")
    assert r.status_code == 200
    assert sorted(o["order_number"] for o in r.json["data"]) == ["ORD-2024-002", "ORD-2024-005"]

    r = client.get("/api/orders/search?filter=status:equals:SHIPPED")
    assert [o["order_number"] for o in r.json["data"]] == ["ORD-2024-002"]

    r = client.get("/api/orders/search?filter=buyer_name:starts_with:john&filter=status:equals:PENDING")
    assert [o["order_number"] for o in r.json["data"]] == ["ORD-2024-004"]

    r = client.get("/api/orders/search?filter=order_date:gt:2024-03-01&sort_by=order_date&sort_order=asc")
    assert [o["order_number"] for o in r.json["data"]] == ["ORD-2024-003", "ORD-2024-004", "ORD-2024-005"]

    r = client.get("/api/orders/search?filter=order_number:contains:100%25")
    assert r.json["data"] == []


def test_search_sort_and_pagination(client):
    r = client.get("/api/orders/search?sort_by=order_number&sort_order=desc&limit=2&page=2")
    assert r.status_code == 200
    assert [o["order_number"] for o in r.json["data"]] == ["ORD-2024-003", "ORD-2024-002"]
    assert r.json["meta"] == {
        "current_page": 2,
        "total_pages": 3,
        "total_items": 5,
        "items_per_page": 2,
        "has_next_page": True,
        "has_previous_page": True,
    }

    r = client.get("/api/orders/search?sort_by=order_number&limit=2&page=3")
    assert [o["order_number"] for o in r.json["data"]] == ["ORD-2024-005"]
    assert r.json["meta"]["has_next_page"] is False


def test_search_rejects_bad_input(client):
    for qs in (
        "filter=status",
        "filter=status:like:x",
        "filter=nope:equals:x",
        "filter=order_date:contains:2024",
        "filter=order_date:gt:not-a-date",
        "sort_by=nope",
        "sort_order=sideways",
        "page=0",
        "limit=abc",
    ):
        r = client.get(f"/api/orders/search?{qs}")
        assert r.status_code == 400, qs
        assert r.json["success"] is False


def test_create_order_with_non_string_values(client):
    r = client.post("/api/orders", json={"buyer_name": 123})
    assert r.status_code == 201
    assert r.json["data"]["buyer_name"] == "123"

    r = client.post("/api/orders", json={"buyer_name": None})
    assert r.status_code == 400
    assert r.json["error"] == "Buyer name is required."

    r = client.post("/api/orders", json={"buyer_name": "Alice", "order_date": [2024, 1, 1]})
    assert r.status_code == 400

    r = client.patch("/api/orders/1/status", json={"status": 5})
    assert r.status_code == 400


def test_database_error_returns_generic_failure(client, monkeypatch):
    from app.dashflow.modules.orders import admin as orders_admin

    real_create_order = orders_admin.create_order

    def create_then_fail(s, payload):
        real_create_order(s, payload)
        raise SQLAlchemyError("connection reset")

    monkeypatch.setattr(orders_admin, "create_order", create_then_fail)
    r = client.post("/api/orders", json={"order_number": "ORD-LOST-1", "buyer_name": "Alice Walker"})
    assert r.status_code == 500
    assert r.json == {"success": False, "error": "Failed to create order"}

    # The half-written order was rolled back and the client keeps working.
    monkeypatch.setattr(orders_admin, "create_order", real_create_order)
    r = client.get("/api/orders/search?q=ORD-LOST-1")
    assert r.status_code == 200
    assert r.json["data"] == []

    r = client.post("/api/orders", json={"order_number": "ORD-LOST-1", "buyer_name": "Alice Walker"})
    assert r.status_code == 201
