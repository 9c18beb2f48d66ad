import pytest
from werkzeug.security import generate_password_hash

from app.dashflow import create_app
from app.dashflow.db import session_scope
from app.dashflow.models import Base, User


@pytest.fixture()
def client(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("CSRF_ENABLED", "1")

    app = create_app()

    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

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

    return app.test_client()


def _login(client):
    return client.post("/auth/login", json={"username": "john.doe@example.com", "password": "Password123"})


def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json["ok"] is True

    r = client.get("/healthz")
    assert r.status_code == 200


def test_index_is_json_envelope(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.json["success"] is True
    assert r.json["data"]["name"] == "DashFlow"


def test_api_requires_login(client):
    for path in ("/dashboard", "/api/users", "/api/orders", "/api/login-records"):
        r = client.get(path)
        assert r.status_code == 401, path
        assert r.json == {"success": False, "error": "Authentication required"}


def test_login_and_dashboard(client):
    r = _login(client)
    assert r.status_code == 200

    r = client.get("/dashboard")
    assert r.status_code == 200
    data = r.json["data"]
    assert data["total_users"] == 1
    assert data["total_orders"] == 0
    assert set(data["orders_by_status"]) == {"PENDING", "PROCESSING", "SHIPPED", "DELIVERED", "CANCELLED"}
    # The login itself is recorded.
    assert data["total_login_records"] == 1
    assert data["recent_activity"][0]["activity_type"] == "LOGIN"


def test_csrf_required_for_mutations(client):
    _login(client)

    r = client.post("/api/orders", json={"buyer_name": "Jane Smith"})
    assert r.status_code == 403
    assert r.json["success"] is False

    token = client.get("/auth/csrf").json["data"]["csrf_token"]
    r = client.post("/api/orders", json={"buyer_name": "Jane Smith"}, headers={"X-CSRF-Token": token})
    assert r.status_code == 201
    assert r.json["data"]["buyer_name"] == "Jane Smith"


def test_unknown_route_returns_json_404(client):
    r = client.get("/does-not-exist")
    assert r.status_code == 404
    assert r.json["success"] is False


def test_csrf_token_accepted_in_json_body(client):
    _login(client)
    token = client.get("/auth/csrf").json["data"]["csrf_token"]

    r = client.patch("/api/users/1", json={"first_name": "Johnny", "csrf_token": token})
    assert r.status_code == 200
    assert r.json["data"]["first_name"] == "Johnny"

    r = client.patch("/api/users/1", json={"first_name": "Jonathan", "csrf_token": "wrong"})
    assert r.status_code == 403
