import sys
from datetime import datetime
from pathlib import Path
import os

from werkzeug.security import generate_password_hash

# Ensure repo root is on sys.path when running as a script (Windows-friendly).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.dashflow.models import ActivityType, Base, OrderStatus, User  # noqa: E402
from app.dashflow.modules.login_records.models import LoginRecord  # noqa: E402
from app.dashflow.modules.orders.models import Order  # noqa: E402
from app.dashflow.db import make_engine  # noqa: E402
from scripts._db_utils import script_session  # noqa: E402

DEMO_PASSWORD = "Password123"


def demo_password() -> str:
    return os.environ.get("DEMO_PASSWORD") or DEMO_PASSWORD


DEMO_USERS = [
    {
        "first_name": "John",
        "last_name": "Doe",
        "email": "john.doe@example.com",
        "mobile_number": "+1234567890",
        "address": "123 Main St, Anytown, USA 12345",
    },
    {
        "first_name": "Jane",
        "last_name": "Smith",
        "email": "jane.smith@example.com",
        "mobile_number": "+9876543210",
        "address": "456 Oak Ave, Somewhere, USA 67890",
    },
    {
        "first_name": "Bob",
        "last_name": "Johnson",
        "email": "bob.johnson@example.com",
        "mobile_number": "+5555555555",
        "address": "789 Pine Rd, Elsewhere, USA 11111",
    },
]

DEMO_ORDERS = [
    ("ORD-2024-001", "John Doe", OrderStatus.DELIVERED, datetime(2024, 1, 15)),
    ("ORD-2024-002", "Jane Smith", OrderStatus.SHIPPED, datetime(2024, 2, 20)),
    ("ORD-2024-003", "Bob Johnson", OrderStatus.PROCESSING, datetime(2024, 3, 10)),
    ("ORD-2024-004", "John Doe", OrderStatus.PENDING, datetime(2024, 4, 5)),
    ("ORD-2024-005", "Jane Smith", OrderStatus.CANCELLED, datetime(2024, 5, 12)),
]

_WINDOWS_UA = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
_MAC_UA = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7)"

# (user email, activity, timestamp, ip, user agent)
DEMO_LOGIN_RECORDS = [
    ("john.doe@example.com", ActivityType.LOGIN, datetime(2024, 10, 1, 8, 30), "192.168.1.100", _WINDOWS_UA),
    ("jane.smith@example.com", ActivityType.LOGIN, datetime(2024, 10, 2, 9, 15), "192.168.1.101", _MAC_UA),
    ("john.doe@example.com", ActivityType.LOGOUT, datetime(2024, 10, 1, 17, 0), "192.168.1.100", _WINDOWS_UA),
]


def create_tables(database_url: str) -> None:
    engine = make_engine(database_url)
    try:
        Base.metadata.create_all(bind=engine)
    finally:
        engine.dispose()


def seed_only(*, database_url: str | None = None) -> dict[str, int]:
    """
    Seed demo users/orders/login records in an idempotent way.
    Does NOT overwrite existing users' passwords.
    """
    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///dashflow.db").strip()
    password = demo_password()
    created = {"users": 0, "orders": 0, "login_records": 0}

    with script_session(db_url) as s:
        users_by_email: dict[str, User] = {}
        for data in DEMO_USERS:
            u = s.query(User).filter(User.email == data["email"]).one_or_none()
            if not u:
                u = User(password_hash=generate_password_hash(password), is_active=True, **data)
                s.add(u)
                created["users"] += 1
            users_by_email[data["email"]] = u
        s.flush()

        for number, buyer, status, order_date in DEMO_ORDERS:
            if s.query(Order).filter(Order.order_number == number).one_or_none():
                continue
            s.add(Order(order_number=number, buyer_name=buyer, status=status, order_date=order_date))
            created["orders"] += 1

        for email, activity, ts, ip, ua in DEMO_LOGIN_RECORDS:
            user = users_by_email[email]
            exists = (
                s.query(LoginRecord)
                .filter(
                    LoginRecord.user_id == user.id,
                    LoginRecord.activity_type == activity,
                    LoginRecord.timestamp == ts,
                )
                .first()
            )
            if exists:
                continue
            s.add(LoginRecord(user_id=user.id, activity_type=activity, timestamp=ts, ip_address=ip, user_agent=ua))
            created["login_records"] += 1

    return created


def main() -> None:
    db_url = (os.environ.get("DATABASE_URL") or "sqlite:///dashflow.db").strip()
    print(f"Creating tables on {db_url.split('@')[-1]}...", flush=True)
    create_tables(db_url)
    created = seed_only(database_url=db_url)
    print(
        f"Seed complete: {created['users']} users, {created['orders']} orders, "
        f"{created['login_records']} login records created.",
        flush=True,
    )
    print(f"Demo login: john.doe@example.com / {demo_password()}", flush=True)


if __name__ == "__main__":
    main()
