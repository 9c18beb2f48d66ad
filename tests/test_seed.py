from werkzeug.security import check_password_hash

from scripts import init_db
from scripts._db_utils import script_session

from app.dashflow.models import User
from app.dashflow.modules.login_records.models import LoginRecord
from app.dashflow.modules.orders.models import Order


def test_seed_is_idempotent(tmp_path, monkeypatch):
    monkeypatch.delenv("DEMO_PASSWORD", raising=False)
    db_url = f"sqlite:///{tmp_path/'seed.db'}"
    init_db.create_tables(db_url)

    first = init_db.seed_only(database_url=db_url)
    assert first == {"users": 3, "orders": 5, "login_records": 3}

    second = init_db.seed_only(database_url=db_url)
    assert second == {"users": 0, "orders": 0, "login_records": 0}

    with script_session(db_url) as s:
        assert s.query(User).count() == 3
        assert s.query(Order).count() == 5
        assert s.query(LoginRecord).count() == 3
        john = s.query(User).filter(User.email == "john.doe@example.com").one()
        assert john.full_name == "John Doe"


def test_main_reports_the_password_actually_seeded(tmp_path, monkeypatch, capsys):
    db_url = f"sqlite:///{tmp_path/'main.db'}"
    monkeypatch.setenv("DATABASE_URL", db_url)
    monkeypatch.setenv("DEMO_PASSWORD", "Other123A")

    init_db.main()
    out = capsys.readouterr().out
    assert "john.doe@example.com / Other123A" in out
    assert "Password123" not in out

    with script_session(db_url) as s:
        john = s.query(User).filter(User.email == "john.doe@example.com").one()
        assert check_password_hash(john.password_hash, "Other123A")
