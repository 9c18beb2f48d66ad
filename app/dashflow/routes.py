from flask import Blueprint

from app.dashflow.auth import login_required
from app.dashflow.db import db_session
from app.dashflow.modules.login_records.service import count_login_records, list_login_records
from app.dashflow.modules.orders.service import count_orders_by_status
from app.dashflow.modules.users.service import count_users
from app.dashflow.responses import handles_db_errors, ok

bp = Blueprint("routes", __name__)

RECENT_ACTIVITY_LIMIT = 5


@bp.get("/")
def index():
    return ok({"name": "DashFlow", "health": "/health", "dashboard": "/dashboard"})


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON."""
    return {"ok": True}


@bp.get("/healthz")
def healthz():
    """
    Fast health check for container liveness checks. No DB access, minimal overhead.
    """
    return "ok", 200


@bp.get("/dashboard")
@login_required
@handles_db_errors("Failed to load dashboard")
def dashboard():
    s = db_session()
    orders_by_status = count_orders_by_status(s)
    return ok(
        {
            "total_users": count_users(s),
            "total_orders": sum(orders_by_status.values()),
            "orders_by_status": orders_by_status,
            "total_login_records": count_login_records(s),
            "recent_activity": [r.to_dict() for r in list_login_records(s, limit=RECENT_ACTIVITY_LIMIT)],
        }
    )
