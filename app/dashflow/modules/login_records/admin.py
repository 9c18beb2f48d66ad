from __future__ import annotations

from flask import Blueprint, current_app, request

from app.dashflow.auth import login_required
from app.dashflow.db import db_session
from app.dashflow.modules.login_records.service import (
    DEFAULT_RECENT_LIMIT,
    create_login_record,
    delete_login_record,
    get_login_record_by_id,
    list_login_records,
    list_login_records_for_user,
    validate_login_record_payload,
)
from app.dashflow.modules.users.service import get_user_by_id
from app.dashflow.responses import fail, handles_db_errors, ok, validation_failed
from app.dashflow.utils import parse_limit, payload_text, request_payload

bp = Blueprint("login_records", __name__)


@bp.get("/login-records")
@login_required
@handles_db_errors("Failed to fetch login records")
def login_records_list():
    records = list_login_records(db_session())
    return ok([r.to_dict() for r in records])


@bp.get("/login-records/recent")
@login_required
@handles_db_errors("Failed to fetch recent login records")
def login_records_recent():
    try:
        limit = parse_limit(
            request.args.get("limit"),
            DEFAULT_RECENT_LIMIT,
            current_app.config.get("MAX_PAGE_SIZE", 100),
        )
    except ValueError:
        return fail("limit must be a positive integer.", 400)
    records = list_login_records(db_session(), limit=limit)
    return ok([r.to_dict() for r in records])


@bp.get("/users/<int:user_id>/login-records")
@login_required
@handles_db_errors("Failed to fetch login records")
def login_records_for_user(user_id: int):
    records = list_login_records_for_user(db_session(), user_id)
    return ok([r.to_dict() for r in records])


@bp.post("/login-records")
@login_required
@handles_db_errors("Failed to create login record")
def login_records_new():
    s = db_session()
    payload = request_payload()

    errors = validate_login_record_payload(payload)
    if errors:
        return validation_failed(errors)

    user_id = int(payload_text(payload, "user_id"))
    if not get_user_by_id(s, user_id):
        return fail("User not found", 404)

    record = create_login_record(
        s,
        user_id=user_id,
        activity_type=payload_text(payload, "activity_type"),
        ip_address=payload_text(payload, "ip_address") or None,
        user_agent=payload_text(payload, "user_agent") or None,
    )
    s.commit()
    return ok(record.to_dict(), "Login record created successfully", 201)


@bp.delete("/login-records/<int:record_id>")
@login_required
@handles_db_errors("Failed to delete login record")
def login_record_delete(record_id: int):
    s = db_session()
    record = get_login_record_by_id(s, record_id)
    if not record:
        return fail("Login record not found", 404)

    delete_login_record(s, record)
    s.commit()
    return ok(None, "Login record deleted successfully")
