from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from flask import has_request_context, request
from sqlalchemy import func

from app.dashflow.models import ActivityType
from app.dashflow.modules.login_records.models import LoginRecord
from app.dashflow.utils import payload_text

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.dashflow.models import User

logger = logging.getLogger(__name__)

DEFAULT_RECENT_LIMIT = 10


def validate_login_record_payload(payload: dict) -> list[str]:
    errors = []
    user_id = payload_text(payload, "user_id")
    if not user_id:
        errors.append("user_id is required.")
    else:
        try:
            int(user_id)
        except ValueError:
            errors.append("user_id must be an integer.")
    activity_type = payload_text(payload, "activity_type").upper()
    if activity_type not in ActivityType.ALL:
        errors.append(f"Invalid activity_type. Must be one of: {', '.join(ActivityType.ALL)}")
    return errors


def create_login_record(
    s: "Session",
    *,
    user_id: int,
    activity_type: str,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> LoginRecord:
    record = LoginRecord(
        user_id=user_id,
        activity_type=activity_type.strip().upper(),
        ip_address=(ip_address or "").strip() or None,
        user_agent=(user_agent or "").strip()[:512] or None,
    )
    s.add(record)
    s.flush()
    logger.info("login_record.create id=%s user_id=%s type=%s", record.id, user_id, record.activity_type)
    return record


def record_activity(s: "Session", user: "User", activity_type: str) -> LoginRecord:
    """Record LOGIN/LOGOUT for ``user`` using the current request's client details."""
    ip_address = None
    user_agent = None
    if has_request_context():
        ip_address = request.remote_addr
        user_agent = request.headers.get("User-Agent")
    return create_login_record(
        s,
        user_id=user.id,
        activity_type=activity_type,
        ip_address=ip_address,
        user_agent=user_agent,
    )


def get_login_record_by_id(s: "Session", record_id: int) -> LoginRecord | None:
    return s.get(LoginRecord, record_id)


def list_login_records(s: "Session", limit: int | None = None) -> list[LoginRecord]:
    q = s.query(LoginRecord).order_by(LoginRecord.timestamp.desc(), LoginRecord.id.desc())
    if limit is not None:
        q = q.limit(limit)
    return q.all()


def list_login_records_for_user(s: "Session", user_id: int) -> list[LoginRecord]:
    return (
        s.query(LoginRecord)
        .filter(LoginRecord.user_id == user_id)
        .order_by(LoginRecord.timestamp.desc(), LoginRecord.id.desc())
        .all()
    )


def count_login_records(s: "Session") -> int:
    return s.query(func.count(LoginRecord.id)).scalar() or 0


def delete_login_record(s: "Session", record: LoginRecord) -> None:
    record_id = record.id
    s.delete(record)
    s.flush()
    logger.info("login_record.delete id=%s", record_id)
