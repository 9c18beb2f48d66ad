from __future__ import annotations

import uuid
from collections import defaultdict
from collections.abc import Callable
from datetime import datetime, timedelta
from functools import wraps
from typing import Any

from flask import Blueprint, current_app, g, request, session

from app.dashflow.db import db_session
from app.dashflow.models import ActivityType, User, utcnow
from app.dashflow.modules.login_records.service import record_activity
from app.dashflow.modules.users.service import (
    authenticate_user,
    create_user,
    get_user_by_email,
    validate_user_payload,
)
from app.dashflow.responses import fail, handles_db_errors, ok, validation_failed
from app.dashflow.security import ensure_csrf_token
from app.dashflow.utils import payload_text, request_payload

bp = Blueprint("auth", __name__)
_LOGIN_RATE_LIMIT = 5
_LOGIN_RATE_WINDOW = 300  # seconds


def _login_attempts() -> dict[str, list[datetime]]:
    return current_app.extensions.setdefault("dashflow_login_attempts", defaultdict(list))


def _check_rate_limit(ip: str) -> bool:
    attempts = _login_attempts()
    cutoff = utcnow() - timedelta(seconds=_LOGIN_RATE_WINDOW)
    # Prune every client, not just this one; empty entries are removed.
    for key in list(attempts):
        recent = [t for t in attempts[key] if t > cutoff]
        if recent:
            attempts[key] = recent
        else:
            del attempts[key]
    return len(attempts.get(ip, ())) >= _LOGIN_RATE_LIMIT


def _record_attempt(ip: str) -> None:
    _login_attempts()[ip].append(utcnow())


def load_current_user() -> None:
    """
    Loads g.current_user from the signed session cookie.
    Also assigns a simple per-request request_id (for log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    if request.path.startswith(("/health", "/healthz")):
        g.current_user = None
        return

    user_id = session.get("user_id")
    if not user_id:
        g.current_user = None
        return

    try:
        s = db_session()
        user = s.get(User, int(user_id))
        if not user or not user.is_active:
            session.pop("user_id", None)
            g.current_user = None
            return
        g.current_user = user
    except Exception as e:
        current_app.logger.error("load_current_user DB error (clearing session): %s", e)
        session.pop("user_id", None)
        g.current_user = None


def current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def login_required(fn: Callable[..., Any]) -> Callable[..., Any]:
    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        user: User | None = getattr(g, "current_user", None)
        if not user or not user.is_active:
            return fail("Authentication required", 401)
        return fn(*args, **kwargs)

    return wrapped


@bp.get("/csrf")
def csrf():
    return ok({"csrf_token": ensure_csrf_token()})


@bp.post("/register")
@handles_db_errors("Failed to create user")
def register():
    s = db_session()
    payload = request_payload()

    errors = validate_user_payload(payload)
    if errors:
        return validation_failed(errors)
    if get_user_by_email(s, payload.get("email") or ""):
        return fail("User with this email already exists", 409)

    user = create_user(s, payload)
    s.commit()
    return ok(user.to_dict(), "User created successfully", 201)


@bp.post("/login")
@handles_db_errors("Authentication failed")
def login():
    payload = request_payload()
    username = payload_text(payload, "username") or payload_text(payload, "email")
    password = payload_text(payload, "password", strip=False)
    ip = request.remote_addr or "unknown"

    if _check_rate_limit(ip):
        return fail("Too many login attempts. Please wait 5 minutes.", 429)

    if not username or not password:
        return fail("Username and password are required.", 400)

    _record_attempt(ip)

    s = db_session()
    user = authenticate_user(s, username, password)
    if not user:
        current_app.logger.info("auth.login_failed username=%s ip=%s", username, ip)
        return fail("Invalid credentials", 401)

    session["user_id"] = user.id
    _login_attempts().pop(ip, None)
    record_activity(s, user, ActivityType.LOGIN)
    s.commit()
    current_app.logger.info("auth.login user_id=%s", user.id)
    return ok(user.to_auth_dict(), "Authentication successful")


@bp.post("/logout")
@handles_db_errors("Logout failed")
def logout():
    user = getattr(g, "current_user", None)
    if user:
        s = db_session()
        record_activity(s, user, ActivityType.LOGOUT)
        s.commit()
        current_app.logger.info("auth.logout user_id=%s", user.id)
    session.pop("user_id", None)
    return ok(None, "Logged out")


@bp.get("/me")
@login_required
def me():
    return ok(current_user().to_auth_dict())
