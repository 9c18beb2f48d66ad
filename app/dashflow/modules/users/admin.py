from __future__ import annotations

from flask import Blueprint, current_app, g, request

from app.dashflow.auth import login_required
from app.dashflow.db import db_session
from app.dashflow.models import User
from app.dashflow.modules.users.service import (
    FILTERABLE_FIELDS,
    SEARCHABLE_FIELDS,
    create_user,
    delete_user,
    get_user_by_email,
    get_user_by_id,
    list_users,
    update_user,
    validate_user_payload,
    validate_user_update,
)
from app.dashflow.responses import fail, handles_db_errors, ok, paginated, validation_failed
from app.dashflow.search import parse_search_params, apply_search
from app.dashflow.utils import request_payload

bp = Blueprint("users", __name__)


# ---------- List ----------
@bp.get("/users")
@login_required
@handles_db_errors("Failed to fetch users")
def users_list():
    users = list_users(db_session())
    return ok([u.to_dict() for u in users])


@bp.get("/users/search")
@login_required
@handles_db_errors("Failed to search users")
def users_search():
    s = db_session()
    try:
        params = parse_search_params(
            request.args,
            default_limit=current_app.config.get("DEFAULT_PAGE_SIZE", 10),
            max_limit=current_app.config.get("MAX_PAGE_SIZE", 100),
        )
        users, meta = apply_search(
            s.query(User),
            User,
            params,
            searchable=SEARCHABLE_FIELDS,
            filterable=FILTERABLE_FIELDS,
        )
    except ValueError as e:
        return fail(str(e), 400)
    return paginated([u.to_dict() for u in users], meta)


# ---------- New ----------
@bp.post("/users")
@login_required
@handles_db_errors("Failed to create user")
def users_new():
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


# ---------- Detail ----------
@bp.get("/users/<int:user_id>")
@login_required
@handles_db_errors("Failed to fetch user")
def user_detail(user_id: int):
    user = get_user_by_id(db_session(), user_id)
    if not user:
        return fail("User not found", 404)
    return ok(user.to_dict())


# ---------- Update ----------
@bp.patch("/users/<int:user_id>")
@login_required
@handles_db_errors("Failed to update user")
def user_update(user_id: int):
    s = db_session()
    user = get_user_by_id(s, user_id)
    if not user:
        return fail("User not found", 404)

    payload = request_payload()
    errors = validate_user_update(payload)
    if errors:
        return validation_failed(errors)

    update_user(s, user, payload)
    s.commit()
    return ok(user.to_dict(), "User updated successfully")


# ---------- Delete ----------
@bp.delete("/users/<int:user_id>")
@login_required
@handles_db_errors("Failed to delete user")
def user_delete(user_id: int):
    s = db_session()
    user = get_user_by_id(s, user_id)
    if not user:
        return fail("User not found", 404)
    if user.id == g.current_user.id:
        return fail("You cannot delete your own account.", 400)

    delete_user(s, user)
    s.commit()
    return ok(None, "User deleted successfully")
