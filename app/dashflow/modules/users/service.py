from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any

from sqlalchemy import func
from werkzeug.security import check_password_hash, generate_password_hash

from app.dashflow.models import User, utcnow
from app.dashflow.utils import payload_text

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
MOBILE_RE = re.compile(r"^\+?\d{10,15}$")
NAME_RE = re.compile(r"^[A-Za-z][A-Za-z '\-]*$")

UPDATABLE_FIELDS = ("first_name", "last_name", "mobile_number", "address")
SEARCHABLE_FIELDS = ("first_name", "last_name", "email", "mobile_number")
FILTERABLE_FIELDS = ("id", "first_name", "last_name", "email", "mobile_number", "address", "created_at", "updated_at")


def _clean(payload: dict, key: str) -> str:
    return payload_text(payload, key)


def normalize_email(email: Any) -> str:
    return ("" if email is None else str(email)).strip().lower()


def _name_errors(value: str, label: str) -> list[str]:
    if not value:
        return [f"{label} is required."]
    if not 2 <= len(value) <= 50:
        return [f"{label} must be between 2 and 50 characters."]
    if not NAME_RE.match(value):
        return [f"{label} may only contain letters, spaces, hyphens and apostrophes."]
    return []


def _mobile_errors(value: str) -> list[str]:
    if not value:
        return ["Mobile number is required."]
    if not MOBILE_RE.match(value):
        return ["Mobile number must be 10-15 digits, optionally prefixed with +."]
    return []


def _address_errors(value: str) -> list[str]:
    if not value:
        return ["Address is required."]
    if not 5 <= len(value) <= 200:
        return ["Address must be between 5 and 200 characters."]
    return []


def password_errors(password: str, confirm: str | None = None) -> list[str]:
    errors = []
    if not password:
        return ["Password is required."]
    if len(password) < 8:
        errors.append("Password must be at least 8 characters.")
    if not (re.search(r"[a-z]", password) and re.search(r"[A-Z]", password) and re.search(r"\d", password)):
        errors.append("Password must contain an uppercase letter, a lowercase letter and a digit.")
    if confirm is not None and password != confirm:
        errors.append("Passwords do not match.")
    return errors


def validate_user_payload(payload: dict) -> list[str]:
    """Validate a registration/creation payload. Returns list of errors."""
    errors: list[str] = []
    errors += _name_errors(_clean(payload, "first_name"), "First name")
    errors += _name_errors(_clean(payload, "last_name"), "Last name")

    email = normalize_email(payload.get("email"))
    if not email:
        errors.append("Email is required.")
    elif not EMAIL_RE.match(email):
        errors.append("Invalid email format.")

    errors += _mobile_errors(_clean(payload, "mobile_number"))
    errors += _address_errors(_clean(payload, "address"))

    confirm = None
    if payload.get("confirm_password") is not None:
        confirm = payload_text(payload, "confirm_password", strip=False)
    errors += password_errors(payload_text(payload, "password", strip=False), confirm)
    return errors


def validate_user_update(payload: dict) -> list[str]:
    """Validate a partial update. Only the fields present are checked."""
    if "email" in payload:
        return ["Email cannot be changed."]
    unknown = sorted(set(payload) - set(UPDATABLE_FIELDS))
    if unknown:
        return [f"Unknown field(s): {', '.join(unknown)}"]
    if not payload:
        return ["No fields to update."]

    errors: list[str] = []
    if "first_name" in payload:
        errors += _name_errors(_clean(payload, "first_name"), "First name")
    if "last_name" in payload:
        errors += _name_errors(_clean(payload, "last_name"), "Last name")
    if "mobile_number" in payload:
        errors += _mobile_errors(_clean(payload, "mobile_number"))
    if "address" in payload:
        errors += _address_errors(_clean(payload, "address"))
    return errors


def get_user_by_id(s: "Session", user_id: int) -> User | None:
    return s.get(User, user_id)


def get_user_by_email(s: "Session", email: str) -> User | None:
    return s.query(User).filter(User.email == normalize_email(email)).one_or_none()


def find_user_by_username(s: "Session", username: str) -> User | None:
    """Resolve a login identifier: email (case-insensitive) or mobile number."""
    username = (username or "").strip()
    if not username:
        return None
    if "@" in username:
        return get_user_by_email(s, username)
    return s.query(User).filter(User.mobile_number == username).order_by(User.id.asc()).first()


def list_users(s: "Session") -> list[User]:
    return s.query(User).order_by(User.created_at.desc(), User.id.desc()).all()


def count_users(s: "Session") -> int:
    return s.query(func.count(User.id)).scalar() or 0


def create_user(s: "Session", payload: dict) -> User:
    """Create a user from a validated payload. Caller checks for duplicate email."""
    user = User(
        first_name=_clean(payload, "first_name"),
        last_name=_clean(payload, "last_name"),
        email=normalize_email(payload.get("email")),
        password_hash=generate_password_hash(payload_text(payload, "password", strip=False)),
        mobile_number=_clean(payload, "mobile_number"),
        address=_clean(payload, "address"),
        is_active=True,
    )
    s.add(user)
    s.flush()
    logger.info("user.create id=%s email=%s", user.id, user.email)
    return user


def update_user(s: "Session", user: User, payload: dict) -> dict[str, Any]:
    """Apply a validated partial update. Returns the changes made."""
    changes: dict[str, Any] = {}
    for key in UPDATABLE_FIELDS:
        if key not in payload:
            continue
        new_value = _clean(payload, key)
        old_value = getattr(user, key)
        if new_value != old_value:
            changes[key] = {"old": old_value, "new": new_value}
            setattr(user, key, new_value)
    if changes:
        user.updated_at = utcnow()
        s.flush()
    logger.info("user.update id=%s fields=%s", user.id, sorted(changes))
    return changes


def delete_user(s: "Session", user: User) -> None:
    user_id = user.id
    s.delete(user)
    s.flush()
    logger.info("user.delete id=%s", user_id)


def authenticate_user(s: "Session", username: str, password: str) -> User | None:
    user = find_user_by_username(s, username)
    if not user or not user.is_active or not password:
        return None
    if not check_password_hash(user.password_hash, password):
        return None
    return user
