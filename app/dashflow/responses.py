"""
Uniform JSON envelope for every endpoint.

    {"success": true,  "data": ..., "message": "..."}
    {"success": false, "error": "..."}
    {"success": true,  "data": [...], "meta": {...}}   # paginated
"""

from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import current_app, g, jsonify
from flask.typing import ResponseReturnValue
from sqlalchemy.exc import SQLAlchemyError

from app.dashflow.db import db_session


def ok(data: Any = None, message: str | None = None, status: int = 200) -> ResponseReturnValue:
    body: dict[str, Any] = {"success": True, "data": data}
    if message:
        body["message"] = message
    return jsonify(body), status


def fail(error: str, status: int = 400, **extra: Any) -> ResponseReturnValue:
    body: dict[str, Any] = {"success": False, "error": error}
    body.update(extra)
    return jsonify(body), status


def validation_failed(errors: list[str]) -> ResponseReturnValue:
    return fail(errors[0], 400, errors=errors)


def paginated(items: list[Any], meta: dict[str, Any]) -> ResponseReturnValue:
    return jsonify({"success": True, "data": items, "meta": meta}), 200


def handles_db_errors(message: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Map ORM failures inside an endpoint to ``fail(message, 500)``.

    The request session is rolled back and the stack trace logged with the
    request id, so the client only ever sees the generic message.
    """

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            try:
                return fn(*args, **kwargs)
            except SQLAlchemyError:
                db_session().rollback()
                current_app.logger.exception("%s (request_id=%s)", message, getattr(g, "request_id", None))
                return fail(message, 500)

        return wrapped

    return decorator
