from __future__ import annotations

from flask import Blueprint, current_app, request

from app.dashflow.auth import login_required
from app.dashflow.cache import invalidate_tag
from app.dashflow.db import db_session
from app.dashflow.modules.orders.service import (
    ORDERS_CACHE_TAG,
    create_order,
    delete_order,
    get_cached_orders,
    get_order_by_id,
    get_order_by_number,
    search_orders,
    update_order_status,
    validate_order_payload,
)
from app.dashflow.responses import fail, handles_db_errors, ok, paginated, validation_failed
from app.dashflow.search import parse_search_params
from app.dashflow.utils import payload_text, request_payload

bp = Blueprint("orders", __name__)


# ---------- List ----------
@bp.get("/orders")
@login_required
@handles_db_errors("Failed to fetch orders")
def orders_list():
    s = db_session()
    orders = get_cached_orders(s, ttl=current_app.config.get("ORDERS_CACHE_TTL", 60))
    return ok(orders)


# ---------- Search ----------
@bp.get("/orders/search")
@login_required
@handles_db_errors("Failed to search orders")
def orders_search():
    s = db_session()
    try:
        params = parse_search_params(
            request.args,
            default_limit=current_app.config.get("DEFAULT_PAGE_SIZE", 10),
            max_limit=current_app.config.get("MAX_PAGE_SIZE", 100),
        )
        orders, meta = search_orders(s, params)
    except ValueError as e:
        return fail(str(e), 400)
    return paginated([o.to_dict() for o in orders], meta)


# ---------- New ----------
@bp.post("/orders")
@login_required
@handles_db_errors("Failed to create order")
def orders_new():
    s = db_session()
    payload = request_payload()

    errors = validate_order_payload(payload)
    if errors:
        return validation_failed(errors)

    order_number = payload_text(payload, "order_number")
    if order_number and get_order_by_number(s, order_number):
        return fail("Order with this order number already exists", 409)

    order = create_order(s, payload)
    s.commit()
    invalidate_tag(ORDERS_CACHE_TAG)
    return ok(order.to_dict(), "Order created successfully", 201)


# ---------- Detail ----------
@bp.get("/orders/<int:order_id>")
@login_required
@handles_db_errors("Failed to fetch order")
def order_detail(order_id: int):
    order = get_order_by_id(db_session(), order_id)
    if not order:
        return fail("Order not found", 404)
    return ok(order.to_dict())


# ---------- Status ----------
@bp.route("/orders/<int:order_id>/status", methods=["PATCH", "POST"])
@login_required
@handles_db_errors("Failed to update order status")
def order_update_status(order_id: int):
    s = db_session()
    order = get_order_by_id(s, order_id)
    if not order:
        return fail("Order not found", 404)

    try:
        update_order_status(s, order, request_payload().get("status") or "")
    except ValueError as e:
        return fail(str(e), 400)
    s.commit()
    invalidate_tag(ORDERS_CACHE_TAG)
    return ok(order.to_dict(), "Order status updated successfully")


# ---------- Delete ----------
@bp.delete("/orders/<int:order_id>")
@login_required
@handles_db_errors("Failed to delete order")
def order_delete(order_id: int):
    s = db_session()
    order = get_order_by_id(s, order_id)
    if not order:
        return fail("Order not found", 404)

    delete_order(s, order)
    s.commit()
    invalidate_tag(ORDERS_CACHE_TAG)
    return ok(None, "Order deleted successfully")
