from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from sqlalchemy import func

from app.dashflow.cache import get_cache
from app.dashflow.models import OrderStatus, utcnow
from app.dashflow.modules.orders.models import Order
from app.dashflow.records import generate_order_number
from app.dashflow.search import SearchParameters, SortOrder, apply_search
from app.dashflow.utils import payload_text

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

ORDERS_CACHE_TAG = "orders"
ALL_ORDERS_CACHE_KEY = "all-orders"

SEARCHABLE_FIELDS = ("order_number", "buyer_name")
FILTERABLE_FIELDS = ("id", "order_number", "buyer_name", "status", "order_date", "created_at", "updated_at")


def parse_order_date(raw: Any) -> datetime | None:
    """Parse an ISO date or datetime string."""
    if raw is None or isinstance(raw, datetime):
        return raw
    raw = str(raw).strip()
    if not raw:
        return None
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    parsed = datetime.fromisoformat(raw)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def normalize_status(raw: Any) -> str:
    return (str(raw or "")).strip().upper()


def validate_order_payload(payload: dict) -> list[str]:
    """Validate order creation payload. Returns list of errors."""
    errors = []
    buyer_name = payload_text(payload, "buyer_name")
    if not buyer_name:
        errors.append("Buyer name is required.")
    elif len(buyer_name) > 255:
        errors.append("Buyer name must be at most 255 characters.")

    order_number = payload_text(payload, "order_number")
    if len(order_number) > 64:
        errors.append("Order number must be at most 64 characters.")

    status = normalize_status(payload.get("status"))
    if status and status not in OrderStatus.ALL:
        errors.append(f"Invalid status. Must be one of: {', '.join(OrderStatus.ALL)}")

    try:
        parse_order_date(payload.get("order_date"))
    except ValueError:
        errors.append("Order date must be an ISO-8601 date or datetime.")
    return errors


def get_order_by_id(s: "Session", order_id: int) -> Order | None:
    return s.get(Order, order_id)


def get_order_by_number(s: "Session", order_number: str) -> Order | None:
    return s.query(Order).filter(Order.order_number == order_number.strip()).one_or_none()


def create_order(s: "Session", payload: dict) -> Order:
    """Create an order from a validated payload. Caller checks for duplicate order numbers."""
    order = Order(
        order_number=payload_text(payload, "order_number") or generate_order_number(),
        buyer_name=payload_text(payload, "buyer_name"),
        status=normalize_status(payload.get("status")) or OrderStatus.PENDING,
        order_date=parse_order_date(payload.get("order_date")) or utcnow(),
    )
    s.add(order)
    s.flush()
    logger.info("order.create id=%s number=%s", order.id, order.order_number)
    return order


def list_orders(s: "Session") -> list[Order]:
    return s.query(Order).order_by(Order.created_at.desc(), Order.id.desc()).all()


def get_cached_orders(s: "Session", ttl: float) -> list[dict[str, Any]]:
    """Serialized full order list, cached under the ``orders`` tag."""
    return get_cache().get_or_set(
        ALL_ORDERS_CACHE_KEY,
        lambda: [o.to_dict() for o in list_orders(s)],
        ttl=ttl,
        tags=(ORDERS_CACHE_TAG,),
    )


def search_orders(s: "Session", params: SearchParameters) -> tuple[list[Order], dict[str, Any]]:
    return apply_search(
        s.query(Order),
        Order,
        params,
        searchable=SEARCHABLE_FIELDS,
        filterable=FILTERABLE_FIELDS,
        default_sort=("created_at", SortOrder.DESC),
    )


def update_order_status(s: "Session", order: Order, status: str) -> Order:
    status = normalize_status(status)
    if status not in OrderStatus.ALL:
        raise ValueError(f"Invalid status. Must be one of: {', '.join(OrderStatus.ALL)}")
    old_status = order.status
    order.status = status
    order.updated_at = utcnow()
    s.flush()
    logger.info("order.status id=%s %s -> %s", order.id, old_status, status)
    return order


def delete_order(s: "Session", order: Order) -> None:
    order_id = order.id
    s.delete(order)
    s.flush()
    logger.info("order.delete id=%s", order_id)


def count_orders_by_status(s: "Session") -> dict[str, int]:
    counts = {status: 0 for status in OrderStatus.ALL}
    for status, n in s.query(Order.status, func.count(Order.id)).group_by(Order.status).all():
        counts[status] = n
    return counts
