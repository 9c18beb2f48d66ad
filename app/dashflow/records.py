"""
In-memory records and a generic filter/sort/paginate store.

The ORM models are the system of record; these classes are the lightweight,
DB-free counterparts used for fixtures, previews and tests. ``DataService``
understands the same ``SearchParameters`` as the ORM list endpoints.
"""

from __future__ import annotations

import random
import string
import time
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Generic, TypeVar

from app.dashflow.models import ActivityType, OrderStatus, isoformat, utcnow
from app.dashflow.search import FilterCriteria, FilterOperator, SearchParameters, SortOrder, build_pagination_meta

_ORDER_SUFFIX_ALPHABET = string.digits + string.ascii_uppercase


def generate_order_number() -> str:
    """ORD-<last 8 digits of epoch millis>-<4 random base36 chars>."""
    millis = str(int(time.time() * 1000))[-8:]
    suffix = "".join(random.choices(_ORDER_SUFFIX_ALPHABET, k=4))
    return f"ORD-{millis}-{suffix}"


class BaseRecord(ABC):
    def __init__(self, id: str | None = None, created_at: datetime | None = None, updated_at: datetime | None = None):
        now = utcnow()
        self.id = id or str(uuid.uuid4())
        self.created_at = created_at or now
        self.updated_at = updated_at or now

    @abstractmethod
    def to_dict(self) -> dict[str, Any]:
        ...

    def update_timestamp(self) -> None:
        self.updated_at = utcnow()

    def _base_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id}>"


class UserRecord(BaseRecord):
    def __init__(self, first_name: str, last_name: str, email: str, mobile_number: str, address: str, **kwargs: Any):
        super().__init__(**kwargs)
        self.first_name = first_name
        self.last_name = last_name
        self.email = email
        self.mobile_number = mobile_number
        self.address = address

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def to_dict(self) -> dict[str, Any]:
        return {
            **self._base_dict(),
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "mobile_number": self.mobile_number,
            "address": self.address,
            "full_name": self.full_name,
        }


class OrderRecord(BaseRecord):
    def __init__(self, buyer_name: str, status: str = OrderStatus.PENDING, **kwargs: Any):
        if status not in OrderStatus.ALL:
            raise ValueError(f"Invalid order status: {status}")
        super().__init__(**kwargs)
        self.order_number = generate_order_number()
        self.buyer_name = buyer_name
        self.status = status
        self.order_date = utcnow()

    def to_dict(self) -> dict[str, Any]:
        return {
            **self._base_dict(),
            "order_number": self.order_number,
            "buyer_name": self.buyer_name,
            "status": self.status,
            "order_date": isoformat(self.order_date),
        }


class SessionRecord(BaseRecord):
    """A login/logout activity entry."""

    def __init__(
        self,
        user_id: str,
        activity_type: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
        **kwargs: Any,
    ):
        if activity_type not in ActivityType.ALL:
            raise ValueError(f"Invalid activity type: {activity_type}")
        super().__init__(**kwargs)
        self.user_id = user_id
        self.activity_type = activity_type
        self.ip_address = ip_address
        self.user_agent = user_agent
        self.timestamp = utcnow()

    def to_dict(self) -> dict[str, Any]:
        data = {
            **self._base_dict(),
            "user_id": self.user_id,
            "activity_type": self.activity_type,
            "timestamp": isoformat(self.timestamp),
        }
        if self.ip_address is not None:
            data["ip_address"] = self.ip_address
        if self.user_agent is not None:
            data["user_agent"] = self.user_agent
        return data


T = TypeVar("T", bound=BaseRecord)


def _coerce_to(sample: Any, value: Any) -> Any:
    """Best-effort conversion of a string filter value to the type of ``sample``."""
    if not isinstance(value, str) or isinstance(sample, str) or sample is None:
        return value
    try:
        if isinstance(sample, datetime):
            return datetime.fromisoformat(value)
        if isinstance(sample, bool):
            return value.lower() in ("1", "true", "yes")
        if isinstance(sample, (int, float)):
            return type(sample)(value)
    except ValueError:
        return value
    return value


class DataService(Generic[T]):
    def __init__(self) -> None:
        self._data: list[T] = []

    def add(self, item: T) -> None:
        self._data.append(item)

    def find_by_id(self, id: str) -> T | None:
        return next((item for item in self._data if item.id == id), None)

    def find_all(self) -> list[T]:
        return list(self._data)

    def find_by(self, field: str, value: Any) -> list[T]:
        return [item for item in self._data if getattr(item, field, None) == value]

    def count(self) -> int:
        return len(self._data)

    def clear(self) -> None:
        self._data = []

    def search(self, params: SearchParameters) -> dict[str, Any]:
        """
        Free-text query, then filters, then sort, then paginate.

        Returns the paginated envelope: ``{"success", "data", "meta"}``.
        """
        items = list(self._data)

        if params.query:
            needle = params.query.lower()
            items = [
                item for item in items
                if any(isinstance(v, str) and needle in v.lower() for v in vars(item).values())
            ]

        if params.filters:
            items = [item for item in items if all(self._matches(item, f) for f in params.filters)]

        if params.sort_by:
            items = self._sorted(items, params.sort_by, params.sort_order == SortOrder.DESC)

        start = (params.page - 1) * params.limit
        page_items = items[start:start + params.limit]

        return {
            "success": True,
            "data": page_items,
            "meta": build_pagination_meta(params.page, params.limit, len(items)),
        }

    @staticmethod
    def _sorted(items: list[T], field: str, descending: bool) -> list[T]:
        # Records without the field sort last regardless of direction.
        present = [item for item in items if getattr(item, field, None) is not None]
        missing = [item for item in items if getattr(item, field, None) is None]
        try:
            present.sort(key=lambda item: getattr(item, field), reverse=descending)
        except TypeError:
            raise ValueError(f"Field '{field}' holds values that cannot be compared.") from None
        return present + missing

    @staticmethod
    def _matches(item: T, criteria: FilterCriteria) -> bool:
        item_value = getattr(item, criteria.field, None)
        filter_value = criteria.value
        op = criteria.operator

        if op in FilterOperator.TEXT:
            if not isinstance(item_value, str) or not isinstance(filter_value, str):
                return False
            haystack, needle = item_value.lower(), filter_value.lower()
            if op == FilterOperator.CONTAINS:
                return needle in haystack
            if op == FilterOperator.STARTS_WITH:
                return haystack.startswith(needle)
            return haystack.endswith(needle)

        filter_value = _coerce_to(item_value, filter_value)
        if op == FilterOperator.EQUALS:
            return item_value == filter_value
        try:
            if op == FilterOperator.GREATER_THAN:
                return item_value > filter_value
            if op == FilterOperator.LESS_THAN:
                return item_value < filter_value
        except TypeError:
            return False
        return False
