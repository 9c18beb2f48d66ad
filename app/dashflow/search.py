"""
Search, filter, sort and paginate.

Shared by the ORM-backed list endpoints (``apply_search``) and the in-memory
``DataService`` in ``app.dashflow.records``. Both speak the same
``SearchParameters`` and produce the same pagination meta.

Request-args grammar (``parse_search_params``):

    ?q=<text>
    &filter=<field>:<operator>:<value>     (repeatable; all must match)
    &sort_by=<field>&sort_order=asc|desc
    &page=<n>&limit=<n>

Operators: equals, contains, starts_with, ends_with, gt, lt.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from sqlalchemy import and_, inspect as sa_inspect, or_
from sqlalchemy.orm import Query
from sqlalchemy.sql.elements import ColumnElement
from werkzeug.datastructures import MultiDict


class FilterOperator:
    EQUALS = "equals"
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    GREATER_THAN = "gt"
    LESS_THAN = "lt"

    ALL = (EQUALS, CONTAINS, STARTS_WITH, ENDS_WITH, GREATER_THAN, LESS_THAN)
    TEXT = (CONTAINS, STARTS_WITH, ENDS_WITH)


class SortOrder:
    ASC = "asc"
    DESC = "desc"

    ALL = (ASC, DESC)


@dataclass(frozen=True)
class FilterCriteria:
    field: str
    operator: str
    value: Any


@dataclass
class SearchParameters:
    query: str | None = None
    filters: list[FilterCriteria] = field(default_factory=list)
    sort_by: str | None = None
    sort_order: str = SortOrder.ASC
    page: int = 1
    limit: int = 10


def build_pagination_meta(page: int, limit: int, total_items: int) -> dict[str, Any]:
    total_pages = math.ceil(total_items / limit) if limit > 0 else 0
    return {
        "current_page": page,
        "total_pages": total_pages,
        "total_items": total_items,
        "items_per_page": limit,
        "has_next_page": page < total_pages,
        "has_previous_page": page > 1,
    }


def _parse_positive_int(raw: str | None, name: str, default: int) -> int:
    raw = (raw or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer.") from None
    if value < 1:
        raise ValueError(f"{name} must be at least 1.")
    return value


def parse_filter(raw: str) -> FilterCriteria:
    parts = raw.split(":", 2)
    if len(parts) != 3 or not parts[0].strip():
        raise ValueError(f"Invalid filter '{raw}'. Expected field:operator:value.")
    field_name, operator, value = parts[0].strip(), parts[1].strip().lower(), parts[2]
    if operator not in FilterOperator.ALL:
        raise ValueError(f"Invalid filter operator '{operator}'. Must be one of: {', '.join(FilterOperator.ALL)}")
    return FilterCriteria(field=field_name, operator=operator, value=value)


def parse_search_params(args: MultiDict, *, default_limit: int = 10, max_limit: int = 100) -> SearchParameters:
    """Build SearchParameters from request args. Raises ValueError on malformed input."""
    sort_order = (args.get("sort_order") or SortOrder.ASC).strip().lower()
    if sort_order not in SortOrder.ALL:
        raise ValueError("sort_order must be 'asc' or 'desc'.")

    limit = _parse_positive_int(args.get("limit"), "limit", default_limit)
    return SearchParameters(
        query=(args.get("q") or args.get("query") or "").strip() or None,
        filters=[parse_filter(raw) for raw in args.getlist("filter")],
        sort_by=(args.get("sort_by") or "").strip() or None,
        sort_order=sort_order,
        page=_parse_positive_int(args.get("page"), "page", 1),
        limit=min(limit, max_limit),
    )


# ---------------------------------------------------------------------------
# ORM side
# ---------------------------------------------------------------------------

def _like_escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def coerce_value(column: Any, value: Any) -> Any:
    """Convert a raw (string) filter value to the column's Python type."""
    if not isinstance(value, str):
        return value
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return value
    raw = value.strip()
    try:
        if python_type is datetime:
            return datetime.fromisoformat(raw)
        if python_type is date:
            return date.fromisoformat(raw)
        if python_type is bool:
            return raw.lower() in ("1", "true", "yes")
        if python_type in (int, float):
            return python_type(raw)
    except ValueError:
        raise ValueError(f"Invalid value '{value}' for field '{column.key}'.") from None
    return value


def build_filter_clause(column: Any, operator: str, value: Any) -> ColumnElement[bool]:
    if operator in FilterOperator.TEXT:
        try:
            is_text = column.type.python_type is str
        except NotImplementedError:
            is_text = False
        if not is_text:
            raise ValueError(f"Operator '{operator}' requires a text field; '{column.key}' is not.")
        needle = _like_escape(str(value))
        if operator == FilterOperator.CONTAINS:
            return column.ilike(f"%{needle}%", escape="\\")
        if operator == FilterOperator.STARTS_WITH:
            return column.ilike(f"{needle}%", escape="\\")
        return column.ilike(f"%{needle}", escape="\\")

    coerced = coerce_value(column, value)
    if operator == FilterOperator.EQUALS:
        return column == coerced
    if operator == FilterOperator.GREATER_THAN:
        return column > coerced
    if operator == FilterOperator.LESS_THAN:
        return column < coerced
    raise ValueError(f"Invalid filter operator '{operator}'.")


def apply_search(
    q: Query,
    model: type,
    params: SearchParameters,
    *,
    searchable: tuple[str, ...],
    filterable: tuple[str, ...] | None = None,
    default_sort: tuple[str, str] = ("created_at", SortOrder.DESC),
) -> tuple[list[Any], dict[str, Any]]:
    """
    Apply free-text query, filters, sort and pagination to ``q``.

    Returns ``(items, meta)``. Unknown filter/sort fields raise ValueError.
    """
    columns = sa_inspect(model).columns
    allowed = set(filterable) if filterable is not None else set(columns.keys())

    def _column(name: str) -> Any:
        if name not in allowed or name not in columns:
            raise ValueError(f"Unknown field '{name}'.")
        return getattr(model, name)

    clauses = [build_filter_clause(_column(f.field), f.operator, f.value) for f in params.filters]
    if clauses:
        q = q.filter(and_(*clauses))

    if params.query:
        needle = f"%{_like_escape(params.query)}%"
        q = q.filter(or_(*[getattr(model, name).ilike(needle, escape="\\") for name in searchable]))

    total_items = q.order_by(None).count()

    if params.sort_by:
        sort_column, sort_order = _column(params.sort_by), params.sort_order
    else:
        sort_column, sort_order = getattr(model, default_sort[0]), default_sort[1]
    ordering = sort_column.desc() if sort_order == SortOrder.DESC else sort_column.asc()
    q = q.order_by(ordering, model.id.desc() if sort_order == SortOrder.DESC else model.id.asc())

    items = q.offset((params.page - 1) * params.limit).limit(params.limit).all()
    return items, build_pagination_meta(params.page, params.limit, total_items)
