import pytest
from werkzeug.datastructures import MultiDict

from app.dashflow.cache import TaggedCache
from app.dashflow.search import FilterCriteria, build_pagination_meta, parse_filter, parse_search_params


def test_parse_search_params_defaults():
    params = parse_search_params(MultiDict(), default_limit=10, max_limit=100)
    assert params.query is None
    assert params.filters == []
    assert params.sort_by is None
    assert params.sort_order == "asc"
    assert (params.page, params.limit) == (1, 10)


def test_parse_search_params_full():
    args = MultiDict(
        [
            ("q", " smith "),
            ("filter", "status:equals:SHIPPED"),
            ("filter", "order_date:gt:2024-01-01T10:00:00"),
            ("sort_by", "order_date"),
            ("sort_order", "DESC"),
            ("page", "3"),
            ("limit", "500"),
        ]
    )
    params = parse_search_params(args, default_limit=10, max_limit=100)
    assert params.query == "smith"
    assert params.filters == [
        FilterCriteria("status", "equals", "SHIPPED"),
        FilterCriteria("order_date", "gt", "2024-01-01T10:00:00"),
    ]
    assert params.sort_order == "desc"
    assert params.page == 3
    assert params.limit == 100


@pytest.mark.parametrize("raw", ["status", "status:equals", ":equals:x", "status:like:x"])
def test_parse_filter_rejects_malformed(raw):
    with pytest.raises(ValueError):
        parse_filter(raw)


def test_pagination_meta():
    assert build_pagination_meta(1, 10, 25) == {
        "current_page": 1,
        "total_pages": 3,
        "total_items": 25,
        "items_per_page": 10,
        "has_next_page": True,
        "has_previous_page": False,
    }
    meta = build_pagination_meta(5, 10, 25)
    assert meta["has_next_page"] is False
    assert meta["has_previous_page"] is True


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_cache_expires_after_ttl():
    clock = FakeClock()
    cache = TaggedCache(clock=clock)
    cache.set("k", [1, 2], ttl=60)
    assert cache.get("k") == (True, [1, 2])

    clock.now += 60
    assert cache.get("k") == (False, None)
    assert len(cache) == 0


def test_cache_get_or_set_and_tags():
    cache = TaggedCache(clock=FakeClock())
    calls = []

    def load():
        calls.append(1)
        return "value"

    assert cache.get_or_set("a", load, ttl=60, tags=("orders",)) == "value"
    assert cache.get_or_set("a", load, ttl=60, tags=("orders",)) == "value"
    assert len(calls) == 1

    cache.set("b", "other", ttl=60, tags=("users",))
    assert cache.invalidate_tag("orders") == 1
    assert cache.get("a") == (False, None)
    assert cache.get("b") == (True, "other")

    cache.get_or_set("c", load, ttl=0)
    assert cache.get("c") == (False, None)
