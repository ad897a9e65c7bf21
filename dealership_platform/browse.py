"""Filtering, sorting and pagination over listing/inquiry snapshots.

Everything here is a pure function over rows already fetched from the store,
so the browse endpoint and the dashboard tables share one implementation.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from dealership_platform.util.time import parse_date, parse_iso

BROWSE_PAGE_SIZE = 12
DASHBOARD_PAGE_SIZE = 10

ALL = "all"
SORT_KEYS = (
    "newest",
    "oldest",
    "price-low",
    "price-high",
    "mileage-low",
    "mileage-high",
    "year-new",
    "year-old",
)

# Exact-match filters: filter attribute -> car column.
_EXACT_FILTERS = {
    "brand": "brand",
    "transmission": "transmission",
    "fuel_type": "fuel_type",
    "condition": "condition",
    "drive_type": "drive_type",
    "status": "status",
}


def _is_unset(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        v = value.strip()
        return v == "" or v.lower() == ALL
    return False


def _parse_number(name: str, value: Any) -> Optional[float]:
    if _is_unset(value):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid value for filter: {name}")


@dataclass(frozen=True)
class BrowseFilters:
    search: str = ""
    brand: str = ALL
    min_price: Optional[str] = None
    max_price: Optional[str] = None
    year: str = ALL
    transmission: str = ALL
    fuel_type: str = ALL
    condition: str = ALL
    drive_type: str = ALL
    status: str = ALL
    sort_by: str = "newest"

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "BrowseFilters":
        """Build from query parameters; unknown keys are ignored."""
        names = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in names and v is not None}
        return cls(**kwargs)


@dataclass
class Page:
    items: List[Any] = field(default_factory=list)
    page: int = 1
    page_size: int = BROWSE_PAGE_SIZE
    total: int = 0
    total_pages: int = 0


def _num(car: Mapping[str, Any], key: str) -> float:
    v = car.get(key)
    return float(v) if v is not None else 0.0


def _lower(value: Any) -> str:
    return str(value).lower() if value is not None else ""


def filter_cars(cars: Sequence[Mapping[str, Any]], filters: BrowseFilters) -> List[Mapping[str, Any]]:
    """Return the cars matching every active filter, in input order."""
    result = list(cars)

    if not _is_unset(filters.search):
        needle = filters.search.strip().lower()
        result = [
            c
            for c in result
            if needle in _lower(c.get("brand")) or needle in _lower(c.get("model")) or needle in _lower(c.get("stock_number"))
        ]

    for attr, column in _EXACT_FILTERS.items():
        wanted = getattr(filters, attr)
        if not _is_unset(wanted):
            result = [c for c in result if c.get(column) == wanted]

    lo = _parse_number("min_price", filters.min_price)
    if lo is not None:
        result = [c for c in result if c.get("price") is not None and float(c["price"]) >= lo]
    hi = _parse_number("max_price", filters.max_price)
    if hi is not None:
        result = [c for c in result if c.get("price") is not None and float(c["price"]) <= hi]

    if not _is_unset(filters.year):
        try:
            year = int(str(filters.year).strip())
        except ValueError:
            raise ValueError("Invalid value for filter: year")
        result = [c for c in result if c.get("year") is not None and int(c["year"]) == year]

    return result


_SORTS: Dict[str, Callable[[List[Mapping[str, Any]]], List[Mapping[str, Any]]]] = {
    "newest": lambda cars: list(cars),
    "oldest": lambda cars: list(reversed(cars)),
    "price-low": lambda cars: sorted(cars, key=lambda c: _num(c, "price")),
    "price-high": lambda cars: sorted(cars, key=lambda c: _num(c, "price"), reverse=True),
    "mileage-low": lambda cars: sorted(cars, key=lambda c: _num(c, "mileage")),
    "mileage-high": lambda cars: sorted(cars, key=lambda c: _num(c, "mileage"), reverse=True),
    "year-new": lambda cars: sorted(cars, key=lambda c: _num(c, "year"), reverse=True),
    "year-old": lambda cars: sorted(cars, key=lambda c: _num(c, "year")),
}


def sort_cars(cars: Sequence[Mapping[str, Any]], sort_by: str) -> List[Mapping[str, Any]]:
    """Stable sort. The input is expected in store order (created_at desc)."""
    fn = _SORTS.get(sort_by or "newest")
    if fn is None:
        raise ValueError(f"Invalid sort option: {sort_by}")
    return fn(list(cars))


def paginate(items: Sequence[Any], page: int, page_size: int) -> Page:
    """1-based pages; out-of-range pages come back empty."""
    if page_size <= 0:
        raise ValueError("page_size must be positive")
    total = len(items)
    total_pages = math.ceil(total / page_size) if total else 0
    page = int(page)
    if page < 1:
        chunk: List[Any] = []
    else:
        start = (page - 1) * page_size
        chunk = list(items[start:start + page_size])
    return Page(items=chunk, page=page, page_size=page_size, total=total, total_pages=total_pages)


def _distinct_sorted(cars: Sequence[Mapping[str, Any]], key: str) -> List[Any]:
    return sorted({c.get(key) for c in cars if not _is_blank_value(c.get(key))})


def _is_blank_value(v: Any) -> bool:
    return v is None or (isinstance(v, str) and not v.strip())


def facets(cars: Sequence[Mapping[str, Any]]) -> Dict[str, List[Any]]:
    """Choices for the browse filter controls, computed from the unfiltered rows."""
    return {
        "brands": _distinct_sorted(cars, "brand"),
        "years": sorted({int(c["year"]) for c in cars if c.get("year") is not None}, reverse=True),
        "transmissions": _distinct_sorted(cars, "transmission"),
        "fuel_types": _distinct_sorted(cars, "fuel_type"),
        "conditions": _distinct_sorted(cars, "condition"),
        "drive_types": _distinct_sorted(cars, "drive_type"),
        "statuses": _distinct_sorted(cars, "status"),
    }


def count_active_filters(filters: BrowseFilters) -> int:
    # search and sort_by are not counted; a price range counts once
    count = sum(1 for attr in _EXACT_FILTERS if not _is_unset(getattr(filters, attr)))
    if not _is_unset(filters.year):
        count += 1
    if not _is_unset(filters.min_price) or not _is_unset(filters.max_price):
        count += 1
    return count


def filter_listed_cars(
    cars: Sequence[Mapping[str, Any]],
    search: Optional[str] = None,
    status: Optional[str] = None,
) -> List[Mapping[str, Any]]:
    """Dashboard listing table: search over brand/model/stock number/year, plus status."""
    result = list(cars)
    if not _is_unset(search):
        needle = search.strip().lower()
        result = [
            c
            for c in result
            if needle in _lower(c.get("brand"))
            or needle in _lower(c.get("model"))
            or needle in _lower(c.get("stock_number"))
            or needle in _lower(c.get("year"))
        ]
    if not _is_unset(status):
        result = [c for c in result if c.get("status") == status]
    return result


def filter_inquiries(
    inquiries: Sequence[Mapping[str, Any]],
    search: Optional[str] = None,
    status: Optional[str] = None,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
) -> List[Mapping[str, Any]]:
    """Dashboard inquiry table.

    The date bounds are whole days (YYYY-MM-DD) compared against the UTC date
    of `created_at`, both ends inclusive.
    """
    start = parse_date(date_from) if not _is_unset(date_from) else None
    end = parse_date(date_to) if not _is_unset(date_to) else None
    if not _is_unset(date_from) and start is None:
        raise ValueError("Invalid value for filter: date_from")
    if not _is_unset(date_to) and end is None:
        raise ValueError("Invalid value for filter: date_to")

    needle = search.strip().lower() if not _is_unset(search) else None

    out: List[Mapping[str, Any]] = []
    for inq in inquiries:
        if needle is not None:
            car = inq.get("car") or {}
            haystack = (
                inq.get("name"),
                inq.get("email"),
                inq.get("city"),
                car.get("brand"),
                car.get("model"),
            )
            if not any(needle in _lower(v) for v in haystack):
                continue
        if not _is_unset(status) and inq.get("status") != status:
            continue
        if start is not None or end is not None:
            created = parse_iso(inq.get("created_at"))
            if created is None:
                continue
            day = created.date()
            if start is not None and day < start:
                continue
            if end is not None and day > end:
                continue
        out.append(inq)
    return out
