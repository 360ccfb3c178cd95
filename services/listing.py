"""Filter/sort/paginate helpers shared by the public list pages."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence

from sqlalchemy import func

from extensions import db

DEFAULT_PAGE_SIZES = (12, 24, 48)
DEFAULT_LIMIT = 12


@dataclass(slots=True)
class ListingPage:
    items: list[Any]
    total: int
    page: int
    limit: int
    sort: str = ""
    search: str = ""
    filters: dict[str, str] = field(default_factory=dict)

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    @property
    def start_item(self) -> int:
        if not self.total:
            return 0
        return (self.page - 1) * self.limit + 1

    @property
    def end_item(self) -> int:
        return min(self.page * self.limit, self.total)

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    def url_args(self, *, page: Optional[int] = None, limit: Optional[int] = None) -> dict[str, Any]:
        """Query args for a link to another page; defaults are left out of the URL."""
        args: dict[str, Any] = {}
        if self.search:
            args["q"] = self.search
        if self.sort:
            args["sort"] = self.sort
        args.update({k: v for k, v in self.filters.items() if v})
        target_limit = self.limit if limit is None else limit
        # Changing the page size always starts over from the first page.
        target_page = 1 if limit is not None else (self.page if page is None else page)
        if target_limit != DEFAULT_LIMIT:
            args["limit"] = target_limit
        if target_page != 1:
            args["page"] = target_page
        return args


def parse_page_args(
    args: Mapping[str, Any],
    *,
    page_sizes: Sequence[int] = DEFAULT_PAGE_SIZES,
    default_limit: int = DEFAULT_LIMIT,
) -> tuple[int, int]:
    """Read ``page``/``limit`` from request args, falling back on bad input."""
    try:
        page = max(int(args.get("page") or 1), 1)
    except (TypeError, ValueError):
        page = 1
    try:
        limit = int(args.get("limit") or default_limit)
    except (TypeError, ValueError):
        limit = default_limit
    if limit not in page_sizes:
        limit = default_limit
    return page, limit


def _order_clause(model, sort: str):
    options = getattr(model, "SORT_OPTIONS", {})
    column_name, direction = options.get(sort) or options.get(model.DEFAULT_SORT) or ("name", "asc")
    column = getattr(model, column_name)
    if column_name == "name":
        column = func.lower(column)
    return column.desc() if direction == "desc" else column.asc()


def build_listing(
    model,
    *,
    search: Optional[str] = None,
    filters: Optional[Mapping[str, Any]] = None,
    sort: Optional[str] = None,
    page: int = 1,
    limit: int = DEFAULT_LIMIT,
    query=None,
) -> ListingPage:
    """Run a paginated catalog query; unknown filters and sort keys are ignored."""
    query = query if query is not None else db.session.query(model)
    search_text = (search or "").strip()
    if search_text:
        query = query.filter(model.name.ilike(f"%{search_text}%"))

    applied: dict[str, str] = {}
    for name in getattr(model, "FILTER_FIELDS", ()):
        value = (filters or {}).get(name)
        if value in (None, ""):
            continue
        query = query.filter(getattr(model, name) == value)
        applied[name] = str(value)

    sort_key = sort if sort in getattr(model, "SORT_OPTIONS", {}) else model.DEFAULT_SORT
    total = query.order_by(None).count()
    page = max(int(page or 1), 1)
    items = (
        query.order_by(_order_clause(model, sort_key), model.id)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return ListingPage(
        items=items,
        total=total,
        page=page,
        limit=limit,
        sort=sort_key if sort_key != model.DEFAULT_SORT else "",
        search=search_text,
        filters=applied,
    )


def distinct_values(model, column_name: str) -> list[str]:
    """Sorted non-empty values of a column, for filter dropdowns."""
    column = getattr(model, column_name)
    rows = db.session.query(column).filter(column.isnot(None)).filter(column != "").distinct().all()
    return sorted((row[0] for row in rows), key=lambda v: str(v).lower())


__all__ = ["ListingPage", "build_listing", "distinct_values", "parse_page_args", "DEFAULT_LIMIT", "DEFAULT_PAGE_SIZES"]
