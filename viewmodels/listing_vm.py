"""Pagination view models for the catalog list pages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional

from services.listing import DEFAULT_PAGE_SIZES, ListingPage


@dataclass(slots=True)
class PageLinkVM:
    label: str
    href: str
    current: bool = False


@dataclass(slots=True)
class PaginationVM:
    summary: str
    prev_href: Optional[str] = None
    next_href: Optional[str] = None
    pages: list[PageLinkVM] = field(default_factory=list)
    sizes: list[PageLinkVM] = field(default_factory=list)


def build_pagination(
    listing: ListingPage,
    make_url: Callable[..., str],
    *,
    window: int = 2,
    page_sizes=DEFAULT_PAGE_SIZES,
) -> PaginationVM:
    """``make_url(**args)`` turns query args into an href (usually a bound ``url_for``)."""
    if listing.total:
        summary = f"Showing {listing.start_item}-{listing.end_item} of {listing.total}"
    else:
        summary = "No results"
    first = max(listing.page - window, 1)
    last = min(listing.page + window, listing.total_pages)
    pages = [
        PageLinkVM(label=str(n), href=make_url(**listing.url_args(page=n)), current=n == listing.page)
        for n in range(first, last + 1)
    ]
    sizes = [
        PageLinkVM(label=str(size), href=make_url(**listing.url_args(limit=size)), current=size == listing.limit)
        for size in page_sizes
    ]
    return PaginationVM(
        summary=summary,
        prev_href=make_url(**listing.url_args(page=listing.page - 1)) if listing.has_prev else None,
        next_href=make_url(**listing.url_args(page=listing.page + 1)) if listing.has_next else None,
        pages=pages,
        sizes=sizes,
    )
