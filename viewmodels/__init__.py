"""View model package for presentation-safe data shapes."""

from .compare_vm import (
    ActivationEvent,
    CompareBar,
    CompareBarVM,
    CompareRowVM,
    CompareTableVM,
    CompareToggle,
    CompareToggleVM,
    build_compare_table,
)
from .listing_vm import PageLinkVM, PaginationVM, build_pagination

__all__ = [
    "ActivationEvent",
    "CompareBar",
    "CompareBarVM",
    "CompareRowVM",
    "CompareTableVM",
    "CompareToggle",
    "CompareToggleVM",
    "PageLinkVM",
    "PaginationVM",
    "build_compare_table",
    "build_pagination",
]
