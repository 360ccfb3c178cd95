"""Aggregate blueprint for Emulators.wtf routes."""

from __future__ import annotations

from .base import views

# Register route modules (import order not critical but keeps sections grouped)
from . import (  # noqa: E402
    admin,      # noqa: F401
    auth,       # noqa: F401
    catalog,    # noqa: F401
    compare,    # noqa: F401
)

__all__ = ["views"]
