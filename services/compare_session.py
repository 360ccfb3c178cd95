"""Per-request compare store bound to the visitor's session-backed storage area."""
from __future__ import annotations

from flask import current_app, g, session

from .compare import CompareStore, CompareTab
from .compare_storage import SessionStorage, stored_items

STORAGE_PREFIX = "storage:"


def session_storage() -> SessionStorage:
    return SessionStorage(session, prefix=STORAGE_PREFIX, quota=current_app.config.get("COMPARE_SESSION_QUOTA"))


def preserved_session_items() -> dict[str, str]:
    """Compare storage entries to restore after the session is cleared (e.g. on sign-out)."""
    return stored_items(session, STORAGE_PREFIX)


def get_compare_store() -> CompareStore:
    """One store per request; every request acts as its own tab over the visitor's storage.

    Building the store only reads the session, so anonymous page views that
    never touch the compare list do not get a session cookie from it.
    """
    store = getattr(g, "compare_store", None)
    if store is None:
        tab = CompareTab(session_storage(), name=getattr(g, "request_id", "request"))
        store = tab.store()
        store.initialize()
        g.compare_store = store
    return store
