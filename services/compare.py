"""Handheld compare list: an ordered, de-duplicated selection of device ids.

Each browsing context (a :class:`CompareTab`) owns any number of
:class:`CompareStore` instances. Stores never share in-memory state; they
coordinate through two channels only:

* the durable storage area, whose ``changed`` signal reaches the stores of
  every *other* tab that shares the area (cross-tab sync), and
* the tab's ``updated`` signal, which reaches the other stores mounted in the
  same tab (same-tab sync), since storage notifications skip the writer.

Durable format under ``compare.handhelds`` is a JSON array of id strings.
Older records holding ``[{"id": ...}, ...]`` are still read and are written
back in the canonical form on the next change.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Iterable, List, Optional

from blinker import Signal

from .compare_storage import StorageArea
from .exceptions import StorageError

logger = logging.getLogger(__name__)

STORAGE_KEY = "compare.handhelds"
UPDATE_EVENT = "compare:update"
COMPARE_PATH = "/compare"


def _unique(ids: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(ids))


def decode_selection(raw: Optional[str]) -> List[str]:
    """Parse a durable record into a list of ids; anything unexpected yields ``[]``."""
    if not raw:
        return []
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Ignoring malformed compare record (not JSON)")
        return []
    if not isinstance(parsed, list):
        logger.warning("Ignoring compare record with unexpected shape: %s", type(parsed).__name__)
        return []

    ids: List[str] = []
    for entry in parsed:
        if isinstance(entry, str):
            value = entry
        elif isinstance(entry, dict) and isinstance(entry.get("id"), str):
            value = entry["id"]
        else:
            logger.warning("Ignoring compare record with unexpected entry: %r", entry)
            return []
        value = value.strip()
        if value:
            ids.append(value)
    return _unique(ids)


def encode_selection(ids: Iterable[str]) -> str:
    return json.dumps(list(ids), separators=(",", ":"))


def parse_ids_param(raw: Optional[str]) -> List[str]:
    """Split a ``?ids=a,b`` query value: trim, drop blanks, keep first occurrence."""
    if not raw:
        return []
    return _unique(part.strip() for part in raw.split(",") if part.strip())


def compare_url(ids: Iterable[str]) -> str:
    return f"{COMPARE_PATH}?ids={','.join(ids)}"


class CompareTab:
    """A single browsing context sharing ``storage`` with its sibling tabs."""

    def __init__(self, storage: StorageArea, *, name: str = "tab"):
        self.storage = storage
        self.name = name
        self.updated = Signal(UPDATE_EVENT)

    def store(self, key: str = STORAGE_KEY) -> "CompareStore":
        return CompareStore(self, key=key)

    def __repr__(self) -> str:
        return f"<CompareTab {self.name!r} storage={self.storage.name!r}>"


class CompareStore:
    """Selection state for one consumer, mirrored to the tab's durable storage.

    Reads are lazy: the first access loads the durable record and subscribes
    to both sync channels. Storage failures are logged and never raised; the
    in-memory list then stays authoritative for the rest of the session.
    Subscribe to :attr:`changed` to hear about every change, whether local,
    same-tab or cross-tab; receivers get ``ids=<list>``.
    """

    def __init__(self, tab: CompareTab, *, key: str = STORAGE_KEY):
        self.tab = tab
        self.key = key
        self.changed = Signal("compare-store-changed")
        self._ids: List[str] = []
        self._payload: Optional[str] = None
        self._initialized = False

    # Lifecycle ------------------------------------------------------------
    def initialize(self) -> List[str]:
        if self._initialized:
            return list(self._ids)
        self._ids = self._read()
        self._payload = encode_selection(self._ids)
        self.tab.storage.changed.connect(self._on_storage_changed)
        self.tab.updated.connect(self._on_tab_updated)
        self._initialized = True
        return list(self._ids)

    def close(self) -> None:
        """Stop listening to both sync channels."""
        if not self._initialized:
            return
        self.tab.storage.changed.disconnect(self._on_storage_changed)
        self.tab.updated.disconnect(self._on_tab_updated)
        self._initialized = False

    def sync(self) -> List[str]:
        """Re-read durable storage and adopt it; used where no change signal reaches this store."""
        self.initialize()
        self._adopt(self._read(fallback=self._ids))
        return self.ids

    # Queries --------------------------------------------------------------
    @property
    def ids(self) -> List[str]:
        self.initialize()
        return list(self._ids)

    def __len__(self) -> int:
        return len(self.ids)

    def is_selected(self, item_id: Any) -> bool:
        return _coerce_id(item_id) in self.ids

    def serialize(self) -> str:
        return ",".join(self.ids)

    def compare_url(self) -> str:
        return compare_url(self.ids)

    # Mutations ------------------------------------------------------------
    def add(self, item_id: Any) -> List[str]:
        value = _coerce_id(item_id)
        current = self.ids
        if not value or value in current:
            return current
        return self._commit(current + [value])

    def remove(self, item_id: Any) -> List[str]:
        value = _coerce_id(item_id)
        current = self.ids
        if value not in current:
            return current
        return self._commit([x for x in current if x != value])

    def toggle(self, item_id: Any) -> List[str]:
        if self.is_selected(item_id):
            return self.remove(item_id)
        return self.add(item_id)

    def clear(self) -> List[str]:
        if not self.ids:
            return []
        return self._commit([])

    # Internals ------------------------------------------------------------
    def _read(self, fallback: Optional[List[str]] = None) -> List[str]:
        try:
            raw = self.tab.storage.get_item(self.key)
        except StorageError as exc:
            logger.warning("Compare storage read failed for %s: %s", self.key, exc)
            return list(fallback or [])
        return decode_selection(raw)

    def _commit(self, ids: List[str]) -> List[str]:
        self._ids = _unique(ids)
        payload = encode_selection(self._ids)
        self._payload = payload
        try:
            self.tab.storage.set_item(self.key, payload, source=self.tab)
        except StorageError as exc:
            logger.warning("Compare storage write failed for %s; keeping in-memory selection: %s", self.key, exc)
        snapshot = list(self._ids)
        self.tab.updated.send(self, ids=snapshot)
        self.changed.send(self, ids=snapshot)
        return snapshot

    def _adopt(self, ids: List[str]) -> None:
        self._payload = encode_selection(ids)
        if ids == self._ids:
            return
        self._ids = list(ids)
        self.changed.send(self, ids=list(self._ids))

    def _on_storage_changed(self, sender, key=None, new_value=None, source=None, **_extra) -> None:
        if key != self.key or source is self.tab:
            return
        # Echo of a payload this store already holds; nothing to reload.
        if new_value is not None and new_value == self._payload:
            return
        self._adopt(self._read(fallback=self._ids))

    def _on_tab_updated(self, sender, ids=None, **_extra) -> None:
        if sender is self:
            return
        incoming = _unique(ids) if ids is not None else self._read(fallback=self._ids)
        self._adopt(incoming)


def _coerce_id(item_id: Any) -> str:
    if item_id is None:
        return ""
    return str(item_id).strip()


__all__ = [
    "COMPARE_PATH",
    "STORAGE_KEY",
    "UPDATE_EVENT",
    "CompareStore",
    "CompareTab",
    "compare_url",
    "decode_selection",
    "encode_selection",
    "parse_ids_param",
]
