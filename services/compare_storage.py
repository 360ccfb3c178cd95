"""Durable key/value areas that back visitor compare lists.

A storage area behaves like a browser's ``localStorage`` for one origin:
string keys, string values, synchronous access. Every write that changes a
value fires the area's ``changed`` signal so other browsing contexts sharing
the area can react; the writer passes itself as ``source`` so it can ignore
its own notification, mirroring the platform ``storage`` event which never
fires in the tab that performed the write.
"""
from __future__ import annotations

from typing import Any, Optional

from blinker import Signal

from .exceptions import StorageError, StorageQuotaExceededError


class StorageArea:
    """Base class: subclasses implement ``_read``, ``_write`` and ``_delete``."""

    def __init__(self, name: str = "default"):
        self.name = name
        self.changed = Signal(f"storage-changed:{name}")

    def get_item(self, key: str) -> Optional[str]:
        return self._read(key)

    def set_item(self, key: str, value: str, *, source: Any = None) -> None:
        if not isinstance(value, str):
            raise TypeError("storage values must be strings")
        old_value = self._read(key)
        self._write(key, value)
        if old_value != value:
            self._notify(key, old_value, value, source)

    def remove_item(self, key: str, *, source: Any = None) -> None:
        old_value = self._read(key)
        if old_value is None:
            return
        self._delete(key)
        self._notify(key, old_value, None, source)

    def _notify(self, key: str, old_value: Optional[str], new_value: Optional[str], source: Any) -> None:
        self.changed.send(self, key=key, old_value=old_value, new_value=new_value, source=source)

    def _read(self, key: str) -> Optional[str]:  # pragma: no cover - abstract
        raise NotImplementedError

    def _write(self, key: str, value: str) -> None:  # pragma: no cover - abstract
        raise NotImplementedError

    def _delete(self, key: str) -> None:  # pragma: no cover - abstract
        raise NotImplementedError


class MemoryStorage(StorageArea):
    """In-process storage area, optionally capped to ``quota`` characters.

    Setting ``available`` to False makes every access raise, which is how a
    browser behaves when storage is disabled.
    """

    def __init__(self, name: str = "memory", *, quota: Optional[int] = None):
        super().__init__(name)
        self.quota = quota
        self.available = True
        self._data: dict[str, str] = {}

    def _check_available(self) -> None:
        if not self.available:
            raise StorageError(f"storage area {self.name!r} is unavailable")

    def _read(self, key: str) -> Optional[str]:
        self._check_available()
        return self._data.get(key)

    def _write(self, key: str, value: str) -> None:
        self._check_available()
        if self.quota is not None:
            used = sum(len(k) + len(v) for k, v in self._data.items() if k != key)
            if used + len(key) + len(value) > self.quota:
                raise StorageQuotaExceededError(f"storage area {self.name!r} quota of {self.quota} exceeded")
        self._data[key] = value

    def _delete(self, key: str) -> None:
        self._check_available()
        self._data.pop(key, None)

    def clear(self) -> None:
        """Drop every key, as a user clearing site data would."""
        for key in list(self._data):
            self.remove_item(key)


class SessionStorage(StorageArea):
    """Storage area kept in the visitor's signed session cookie.

    Values live under ``prefix``-ed session keys and travel with the browser,
    so every worker process sees the same list and nothing is evicted on the
    server. ``quota`` caps the characters held under the prefix. Reads never
    touch the session; only a write marks it modified.
    """

    def __init__(self, session, *, prefix: str = "storage:", quota: Optional[int] = None, permanent: bool = True):
        super().__init__("session")
        self.session = session
        self.prefix = prefix
        self.quota = quota
        self.permanent = permanent

    def _session_key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def _read(self, key: str) -> Optional[str]:
        value = self.session.get(self._session_key(key))
        return value if isinstance(value, str) else None

    def _write(self, key: str, value: str) -> None:
        session_key = self._session_key(key)
        if self.quota is not None:
            used = sum(
                len(k) + len(v)
                for k, v in self.session.items()
                if k.startswith(self.prefix) and k != session_key and isinstance(v, str)
            )
            if used + len(session_key) + len(value) > self.quota:
                raise StorageQuotaExceededError(f"session storage quota of {self.quota} exceeded")
        self.session[session_key] = value
        if self.permanent:
            self.session.permanent = True

    def _delete(self, key: str) -> None:
        self.session.pop(self._session_key(key), None)


def stored_items(session, prefix: str = "storage:") -> dict[str, str]:
    """Snapshot of every storage key held in ``session``; used to carry them across a session reset."""
    return {k: v for k, v in session.items() if k.startswith(prefix) and isinstance(v, str)}


__all__ = ["StorageArea", "MemoryStorage", "SessionStorage", "stored_items"]
