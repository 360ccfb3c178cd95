"""Compare toggle, compare bar and comparison table view models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Sequence

from services.compare import CompareStore

MISSING_VALUE = "—"


@dataclass(slots=True)
class ActivationEvent:
    """Click/keypress reaching a toggle; records whether it was stopped."""
    default_prevented: bool = False
    propagation_stopped: bool = False

    def prevent_default(self) -> None:
        self.default_prevented = True

    def stop_propagation(self) -> None:
        self.propagation_stopped = True


@dataclass(slots=True)
class CompareToggleVM:
    item_id: str
    selected: bool
    show_label: bool = False

    @property
    def title(self) -> str:
        return "Remove from compare" if self.selected else "Add to compare"

    @property
    def icon(self) -> str:
        return "check" if self.selected else "git-compare"

    @property
    def text(self) -> Optional[str]:
        if not self.show_label:
            return None
        return "Added" if self.selected else "Add to Compare"

    @property
    def variant(self) -> str:
        return "secondary" if self.selected else "outline"

    @property
    def size(self) -> str:
        return "sm" if self.show_label else "icon"

    def to_payload(self) -> dict:
        return {
            "id": self.item_id,
            "selected": self.selected,
            "aria_pressed": "true" if self.selected else "false",
            "title": self.title,
            "icon": self.icon,
            "text": self.text,
            "variant": self.variant,
            "size": self.size,
        }


class CompareToggle:
    """Per-item control; its state is always read from the store, never cached."""

    def __init__(self, store: CompareStore, item_id: Any, *, show_label: bool = False):
        self.store = store
        self.item_id = str(item_id)
        self.show_label = show_label

    def render(self) -> CompareToggleVM:
        return CompareToggleVM(
            item_id=self.item_id,
            selected=self.store.is_selected(self.item_id),
            show_label=self.show_label,
        )

    def activate(self, event: Optional[ActivationEvent] = None) -> CompareToggleVM:
        # Toggles usually sit inside the card's detail link.
        if event is not None:
            event.prevent_default()
            event.stop_propagation()
        self.store.toggle(self.item_id)
        return self.render()


@dataclass(slots=True)
class CompareBarVM:
    count: int
    ids: list[str]
    href: str
    clear_label: str = "Clear compare selection"

    def to_payload(self) -> dict:
        return {
            "count": self.count,
            "ids": list(self.ids),
            "query": ",".join(self.ids),
            "compare_url": self.href,
        }


class CompareBar:
    """Overlay summarising the selection; tracks the store through its change signal."""

    def __init__(self, store: CompareStore):
        self.store = store
        self.count = len(store)
        store.changed.connect(self._on_change)

    def _on_change(self, sender, ids=None, **_extra) -> None:
        self.count = len(ids or [])

    def render(self) -> Optional[CompareBarVM]:
        if not self.count:
            return None
        return CompareBarVM(count=self.count, ids=self.store.ids, href=self.store.compare_url())

    def clear(self) -> None:
        self.store.clear()


@dataclass(slots=True)
class CompareRowVM:
    label: str
    values: list[str] = field(default_factory=list)


@dataclass(slots=True)
class CompareTableVM:
    devices: list[Any] = field(default_factory=list)
    rows: list[CompareRowVM] = field(default_factory=list)

    @property
    def ids(self) -> list[str]:
        return [device.id for device in self.devices]


def format_value(value: Any) -> str:
    if value is None or value == "":
        return MISSING_VALUE
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value) or MISSING_VALUE
    return str(value)


def build_compare_table(devices: Sequence[Any], fields: Iterable[tuple[str, str]]) -> CompareTableVM:
    rows = [
        CompareRowVM(label=label, values=[format_value(getattr(device, attr, None)) for device in devices])
        for attr, label in fields
    ]
    return CompareTableVM(devices=list(devices), rows=rows)
