from types import SimpleNamespace

from services.compare import CompareTab
from services.compare_storage import MemoryStorage
from viewmodels import ActivationEvent, CompareBar, CompareToggle, build_compare_table
from viewmodels.compare_vm import format_value


def _store():
    store = CompareTab(MemoryStorage()).store()
    store.initialize()
    return store


def test_toggle_icon_only_unselected():
    vm = CompareToggle(_store(), "deck-1").render()
    assert vm.selected is False
    assert vm.title == "Add to compare"
    assert vm.icon == "git-compare"
    assert vm.text is None
    assert vm.variant == "outline"
    assert vm.size == "icon"
    assert vm.to_payload()["aria_pressed"] == "false"


def test_toggle_with_label_selected():
    store = _store()
    store.add("deck-1")
    vm = CompareToggle(store, "deck-1", show_label=True).render()
    assert vm.selected is True
    assert vm.title == "Remove from compare"
    assert vm.icon == "check"
    assert vm.text == "Added"
    assert vm.variant == "secondary"
    assert vm.size == "sm"
    assert vm.to_payload()["aria_pressed"] == "true"


def test_toggle_label_when_unselected():
    assert CompareToggle(_store(), "x", show_label=True).render().text == "Add to Compare"


def test_activation_stops_event_and_toggles():
    store = _store()
    toggle = CompareToggle(store, "deck-1")
    event = ActivationEvent()
    vm = toggle.activate(event)
    assert event.default_prevented and event.propagation_stopped
    assert vm.selected
    assert store.ids == ["deck-1"]
    toggle.activate(ActivationEvent())
    assert store.ids == []


def test_toggle_reflects_changes_made_elsewhere():
    store = _store()
    toggle = CompareToggle(store, "deck-1")
    store.add("deck-1")
    assert toggle.render().selected
    CompareBar(store).clear()
    assert not toggle.render().selected


def test_bar_renders_nothing_when_empty():
    assert CompareBar(_store()).render() is None


def test_bar_payload():
    store = _store()
    store.add("deck-1")
    store.add("ally-2")
    vm = CompareBar(store).render()
    assert vm.count == 2
    assert vm.href == "/compare?ids=deck-1,ally-2"
    assert vm.to_payload() == {
        "count": 2,
        "ids": ["deck-1", "ally-2"],
        "query": "deck-1,ally-2",
        "compare_url": "/compare?ids=deck-1,ally-2",
    }


def test_bar_count_follows_other_tabs():
    storage = MemoryStorage()
    store_a = CompareTab(storage, name="a").store()
    store_b = CompareTab(storage, name="b").store()
    bar_b = CompareBar(store_b)
    store_a.add("deck-1")
    assert bar_b.count == 1
    assert bar_b.render().count == 1
    store_a.clear()
    assert bar_b.count == 0
    assert bar_b.render() is None


def test_format_value_marks_missing():
    assert format_value(None) == "—"
    assert format_value("") == "—"
    assert format_value([]) == "—"
    assert format_value(["a", "b"]) == "a, b"
    assert format_value(2023) == "2023"


def test_build_compare_table_keeps_device_order():
    deck = SimpleNamespace(id="d", name="Deck", manufacturer="Valve", release_year=2022, ram=None)
    ally = SimpleNamespace(id="a", name="Ally", manufacturer="ASUS", release_year=None, ram="16 GB")
    table = build_compare_table(
        [deck, ally],
        [("manufacturer", "Manufacturer"), ("release_year", "Release Year"), ("ram", "RAM")],
    )
    assert table.ids == ["d", "a"]
    assert [(row.label, row.values) for row in table.rows] == [
        ("Manufacturer", ["Valve", "ASUS"]),
        ("Release Year", ["2022", "—"]),
        ("RAM", ["—", "16 GB"]),
    ]
