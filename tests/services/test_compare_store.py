import json

import pytest

from services.compare import (
    STORAGE_KEY,
    CompareTab,
    compare_url,
    decode_selection,
    encode_selection,
    parse_ids_param,
)
from services.compare_storage import MemoryStorage
from viewmodels import CompareBar


@pytest.fixture
def storage():
    return MemoryStorage("origin")


@pytest.fixture
def tab(storage):
    return CompareTab(storage, name="tab-a")


@pytest.fixture
def store(tab):
    store = tab.store()
    store.initialize()
    return store


def _stored(storage):
    return json.loads(storage.get_item(STORAGE_KEY))


def test_initialize_empty_storage(store):
    assert store.ids == []
    assert store.serialize() == ""
    assert len(store) == 0


def test_repeated_initialize_returns_snapshot(storage, tab):
    storage.set_item(STORAGE_KEY, '["a","b"]')
    store = tab.store()
    assert store.initialize() == ["a", "b"]
    assert store.initialize() == ["a", "b"]
    assert store.ids == ["a", "b"]
    store.add("c")
    assert store.initialize() == ["a", "b", "c"]


def test_add_is_idempotent(store, storage):
    store.add("deck-1")
    once = store.ids
    store.add("deck-1")
    assert store.ids == once == ["deck-1"]
    assert _stored(storage) == ["deck-1"]


def test_add_preserves_insertion_order(store):
    for item in ("c", "a", "b"):
        store.add(item)
    assert store.ids == ["c", "a", "b"]
    assert store.serialize() == "c,a,b"


def test_remove_missing_id_is_noop(store, storage):
    store.add("deck-1")
    writes = []
    storage.changed.connect(lambda sender, **kw: writes.append(kw), weak=False)
    store.remove("ally-2")
    assert store.ids == ["deck-1"]
    assert writes == []


def test_toggle_twice_restores_original(store):
    store.add("a")
    store.add("b")
    before = store.ids
    store.toggle("c")
    store.toggle("c")
    assert store.ids == before
    store.toggle("a")
    store.toggle("a")
    # Re-added ids land at the end.
    assert sorted(store.ids) == sorted(before)


def test_no_duplicates_after_mixed_operations(store):
    for item in ["a", "b", "a", "c", "b", "a"]:
        store.add(item)
        store.toggle(item)
        store.toggle(item)
    assert len(store.ids) == len(set(store.ids))


def test_ids_are_coerced_to_trimmed_strings(store):
    store.add(42)
    store.add(" 42 ")
    store.add("")
    store.add(None)
    assert store.ids == ["42"]
    assert store.is_selected(42)


def test_ids_property_returns_copy(store):
    store.add("a")
    snapshot = store.ids
    snapshot.append("b")
    assert store.ids == ["a"]


def test_clear_empties_storage(store, storage):
    store.add("a")
    store.clear()
    assert store.ids == []
    assert _stored(storage) == []


def test_compare_url_uses_ids_query(store):
    store.add("deck-1")
    store.add("ally-2")
    assert store.compare_url() == "/compare?ids=deck-1,ally-2"
    assert compare_url([]) == "/compare?ids="


def test_initialize_reads_canonical_record(storage, tab):
    storage.set_item(STORAGE_KEY, '["x1","x2"]')
    assert tab.store().initialize() == ["x1", "x2"]


def test_initialize_reads_legacy_record(storage, tab):
    storage.set_item(STORAGE_KEY, '[{"id":"x1"},{"id":"x2"}]')
    store = tab.store()
    assert store.initialize() == ["x1", "x2"]
    store.add("x3")
    # Next write uses the canonical form.
    assert _stored(storage) == ["x1", "x2", "x3"]


def test_initialize_malformed_record_yields_empty(storage, tab, caplog):
    storage.set_item(STORAGE_KEY, "not json")
    with caplog.at_level("WARNING"):
        assert tab.store().initialize() == []
    assert "malformed" in caplog.text


@pytest.mark.parametrize(
    "raw",
    [
        '{"id": "x1"}',
        '"x1"',
        '[1, 2]',
        '[{"name": "x1"}]',
        '["x1", {"id": 3}]',
    ],
)
def test_decode_rejects_unexpected_shapes(raw):
    assert decode_selection(raw) == []


def test_decode_drops_blanks_and_duplicates():
    assert decode_selection('["a", " ", "b", "a", {"id": "b"}, " c "]') == ["a", "b", "c"]
    assert decode_selection(None) == []
    assert decode_selection("") == []


def test_encode_is_compact_json():
    assert encode_selection(["a", "b"]) == '["a","b"]'


def test_parse_ids_param_trims_and_dedupes():
    assert parse_ids_param(" a, b,,a ,c ") == ["a", "b", "c"]
    assert parse_ids_param("") == []
    assert parse_ids_param(None) == []


def test_unavailable_storage_keeps_memory_state(storage, tab, caplog):
    store = tab.store()
    storage.available = False
    with caplog.at_level("WARNING"):
        assert store.initialize() == []
        store.add("deck-1")
    assert store.ids == ["deck-1"]
    assert "write failed" in caplog.text


def test_quota_exceeded_is_logged_not_raised(caplog):
    storage = MemoryStorage("tiny", quota=len(STORAGE_KEY) + 10)
    store = CompareTab(storage).store()
    with caplog.at_level("WARNING"):
        store.add("abc")
        store.add("a-much-longer-identifier")
    assert store.ids == ["abc", "a-much-longer-identifier"]
    assert _stored(storage) == ["abc"]
    assert "quota" in caplog.text


def test_cross_tab_add_reaches_other_tab(storage):
    tab_a = CompareTab(storage, name="a")
    tab_b = CompareTab(storage, name="b")
    store_a = tab_a.store()
    store_b = tab_b.store()
    store_a.initialize()
    store_b.initialize()

    writes = []
    storage.changed.connect(lambda sender, **kw: writes.append(kw["source"]), weak=False)
    store_a.add("deck-1")

    assert _stored(storage) == ["deck-1"]
    assert store_b.ids == ["deck-1"]
    # Tab B adopted the change without writing back.
    assert writes == [tab_a]


def test_cross_tab_clear_reaches_other_tab(storage):
    store_a = CompareTab(storage, name="a").store()
    store_b = CompareTab(storage, name="b").store()
    store_a.add("deck-1")
    store_b.initialize()
    assert store_b.ids == ["deck-1"]
    store_b.clear()
    assert store_a.ids == []


def test_external_storage_wipe_resets_stores(storage, store):
    store.add("deck-1")
    storage.clear()
    assert store.ids == []


def test_writer_ignores_its_own_storage_notification(storage, tab, store):
    events = []
    store.changed.connect(lambda sender, **kw: events.append(kw["ids"]), weak=False)
    store.add("deck-1")
    assert events == [["deck-1"]]


def test_echo_of_current_payload_does_not_reload(storage, store, monkeypatch):
    store.add("deck-1")
    reads = []
    original_get = storage.get_item
    monkeypatch.setattr(storage, "get_item", lambda key: reads.append(key) or original_get(key))
    other = CompareTab(storage, name="other")
    # Another tab reports the payload this store already holds.
    storage.changed.send(storage, key=STORAGE_KEY, old_value=None, new_value='["deck-1"]', source=other)
    assert reads == []
    assert store.ids == ["deck-1"]


def test_same_tab_stores_stay_in_sync(tab):
    first = tab.store()
    second = tab.store()
    first.initialize()
    second.initialize()
    first.add("deck-1")
    assert second.ids == ["deck-1"]
    second.toggle("deck-1")
    assert first.ids == []


def test_closed_store_stops_listening(storage):
    store_a = CompareTab(storage, name="a").store()
    store_b = CompareTab(storage, name="b").store()
    store_b.initialize()
    store_b.close()
    store_a.add("deck-1")
    assert store_b._ids == []
    # Re-subscribes and re-reads on the next access.
    assert store_b.sync() == ["deck-1"]


def test_sync_adopts_storage_written_elsewhere(storage, store):
    storage.set_item(STORAGE_KEY, '["from-elsewhere"]', source=object())
    store.close()
    storage.set_item(STORAGE_KEY, '["later"]', source=object())
    assert store.sync() == ["later"]


def test_basic_flow_with_compare_bar(store):
    bar = CompareBar(store)
    assert bar.render() is None

    store.toggle("deck-1")
    assert store.ids == ["deck-1"]
    assert bar.count == 1
    assert bar.render().count == 1

    store.toggle("ally-2")
    assert store.ids == ["deck-1", "ally-2"]
    assert bar.count == 2

    store.toggle("deck-1")
    assert store.ids == ["ally-2"]

    bar.clear()
    assert store.ids == []
    assert bar.count == 0
    assert bar.render() is None
