import json
from dataclasses import replace

import pytest

from plugins.calculators.core import (
    CalculatorImportError,
    CalculatorNotFoundError,
    CalculatorStore,
    DuplicateCalculatorError,
    export_calculator,
)


def test_add_stamps_timestamps_and_persists(tmp_path, ohms_law):
    path = tmp_path / "store" / "calculators.json"
    store = CalculatorStore(path)
    stored = store.add(ohms_law)
    assert stored.created_at and stored.updated_at

    saved = json.loads(path.read_text(encoding="utf-8"))
    assert [item["id"] for item in saved] == ["ohms-law"]
    assert not path.with_suffix(".json.tmp").exists()

    reopened = CalculatorStore(path)
    assert reopened.load() == [stored]


def test_memory_store_never_touches_disk(tmp_path, ohms_law):
    store = CalculatorStore()
    store.add(ohms_law)
    assert store.load()[0].id == "ohms-law"
    assert list(tmp_path.iterdir()) == []


def test_add_rejects_duplicate_ids(ohms_law):
    store = CalculatorStore()
    store.add(ohms_law)
    with pytest.raises(DuplicateCalculatorError):
        store.add(ohms_law)


def test_update_keeps_creation_time(ohms_law):
    store = CalculatorStore()
    original = store.add(replace(ohms_law, created_at="2024-01-01T00:00:00+00:00"))
    updated = store.update(replace(ohms_law, title="Ohm"))
    assert updated.title == "Ohm"
    assert updated.created_at == original.created_at
    assert store.get("ohms-law").title == "Ohm"


def test_missing_ids_raise_key_error(ohms_law):
    store = CalculatorStore()
    with pytest.raises(KeyError):
        store.get("nope")
    with pytest.raises(KeyError):
        store.update(ohms_law)
    with pytest.raises(KeyError):
        store.delete("nope")


def test_delete_removes_calculator(ohms_law):
    store = CalculatorStore()
    store.add(ohms_law)
    store.delete("ohms-law")
    assert store.list() == []


def test_search_and_categories(ohms_law):
    store = CalculatorStore()
    store.add(ohms_law)
    store.add(replace(ohms_law, id="bmi", title="Body Mass Index", description="Weight over height", category="Health"))
    assert [item.id for item in store.search("electronics")] == ["ohms-law"]
    assert [item.id for item in store.search("HEIGHT")] == ["bmi"]
    assert len(store.search("  ")) == 2
    assert [item.id for item in store.filter_by_category("Health")] == ["bmi"]
    assert store.categories() == ["Electronics", "Health"]


def test_import_documents_is_all_or_nothing(ohms_law):
    store = CalculatorStore()
    store.add(ohms_law)
    fresh = json.loads(export_calculator(replace(ohms_law, id="other")))
    clash = json.loads(export_calculator(ohms_law))
    with pytest.raises(DuplicateCalculatorError):
        store.import_documents(json.dumps([fresh, clash]))
    assert [item.id for item in store.list()] == ["ohms-law"]

    imported = store.import_documents(json.dumps([fresh]))
    assert [item.id for item in imported] == ["other"]
    assert imported[0].created_at


def test_export_all_lists_every_document(ohms_law):
    store = CalculatorStore()
    store.add(ohms_law)
    assert [item["id"] for item in json.loads(store.export_all())] == ["ohms-law"]


def test_load_rejects_corrupt_file(tmp_path):
    path = tmp_path / "calculators.json"
    path.write_text("{broken", encoding="utf-8")
    with pytest.raises(CalculatorImportError):
        CalculatorStore(path).load()


def _blocked_path(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    return blocker / "calculators.json"


def test_failed_write_adds_nothing(tmp_path, ohms_law):
    store = CalculatorStore(_blocked_path(tmp_path))
    with pytest.raises(OSError):
        store.add(ohms_law)
    assert store.list() == []
    with pytest.raises(OSError):
        store.import_documents(export_calculator(ohms_law))
    assert store.list() == []


def test_failed_write_keeps_previous_state(tmp_path, ohms_law):
    store = CalculatorStore(tmp_path / "calculators.json")
    stored = store.add(ohms_law)
    store.path = _blocked_path(tmp_path)
    with pytest.raises(OSError):
        store.update(replace(ohms_law, title="Renamed"))
    with pytest.raises(OSError):
        store.delete("ohms-law")
    assert store.list() == [stored]


def test_missing_ids_raise_not_found_error(ohms_law):
    store = CalculatorStore()
    with pytest.raises(CalculatorNotFoundError, match="Calculator 'nope' not found"):
        store.get("nope")
