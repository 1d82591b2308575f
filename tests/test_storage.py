# tests/test_storage.py
"""Tests for the key-value tables, the asset store and the creator index."""

import json
import tempfile
from pathlib import Path

import pytest

from provenance.models import AssetMetadata, AssetType, DigitalAsset
from provenance.storage import AssetStore, CreatorIndex, JsonFileTable, MemoryTable


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


def make_asset(asset_id: str, creator_id: str = "alice") -> DigitalAsset:
    return DigitalAsset(
        id=asset_id,
        title=f"Asset {asset_id}",
        description="",
        asset_type=AssetType.DOCUMENT,
        creator_id=creator_id,
        content_hash=f"hash-{asset_id}",
        registration_date=1.0,
        last_modified=1.0,
        metadata=AssetMetadata(file_format="PDF", file_size=10),
    )


class TestMemoryTable:
    """Tests for MemoryTable."""

    def test_put_and_get(self):
        table = MemoryTable()
        table.put("a", 1)
        assert table.get("a") == 1
        assert table.get("missing") is None

    def test_iterates_in_key_order(self):
        table = MemoryTable()
        for key in ("b", "c", "a"):
            table.put(key, key.upper())
        assert table.keys() == ["a", "b", "c"]
        assert table.items() == [("a", "A"), ("b", "B"), ("c", "C")]

    def test_discard(self):
        table = MemoryTable()
        table.put("a", 1)
        table.discard("a")
        table.discard("never-there")
        assert "a" not in table
        assert len(table) == 0


class TestJsonFileTable:
    """Tests for JsonFileTable."""

    def test_persists_across_instances(self, temp_dir):
        path = temp_dir / "table.json"
        table = JsonFileTable(path)
        table.put("b", [1, 2])
        table.put("a", {"x": 1})

        reloaded = JsonFileTable(path)

        assert reloaded.items() == [("a", {"x": 1}), ("b", [1, 2])]

    def test_file_format(self, temp_dir):
        path = temp_dir / "table.json"
        JsonFileTable(path).put("k", "v")

        data = json.loads(path.read_text())

        assert data == {"version": "1.0", "entries": {"k": "v"}}

    def test_no_temp_files_left(self, temp_dir):
        table = JsonFileTable(temp_dir / "table.json")
        table.put("a", 1)
        table.put("b", 2)
        assert [p.name for p in temp_dir.iterdir()] == ["table.json"]

    def test_failed_save_keeps_previous_value(self, temp_dir, monkeypatch):
        table = JsonFileTable(temp_dir / "table.json")
        table.put("a", 1)

        def fail():
            raise OSError("disk full")

        monkeypatch.setattr(table, "_save", fail)
        with pytest.raises(OSError):
            table.put("a", 2)
        with pytest.raises(OSError):
            table.put("b", 3)

        assert table.get("a") == 1
        assert table.get("b") is None


class TestAssetStore:
    """Tests for AssetStore."""

    def test_put_and_get(self):
        store = AssetStore()
        asset = make_asset("a1")
        store.put(asset)
        assert store.get("a1") == asset
        assert "a1" in store

    def test_get_unknown_returns_none(self):
        assert AssetStore().get("nope") is None

    def test_put_is_idempotent(self):
        store = AssetStore()
        asset = make_asset("a1")
        store.put(asset)
        store.put(asset)
        assert len(store) == 1
        assert store.get("a1") == asset

    def test_list_in_id_order(self):
        store = AssetStore()
        for asset_id in ("c", "a", "b"):
            store.put(make_asset(asset_id))
        assert [a.id for a in store.list()] == ["a", "b", "c"]
        assert [a.id for a in store] == ["a", "b", "c"]

    def test_has_no_delete(self):
        store = AssetStore()
        assert not hasattr(store, "remove")
        assert not hasattr(store, "delete")

    def test_open_persists_records(self, temp_dir):
        path = temp_dir / "assets.json"
        AssetStore.open(path).put(make_asset("a1"))

        reloaded = AssetStore.open(path)

        assert reloaded.get("a1") == make_asset("a1")


class TestCreatorIndex:
    """Tests for CreatorIndex."""

    def test_add_keeps_insertion_order(self):
        index = CreatorIndex()
        for asset_id in ("z", "a", "m"):
            index.add_holding("alice", asset_id)
        assert index.list_holdings("alice") == ["z", "a", "m"]

    def test_add_is_idempotent(self):
        index = CreatorIndex()
        index.add_holding("alice", "a1")
        index.add_holding("alice", "a1")
        assert index.list_holdings("alice") == ["a1"]

    def test_remove(self):
        index = CreatorIndex()
        index.add_holding("alice", "a1")
        index.add_holding("alice", "a2")
        index.remove_holding("alice", "a1")
        assert index.list_holdings("alice") == ["a2"]

    def test_remove_absent_is_noop(self):
        index = CreatorIndex()
        index.remove_holding("alice", "a1")
        index.add_holding("alice", "a2")
        index.remove_holding("alice", "a1")
        assert index.list_holdings("alice") == ["a2"]

    def test_unknown_holder_is_empty(self):
        assert CreatorIndex().list_holdings("nobody") == []

    def test_returned_list_is_a_copy(self):
        index = CreatorIndex()
        index.add_holding("alice", "a1")
        holdings = index.list_holdings("alice")
        holdings.append("a2")
        assert index.list_holdings("alice") == ["a1"]

    def test_items_in_holder_order(self):
        index = CreatorIndex()
        index.add_holding("bob", "b1")
        index.add_holding("alice", "a1")
        assert index.items() == [("alice", ["a1"]), ("bob", ["b1"])]

    def test_open_persists_holdings(self, temp_dir):
        path = temp_dir / "creators.json"
        index = CreatorIndex.open(path)
        index.add_holding("alice", "a1")
        index.add_holding("alice", "a2")

        assert CreatorIndex.open(path).list_holdings("alice") == ["a1", "a2"]
