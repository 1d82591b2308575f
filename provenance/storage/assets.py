# provenance/storage/assets.py
"""
Primary store: asset id -> DigitalAsset.

Assets are revoked, never removed, so the store has no delete.
"""

from pathlib import Path
from typing import Iterator, List, Optional

from ..models import DigitalAsset
from .table import JsonFileTable, MemoryTable, Table


class AssetStore:
    """
    Asset records keyed by id.

    Usage:
        store = AssetStore()                          # in memory
        store = AssetStore.open("/data/assets.json")  # durable
    """

    def __init__(self, table: Optional[Table[DigitalAsset]] = None):
        self._table = table if table is not None else MemoryTable()

    @classmethod
    def open(cls, path: Path | str) -> "AssetStore":
        """Open (or create) a store persisted at path."""
        return cls(JsonFileTable(
            path,
            encode=DigitalAsset.to_dict,
            decode=DigitalAsset.from_dict,
        ))

    @property
    def table(self) -> Table[DigitalAsset]:
        return self._table

    def put(self, asset: DigitalAsset) -> None:
        """Insert or overwrite the record for asset.id."""
        self._table.put(asset.id, asset)

    def get(self, asset_id: str) -> Optional[DigitalAsset]:
        """Get an asset by id, None if unknown."""
        return self._table.get(asset_id)

    def list(self) -> List[DigitalAsset]:
        """All assets in id order."""
        return [asset for _, asset in self._table.items()]

    def __contains__(self, asset_id: str) -> bool:
        return asset_id in self._table

    def __len__(self) -> int:
        return len(self._table)

    def __iter__(self) -> Iterator[DigitalAsset]:
        return iter(self.list())
