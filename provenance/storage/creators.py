# provenance/storage/creators.py
"""
Secondary index: holder id -> asset ids currently held.

Derived from the asset store. Lists keep insertion order and are replaced
on every change, never edited in place, so a list handed out earlier does
not change under its reader.
"""

from pathlib import Path
from typing import List, Optional, Tuple

from .table import JsonFileTable, MemoryTable, Table


def _as_list(value):
    return list(value)


class CreatorIndex:
    """Ordered holdings per creator/owner id."""

    def __init__(self, table: Optional[Table[Tuple[str, ...]]] = None):
        self._table = table if table is not None else MemoryTable()

    @classmethod
    def open(cls, path: Path | str) -> "CreatorIndex":
        """Open (or create) an index persisted at path."""
        return cls(JsonFileTable(path, encode=_as_list, decode=tuple))

    @property
    def table(self) -> Table[Tuple[str, ...]]:
        return self._table

    def add_holding(self, holder_id: str, asset_id: str) -> None:
        """Append asset_id to holder_id's holdings. No-op if already there."""
        holdings = self._table.get(holder_id) or ()
        if asset_id in holdings:
            return
        self._table.put(holder_id, holdings + (asset_id,))

    def remove_holding(self, holder_id: str, asset_id: str) -> None:
        """Remove asset_id from holder_id's holdings. No-op if absent."""
        holdings = self._table.get(holder_id)
        if not holdings or asset_id not in holdings:
            return
        self._table.put(holder_id, tuple(a for a in holdings if a != asset_id))

    def list_holdings(self, holder_id: str) -> List[str]:
        """Asset ids held by holder_id in insertion order, [] if none."""
        return list(self._table.get(holder_id) or ())

    def items(self) -> List[Tuple[str, List[str]]]:
        """(holder_id, asset_ids) pairs in holder order."""
        return [(holder, list(ids)) for holder, ids in self._table.items()]
