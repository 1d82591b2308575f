# provenance/storage/__init__.py
"""
Registry storage.

The registry keeps two tables that must agree with each other:
- AssetStore: asset id -> DigitalAsset (primary)
- CreatorIndex: holder id -> asset ids (derived)

Both sit on an ordered key-value Table, either in memory or persisted
to a JSON file.

Example:
    assets = AssetStore.open("/data/assets.json")
    creators = CreatorIndex.open("/data/creators.json")
"""

from .table import Table, MemoryTable, JsonFileTable
from .assets import AssetStore
from .creators import CreatorIndex

__all__ = [
    "Table",
    "MemoryTable",
    "JsonFileTable",
    "AssetStore",
    "CreatorIndex",
]
