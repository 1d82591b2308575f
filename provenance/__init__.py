# provenance - Ownership and provenance registry for content-addressed assets
#
# Tracks who created and who holds each registered digital asset, and keeps
# the full history of how it changed hands.
#
# Core concepts:
# - DigitalAsset: A registered work with an immutable content hash
# - Transfer: One FULL (ownership) or LICENSE (grant) hand-over
# - AssetStore / CreatorIndex: Records by id, holdings by holder
# - RegistryService: The operations, kept consistent under concurrency

from .models import AssetMetadata, AssetStatus, AssetType, DigitalAsset, Transfer, TransferType
from .errors import (
    AlreadyRevokedError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    RegistryError,
    ValidationError,
)
from .storage import AssetStore, CreatorIndex, JsonFileTable, MemoryTable, Table
from .registry import RegistryService
from .config import RegistryConfig

__all__ = [
    # Model
    "AssetMetadata",
    "AssetStatus",
    "AssetType",
    "DigitalAsset",
    "Transfer",
    "TransferType",
    # Errors
    "RegistryError",
    "ValidationError",
    "NotFoundError",
    "ForbiddenError",
    "InvalidStateError",
    "AlreadyRevokedError",
    # Storage
    "Table",
    "MemoryTable",
    "JsonFileTable",
    "AssetStore",
    "CreatorIndex",
    # Service
    "RegistryService",
    "RegistryConfig",
]

__version__ = "0.1.0"
