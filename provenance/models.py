# provenance/models.py
"""
Data model for the provenance registry.

Records are immutable. Every mutation builds a new value with
dataclasses.replace() and swaps it into the store, so a half-updated
record can never be observed.
"""

from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple


class AssetType(str, Enum):
    IMAGE = "IMAGE"
    AUDIO = "AUDIO"
    VIDEO = "VIDEO"
    DOCUMENT = "DOCUMENT"
    CODE = "CODE"


class AssetStatus(str, Enum):
    ACTIVE = "ACTIVE"
    TRANSFERRED = "TRANSFERRED"
    REVOKED = "REVOKED"


class TransferType(str, Enum):
    FULL = "FULL"
    LICENSE = "LICENSE"


@dataclass(frozen=True)
class AssetMetadata:
    """
    Descriptive metadata of an asset.

    Attributes:
        file_format: Format label (PNG, MP3, ...)
        file_size: Size in bytes
        dimensions: Optional "WxH" for visual media
        duration: Optional length in seconds for time-based media
        additional_tags: Free tags in insertion order, duplicates allowed
    """
    file_format: str
    file_size: int
    dimensions: Optional[str] = None
    duration: Optional[float] = None
    additional_tags: Tuple[str, ...] = ()

    def merged(self, patch: Mapping[str, Any]) -> "AssetMetadata":
        """
        Shallow merge: keys present in patch replace whole fields,
        absent keys are kept.
        """
        changes = dict(patch)
        if "additional_tags" in changes:
            changes["additional_tags"] = tuple(changes["additional_tags"])
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "file_format": self.file_format,
            "file_size": self.file_size,
            "additional_tags": list(self.additional_tags),
        }
        if self.dimensions is not None:
            data["dimensions"] = self.dimensions
        if self.duration is not None:
            data["duration"] = self.duration
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AssetMetadata":
        return cls(
            file_format=data["file_format"],
            file_size=data["file_size"],
            dimensions=data.get("dimensions"),
            duration=data.get("duration"),
            additional_tags=tuple(data.get("additional_tags", ())),
        )

    @classmethod
    def field_names(cls) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(cls))


@dataclass(frozen=True)
class Transfer:
    """A single entry of an asset's transfer history."""
    id: str
    from_id: str
    to_id: str
    transfer_date: float
    transfer_type: TransferType

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "from_id": self.from_id,
            "to_id": self.to_id,
            "transfer_date": self.transfer_date,
            "transfer_type": self.transfer_type.value,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Transfer":
        return cls(
            id=data["id"],
            from_id=data["from_id"],
            to_id=data["to_id"],
            transfer_date=data["transfer_date"],
            transfer_type=TransferType(data["transfer_type"]),
        )


@dataclass(frozen=True)
class DigitalAsset:
    """
    A registered digital asset.

    creator_id always names the original creator. The party currently
    holding the asset is current_holder_id, which follows FULL transfers.

    Attributes:
        id: Registry-assigned identifier
        title: Human-readable title
        description: Free text
        asset_type: Kind of media
        creator_id: Original creator (never changes)
        content_hash: Caller-asserted content fingerprint
        registration_date: Epoch seconds of registration
        last_modified: Epoch seconds of the last mutation
        transfer_history: Append-only sequence of transfers
        status: Lifecycle state
        metadata: Descriptive metadata
    """
    id: str
    title: str
    description: str
    asset_type: AssetType
    creator_id: str
    content_hash: str
    registration_date: float
    last_modified: float
    metadata: AssetMetadata
    status: AssetStatus = AssetStatus.ACTIVE
    transfer_history: Tuple[Transfer, ...] = ()

    @property
    def current_holder_id(self) -> str:
        for transfer in reversed(self.transfer_history):
            if transfer.transfer_type is TransferType.FULL:
                return transfer.to_id
        return self.creator_id

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "asset_type": self.asset_type.value,
            "creator_id": self.creator_id,
            "current_holder_id": self.current_holder_id,
            "content_hash": self.content_hash,
            "registration_date": self.registration_date,
            "last_modified": self.last_modified,
            "transfer_history": [t.to_dict() for t in self.transfer_history],
            "status": self.status.value,
            "metadata": self.metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DigitalAsset":
        # current_holder_id is derived, ignore it on the way in
        return cls(
            id=data["id"],
            title=data["title"],
            description=data.get("description", ""),
            asset_type=AssetType(data["asset_type"]),
            creator_id=data["creator_id"],
            content_hash=data["content_hash"],
            registration_date=data["registration_date"],
            last_modified=data["last_modified"],
            status=AssetStatus(data.get("status", AssetStatus.ACTIVE.value)),
            transfer_history=tuple(
                Transfer.from_dict(t) for t in data.get("transfer_history", [])
            ),
            metadata=AssetMetadata.from_dict(data["metadata"]),
        )
