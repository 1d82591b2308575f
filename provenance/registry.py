# provenance/registry.py
"""
The provenance registry service.

Ties the asset store, the creator index and the transfer history together
into the registry operations:

    register            - record a new asset, ACTIVE, held by its creator
    get_asset           - look up by id
    get_creator_assets  - look up what a holder currently holds
    transfer_asset      - FULL (moves the holding) or LICENSE (history only)
    update_metadata     - shallow merge into the metadata
    revoke_asset        - terminal REVOKED state

Status transitions:

    ACTIVE --FULL--> TRANSFERRED
    ACTIVE --LICENSE--> ACTIVE
    ACTIVE | TRANSFERRED --revoke--> REVOKED (terminal)

Each mutating call holds the locks of every asset and holder key it
touches for its whole read-modify-write, and its writes to both stores
form one unit: if any write fails, the earlier ones are undone before
the error reaches the caller.
"""

import logging
import time
import uuid
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, Iterator, List, Mapping, Optional, Tuple

from .errors import (
    AlreadyRevokedError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from .locks import KeyedLock
from .models import AssetMetadata, AssetStatus, AssetType, DigitalAsset, TransferType
from .storage import AssetStore, CreatorIndex, Table
from .transfers import append, make_transfer
from .validation import validate_metadata_patch, validate_registration, validate_transfer

logger = logging.getLogger(__name__)

ASSETS_FILE = "assets.json"
CREATORS_FILE = "creators.json"


def _generate_id() -> str:
    """Generate unique asset/transfer ID."""
    return str(uuid.uuid4())


def _asset_key(asset_id: str) -> str:
    return f"asset:{asset_id}"


def _holder_key(holder_id: str) -> str:
    return f"holder:{holder_id}"


class RegistryService:
    """
    Registry of digital assets, their holders and their transfer history.

    Usage:
        registry = RegistryService()                   # in memory
        registry = RegistryService.open("/data/reg")   # durable

        asset = registry.register(
            title="Sunset",
            description="",
            asset_type="IMAGE",
            creator_id="alice",
            content_hash="9f86d08...",
            metadata={"file_format": "PNG", "file_size": 1024},
        )
        registry.transfer_asset(asset.id, "alice", "bob", "FULL")
        registry.get_creator_assets("bob")  # [asset]

    Args:
        assets: Primary store (in-memory if omitted)
        creators: Holder index (in-memory if omitted)
        id_factory: Produces globally unique ids
        clock: Returns the current time in epoch seconds
    """

    def __init__(
        self,
        assets: Optional[AssetStore] = None,
        creators: Optional[CreatorIndex] = None,
        id_factory: Callable[[], str] = _generate_id,
        clock: Callable[[], float] = time.time,
    ):
        self.assets = assets if assets is not None else AssetStore()
        self.creators = creators if creators is not None else CreatorIndex()
        self._new_id = id_factory
        self._now = clock
        self._locks = KeyedLock()

    @classmethod
    def open(cls, data_dir: Path | str, **kwargs) -> "RegistryService":
        """
        Open a registry persisted under data_dir.

        The holder index is rebuilt from the asset store if the two
        disagree.

        Structure:
            data_dir/
                assets.json     # asset id -> record
                creators.json   # holder id -> asset ids
        """
        data_dir = Path(data_dir)
        data_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Opening registry at {data_dir}")
        registry = cls(
            assets=AssetStore.open(data_dir / ASSETS_FILE),
            creators=CreatorIndex.open(data_dir / CREATORS_FILE),
            **kwargs,
        )

        # An interrupted write can leave the index behind the asset store
        problems = registry.audit()
        if problems:
            for problem in problems:
                logger.warning(f"Index inconsistency: {problem}")
            changed = registry.rebuild_index()
            logger.warning(f"Rebuilt holder index ({changed} entries changed)")
        return registry

    @classmethod
    def from_config(cls, config, **kwargs) -> "RegistryService":
        """Build the registry described by a RegistryConfig."""
        if config.data_dir:
            return cls.open(config.data_dir, **kwargs)
        return cls(**kwargs)

    # -- helpers ---------------------------------------------------------

    def _require(self, asset_id: str) -> DigitalAsset:
        asset = self.assets.get(asset_id)
        if asset is None:
            raise NotFoundError(asset_id)
        return asset

    @contextmanager
    def _atomic(self, asset_id: str, *holder_ids: str) -> Iterator[None]:
        """
        Undo every write to the given keys if the block raises.

        The keys must already be locked by the caller.
        """
        snapshot: List[Tuple[Table, str, Any]] = [
            (self.assets.table, asset_id, self.assets.table.get(asset_id))
        ]
        for holder_id in dict.fromkeys(holder_ids):
            snapshot.append(
                (self.creators.table, holder_id, self.creators.table.get(holder_id))
            )
        try:
            yield
        except BaseException:
            logger.warning(f"Rolling back changes to asset {asset_id}")
            for table, key, previous in reversed(snapshot):
                if table.get(key) is previous:
                    continue
                if previous is None:
                    table.discard(key)
                else:
                    table.put(key, previous)
            raise

    # -- operations ------------------------------------------------------

    def register(
        self,
        title: str,
        description: str,
        asset_type: AssetType | str,
        creator_id: str,
        content_hash: str,
        metadata: AssetMetadata | Mapping[str, Any],
    ) -> DigitalAsset:
        """
        Register a new asset held by its creator.

        Raises:
            ValidationError: A field is missing or malformed. Nothing is stored.
        """
        errors = validate_registration(
            title=title,
            asset_type=asset_type,
            creator_id=creator_id,
            content_hash=content_hash,
            metadata=metadata,
            description=description,
        )
        if errors:
            raise ValidationError(errors)

        if not isinstance(metadata, AssetMetadata):
            metadata = AssetMetadata.from_dict(metadata)

        now = self._now()
        asset = DigitalAsset(
            id=self._new_id(),
            title=title,
            description=description or "",
            asset_type=AssetType(asset_type),
            creator_id=creator_id,
            content_hash=content_hash,
            registration_date=now,
            last_modified=now,
            metadata=metadata,
        )

        with self._locks.hold(_asset_key(asset.id), _holder_key(creator_id)):
            with self._atomic(asset.id, creator_id):
                self.assets.put(asset)
                self.creators.add_holding(creator_id, asset.id)

        logger.info(f"Registered {asset.asset_type.value} asset {asset.id} for {creator_id}")
        return asset

    def get_asset(self, asset_id: str) -> DigitalAsset:
        """
        Get an asset by id. Anyone may read any asset.

        Raises:
            NotFoundError: Unknown id.
        """
        with self._locks.hold(_asset_key(asset_id)):
            return self._require(asset_id)

    def get_creator_assets(self, holder_id: str) -> List[DigitalAsset]:
        """
        Assets currently held by holder_id, in the order they were acquired.

        Ids the index lists but the store lacks are skipped.
        """
        with self._locks.hold(_holder_key(holder_id)):
            asset_ids = self.creators.list_holdings(holder_id)
            held = []
            for asset_id in asset_ids:
                asset = self.assets.get(asset_id)
                if asset is None:
                    logger.warning(f"Holder {holder_id} lists unknown asset {asset_id}, skipping")
                    continue
                held.append(asset)
        logger.debug(f"Holder {holder_id} holds {len(held)} assets")
        return held

    def transfer_asset(
        self,
        asset_id: str,
        caller_id: str,
        to_id: str,
        transfer_type: TransferType | str,
    ) -> DigitalAsset:
        """
        Transfer an ACTIVE asset.

        A FULL transfer moves the holding to to_id and marks the asset
        TRANSFERRED. A LICENSE transfer only records the grant.

        Raises:
            NotFoundError: Unknown id.
            ForbiddenError: caller_id is not the asset's creator.
            InvalidStateError: The asset is not ACTIVE.
            ValidationError: to_id or transfer_type is malformed.
        """
        # creator_id never changes, so it is safe to read before locking
        creator_id = self._require(asset_id).creator_id
        keys = [_asset_key(asset_id), _holder_key(creator_id)]
        if transfer_type == TransferType.FULL.value:
            keys.append(_holder_key(to_id))

        with self._locks.hold(*keys):
            asset = self._require(asset_id)
            if caller_id != asset.creator_id:
                raise ForbiddenError(f"Caller {caller_id} does not own asset {asset_id}")
            if asset.status is not AssetStatus.ACTIVE:
                raise InvalidStateError(
                    f"Asset is not available for transfer (status {asset.status.value})",
                    status=asset.status.value,
                )
            errors = validate_transfer(to_id, transfer_type)
            if errors:
                raise ValidationError(errors)

            transfer_type = TransferType(transfer_type)
            now = self._now()
            transfer = make_transfer(
                from_id=asset.creator_id,
                to_id=to_id,
                transfer_type=transfer_type,
                transfer_id=self._new_id(),
                now=now,
            )
            full = transfer_type is TransferType.FULL
            updated = replace(
                asset,
                transfer_history=append(asset.transfer_history, transfer),
                status=AssetStatus.TRANSFERRED if full else asset.status,
                last_modified=now,
            )

            holders = (asset.creator_id, to_id) if full else ()
            # the asset record goes first: the index is rebuilt from it on open
            with self._atomic(asset_id, *holders):
                self.assets.put(updated)
                if full:
                    self.creators.remove_holding(asset.creator_id, asset_id)
                    self.creators.add_holding(to_id, asset_id)

        logger.info(
            f"Transferred asset {asset_id} from {transfer.from_id} to {to_id} "
            f"({transfer_type.value})"
        )
        return updated

    def update_metadata(
        self,
        asset_id: str,
        caller_id: str,
        partial: Mapping[str, Any],
    ) -> DigitalAsset:
        """
        Merge partial into the asset's metadata.

        Fields present in partial replace the stored ones, the rest are
        kept. Any caller may update any asset.

        Raises:
            NotFoundError: Unknown id.
            ValidationError: Unknown field or malformed value.
        """
        with self._locks.hold(_asset_key(asset_id)):
            asset = self._require(asset_id)
            errors = validate_metadata_patch(partial)
            if errors:
                raise ValidationError(errors)

            updated = replace(
                asset,
                metadata=asset.metadata.merged(partial),
                last_modified=self._now(),
            )
            with self._atomic(asset_id):
                self.assets.put(updated)

        logger.debug(f"Updated metadata of asset {asset_id} ({', '.join(partial)}) by {caller_id}")
        return updated

    def revoke_asset(self, asset_id: str, caller_id: str) -> DigitalAsset:
        """
        Revoke an asset. Revoked assets stay listed under their holder.

        Raises:
            NotFoundError: Unknown id.
            ForbiddenError: caller_id is not the asset's creator.
            AlreadyRevokedError: The asset is already revoked.
        """
        with self._locks.hold(_asset_key(asset_id)):
            asset = self._require(asset_id)
            if caller_id != asset.creator_id:
                raise ForbiddenError(f"Caller {caller_id} does not own asset {asset_id}")
            if asset.status is AssetStatus.REVOKED:
                raise AlreadyRevokedError(
                    "Asset is already revoked", status=asset.status.value
                )

            updated = replace(asset, status=AssetStatus.REVOKED, last_modified=self._now())
            with self._atomic(asset_id):
                self.assets.put(updated)

        logger.info(f"Revoked asset {asset_id}")
        return updated

    # -- consistency -----------------------------------------------------

    def audit(self) -> List[str]:
        """
        Check that the holder index agrees with the asset store.

        Meant for a quiescent registry; concurrent writers may produce
        transient reports.

        Returns list of problems (empty if consistent).
        """
        errors = []
        listed_under = {}

        for holder_id, asset_ids in self.creators.items():
            for asset_id in asset_ids:
                asset = self.assets.get(asset_id)
                if asset is None:
                    errors.append(f"Holder {holder_id} lists unknown asset {asset_id}")
                elif asset.current_holder_id != holder_id:
                    errors.append(
                        f"Asset {asset_id} is listed under {holder_id} "
                        f"but held by {asset.current_holder_id}"
                    )
                if asset_id in listed_under:
                    errors.append(
                        f"Asset {asset_id} is listed under both "
                        f"{listed_under[asset_id]} and {holder_id}"
                    )
                else:
                    listed_under[asset_id] = holder_id

        for asset in self.assets:
            if asset.id not in listed_under:
                errors.append(
                    f"Asset {asset.id} is not listed under its holder {asset.current_holder_id}"
                )

        return errors

    def rebuild_index(self) -> int:
        """
        Make the holder index agree with the asset store.

        The asset store wins: entries for unknown assets or the wrong
        holder are dropped, and unlisted assets are appended under their
        current holder. Not safe against concurrent writers.

        Returns number of index entries changed.
        """
        changed = 0
        for holder_id, asset_ids in self.creators.items():
            for asset_id in asset_ids:
                asset = self.assets.get(asset_id)
                if asset is None or asset.current_holder_id != holder_id:
                    self.creators.remove_holding(holder_id, asset_id)
                    changed += 1

        for asset in self.assets:
            holder_id = asset.current_holder_id
            if asset.id not in self.creators.list_holdings(holder_id):
                self.creators.add_holding(holder_id, asset.id)
                changed += 1

        return changed
