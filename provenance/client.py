# provenance/client.py
"""
Client SDK for the registry server.

Mirrors RegistryService, so code written against a local registry works
against a remote one.

Usage:
    client = RegistryClient("http://localhost:8080", caller_id="alice")

    asset = client.register(
        title="Sunset",
        description="",
        asset_type="IMAGE",
        creator_id="alice",
        content_hash="9f86d08...",
        metadata={"file_format": "PNG", "file_size": 1024},
    )
    client.transfer_asset(asset.id, "alice", "bob", "FULL")
"""

import json
from typing import Any, Dict, List, Mapping, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from .errors import (
    AlreadyRevokedError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    RegistryError,
    ValidationError,
)
from .models import AssetMetadata, AssetType, DigitalAsset, TransferType
from .server import CALLER_HEADER

_BY_STATUS = {
    400: ValidationError,
    401: ForbiddenError,
    403: ForbiddenError,
    404: NotFoundError,
    409: InvalidStateError,
}


def _raise_for_error(status: int, data: Dict[str, Any], asset_id: Optional[str]):
    message = data.get("error", f"HTTP {status}")
    kind = data.get("type")
    if kind == "AlreadyRevokedError":
        raise AlreadyRevokedError(message)
    error_class = _BY_STATUS.get(status)
    if error_class is ValidationError:
        raise ValidationError(data.get("errors") or message)
    if error_class is NotFoundError:
        raise NotFoundError(asset_id or "", message)
    if error_class is not None:
        raise error_class(message)
    raise RegistryError(message)


class RegistryClient:
    """
    Client for the registry server.

    Args:
        base_url: Server URL (e.g., "http://localhost:8080")
        caller_id: Identity sent with mutating calls when none is given
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8080",
        caller_id: Optional[str] = None,
        timeout: float = 30,
    ):
        self.base_url = base_url.rstrip("/")
        self.caller_id = caller_id
        self.timeout = timeout

    def _request(
        self,
        method: str,
        path: str,
        data: dict = None,
        caller_id: Optional[str] = None,
        asset_id: Optional[str] = None,
    ) -> Any:
        """Make HTTP request to server."""
        url = f"{self.base_url}{path}"

        headers = {}
        if data is not None:
            body = json.dumps(data).encode()
            headers["Content-Type"] = "application/json"
        else:
            body = None
        if caller_id is None:
            caller_id = self.caller_id
        if caller_id is not None:
            headers[CALLER_HEADER] = caller_id

        req = Request(url, data=body, headers=headers, method=method)

        try:
            with urlopen(req, timeout=self.timeout) as response:
                return json.loads(response.read().decode())
        except HTTPError as e:
            error_body = e.read().decode()
            try:
                error_data = json.loads(error_body)
            except json.JSONDecodeError:
                raise RegistryError(f"HTTP {e.code}: {error_body}")
            _raise_for_error(e.code, error_data, asset_id)
        except URLError as e:
            raise ConnectionError(f"Failed to connect to server: {e}")

    def health(self) -> bool:
        """Check if server is healthy."""
        try:
            result = self._request("GET", "/health")
            return result.get("status") == "ok"
        except (RegistryError, ConnectionError):
            return False

    def register(
        self,
        title: str,
        description: str,
        asset_type: AssetType | str,
        creator_id: str,
        content_hash: str,
        metadata: AssetMetadata | Mapping[str, Any],
    ) -> DigitalAsset:
        """Register a new asset."""
        if isinstance(metadata, AssetMetadata):
            metadata = metadata.to_dict()
        if isinstance(asset_type, AssetType):
            asset_type = asset_type.value
        data = self._request("POST", "/assets", {
            "title": title,
            "description": description,
            "asset_type": asset_type,
            "creator_id": creator_id,
            "content_hash": content_hash,
            "metadata": metadata,
        })
        return DigitalAsset.from_dict(data)

    def get_asset(self, asset_id: str) -> DigitalAsset:
        """Get an asset by id."""
        data = self._request("GET", f"/assets/{quote(asset_id, safe='')}", asset_id=asset_id)
        return DigitalAsset.from_dict(data)

    def get_creator_assets(self, holder_id: str) -> List[DigitalAsset]:
        """Get the assets currently held by holder_id."""
        data = self._request("GET", f"/creators/{quote(holder_id, safe='')}/assets")
        return [DigitalAsset.from_dict(a) for a in data]

    def transfer_asset(
        self,
        asset_id: str,
        caller_id: str,
        to_id: str,
        transfer_type: TransferType | str,
    ) -> DigitalAsset:
        """Transfer an asset (FULL or LICENSE)."""
        if isinstance(transfer_type, TransferType):
            transfer_type = transfer_type.value
        data = self._request(
            "POST",
            f"/assets/{quote(asset_id, safe='')}/transfer",
            {"to_id": to_id, "transfer_type": transfer_type},
            caller_id=caller_id,
            asset_id=asset_id,
        )
        return DigitalAsset.from_dict(data)

    def update_metadata(
        self,
        asset_id: str,
        caller_id: str,
        partial: Mapping[str, Any],
    ) -> DigitalAsset:
        """Merge partial into the asset's metadata."""
        data = self._request(
            "PUT",
            f"/assets/{quote(asset_id, safe='')}/metadata",
            dict(partial),
            caller_id=caller_id,
            asset_id=asset_id,
        )
        return DigitalAsset.from_dict(data)

    def revoke_asset(self, asset_id: str, caller_id: str) -> DigitalAsset:
        """Revoke an asset."""
        data = self._request(
            "POST",
            f"/assets/{quote(asset_id, safe='')}/revoke",
            caller_id=caller_id,
            asset_id=asset_id,
        )
        return DigitalAsset.from_dict(data)
