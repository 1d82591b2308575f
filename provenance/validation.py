# provenance/validation.py
"""
Input checks for registry operations.

Validators return a list of error messages (empty if valid) so a caller
sees every problem at once. The registry raises ValidationError with the
collected messages.
"""

from numbers import Real
from typing import Any, List, Mapping

from .models import AssetMetadata, AssetType, TransferType


def _is_text(value: Any) -> bool:
    return isinstance(value, str) and value != ""


def _is_count(value: Any) -> bool:
    # bool is an int subclass
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _is_seconds(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool) and value >= 0


def _check_metadata_field(name: str, value: Any) -> List[str]:
    if name == "file_format":
        if not _is_text(value):
            return ["Invalid metadata: file_format must be a non-empty string"]
    elif name == "file_size":
        if not _is_count(value):
            return ["Invalid metadata: file_size must be a non-negative integer"]
    elif name == "dimensions":
        if value is not None and not isinstance(value, str):
            return ["Invalid metadata: dimensions must be a string"]
    elif name == "duration":
        if value is not None and not _is_seconds(value):
            return ["Invalid metadata: duration must be a non-negative number"]
    elif name == "additional_tags":
        if isinstance(value, str) or not isinstance(value, (list, tuple)):
            return ["Invalid metadata: additional_tags must be a list of strings"]
        if not all(isinstance(tag, str) for tag in value):
            return ["Invalid metadata: additional_tags must be a list of strings"]
    else:
        return [f"Invalid metadata: unknown field '{name}'"]
    return []


def validate_metadata(metadata: Any) -> List[str]:
    """Check a complete metadata value (AssetMetadata or mapping)."""
    if isinstance(metadata, AssetMetadata):
        metadata = metadata.to_dict()
    if not isinstance(metadata, Mapping):
        return ["Invalid metadata"]

    errors = []
    for required in ("file_format", "file_size"):
        if required not in metadata:
            errors.append(f"Invalid metadata: missing {required}")
    for name, value in metadata.items():
        errors.extend(_check_metadata_field(name, value))
    return errors


def validate_metadata_patch(patch: Any) -> List[str]:
    """Check a partial metadata update. Only present keys are checked."""
    if not isinstance(patch, Mapping):
        return ["Invalid metadata update: expected a mapping of fields"]
    errors = []
    for name, value in patch.items():
        errors.extend(_check_metadata_field(name, value))
    return errors


def validate_registration(
    title: Any,
    asset_type: Any,
    creator_id: Any,
    content_hash: Any,
    metadata: Any,
    description: Any = "",
) -> List[str]:
    """Check the fields of a registration request."""
    errors = []
    if not _is_text(title):
        errors.append("Invalid title")
    if description is not None and not isinstance(description, str):
        errors.append("Invalid description")
    if not _is_text(creator_id):
        errors.append("Invalid creator ID")
    if not _is_text(content_hash):
        errors.append("Invalid content hash")
    if not isinstance(asset_type, str) or asset_type not in {t.value for t in AssetType}:
        errors.append("Invalid asset type")
    errors.extend(validate_metadata(metadata))
    return errors


def validate_transfer(to_id: Any, transfer_type: Any) -> List[str]:
    """Check the arguments of a transfer request."""
    errors = []
    if not _is_text(to_id):
        errors.append("Invalid recipient ID")
    if not isinstance(transfer_type, str) or transfer_type not in {t.value for t in TransferType}:
        errors.append("Invalid transfer type")
    return errors
