# provenance/errors.py
"""
Errors raised by the registry.

Every error is an ordinary caller-facing outcome. Nothing is retried and
nothing is partially applied when one is raised. status_code is the HTTP
status the server answers with.
"""

from typing import List, Optional


class RegistryError(Exception):
    """Base class for registry errors."""
    status_code = 500


class ValidationError(RegistryError, ValueError):
    """Malformed or missing input fields."""
    status_code = 400

    def __init__(self, errors: List[str] | str):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class NotFoundError(RegistryError, LookupError):
    """Unknown asset id."""
    status_code = 404

    def __init__(self, asset_id: str, message: Optional[str] = None):
        self.asset_id = asset_id
        super().__init__(message or f"Asset not found: {asset_id}")


class ForbiddenError(RegistryError):
    """Caller is not the recorded creator of the asset."""
    status_code = 403


class InvalidStateError(RegistryError):
    """The asset's status does not allow the operation."""
    status_code = 409

    def __init__(self, message: str, status: Optional[str] = None):
        self.status = status
        super().__init__(message)


class AlreadyRevokedError(InvalidStateError):
    """Revoke attempted on an asset that is already revoked."""
