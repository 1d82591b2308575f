# provenance/transfers.py
"""
Transfer history of an asset.

The history is append-only: append() returns a new tuple and never
touches the one it was given.
"""

from typing import Tuple

from .models import Transfer, TransferType


def make_transfer(
    from_id: str,
    to_id: str,
    transfer_type: TransferType | str,
    transfer_id: str,
    now: float,
) -> Transfer:
    """Build a transfer record."""
    return Transfer(
        id=transfer_id,
        from_id=from_id,
        to_id=to_id,
        transfer_date=now,
        transfer_type=TransferType(transfer_type),
    )


def append(history: Tuple[Transfer, ...], transfer: Transfer) -> Tuple[Transfer, ...]:
    """Return history with transfer added at the end."""
    return tuple(history) + (transfer,)
