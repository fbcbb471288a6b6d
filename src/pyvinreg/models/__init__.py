"""Data models for registry records."""

from pyvinreg.models._base import RegistryBaseModel, UtcDatetime, ensure_utc
from pyvinreg.models.snapshot import SNAPSHOT_VERSION, LedgerSnapshot
from pyvinreg.models.transfer import (
    PendingTransfer,
    TransferRecord,
    TransferRequest,
    TransferState,
)
from pyvinreg.models.vehicle import Vehicle, VehicleDetails

__all__ = [
    "SNAPSHOT_VERSION",
    "LedgerSnapshot",
    "PendingTransfer",
    "RegistryBaseModel",
    "TransferRecord",
    "TransferRequest",
    "TransferState",
    "UtcDatetime",
    "Vehicle",
    "VehicleDetails",
    "ensure_utc",
]
