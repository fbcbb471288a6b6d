"""pyvinreg - Vehicle registry with a two-phase ownership transfer protocol."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyvinreg")
except PackageNotFoundError:
    __version__ = "0+local"
from pyvinreg.config import LedgerConfig
from pyvinreg.exceptions import (
    InvalidCallerError,
    InvalidRecipientError,
    InvalidVinError,
    InvalidYearError,
    NoPendingTransferError,
    NoPendingTransferFromCallerError,
    NotDesignatedRecipientError,
    NotOwnerError,
    SelfTransferError,
    TransferAlreadyCompletedError,
    TransferAlreadyPendingError,
    VehicleAlreadyRegisteredError,
    VehicleNotFoundError,
    VinRegAuthorizationError,
    VinRegConfigError,
    VinRegError,
    VinRegSinkError,
    VinRegStateError,
    VinRegValidationError,
)
from pyvinreg.ledger import VehicleLedger
from pyvinreg.models import (
    LedgerSnapshot,
    PendingTransfer,
    TransferRecord,
    TransferRequest,
    TransferState,
    Vehicle,
    VehicleDetails,
)
from pyvinreg.notifications import EventLog, NotificationSink, Notifier
from pyvinreg.state.events import EventType, RegistryEvent

__all__ = [
    "__version__",
    "EventLog",
    "EventType",
    "InvalidCallerError",
    "InvalidRecipientError",
    "InvalidVinError",
    "InvalidYearError",
    "LedgerConfig",
    "LedgerSnapshot",
    "NoPendingTransferError",
    "NoPendingTransferFromCallerError",
    "NotDesignatedRecipientError",
    "NotOwnerError",
    "NotificationSink",
    "Notifier",
    "PendingTransfer",
    "RegistryEvent",
    "SelfTransferError",
    "TransferAlreadyCompletedError",
    "TransferAlreadyPendingError",
    "TransferRecord",
    "TransferRequest",
    "TransferState",
    "Vehicle",
    "VehicleAlreadyRegisteredError",
    "VehicleDetails",
    "VehicleLedger",
    "VehicleNotFoundError",
    "VinRegAuthorizationError",
    "VinRegConfigError",
    "VinRegError",
    "VinRegSinkError",
    "VinRegStateError",
    "VinRegValidationError",
]
