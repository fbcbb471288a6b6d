"""Custom exception hierarchy for pyvinreg."""

from __future__ import annotations


class VinRegError(Exception):
    """Base exception for all pyvinreg errors."""

    def __init__(self, message: str, *, vin: str | None = None) -> None:
        self.vin = vin
        super().__init__(message)


class VinRegConfigError(VinRegError):
    """Invalid or missing configuration."""


# ------------------------------------------------------------------
# Validation
# ------------------------------------------------------------------


class VinRegValidationError(VinRegError):
    """Malformed input rejected before any state was read."""


class InvalidVinError(VinRegValidationError):
    """VIN is empty or does not match the configured format."""


class InvalidYearError(VinRegValidationError):
    """Manufacture year is in the future or implausibly old."""

    def __init__(self, message: str, *, vin: str | None = None, year: int | None = None) -> None:
        self.year = year
        super().__init__(message, vin=vin)


# ------------------------------------------------------------------
# State
# ------------------------------------------------------------------


class VinRegStateError(VinRegError):
    """Operation is not allowed in the current registry/transfer state."""


class VehicleAlreadyRegisteredError(VinRegStateError):
    """A vehicle with this VIN already exists."""


class VehicleNotFoundError(VinRegStateError):
    """No vehicle is registered under this VIN."""


class TransferAlreadyPendingError(VinRegStateError):
    """The VIN already has a pending transfer request."""


class NoPendingTransferError(VinRegStateError):
    """The VIN has no transfer request to act on."""


class TransferAlreadyCompletedError(VinRegStateError):
    """The transfer request has already been accepted."""


# ------------------------------------------------------------------
# Authorization
# ------------------------------------------------------------------


class VinRegAuthorizationError(VinRegError):
    """Caller is not allowed to perform the operation."""

    def __init__(
        self,
        message: str,
        *,
        vin: str | None = None,
        principal: str | None = None,
    ) -> None:
        self.principal = principal
        super().__init__(message, vin=vin)


class NotOwnerError(VinRegAuthorizationError):
    """Caller is not the vehicle's current owner."""


class NotDesignatedRecipientError(VinRegAuthorizationError):
    """Caller is not the recipient named in the transfer request."""


class InvalidRecipientError(VinRegAuthorizationError):
    """Recipient is the zero identity."""


class InvalidCallerError(VinRegAuthorizationError):
    """The environment supplied an empty caller identity."""


class SelfTransferError(VinRegAuthorizationError):
    """Owner attempted to transfer a vehicle to themselves."""


class NoPendingTransferFromCallerError(VinRegAuthorizationError):
    """The pending request was not initiated by the caller."""


# ------------------------------------------------------------------
# Notification delivery
# ------------------------------------------------------------------


class VinRegSinkError(VinRegError):
    """A notification sink failed to deliver an event.

    Sink failures are logged by the notifier and never propagate out of a
    registry operation.
    """

    def __init__(self, message: str, *, vin: str | None = None, sink: str = "") -> None:
        self.sink = sink
        super().__init__(message, vin=vin)
