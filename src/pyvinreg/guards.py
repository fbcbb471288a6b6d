"""Access-control guards.

Predicates answer the question; ``require_*`` helpers turn a failed
predicate into the matching typed error.  The ledger evaluates them
inside the VIN lock on every mutating call, never from a cache.
"""

from __future__ import annotations

from pyvinreg._constants import ZERO_PRINCIPAL
from pyvinreg.exceptions import (
    InvalidCallerError,
    InvalidRecipientError,
    NotOwnerError,
    SelfTransferError,
)
from pyvinreg.models.vehicle import Vehicle
from pyvinreg.registry import VehicleRegistry


def is_zero_principal(value: str | None) -> bool:
    return not isinstance(value, str) or value.strip() == ZERO_PRINCIPAL


def is_registered(registry: VehicleRegistry, vin: str) -> bool:
    return registry.contains(vin)


def is_owner(registry: VehicleRegistry, vin: str, principal: str) -> bool:
    vehicle = registry.get(vin)
    return vehicle is not None and vehicle.registered and vehicle.current_owner == principal


def require_caller(caller: str | None) -> str:
    """Return the stripped caller identity; reject the zero identity."""
    if caller is None or is_zero_principal(caller):
        raise InvalidCallerError("caller identity is required", principal=caller)
    return caller.strip()


def require_registered(registry: VehicleRegistry, vin: str) -> Vehicle:
    return registry.require(vin)


def require_owner(registry: VehicleRegistry, vin: str, principal: str) -> Vehicle:
    vehicle = require_registered(registry, vin)
    if not is_owner(registry, vin, principal):
        raise NotOwnerError(
            f"{principal} is not the current owner of {vin}",
            vin=vin,
            principal=principal,
        )
    return vehicle


def require_recipient(vin: str, recipient: str | None, caller: str) -> str:
    """Validate the proposed recipient of a transfer from *caller*."""
    if recipient is None or is_zero_principal(recipient):
        raise InvalidRecipientError("recipient must not be the zero identity", vin=vin, principal=recipient)
    recipient = recipient.strip()
    if recipient == caller:
        raise SelfTransferError(f"{caller} cannot transfer {vin} to themselves", vin=vin, principal=caller)
    return recipient
