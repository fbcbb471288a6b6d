"""Transfer request models."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import Field

from pyvinreg._constants import ZERO_PRINCIPAL
from pyvinreg.models._base import RegistryBaseModel, UtcDatetime


class TransferState(StrEnum):
    """Per-VIN transfer state.

    ``NO_TRANSFER -> PENDING -> COMPLETED``, or back from ``PENDING`` to
    ``NO_TRANSFER`` when the owner cancels.
    """

    NO_TRANSFER = "no_transfer"
    PENDING = "pending"
    COMPLETED = "completed"


class TransferRequest(RegistryBaseModel):
    """The single outstanding (or just completed) transfer for a VIN."""

    vin: str = Field(..., min_length=1)
    from_owner: str = Field(..., min_length=1)
    """Owner that initiated the transfer."""
    to_owner: str = Field(..., min_length=1)
    """Designated recipient."""
    request_time: UtcDatetime
    approved: bool = False
    completed: bool = False
    completed_at: UtcDatetime | None = None

    @property
    def state(self) -> TransferState:
        return TransferState.COMPLETED if self.completed else TransferState.PENDING

    def accepted(self, at: datetime) -> TransferRequest:
        """Return a copy marked approved and completed at *at*."""
        return self.model_copy(update={"approved": True, "completed": True, "completed_at": at})


class PendingTransfer(RegistryBaseModel):
    """Projection returned by ``get_pending_transfer``.

    When the VIN has no request every field is zero-valued: callers test
    ``from_owner == ""`` (or :attr:`exists`) rather than catching an error.
    """

    from_owner: str = ZERO_PRINCIPAL
    to_owner: str = ZERO_PRINCIPAL
    request_time: UtcDatetime | None = None
    completed: bool = False

    @classmethod
    def none(cls) -> PendingTransfer:
        return cls()

    @classmethod
    def from_request(cls, request: TransferRequest) -> PendingTransfer:
        return cls(
            from_owner=request.from_owner,
            to_owner=request.to_owner,
            request_time=request.request_time,
            completed=request.completed,
        )

    @property
    def exists(self) -> bool:
        return self.from_owner != ZERO_PRINCIPAL


class TransferRecord(RegistryBaseModel):
    """History entry for one completed transfer."""

    vin: str
    sequence: int = Field(..., ge=1)
    """1-based position in the VIN's transfer history."""
    from_owner: str
    to_owner: str
    requested_at: UtcDatetime
    completed_at: UtcDatetime
