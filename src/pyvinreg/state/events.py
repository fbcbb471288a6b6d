"""Registry notification events.

Every committed state change produces exactly one event.  Only the
ledger creates them; sinks and subscribers receive them after commit.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pyvinreg.models._base import UtcDatetime


class EventType(StrEnum):
    VEHICLE_REGISTERED = "vehicle_registered"
    TRANSFER_INITIATED = "transfer_initiated"
    TRANSFER_COMPLETED = "transfer_completed"
    TRANSFER_CANCELLED = "transfer_cancelled"


class RegistryEvent(BaseModel):
    """A committed state change, as published to observers."""

    model_config = ConfigDict(frozen=True)

    event_type: EventType
    vin: str = Field(..., description="Vehicle VIN")
    actor: str = Field(..., description="Principal whose call produced the event")
    from_owner: str | None = Field(default=None, description="Owner before the change, if any")
    to_owner: str | None = Field(default=None, description="Owner (or proposed owner) after the change")
    timestamp: UtcDatetime
    sequence: int = Field(..., ge=1, description="Ledger-wide commit order")

    @field_validator("vin")
    @classmethod
    def _normalize_vin(cls, value: str) -> str:
        vin = value.strip()
        if not vin:
            raise ValueError("vin must be non-empty")
        return vin

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready representation used by the external sinks."""
        return self.model_dump(mode="json")
