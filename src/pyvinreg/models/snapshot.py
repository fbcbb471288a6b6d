"""Serializable export of a ledger's complete state."""

from __future__ import annotations

from pydantic import Field

from pyvinreg.models._base import RegistryBaseModel, UtcDatetime
from pyvinreg.models.transfer import TransferRecord, TransferRequest
from pyvinreg.models.vehicle import Vehicle

SNAPSHOT_VERSION = 1


class LedgerSnapshot(RegistryBaseModel):
    """Everything needed to rebuild a ledger.

    ``model_dump_json()`` / ``model_validate_json()`` round-trip it for an
    external persistence layer.
    """

    version: int = SNAPSHOT_VERSION
    taken_at: UtcDatetime
    vehicles: list[Vehicle] = Field(default_factory=list)
    transfers: list[TransferRequest] = Field(default_factory=list)
    owner_index: dict[str, list[str]] = Field(default_factory=dict)
    history: dict[str, list[TransferRecord]] = Field(default_factory=dict)
    last_sequence: int = Field(default=0, ge=0)
