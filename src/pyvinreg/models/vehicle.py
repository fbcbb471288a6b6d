"""Vehicle models."""

from __future__ import annotations

from pydantic import Field

from pyvinreg.models._base import RegistryBaseModel, UtcDatetime


class Vehicle(RegistryBaseModel):
    """A registry entry.

    ``vin`` and ``registration_date`` never change after registration.
    Only a completed transfer replaces the owner fields and bumps
    ``transfer_count``.
    """

    vin: str = Field(..., min_length=1)
    """Vehicle Identification Number."""
    make: str
    """Manufacturer (e.g. ``"Honda"``)."""
    model: str
    """Model name (e.g. ``"Accord"``)."""
    year: int
    """Manufacture year."""
    current_owner: str = Field(..., min_length=1)
    """Principal currently holding the vehicle."""
    previous_owner: str | None = None
    """Principal that held the vehicle before the last completed transfer."""
    registration_date: UtcDatetime
    """When the vehicle was registered."""
    registered: bool = True
    transfer_count: int = Field(default=0, ge=0)
    """Number of completed transfers."""

    def details(self) -> VehicleDetails:
        """Project the non-identity fields."""
        return VehicleDetails(
            make=self.make,
            model=self.model,
            year=self.year,
            current_owner=self.current_owner,
            previous_owner=self.previous_owner,
            registration_date=self.registration_date,
            transfer_count=self.transfer_count,
        )

    def transferred_to(self, new_owner: str) -> Vehicle:
        """Return a copy of this vehicle after a completed transfer to *new_owner*."""
        return self.model_copy(
            update={
                "previous_owner": self.current_owner,
                "current_owner": new_owner,
                "transfer_count": self.transfer_count + 1,
            }
        )


class VehicleDetails(RegistryBaseModel):
    """Read-only projection returned by ``get_vehicle_details``."""

    make: str
    model: str
    year: int
    current_owner: str
    previous_owner: str | None = None
    registration_date: UtcDatetime
    transfer_count: int
