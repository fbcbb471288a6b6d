"""Vehicle registry: the authoritative store of vehicle records."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from datetime import datetime

from pydantic import ValidationError

from pyvinreg._constants import VIN_LENGTH, is_iso_vin
from pyvinreg.config import LedgerConfig
from pyvinreg.exceptions import (
    InvalidVinError,
    InvalidYearError,
    VehicleAlreadyRegisteredError,
    VehicleNotFoundError,
    VinRegValidationError,
)
from pyvinreg.models.vehicle import Vehicle

_logger = logging.getLogger(__name__)


def normalize_vin(vin: str | None, *, strict: bool = False) -> str:
    """Strip surrounding whitespace and validate *vin*.

    Raises :class:`InvalidVinError` for an empty VIN, or, with *strict*,
    one that is not a 17-character ISO 3779 VIN.
    """
    if vin is not None and not isinstance(vin, str):
        raise InvalidVinError(f"vin must be a string, got {type(vin).__name__}")
    value = (vin or "").strip()
    if not value:
        raise InvalidVinError("vin must be non-empty", vin=vin)
    if strict and not is_iso_vin(value):
        raise InvalidVinError(
            f"vin must be {VIN_LENGTH} characters of A-Z/0-9 excluding I, O and Q, got {value!r}",
            vin=value,
        )
    return value


class VehicleRegistry:
    """Keyed store of :class:`Vehicle` records.

    Records are never deleted.  The registry does no locking of its own;
    the ledger holds the VIN lock around every call.
    """

    def __init__(self, config: LedgerConfig | None = None) -> None:
        self._config = config or LedgerConfig()
        self._vehicles: dict[str, Vehicle] = {}

    def validate_year(self, vin: str, year: int, now: datetime) -> None:
        if not isinstance(year, int) or isinstance(year, bool):
            raise InvalidYearError(f"year must be an integer, got {year!r}", vin=vin)
        if year > now.year:
            raise InvalidYearError(
                f"year {year} is after the current year {now.year}",
                vin=vin,
                year=year,
            )
        if year < self._config.min_model_year:
            raise InvalidYearError(
                f"year {year} is before {self._config.min_model_year}",
                vin=vin,
                year=year,
            )

    def register(
        self,
        vin: str,
        make: str,
        model: str,
        year: int,
        caller: str,
        now: datetime,
    ) -> Vehicle:
        """Create and store a new vehicle owned by *caller*.

        *vin* must already be normalized (see :func:`normalize_vin`).
        Every check runs before the record is stored.
        """
        for field, value in (("make", make), ("model", model)):
            if not isinstance(value, str):
                raise VinRegValidationError(f"{field} must be a string, got {type(value).__name__}", vin=vin)
        if vin in self._vehicles:
            raise VehicleAlreadyRegisteredError(f"vehicle {vin} is already registered", vin=vin)
        self.validate_year(vin, year, now)

        try:
            vehicle = Vehicle(
                vin=vin,
                make=make,
                model=model,
                year=year,
                current_owner=caller,
                previous_owner=None,
                registration_date=now,
            )
        except ValidationError as exc:
            raise VinRegValidationError(f"invalid vehicle record for {vin}: {exc}", vin=vin) from exc
        self._vehicles[vin] = vehicle
        _logger.debug("Registered vehicle vin=%s owner=%s year=%s", vin, caller, year)
        return vehicle

    def get(self, vin: str) -> Vehicle | None:
        return self._vehicles.get(vin)

    def require(self, vin: str) -> Vehicle:
        vehicle = self._vehicles.get(vin)
        if vehicle is None or not vehicle.registered:
            raise VehicleNotFoundError(f"vehicle {vin} is not registered", vin=vin)
        return vehicle

    def contains(self, vin: str) -> bool:
        vehicle = self._vehicles.get(vin)
        return vehicle is not None and vehicle.registered

    def replace(self, vehicle: Vehicle) -> None:
        """Swap in an updated record for an existing VIN."""
        if vehicle.vin not in self._vehicles:
            raise VehicleNotFoundError(f"vehicle {vehicle.vin} is not registered", vin=vehicle.vin)
        self._vehicles[vehicle.vin] = vehicle

    def load(self, vehicle: Vehicle) -> None:
        """Insert a record restored from a snapshot."""
        if vehicle.vin in self._vehicles:
            raise VehicleAlreadyRegisteredError(f"vehicle {vehicle.vin} is already registered", vin=vehicle.vin)
        self._vehicles[vehicle.vin] = vehicle

    def __iter__(self) -> Iterator[Vehicle]:
        return iter(list(self._vehicles.values()))

    def __len__(self) -> int:
        return len(self._vehicles)
