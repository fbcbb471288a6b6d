from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from pyvinreg.config import LedgerConfig
from pyvinreg.ledger import VehicleLedger
from pyvinreg.state.events import RegistryEvent

VIN = "1HGCM82633A004352"
OTHER_VIN = "JH4KA7561PC008269"


class FakeClock:
    """Controllable clock injected into the ledger."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 5, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def events() -> list[RegistryEvent]:
    return []


@pytest.fixture
def ledger(clock: FakeClock, events: list[RegistryEvent]) -> VehicleLedger:
    return VehicleLedger(LedgerConfig(), clock=clock, on_event=events.append)


@pytest.fixture
def registered(ledger: VehicleLedger) -> str:
    ledger.register(VIN, "Honda", "Accord", 2003, "alice")
    return VIN
