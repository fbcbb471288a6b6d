from __future__ import annotations

from datetime import UTC, datetime

import pytest
from conftest import OTHER_VIN, VIN, FakeClock

from pyvinreg.config import LedgerConfig
from pyvinreg.exceptions import (
    InvalidCallerError,
    InvalidVinError,
    InvalidYearError,
    VehicleAlreadyRegisteredError,
    VehicleNotFoundError,
    VinRegStateError,
    VinRegValidationError,
)
from pyvinreg.ledger import VehicleLedger
from pyvinreg.registry import VehicleRegistry, normalize_vin
from pyvinreg.state.events import EventType, RegistryEvent


class TestRegister:
    def test_register_then_details(self, ledger: VehicleLedger, clock: FakeClock) -> None:
        ledger.register(VIN, "Honda", "Accord", 2003, "alice")

        details = ledger.get_vehicle_details(VIN)
        assert details.make == "Honda"
        assert details.model == "Accord"
        assert details.year == 2003
        assert details.current_owner == "alice"
        assert details.previous_owner is None
        assert details.transfer_count == 0
        assert details.registration_date == clock.now

    def test_register_appends_to_owner_index(self, ledger: VehicleLedger) -> None:
        ledger.register(VIN, "Honda", "Accord", 2003, "alice")
        ledger.register(OTHER_VIN, "Acura", "Legend", 1993, "alice")

        assert ledger.get_owner_vehicles("alice") == [VIN, OTHER_VIN]

    def test_register_emits_event(self, ledger: VehicleLedger, events: list[RegistryEvent], clock: FakeClock) -> None:
        ledger.register(VIN, "Honda", "Accord", 2003, "alice")

        assert len(events) == 1
        event = events[0]
        assert event.event_type == EventType.VEHICLE_REGISTERED
        assert event.vin == VIN
        assert event.actor == "alice"
        assert event.to_owner == "alice"
        assert event.timestamp == clock.now
        assert event.sequence == 1

    def test_duplicate_register_fails_and_keeps_original(self, ledger: VehicleLedger, clock: FakeClock) -> None:
        ledger.register(VIN, "Honda", "Accord", 2003, "alice")
        first = ledger.get_vehicle_details(VIN)
        clock.advance(days=1)

        with pytest.raises(VehicleAlreadyRegisteredError) as excinfo:
            ledger.register(VIN, "Toyota", "Camry", 2010, "bob")

        assert isinstance(excinfo.value, VinRegStateError)
        assert excinfo.value.vin == VIN
        assert ledger.get_vehicle_details(VIN) == first
        assert ledger.get_owner_vehicles("bob") == []
        assert len(ledger) == 1

    @pytest.mark.parametrize("vin", ["", "   ", None])
    def test_empty_vin_rejected(self, ledger: VehicleLedger, vin: str | None) -> None:
        with pytest.raises(InvalidVinError) as excinfo:
            ledger.register(vin, "Honda", "Accord", 2003, "alice")  # type: ignore[arg-type]
        assert isinstance(excinfo.value, VinRegValidationError)
        assert len(ledger) == 0

    def test_vin_whitespace_is_stripped(self, ledger: VehicleLedger) -> None:
        ledger.register(f"  {VIN} ", "Honda", "Accord", 2003, "alice")
        assert ledger.is_registered(VIN)

    def test_future_year_rejected(self, ledger: VehicleLedger, events: list[RegistryEvent]) -> None:
        with pytest.raises(InvalidYearError) as excinfo:
            ledger.register(VIN, "Honda", "Accord", 2025, "alice")

        assert isinstance(excinfo.value, VinRegValidationError)
        assert excinfo.value.year == 2025
        assert not ledger.is_registered(VIN)
        assert ledger.get_owner_vehicles("alice") == []
        assert events == []

    def test_current_year_accepted(self, ledger: VehicleLedger) -> None:
        ledger.register(VIN, "Honda", "Accord", 2024, "alice")
        assert ledger.get_vehicle_details(VIN).year == 2024

    def test_year_follows_the_clock(self, clock: FakeClock) -> None:
        ledger = VehicleLedger(clock=clock)
        clock.now = datetime(2026, 1, 1, tzinfo=UTC)
        ledger.register(VIN, "Honda", "Accord", 2026, "alice")
        assert ledger.get_vehicle_details(VIN).year == 2026

    def test_year_before_minimum_rejected(self, clock: FakeClock) -> None:
        ledger = VehicleLedger(LedgerConfig(min_model_year=1950), clock=clock)
        with pytest.raises(InvalidYearError):
            ledger.register(VIN, "Ford", "Model T", 1920, "alice")

    def test_empty_caller_rejected(self, ledger: VehicleLedger) -> None:
        with pytest.raises(InvalidCallerError):
            ledger.register(VIN, "Honda", "Accord", 2003, "")
        assert not ledger.is_registered(VIN)

    @pytest.mark.parametrize(
        ("make", "model", "year"),
        [
            (None, "Accord", 2003),
            ("Honda", 42, 2003),
            ("Honda", "Accord", "2003"),
            ("Honda", "Accord", 2003.0),
            ("Honda", "Accord", True),
            ("Honda", "Accord", None),
        ],
    )
    def test_malformed_fields_rejected(
        self,
        ledger: VehicleLedger,
        events: list[RegistryEvent],
        make: object,
        model: object,
        year: object,
    ) -> None:
        with pytest.raises(VinRegValidationError):
            ledger.register(VIN, make, model, year, "alice")  # type: ignore[arg-type]

        assert not ledger.is_registered(VIN)
        assert ledger.get_owner_vehicles("alice") == []
        assert events == []

    @pytest.mark.parametrize("vin", [12345, ["VIN"]])
    def test_non_string_vin_rejected(self, ledger: VehicleLedger, vin: object) -> None:
        with pytest.raises(InvalidVinError):
            ledger.register(vin, "Honda", "Accord", 2003, "alice")  # type: ignore[arg-type]

    def test_non_string_caller_rejected(self, ledger: VehicleLedger) -> None:
        with pytest.raises(InvalidCallerError):
            ledger.register(VIN, "Honda", "Accord", 2003, 7)  # type: ignore[arg-type]

    def test_naive_clock_is_treated_as_utc(self) -> None:
        ledger = VehicleLedger(clock=lambda: datetime(2024, 1, 1, 8, 30))
        ledger.register(VIN, "Honda", "Accord", 2003, "alice")
        assert ledger.get_vehicle_details(VIN).registration_date == datetime(2024, 1, 1, 8, 30, tzinfo=UTC)


class TestStrictVin:
    def test_iso_vin_accepted(self, clock: FakeClock) -> None:
        ledger = VehicleLedger(LedgerConfig(strict_vin=True), clock=clock)
        ledger.register(VIN, "Honda", "Accord", 2003, "alice")
        assert ledger.is_registered(VIN)

    @pytest.mark.parametrize("vin", ["ABC123", "1HGCM82633A00435I", "1hgcm82633a004352"])
    def test_malformed_vin_rejected(self, clock: FakeClock, vin: str) -> None:
        ledger = VehicleLedger(LedgerConfig(strict_vin=True), clock=clock)
        with pytest.raises(InvalidVinError):
            ledger.register(vin, "Honda", "Accord", 2003, "alice")

    def test_lenient_mode_accepts_any_non_empty_vin(self, ledger: VehicleLedger) -> None:
        ledger.register("VIN-1", "Honda", "Accord", 2003, "alice")
        assert ledger.is_registered("VIN-1")


class TestDetails:
    def test_unknown_vin(self, ledger: VehicleLedger) -> None:
        with pytest.raises(VehicleNotFoundError) as excinfo:
            ledger.get_vehicle_details(VIN)
        assert isinstance(excinfo.value, VinRegStateError)

    def test_empty_vin_lookup(self, ledger: VehicleLedger) -> None:
        with pytest.raises(VehicleNotFoundError):
            ledger.get_vehicle_details("")

    def test_is_registered(self, ledger: VehicleLedger, registered: str) -> None:
        assert ledger.is_registered(registered)
        assert ledger.is_registered(f" {registered} ")
        assert not ledger.is_registered(OTHER_VIN)
        assert not ledger.is_registered("")
        assert not ledger.is_registered(None)  # type: ignore[arg-type]

    def test_non_string_lookup(self, ledger: VehicleLedger) -> None:
        with pytest.raises(VehicleNotFoundError):
            ledger.get_vehicle_details(17)  # type: ignore[arg-type]
        assert not ledger.get_pending_transfer(17).exists  # type: ignore[arg-type]


def test_registry_store_directly() -> None:
    registry = VehicleRegistry()
    now = datetime(2024, 1, 1, tzinfo=UTC)

    vehicle = registry.register(VIN, "Honda", "Accord", 2003, "alice", now)

    assert registry.get(VIN) == vehicle
    assert registry.contains(VIN)
    assert [v.vin for v in registry] == [VIN]
    assert len(registry) == 1
    with pytest.raises(VehicleNotFoundError):
        registry.require(OTHER_VIN)


def test_normalize_vin() -> None:
    assert normalize_vin(" abc ") == "abc"
    assert normalize_vin(VIN, strict=True) == VIN
    with pytest.raises(InvalidVinError):
        normalize_vin("\t")
