from __future__ import annotations

import pytest
from conftest import OTHER_VIN, VIN, FakeClock

from pyvinreg.exceptions import TransferAlreadyPendingError, VinRegStateError
from pyvinreg.ledger import VehicleLedger
from pyvinreg.models.snapshot import SNAPSHOT_VERSION, LedgerSnapshot
from pyvinreg.models.transfer import TransferState
from pyvinreg.state.events import EventType, RegistryEvent


def _populated(clock: FakeClock) -> VehicleLedger:
    ledger = VehicleLedger(clock=clock)
    ledger.register(VIN, "Honda", "Accord", 2003, "alice")
    ledger.register(OTHER_VIN, "Acura", "Legend", 1993, "carol")
    ledger.initiate_transfer(VIN, "bob", "alice")
    ledger.complete_transfer(VIN, "bob")
    ledger.initiate_transfer(OTHER_VIN, "dave", "carol")
    return ledger


def test_snapshot_contents(clock: FakeClock) -> None:
    snapshot = _populated(clock).snapshot()

    assert snapshot.taken_at == clock.now
    assert {v.vin for v in snapshot.vehicles} == {VIN, OTHER_VIN}
    assert snapshot.owner_index == {"alice": [VIN], "carol": [OTHER_VIN], "bob": [VIN]}
    assert [r.to_owner for r in snapshot.history[VIN]] == ["bob"]
    assert snapshot.last_sequence == 5


def test_restore_preserves_state(clock: FakeClock) -> None:
    original = _populated(clock)
    payload = original.snapshot().model_dump_json()

    events: list[RegistryEvent] = []
    restored = VehicleLedger.from_snapshot(
        LedgerSnapshot.model_validate_json(payload),
        clock=clock,
        on_event=events.append,
    )

    assert events == []
    assert restored.get_vehicle_details(VIN) == original.get_vehicle_details(VIN)
    assert restored.get_owner_vehicles("alice") == [VIN]
    assert restored.get_transfer_state(VIN) == TransferState.COMPLETED
    assert restored.get_pending_transfer(OTHER_VIN) == original.get_pending_transfer(OTHER_VIN)
    assert restored.get_transfer_history(VIN) == original.get_transfer_history(VIN)

    with pytest.raises(TransferAlreadyPendingError):
        restored.initiate_transfer(OTHER_VIN, "erin", "carol")

    restored.complete_transfer(OTHER_VIN, "dave")
    assert events[-1].event_type == EventType.TRANSFER_COMPLETED
    assert events[-1].sequence == 6


def test_restore_rejects_inconsistent_snapshot(clock: FakeClock) -> None:
    snapshot = _populated(clock).snapshot()
    tampered_vehicles = [
        v.model_copy(update={"transfer_count": 3}) if v.vin == VIN else v for v in snapshot.vehicles
    ]
    tampered = snapshot.model_copy(update={"vehicles": tampered_vehicles})

    with pytest.raises(VinRegStateError, match="transfer_count"):
        VehicleLedger.from_snapshot(tampered, clock=clock)


def test_restore_rejects_missing_index_entry(clock: FakeClock) -> None:
    snapshot = _populated(clock).snapshot()
    tampered = snapshot.model_copy(update={"owner_index": {"alice": [VIN], "carol": [OTHER_VIN]}})

    with pytest.raises(VinRegStateError, match="owner index"):
        VehicleLedger.from_snapshot(tampered, clock=clock)


def test_restore_rejects_forged_owner_index(ledger: VehicleLedger, registered: str, clock: FakeClock) -> None:
    snapshot = ledger.snapshot()
    forged = snapshot.model_copy(update={"owner_index": {"alice": [VIN], "mallory": [VIN, OTHER_VIN]}})

    with pytest.raises(VinRegStateError) as excinfo:
        VehicleLedger.from_snapshot(forged, clock=clock)

    message = str(excinfo.value)
    assert f"{VIN}: owner index of mallory is not backed" in message
    assert f"{OTHER_VIN}: owner index of mallory names an unregistered vehicle" in message


def test_restore_rejects_duplicated_index_entry(clock: FakeClock) -> None:
    snapshot = _populated(clock).snapshot()
    owner_index = {**snapshot.owner_index, "bob": [VIN, VIN]}

    with pytest.raises(VinRegStateError, match="owner index of bob is not backed"):
        VehicleLedger.from_snapshot(snapshot.model_copy(update={"owner_index": owner_index}), clock=clock)


def test_restore_rejects_history_for_unknown_vehicle(clock: FakeClock) -> None:
    snapshot = _populated(clock).snapshot()
    history = {**snapshot.history, "UNKNOWNVIN": snapshot.history[VIN]}

    with pytest.raises(VinRegStateError, match="UNKNOWNVIN: transfer history for unregistered vehicle"):
        VehicleLedger.from_snapshot(snapshot.model_copy(update={"history": history}), clock=clock)


def test_restore_rejects_other_version(clock: FakeClock) -> None:
    snapshot = _populated(clock).snapshot()

    with pytest.raises(VinRegStateError, match="unsupported snapshot version 2"):
        VehicleLedger.from_snapshot(snapshot.model_copy(update={"version": SNAPSHOT_VERSION + 1}), clock=clock)


def test_round_trip_owner_index_is_consistent(ledger: VehicleLedger, registered: str) -> None:
    ledger.initiate_transfer(registered, "bob", "alice")
    ledger.complete_transfer(registered, "bob")
    ledger.initiate_transfer(registered, "alice", "bob")
    ledger.complete_transfer(registered, "alice")

    assert ledger.check_invariants() == []
    assert VehicleLedger.from_snapshot(ledger.snapshot()).get_owner_vehicles("alice") == [VIN, VIN]


def test_snapshot_rejects_unknown_fields() -> None:
    with pytest.raises(ValueError):
        LedgerSnapshot.model_validate({"taken_at": 0, "unexpected": True})


def test_fresh_ledger_is_consistent(ledger: VehicleLedger) -> None:
    assert ledger.check_invariants() == []
    assert ledger.snapshot().vehicles == []
