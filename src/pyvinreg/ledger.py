"""High-level vehicle ledger: registry plus ownership transfers."""

from __future__ import annotations

import logging
import threading
from collections import Counter
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from typing import Any

from pyvinreg.config import LedgerConfig
from pyvinreg.exceptions import (
    NotDesignatedRecipientError,
    NoPendingTransferFromCallerError,
    VehicleNotFoundError,
    VinRegStateError,
)
from pyvinreg.guards import (
    is_registered,
    is_zero_principal,
    require_caller,
    require_owner,
    require_recipient,
    require_registered,
)
from pyvinreg.models._base import ensure_utc
from pyvinreg.models.snapshot import SNAPSHOT_VERSION, LedgerSnapshot
from pyvinreg.models.transfer import PendingTransfer, TransferRecord, TransferState
from pyvinreg.models.vehicle import VehicleDetails
from pyvinreg.notifications import EventCallback, EventLog, NotificationSink, Notifier
from pyvinreg.owner_index import OwnerIndex
from pyvinreg.registry import VehicleRegistry, normalize_vin
from pyvinreg.state.events import EventType, RegistryEvent
from pyvinreg.state.locks import KeyedLock, SharedExclusiveLock
from pyvinreg.transfers import TransferStore

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _lookup_vin(vin: str | None) -> str:
    """Normalize a VIN used to look up an existing entry."""
    value = vin.strip() if isinstance(vin, str) else ""
    if not value:
        raise VehicleNotFoundError("vin must be a non-empty string", vin=vin if isinstance(vin, str) else None)
    return value


def _lookup_owner(owner: str | None) -> str | None:
    """Normalize a principal the way mutating calls normalize the caller."""
    if owner is None or is_zero_principal(owner):
        return None
    return owner.strip()


class VehicleLedger:
    """Vehicle registry with a two-phase ownership transfer protocol.

    Every mutating call takes the authenticated ``caller`` supplied by the
    surrounding environment.  Calls on the same VIN are serialized; calls
    on different VINs run concurrently.  A failed call raises a
    :class:`~pyvinreg.exceptions.VinRegError` subclass and leaves the
    ledger exactly as it was.

    Usage::

        ledger = VehicleLedger()
        ledger.register("1HGCM82633A004352", "Honda", "Accord", 2003, "alice")
        ledger.initiate_transfer("1HGCM82633A004352", "bob", "alice")
        ledger.complete_transfer("1HGCM82633A004352", "bob")
    """

    def __init__(
        self,
        config: LedgerConfig | None = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
        sinks: Iterable[NotificationSink] = (),
        on_event: EventCallback | None = None,
    ) -> None:
        self._config = config or LedgerConfig()
        self._clock = clock
        self._registry = VehicleRegistry(self._config)
        self._owners = OwnerIndex()
        self._transfers = TransferStore(self._config)
        self._locks = KeyedLock()
        self._gate = SharedExclusiveLock()
        self._sequence_lock = threading.Lock()
        self._sequence = 0
        self._sinks = list(sinks)
        self._event_log = EventLog(self._config.event_log_size)
        self._notifier = Notifier([self._event_log, *self._sinks])
        if on_event is not None:
            self._notifier.subscribe(on_event)

    @property
    def config(self) -> LedgerConfig:
        return self._config

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    def __enter__(self) -> VehicleLedger:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close every sink that supports it."""
        for sink in self._sinks:
            close = getattr(sink, "close", None)
            if callable(close):
                close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _now(self) -> datetime:
        return ensure_utc(self._clock())

    def _next_event(
        self,
        event_type: EventType,
        vin: str,
        actor: str,
        now: datetime,
        *,
        from_owner: str | None = None,
        to_owner: str | None = None,
    ) -> RegistryEvent:
        """Build the event for a change that has just been applied.

        Called inside the VIN lock so sequence numbers follow commit order.
        """
        with self._sequence_lock:
            self._sequence += 1
            sequence = self._sequence
        return RegistryEvent(
            event_type=event_type,
            vin=vin,
            actor=actor,
            from_owner=from_owner,
            to_owner=to_owner,
            timestamp=now,
            sequence=sequence,
        )

    def _emit(self, event: RegistryEvent) -> None:
        _logger.debug("Emitting %s vin=%s sequence=%s", event.event_type, event.vin, event.sequence)
        self._notifier.publish(event)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, vin: str, make: str, model: str, year: int, caller: str) -> VehicleDetails:
        """Register a new vehicle owned by *caller*.

        Raises
        ------
        InvalidCallerError
            *caller* is the zero identity.
        InvalidVinError
            *vin* is empty (or malformed with ``strict_vin``).
        VehicleAlreadyRegisteredError
            *vin* is already registered.
        InvalidYearError
            *year* is after the clock's current year.
        """
        caller = require_caller(caller)
        vin = normalize_vin(vin, strict=self._config.strict_vin)
        with self._gate.shared(), self._locks.hold(vin):
            now = self._now()
            vehicle = self._registry.register(vin, make, model, year, caller, now)
            self._owners.append(caller, vin)
            event = self._next_event(EventType.VEHICLE_REGISTERED, vin, caller, now, to_owner=caller)
        self._emit(event)
        return vehicle.details()

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------

    def initiate_transfer(self, vin: str, recipient: str, caller: str) -> PendingTransfer:
        """Propose transferring *vin* from its owner *caller* to *recipient*."""
        caller = require_caller(caller)
        vin = _lookup_vin(vin)
        with self._gate.shared(), self._locks.hold(vin):
            require_owner(self._registry, vin, caller)
            recipient = require_recipient(vin, recipient, caller)
            now = self._now()
            request = self._transfers.open(vin, caller, recipient, now)
            event = self._next_event(
                EventType.TRANSFER_INITIATED,
                vin,
                caller,
                now,
                from_owner=caller,
                to_owner=recipient,
            )
        self._emit(event)
        return PendingTransfer.from_request(request)

    def complete_transfer(self, vin: str, caller: str) -> VehicleDetails:
        """Accept the pending transfer of *vin*; *caller* must be its recipient."""
        caller = require_caller(caller)
        vin = _lookup_vin(vin)
        with self._gate.shared(), self._locks.hold(vin):
            vehicle = require_registered(self._registry, vin)
            request = self._transfers.require_request(vin)
            if caller != request.to_owner:
                raise NotDesignatedRecipientError(
                    f"{caller} is not the designated recipient for {vin}",
                    vin=vin,
                    principal=caller,
                )
            self._transfers.require_open(vin)

            now = self._now()
            updated = vehicle.transferred_to(caller)
            self._transfers.complete(vin, now)
            self._registry.replace(updated)
            self._owners.append(caller, vin)
            event = self._next_event(
                EventType.TRANSFER_COMPLETED,
                vin,
                caller,
                now,
                from_owner=vehicle.current_owner,
                to_owner=caller,
            )
        self._emit(event)
        return updated.details()

    def cancel_transfer(self, vin: str, caller: str) -> None:
        """Withdraw the pending transfer of *vin*; *caller* must have initiated it."""
        caller = require_caller(caller)
        vin = _lookup_vin(vin)
        with self._gate.shared(), self._locks.hold(vin):
            require_owner(self._registry, vin, caller)
            request = self._transfers.require_open(vin)
            if request.from_owner != caller:
                raise NoPendingTransferFromCallerError(
                    f"the pending transfer of {vin} was not initiated by {caller}",
                    vin=vin,
                    principal=caller,
                )
            self._transfers.cancel(vin)
            event = self._next_event(
                EventType.TRANSFER_CANCELLED,
                vin,
                caller,
                self._now(),
                from_owner=request.from_owner,
                to_owner=request.to_owner,
            )
        self._emit(event)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_registered(self, vin: str) -> bool:
        value = vin.strip() if isinstance(vin, str) else ""
        if not value:
            return False
        with self._locks.hold(value):
            return is_registered(self._registry, value)

    def get_vehicle_details(self, vin: str) -> VehicleDetails:
        vin = _lookup_vin(vin)
        with self._locks.hold(vin):
            return require_registered(self._registry, vin).details()

    def get_owner_vehicles(self, owner: str) -> list[str]:
        """Every VIN *owner* has registered or received, oldest first.

        Former owners keep the VIN after transferring it away.
        """
        principal = _lookup_owner(owner)
        if principal is None:
            return []
        return self._owners.index_for(principal)

    def get_current_vehicles(self, owner: str) -> list[str]:
        """VINs *owner* holds right now, in the order they were acquired."""
        principal = _lookup_owner(owner)
        if principal is None:
            return []
        current: list[str] = []
        for vin in dict.fromkeys(self._owners.index_for(principal)):
            with self._locks.hold(vin):
                vehicle = self._registry.get(vin)
                if vehicle is not None and vehicle.current_owner == principal:
                    current.append(vin)
        return current

    def get_pending_transfer(self, vin: str) -> PendingTransfer:
        """The VIN's transfer request, or a zero-valued projection if there is none."""
        value = vin.strip() if isinstance(vin, str) else ""
        if not value:
            return PendingTransfer.none()
        with self._locks.hold(value):
            return self._transfers.pending_view(value)

    def get_transfer_state(self, vin: str) -> TransferState:
        vin = _lookup_vin(vin)
        with self._locks.hold(vin):
            require_registered(self._registry, vin)
            return self._transfers.state(vin)

    def get_transfer_history(self, vin: str) -> list[TransferRecord]:
        vin = _lookup_vin(vin)
        with self._locks.hold(vin):
            require_registered(self._registry, vin)
            return self._transfers.history(vin)

    def total_vehicles(self) -> int:
        return len(self._registry)

    def __len__(self) -> int:
        return self.total_vehicles()

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def subscribe(self, callback: EventCallback) -> Callable[[], None]:
        """Call *callback* with every event committed from now on."""
        return self._notifier.subscribe(callback)

    def add_sink(self, sink: NotificationSink) -> None:
        self._sinks.append(sink)
        self._notifier.add_sink(sink)

    def recent_events(self, vin: str | None = None) -> list[RegistryEvent]:
        return self._event_log.recent(vin)

    # ------------------------------------------------------------------
    # Snapshots and invariants
    # ------------------------------------------------------------------

    def snapshot(self) -> LedgerSnapshot:
        """Export the whole ledger as seen at a single instant."""
        with self._gate.exclusive():
            with self._sequence_lock:
                last_sequence = self._sequence
            return LedgerSnapshot(
                taken_at=self._now(),
                vehicles=list(self._registry),
                transfers=self._transfers.requests(),
                owner_index=self._owners.as_dict(),
                history=self._transfers.all_history(),
                last_sequence=last_sequence,
            )

    @classmethod
    def from_snapshot(
        cls,
        snapshot: LedgerSnapshot,
        config: LedgerConfig | None = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
        sinks: Iterable[NotificationSink] = (),
        on_event: EventCallback | None = None,
    ) -> VehicleLedger:
        """Rebuild a ledger from :meth:`snapshot` output.

        Raises :class:`VinRegStateError` if the snapshot violates a ledger
        invariant or was written by an unsupported snapshot version.  No
        events are emitted for restored state.
        """
        if snapshot.version != SNAPSHOT_VERSION:
            raise VinRegStateError(
                f"unsupported snapshot version {snapshot.version}, expected {SNAPSHOT_VERSION}"
            )
        ledger = cls(config, clock=clock, sinks=sinks, on_event=on_event)
        for vehicle in snapshot.vehicles:
            ledger._registry.load(vehicle)
        for owner, vins in snapshot.owner_index.items():
            for vin in vins:
                ledger._owners.append(owner, vin)
        ledger._transfers.load(snapshot.transfers, snapshot.history)
        ledger._sequence = snapshot.last_sequence

        violations = ledger.check_invariants()
        if violations:
            raise VinRegStateError(f"snapshot is inconsistent: {'; '.join(violations)}")
        _logger.debug(
            "Restored ledger vehicles=%s transfers=%s last_sequence=%s",
            len(snapshot.vehicles),
            len(snapshot.transfers),
            snapshot.last_sequence,
        )
        return ledger

    def check_invariants(self) -> list[str]:
        """Return a description of every violated ledger invariant.

        An empty list means the registry, owner index and transfer store
        agree with each other.
        """
        violations: list[str] = []
        with self._gate.exclusive():
            for vehicle in self._registry:
                vin = vehicle.vin
                if vehicle.registered and not vehicle.current_owner:
                    violations.append(f"{vin}: registered vehicle has no current owner")

                history = self._transfers.history(vin)
                if vehicle.transfer_count != len(history):
                    violations.append(
                        f"{vin}: transfer_count {vehicle.transfer_count} != {len(history)} completed transfers"
                    )
                if history and history[-1].to_owner != vehicle.current_owner:
                    violations.append(f"{vin}: last completed transfer does not name the current owner")

                request = self._transfers.get(vin)
                if request is not None and not request.completed and request.from_owner != vehicle.current_owner:
                    violations.append(f"{vin}: pending transfer was not initiated by the current owner")

            for request in self._transfers.requests():
                if not self._registry.contains(request.vin):
                    violations.append(f"{request.vin}: transfer request for unregistered vehicle")

            history_by_vin = self._transfers.all_history()
            for vin in history_by_vin:
                if not self._registry.contains(vin):
                    violations.append(f"{vin}: transfer history for unregistered vehicle")

            violations.extend(self._owner_index_violations(history_by_vin))
        return violations

    def _owner_index_violations(self, history_by_vin: dict[str, list[TransferRecord]]) -> list[str]:
        """Compare the owner index with what registrations and transfers account for.

        Each principal should list a VIN once for registering it and once
        per completed transfer it received.  Called with the gate held.
        """
        expected: Counter[tuple[str, str]] = Counter()
        for vehicle in self._registry:
            history = history_by_vin.get(vehicle.vin, [])
            registrant = history[0].from_owner if history else vehicle.current_owner
            expected[(registrant, vehicle.vin)] += 1
            for record in history:
                expected[(record.to_owner, vehicle.vin)] += 1

        actual: Counter[tuple[str, str]] = Counter()
        for owner, vins in self._owners.as_dict().items():
            for vin in vins:
                actual[(owner, vin)] += 1

        violations: list[str] = []
        for (owner, vin), count in actual.items():
            if not self._registry.contains(vin):
                violations.append(f"{vin}: owner index of {owner} names an unregistered vehicle")
            elif count > expected[(owner, vin)]:
                violations.append(
                    f"{vin}: owner index of {owner} is not backed by a registration or completed transfer"
                )
        for (owner, vin), count in expected.items():
            if actual[(owner, vin)] < count:
                violations.append(f"{vin}: missing from owner index of {owner}")
        return violations
