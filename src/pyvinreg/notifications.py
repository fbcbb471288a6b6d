"""Post-commit notification fan-out.

The ledger hands each committed :class:`RegistryEvent` to a
:class:`Notifier`, which forwards it to every sink and subscriber.
Delivery is fire-and-forget: a failing sink is logged and skipped, and
the operation that produced the event has already succeeded.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Callable, Iterable
from typing import Protocol, runtime_checkable

from pyvinreg.state.events import RegistryEvent

_logger = logging.getLogger(__name__)

EventCallback = Callable[[RegistryEvent], None]


@runtime_checkable
class NotificationSink(Protocol):
    """Structural interface for anything that receives registry events.

    ``publish`` must not block on network I/O; sinks that talk to an
    external system queue the delivery and return.
    """

    def publish(self, event: RegistryEvent) -> None:
        ...


class EventLog:
    """Bounded in-memory audit trail of recent events."""

    def __init__(self, maxlen: int = 1000) -> None:
        self._lock = threading.Lock()
        self._events: deque[RegistryEvent] = deque(maxlen=maxlen)

    def publish(self, event: RegistryEvent) -> None:
        with self._lock:
            self._events.append(event)

    def recent(self, vin: str | None = None) -> list[RegistryEvent]:
        """Events oldest first, optionally only those for *vin*."""
        with self._lock:
            events = list(self._events)
        if vin is not None:
            events = [e for e in events if e.vin == vin]
        return events

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)


class Notifier:
    """Deliver events to sinks and subscriber callbacks."""

    def __init__(self, sinks: Iterable[NotificationSink] = ()) -> None:
        self._lock = threading.Lock()
        self._sinks: list[NotificationSink] = list(sinks)
        self._subscribers: list[EventCallback] = []

    def add_sink(self, sink: NotificationSink) -> None:
        with self._lock:
            self._sinks.append(sink)

    def subscribe(self, callback: EventCallback) -> Callable[[], None]:
        """Register *callback*; returns a function that unsubscribes it."""
        with self._lock:
            self._subscribers.append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return _unsubscribe

    def publish(self, event: RegistryEvent) -> None:
        with self._lock:
            targets: list[EventCallback] = [sink.publish for sink in self._sinks]
            targets.extend(self._subscribers)

        for target in targets:
            try:
                target(event)
            except Exception:
                _logger.warning(
                    "Notification delivery failed event=%s vin=%s target=%r",
                    event.event_type,
                    event.vin,
                    target,
                    exc_info=True,
                )
