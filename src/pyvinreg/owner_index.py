"""Reverse lookup from a principal to the VINs it has held."""

from __future__ import annotations

import threading


class OwnerIndex:
    """Append-only principal -> VIN list.

    A VIN is appended when a principal registers it and when a principal
    receives it through a completed transfer.  Former owners keep the
    VIN, so the same VIN may appear under several principals.

    Appends for different VINs can target the same principal, so the
    index carries its own lock in addition to the ledger's VIN lock.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, list[str]] = {}

    def append(self, owner: str, vin: str) -> None:
        with self._lock:
            self._entries.setdefault(owner, []).append(vin)

    def index_for(self, owner: str) -> list[str]:
        """VINs associated with *owner*, in insertion order."""
        with self._lock:
            return list(self._entries.get(owner, ()))

    def as_dict(self) -> dict[str, list[str]]:
        with self._lock:
            return {owner: list(vins) for owner, vins in self._entries.items()}
