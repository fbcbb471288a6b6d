"""Transfer state machine storage.

At most one :class:`TransferRequest` exists per VIN.  A request is
created by ``initiate``, marked completed by ``complete`` and deleted by
``cancel``.  Completed requests are kept (or dropped, per
``LedgerConfig.retain_completed_transfers``) and every completion is
appended to the VIN's transfer history.

Like the registry, the store relies on the ledger's VIN lock.
"""

from __future__ import annotations

import logging
from datetime import datetime

from pyvinreg.config import LedgerConfig
from pyvinreg.exceptions import (
    NoPendingTransferError,
    TransferAlreadyCompletedError,
    TransferAlreadyPendingError,
)
from pyvinreg.models.transfer import (
    PendingTransfer,
    TransferRecord,
    TransferRequest,
    TransferState,
)

_logger = logging.getLogger(__name__)


class TransferStore:
    """Per-VIN transfer requests plus completed-transfer history."""

    def __init__(self, config: LedgerConfig | None = None) -> None:
        self._config = config or LedgerConfig()
        self._requests: dict[str, TransferRequest] = {}
        self._history: dict[str, list[TransferRecord]] = {}

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, vin: str) -> TransferRequest | None:
        return self._requests.get(vin)

    def state(self, vin: str) -> TransferState:
        request = self._requests.get(vin)
        if request is None:
            return TransferState.NO_TRANSFER
        return request.state

    def pending_view(self, vin: str) -> PendingTransfer:
        request = self._requests.get(vin)
        if request is None:
            return PendingTransfer.none()
        return PendingTransfer.from_request(request)

    def history(self, vin: str) -> list[TransferRecord]:
        return list(self._history.get(vin, ()))

    def require_request(self, vin: str) -> TransferRequest:
        request = self._requests.get(vin)
        if request is None:
            raise NoPendingTransferError(f"no transfer request exists for {vin}", vin=vin)
        return request

    def require_open(self, vin: str) -> TransferRequest:
        """Return the request for *vin*, which must not be completed yet."""
        request = self.require_request(vin)
        if request.completed:
            raise TransferAlreadyCompletedError(f"transfer of {vin} is already completed", vin=vin)
        return request

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def ensure_can_open(self, vin: str) -> None:
        if self.state(vin) is TransferState.PENDING:
            raise TransferAlreadyPendingError(f"a transfer of {vin} is already pending", vin=vin)

    def open(self, vin: str, from_owner: str, to_owner: str, now: datetime) -> TransferRequest:
        """Create the pending request; replaces a retained completed one."""
        self.ensure_can_open(vin)
        request = TransferRequest(
            vin=vin,
            from_owner=from_owner,
            to_owner=to_owner,
            request_time=now,
        )
        self._requests[vin] = request
        _logger.debug("Transfer initiated vin=%s from=%s to=%s", vin, from_owner, to_owner)
        return request

    def complete(self, vin: str, now: datetime) -> TransferRecord:
        """Mark the open request accepted and record it in the history."""
        request = self.require_open(vin)
        history = self._history.get(vin, [])
        record = TransferRecord(
            vin=vin,
            sequence=len(history) + 1,
            from_owner=request.from_owner,
            to_owner=request.to_owner,
            requested_at=request.request_time,
            completed_at=now,
        )

        if self._config.retain_completed_transfers:
            self._requests[vin] = request.accepted(now)
        else:
            del self._requests[vin]
        self._history[vin] = [*history, record]
        _logger.debug("Transfer completed vin=%s sequence=%s", vin, record.sequence)
        return record

    def cancel(self, vin: str) -> TransferRequest:
        request = self.require_open(vin)
        del self._requests[vin]
        _logger.debug("Transfer cancelled vin=%s from=%s", vin, request.from_owner)
        return request

    # ------------------------------------------------------------------
    # Snapshot support
    # ------------------------------------------------------------------

    def requests(self) -> list[TransferRequest]:
        return list(self._requests.values())

    def all_history(self) -> dict[str, list[TransferRecord]]:
        return {vin: list(records) for vin, records in self._history.items()}

    def load(self, requests: list[TransferRequest], history: dict[str, list[TransferRecord]]) -> None:
        self._requests = {request.vin: request for request in requests}
        self._history = {vin: list(records) for vin, records in history.items()}
