#!/usr/bin/env python3
"""Replay a JSON list of ledger operations and print what happened.

Each operation is an object with an ``op`` key naming a ledger method
plus its keyword arguments::

    [
      {"op": "register", "vin": "1HGCM82633A004352", "make": "Honda",
       "model": "Accord", "year": 2003, "caller": "alice"},
      {"op": "initiate_transfer", "vin": "1HGCM82633A004352",
       "recipient": "bob", "caller": "alice"},
      {"op": "complete_transfer", "vin": "1HGCM82633A004352", "caller": "bob"}
    ]

Usage
-----
::

    python scripts/replay_operations.py ops.json
    python scripts/replay_operations.py ops.json --snapshot -o state.json
    python scripts/replay_operations.py more.json --restore state.json

Sinks configured through ``VINREG_*`` environment variables (MQTT broker,
webhook URL) receive every event while the replay runs.

Options::

    --restore FILE      Start from a snapshot written by --snapshot
    --snapshot          Print the final ledger snapshot as JSON
    --output / -o FILE  Write the snapshot to FILE instead of stdout
    --stop-on-error     Abort at the first rejected operation
    --verbose / -v      Enable debug logging
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pyvinreg import LedgerConfig, VehicleLedger, VinRegError  # noqa: E402
from pyvinreg.models import LedgerSnapshot  # noqa: E402
from pyvinreg.sinks import WebhookNotificationSink, build_sinks  # noqa: E402
from pyvinreg.state.events import RegistryEvent  # noqa: E402

_OPERATIONS = {
    "register": ("vin", "make", "model", "year", "caller"),
    "initiate_transfer": ("vin", "recipient", "caller"),
    "complete_transfer": ("vin", "caller"),
    "cancel_transfer": ("vin", "caller"),
}


def _print_event(event: RegistryEvent) -> None:
    parties = ""
    if event.from_owner or event.to_owner:
        parties = f" {event.from_owner or '-'} -> {event.to_owner or '-'}"
    print(f"  #{event.sequence:<4} {event.event_type.value:<20} {event.vin}{parties}")


def apply_operation(ledger: VehicleLedger, operation: dict[str, Any]) -> Any:
    """Apply one decoded operation to *ledger* and return the method's result."""
    name = operation.get("op")
    if name not in _OPERATIONS:
        raise ValueError(f"unknown operation {name!r}; expected one of {', '.join(_OPERATIONS)}")
    missing = [field for field in _OPERATIONS[name] if field not in operation]
    if missing:
        raise ValueError(f"{name} is missing {', '.join(missing)}")
    kwargs = {field: operation[field] for field in _OPERATIONS[name]}
    return getattr(ledger, name)(**kwargs)


def _load_operations(path: Path) -> list[dict[str, Any]]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise SystemExit(f"{path}: expected a JSON list of operation objects")
    return data


async def main() -> int:
    parser = argparse.ArgumentParser(
        description="Replay vehicle ledger operations from a JSON file",
    )
    parser.add_argument("operations", type=Path, help="JSON file with a list of operations")
    parser.add_argument("--restore", type=Path, help="Start from a snapshot written by --snapshot")
    parser.add_argument("--snapshot", action="store_true", help="Print the final ledger snapshot as JSON")
    parser.add_argument("--output", "-o", type=Path, help="Write the snapshot to FILE instead of stdout")
    parser.add_argument("--stop-on-error", action="store_true", help="Abort at the first rejected operation")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    operations = _load_operations(args.operations)
    config = LedgerConfig.from_env()
    sinks = build_sinks(config, loop=asyncio.get_running_loop())

    if args.restore:
        snapshot = LedgerSnapshot.model_validate_json(args.restore.read_text(encoding="utf-8"))
        ledger = VehicleLedger.from_snapshot(snapshot, config, sinks=sinks, on_event=_print_event)
        print(f"Restored {len(ledger)} vehicles from {args.restore}")
    else:
        ledger = VehicleLedger(config, sinks=sinks, on_event=_print_event)

    rejected = 0
    try:
        for index, operation in enumerate(operations, start=1):
            print(f"[{index}] {operation.get('op')} {operation.get('vin', '')}")
            try:
                apply_operation(ledger, operation)
            except (VinRegError, ValueError) as exc:
                rejected += 1
                print(f"  rejected: {type(exc).__name__}: {exc}")
                if args.stop_on_error:
                    break
            # Let queued webhook deliveries run between operations.
            await asyncio.sleep(0)

        violations = ledger.check_invariants()
        for violation in violations:
            print(f"INVARIANT VIOLATION: {violation}", file=sys.stderr)

        if args.snapshot:
            payload = ledger.snapshot().model_dump_json(indent=2)
            if args.output:
                args.output.write_text(payload, encoding="utf-8")
                print(f"Snapshot written to {args.output}", file=sys.stderr)
            else:
                print(payload)
    finally:
        for sink in sinks:
            if isinstance(sink, WebhookNotificationSink):
                await sink.aclose()
            else:
                sink.close()  # type: ignore[attr-defined]

    print(f"{len(operations)} operations, {rejected} rejected, {len(ledger)} vehicles", file=sys.stderr)
    return 1 if violations else 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
