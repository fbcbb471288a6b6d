"""Base model for registry records.

Every record inherits from :class:`RegistryBaseModel` which provides:

* ``frozen=True`` so a stored record can only change by being replaced
  with a new instance (``model_copy(update=...)``).
* ``extra="forbid"`` so snapshots with unknown keys are rejected.

:data:`UtcDatetime` coerces naive datetimes and epoch numbers to
timezone-aware UTC values.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict

# Threshold to distinguish seconds from milliseconds.
_MS_THRESHOLD = 1_000_000_000_000


def ensure_utc(value: Any) -> Any:
    """Return *value* as a tz-aware UTC datetime where possible.

    Naive datetimes are assumed to already be UTC.  Integers and floats
    are treated as epoch seconds (or milliseconds above ``1e12``).
    Anything else is handed to pydantic unchanged.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        ts = float(value)
        if ts >= _MS_THRESHOLD:
            ts /= 1000.0
        return datetime.fromtimestamp(ts, tz=UTC)
    return value


UtcDatetime = Annotated[datetime, BeforeValidator(ensure_utc)]
"""Annotated type that stores every timestamp as an aware UTC datetime."""


class RegistryBaseModel(BaseModel):
    """Base for all registry records and projections."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
    )
