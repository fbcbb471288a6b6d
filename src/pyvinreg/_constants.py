"""Internal constants shared across the library."""

import re

#: The zero identity.  Never a valid owner or recipient.
ZERO_PRINCIPAL = ""

# ------------------------------------------------------------------
# ISO 3779 VIN format (used when ``LedgerConfig.strict_vin`` is set)
# ------------------------------------------------------------------

VIN_LENGTH = 17
# Letters I, O and Q are never used in a VIN.
_ISO_VIN_RE = re.compile(r"[A-HJ-NPR-Z0-9]{17}")


def is_iso_vin(vin: str) -> bool:
    """Return ``True`` when *vin* is a well-formed 17-character ISO 3779 VIN."""
    return _ISO_VIN_RE.fullmatch(vin) is not None
