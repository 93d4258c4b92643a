"""Region identifier (colo) parsing."""

from __future__ import annotations

import re
from typing import Mapping, Optional

from edgepick.config import COLO_HEADER

# The ray ID ends with the IATA code of the serving data center
_RAY_RE = re.compile(r"-([A-Za-z]{3})\s*$")


def extract_colo(headers: Mapping[str, str]) -> Optional[str]:
    """Return the upper-cased colo code carried by *headers*, if any."""
    value = headers.get(COLO_HEADER)
    if not value:
        return None
    match = _RAY_RE.search(value)
    return match.group(1).upper() if match else None


def parse_colos(text: str) -> frozenset[str]:
    """Parse a comma-separated colo list such as ``"HKG,lax, NRT"``."""
    return frozenset(part.strip().upper() for part in text.split(",") if part.strip())
