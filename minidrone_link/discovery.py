"""Peripheral filtering for MiniDrone discovery."""

from __future__ import annotations

import re
from typing import Optional, Pattern, Sequence

from .core.models import PeripheralCandidate
from .protocol.constants import DRONE_PREFIXES, MANUFACTURER_SERIALS


class PeripheralFilter:
    """Decides whether an advertising peripheral is a target drone.

    With an empty pattern the advertised name must start with one of the
    vendor prefixes. A non-empty pattern is a regular expression searched in
    the advertised name instead. In both cases a manufacturer data block equal
    to a known drone serial also matches.
    """

    def __init__(
        self,
        pattern: str = "",
        *,
        prefixes: Sequence[str] = DRONE_PREFIXES,
        manufacturer_serials: Sequence[bytes] = MANUFACTURER_SERIALS,
    ) -> None:
        self.pattern = pattern or ""
        self._regex: Optional[Pattern[str]] = re.compile(self.pattern) if self.pattern else None
        self._prefixes = tuple(prefixes)
        self._serials = tuple(bytes(item) for item in manufacturer_serials)

    def name_matches(self, name: Optional[str]) -> bool:
        if not name:
            return False
        if self._regex is not None:
            return self._regex.search(name) is not None
        return name.startswith(self._prefixes)

    def manufacturer_matches(self, manufacturer_data: Optional[bytes]) -> bool:
        if not manufacturer_data:
            return False
        return bytes(manufacturer_data) in self._serials

    def matches(self, candidate: Optional[PeripheralCandidate]) -> bool:
        if candidate is None:
            return False
        return self.name_matches(candidate.advertised_name) or self.manufacturer_matches(
            candidate.manufacturer_data
        )


def matches(candidate: Optional[PeripheralCandidate], filter_pattern: str = "") -> bool:
    return PeripheralFilter(filter_pattern).matches(candidate)
