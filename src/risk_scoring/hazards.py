"""
Hazard Keys

Hazards are open string identifiers shared with upstream catalogs. Keys are
canonicalized to camelCase at the boundary so that snake_case and camelCase
spellings of the same hazard (``power_outage`` / ``powerOutage``) meet.
"""

import logging
import re
from typing import Dict, Iterable, Optional, Set

from .exceptions import Diagnostics, InputDataError

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# Hazards already known to the catalogs; anything else well-formed is
# accepted and registered on first sight
KNOWN_HAZARDS = (
    "hurricane",
    "flood",
    "earthquake",
    "drought",
    "landslide",
    "powerOutage",
    "fire",
    "cyberAttack",
    "terrorism",
    "pandemicDisease",
    "economicDownturn",
    "supplyChainDisruption",
    "civilUnrest",
)

# Spellings that differ by more than separators and case
HAZARD_ALIASES = {
    "pandemic": "pandemicDisease",
    "flooding": "flood",
}

_SEPARATORS = re.compile(r"[\s_\-]+")
_CANONICAL = re.compile(r"^[a-z][A-Za-z0-9]*$")


class InvalidHazardKeyError(InputDataError, ValueError):
    """Hazard key cannot be canonicalized"""


def canonical_hazard_key(raw) -> str:
    """
    Convert a raw hazard key to its canonical camelCase form

    Raises:
        InvalidHazardKeyError: if the key is not a usable identifier
    """
    if not isinstance(raw, str):
        raise InvalidHazardKeyError(f"Hazard key must be a string, got {raw!r}")

    parts = [p for p in _SEPARATORS.split(raw.strip()) if p]
    if not parts:
        raise InvalidHazardKeyError(f"Empty hazard key {raw!r}")

    words = []
    for i, part in enumerate(parts):
        if part.isupper():
            part = part.lower()
        if i == 0:
            words.append(part[0].lower() + part[1:])
        else:
            words.append(part[0].upper() + part[1:])
    key = "".join(words)

    if not _CANONICAL.match(key):
        raise InvalidHazardKeyError(f"Malformed hazard key {raw!r}", hazards=[str(raw)])

    return HAZARD_ALIASES.get(key, key)


class HazardRegistry:
    """Runtime registry of hazard keys seen during one computation"""

    def __init__(
        self,
        known: Iterable[str] = KNOWN_HAZARDS,
        diagnostics: Optional[Diagnostics] = None
    ):
        self.known: Set[str] = {canonical_hazard_key(h) for h in known}
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        self._resolved: Dict[str, Optional[str]] = {}

    def resolve(self, raw, context: str = "") -> Optional[str]:
        """
        Canonicalize a hazard key, registering new hazards.

        Returns None (after recording a notice) when the key is malformed.
        """
        cache_key = raw if isinstance(raw, str) else repr(raw)
        if cache_key in self._resolved:
            return self._resolved[cache_key]

        try:
            key = canonical_hazard_key(raw)
        except InvalidHazardKeyError as e:
            where = f" in {context}" if context else ""
            self.diagnostics.record(
                InputDataError(f"{e.message}{where}; entry excluded", hazards=[cache_key])
            )
            self._resolved[cache_key] = None
            return None

        if key not in self.known:
            logger.info(f"Registering new hazard type '{key}'")
            self.known.add(key)

        self._resolved[cache_key] = key
        return key

    def resolve_all(self, raw_keys: Iterable, context: str = "") -> Set[str]:
        resolved = (self.resolve(raw, context) for raw in raw_keys)
        return {key for key in resolved if key is not None}
