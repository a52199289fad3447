"""
Snapshot Providers

In-memory and JSON-file providers of the catalog data the engine consumes.
A JSON snapshot document looks like::

    {
      "adminUnits": {"kingston": {"name": "Kingston", "riskProfile": {"hurricane": 8}}},
      "businessTypes": {"restaurant": {"name": "Restaurant",
                                       "vulnerabilities": {"hurricane": {"vulnerabilityLevel": 7,
                                                                         "impactSeverity": 9}}}},
      "multipliers": [...],
      "strategies": [...]
    }
"""

import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from src.risk_scoring.exceptions import DataSourceError, UnknownEntityError
from src.risk_scoring.models import Multiplier

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def _frozen(mapping: Mapping) -> Mapping:
    return MappingProxyType(dict(mapping))


def _characteristic_type(item: Union[Multiplier, Dict[str, Any]]) -> Optional[str]:
    if isinstance(item, Multiplier):
        return item.characteristic_type
    if isinstance(item, Mapping):
        return item.get("characteristicType", item.get("characteristic_type"))
    return None


class InMemorySnapshotProvider:
    """Immutable snapshot held in memory"""

    def __init__(
        self,
        location_profiles: Mapping[str, Mapping[str, Any]],
        vulnerability_profiles: Mapping[str, Mapping[str, Any]],
        multipliers: Iterable[Union[Multiplier, Dict[str, Any]]] = (),
        strategies: Iterable[Any] = (),
        admin_unit_names: Optional[Mapping[str, str]] = None,
        business_type_names: Optional[Mapping[str, str]] = None
    ):
        self.location_profiles = _frozen({k: _frozen(v) for k, v in location_profiles.items()})
        self.vulnerability_profiles = _frozen({k: _frozen(v) for k, v in vulnerability_profiles.items()})
        self.multipliers = tuple(multipliers)
        self.strategies = tuple(strategies)
        self.admin_unit_names = _frozen(admin_unit_names or {})
        self.business_type_names = _frozen(business_type_names or {})

    def get_location_risk_profile(self, admin_unit_id: str) -> Mapping[str, Any]:
        if admin_unit_id not in self.location_profiles:
            raise UnknownEntityError(f"Unknown admin unit '{admin_unit_id}'")
        return self.location_profiles[admin_unit_id]

    def get_business_vulnerability(self, business_type_id: str) -> Mapping[str, Any]:
        if business_type_id not in self.vulnerability_profiles:
            raise UnknownEntityError(f"Unknown business type '{business_type_id}'")
        return self.vulnerability_profiles[business_type_id]

    def get_multipliers(self, characteristic_type: str) -> List[Any]:
        return [m for m in self.multipliers if _characteristic_type(m) == characteristic_type]

    def get_strategy_catalog(self) -> List[Any]:
        return list(self.strategies)

    # Listing helpers for interactive callers

    def list_admin_units(self) -> Dict[str, str]:
        return {k: self.admin_unit_names.get(k, k) for k in sorted(self.location_profiles)}

    def list_business_types(self) -> Dict[str, str]:
        return {k: self.business_type_names.get(k, k) for k in sorted(self.vulnerability_profiles)}

    def list_characteristic_types(self) -> List[str]:
        types = {_characteristic_type(m) for m in self.multipliers}
        return sorted(t for t in types if t)


class JsonSnapshotProvider(InMemorySnapshotProvider):
    """Snapshot loaded once from a JSON document on disk"""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        document = self._read(self.path)

        admin_units = document.get("adminUnits", {})
        business_types = document.get("businessTypes", {})

        super().__init__(
            location_profiles={k: v.get("riskProfile", {}) for k, v in admin_units.items()},
            vulnerability_profiles={k: v.get("vulnerabilities", {}) for k, v in business_types.items()},
            multipliers=document.get("multipliers", []),
            strategies=document.get("strategies", []),
            admin_unit_names={k: v.get("name", k) for k, v in admin_units.items()},
            business_type_names={k: v.get("name", k) for k, v in business_types.items()},
        )
        logger.info(
            f"Loaded snapshot {self.path.name}: {len(admin_units)} admin units, "
            f"{len(business_types)} business types, {len(self.multipliers)} multipliers, "
            f"{len(self.strategies)} strategies"
        )

    @staticmethod
    def _read(path: Path) -> Dict[str, Any]:
        try:
            document = json.loads(path.read_text(encoding="utf-8"))
        except OSError as e:
            logger.error(f"Error reading snapshot {path}: {e}")
            raise DataSourceError(f"Cannot read snapshot {path}: {e}") from e
        except json.JSONDecodeError as e:
            logger.error(f"Error decoding snapshot {path}: {e}")
            raise DataSourceError(f"Snapshot {path} is not valid JSON: {e}") from e

        if not isinstance(document, dict):
            raise DataSourceError(f"Snapshot {path} must contain a JSON object")
        return document
