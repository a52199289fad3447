"""
Snapshot provider interface consumed by the recommendation engine
"""

from typing import Any, Dict, List, Mapping, Protocol, Union

from src.risk_scoring.models import HazardVulnerability, Multiplier, Strategy


class SnapshotProvider(Protocol):
    """Read-only supplier of location, business type and catalog data"""

    def get_location_risk_profile(self, admin_unit_id: str) -> Mapping[str, Any]:
        ...

    def get_business_vulnerability(
        self, business_type_id: str
    ) -> Mapping[str, Union[HazardVulnerability, Dict[str, Any]]]:
        ...

    def get_multipliers(self, characteristic_type: str) -> List[Union[Multiplier, Dict[str, Any]]]:
        ...

    def get_strategy_catalog(self) -> List[Union[Strategy, Dict[str, Any]]]:
        ...
