"""
Catalog API Connector

Fetches risk profiles, vulnerability profiles, multipliers and the strategy
catalog from the upstream catalog service.
"""

import requests
from typing import Any, Dict, List, Optional
import logging
import os

from src.risk_scoring.exceptions import DataSourceError, UnknownEntityError

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class CatalogAPIConnector:
    """Connector for the risk catalog REST API"""

    DEFAULT_BASE_URL = "http://localhost:8000/api/v1"
    DEFAULT_TIMEOUT = 30

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize catalog connector

        Args:
            base_url: Catalog API root. If None, uses RISK_CATALOG_API_URL.
            timeout: Request timeout in seconds. If None, uses RISK_CATALOG_API_TIMEOUT.
            session: Optional pre-configured session (auth headers, retries)
        """
        self.base_url = (base_url or os.getenv("RISK_CATALOG_API_URL", self.DEFAULT_BASE_URL)).rstrip("/")
        self.timeout = float(timeout or os.getenv("RISK_CATALOG_API_TIMEOUT", self.DEFAULT_TIMEOUT))

        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})

    def get_location_risk_profile(self, admin_unit_id: str) -> Dict[str, Any]:
        """Hazard -> risk level (0-10) for an admin unit (parish)"""
        data = self._get(f"/admin-units/{admin_unit_id}/risks", entity=f"admin unit '{admin_unit_id}'")
        return self._unwrap(data, "riskProfile", dict)

    def get_business_vulnerability(self, business_type_id: str) -> Dict[str, Any]:
        """Hazard -> {vulnerabilityLevel, impactSeverity} for a business type"""
        data = self._get(
            f"/business-types/{business_type_id}/vulnerabilities",
            entity=f"business type '{business_type_id}'"
        )
        return self._unwrap(data, "vulnerabilities", dict)

    def get_multipliers(self, characteristic_type: str) -> List[Dict[str, Any]]:
        """All multipliers (active or not) defined for a characteristic type"""
        data = self._get("/multipliers", params={"characteristicType": characteristic_type})
        return self._unwrap(data, "multipliers", list)

    def get_strategy_catalog(self) -> List[Dict[str, Any]]:
        """Full strategy catalog including action steps"""
        data = self._get("/strategies", params={"include": "actionSteps"})
        return self._unwrap(data, "strategies", list)

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None, entity: Optional[str] = None):
        url = f"{self.base_url}{path}"

        try:
            logger.info(f"Fetching {url} (params: {params or {}})")
            response = self.session.get(url, params=params, timeout=self.timeout)
            if response.status_code == 404 and entity:
                raise UnknownEntityError(f"Catalog has no {entity}")
            response.raise_for_status()
            return response.json()

        except requests.exceptions.RequestException as e:
            logger.error(f"Error fetching {url}: {e}")
            raise DataSourceError(f"Catalog request to {url} failed: {e}") from e
        except ValueError as e:
            logger.error(f"Invalid JSON from {url}: {e}")
            raise DataSourceError(f"Catalog response from {url} is not valid JSON") from e

    @staticmethod
    def _unwrap(data: Any, key: str, expected: type):
        if isinstance(data, dict) and key in data:
            data = data[key]
        if not isinstance(data, expected):
            message = (
                f"Unexpected catalog payload for '{key}': expected {expected.__name__}, "
                f"got {type(data).__name__}"
            )
            logger.error(message)
            raise DataSourceError(message)
        return data


if __name__ == "__main__":
    connector = CatalogAPIConnector()
    try:
        catalog = connector.get_strategy_catalog()
        print(f"\n✓ Retrieved {len(catalog)} strategies from {connector.base_url}")
    except DataSourceError as e:
        print(f"✗ Catalog unavailable: {e}")
