"""
Risk Engine Exceptions

Error taxonomy for the scoring and planning pipeline. Only DataSourceError
(and its subclasses) is ever raised to callers; the remaining categories are
recovered inside the engine and reported back as notices.
"""

import logging
from typing import Iterable, List, Optional

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class RiskEngineError(Exception):
    """Base class for all risk engine errors"""

    # Recovered categories are logged at this level when recorded
    log_level = logging.WARNING

    def __init__(self, message: str, hazards: Optional[Iterable[str]] = None):
        super().__init__(message)
        self.message = message
        self.hazards = sorted(set(hazards or []))


class InputDataError(RiskEngineError):
    """Out-of-range or malformed snapshot value (recovered by clamping or exclusion)"""


class UnresolvableMultiplierError(RiskEngineError):
    """Several active multipliers share the lowest priority for one characteristic"""


class EmptyCatalogResult(RiskEngineError):
    """No strategy matched any scored hazard"""

    log_level = logging.INFO


class MissingHazardCoverage(RiskEngineError):
    """A top-ranked hazard has no applicable strategy"""


class UnknownCharacteristicError(RiskEngineError):
    """A wizard answer refers to a characteristic type with no multipliers"""


class DataSourceError(RiskEngineError):
    """Snapshot provider failed (I/O, network, decoding). Always raised."""

    log_level = logging.ERROR


class UnknownEntityError(DataSourceError):
    """Snapshot provider has no record for the requested admin unit or business type"""


class Diagnostics:
    """
    Per-call collector for recovered anomalies

    Each recorded issue is logged once and kept so it can be returned to the
    caller with the plan.
    """

    def __init__(self):
        self.issues: List[RiskEngineError] = []

    def record(self, issue: RiskEngineError) -> None:
        if isinstance(issue, DataSourceError):
            raise issue
        logger.log(issue.log_level, f"{type(issue).__name__}: {issue.message}")
        self.issues.append(issue)

    def of_type(self, category: type) -> List[RiskEngineError]:
        return [issue for issue in self.issues if isinstance(issue, category)]

    def __len__(self) -> int:
        return len(self.issues)
