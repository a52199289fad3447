"""
Risk Scoring Module

Resolve business-characteristic multipliers and calculate combined
per-hazard risk scores.
"""

from .exceptions import (
    DataSourceError,
    Diagnostics,
    EmptyCatalogResult,
    InputDataError,
    MissingHazardCoverage,
    RiskEngineError,
    UnknownCharacteristicError,
    UnknownEntityError,
    UnresolvableMultiplierError,
)
from .hazards import HazardRegistry, canonical_hazard_key
from .multiplier_resolver import MultiplierResolver, convert_simplified_answers, resolve_multipliers
from .risk_scorer import RiskScorer, score_risks

__all__ = [
    "RiskScorer",
    "score_risks",
    "MultiplierResolver",
    "resolve_multipliers",
    "convert_simplified_answers",
    "HazardRegistry",
    "canonical_hazard_key",
    "Diagnostics",
    "RiskEngineError",
    "InputDataError",
    "UnresolvableMultiplierError",
    "EmptyCatalogResult",
    "MissingHazardCoverage",
    "DataSourceError",
    "UnknownCharacteristicError",
    "UnknownEntityError",
]
