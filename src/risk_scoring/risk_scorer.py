"""
Risk Scoring Module

Combines a location's hazard levels with a business type's vulnerability
profile and the resolved multipliers into one ranked score per hazard.
"""

import pandas as pd
import numpy as np
from typing import Any, Dict, List, Mapping, Optional, Tuple
import logging

from pydantic import ValidationError

from .exceptions import Diagnostics, InputDataError
from .hazards import HazardRegistry
from .models import CombinedRiskScore, HazardVulnerability

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class RiskScorer:
    """Calculate combined per-hazard risk scores for a business at a location"""

    LOCATION_RISK_RANGE = (0.0, 10.0)
    # 0 is accepted as "not exposed"; catalog values are 1-10
    VULNERABILITY_RANGE = (0.0, 10.0)
    IMPACT_SEVERITY_RANGE = (1.0, 10.0)

    # 10 (max location risk) x 2.0 (max impact weight)
    SCORE_CEILING = 20.0
    # Decimal places kept so equal products from swapped inputs compare equal
    SCORE_PRECISION = 9

    # Risk level classification, checked top-down
    RISK_LEVELS = (
        (12.0, "extreme"),
        (8.0, "high"),
        (3.0, "medium"),
    )

    COLUMNS = [
        "hazard",
        "location_risk",
        "vulnerability",
        "impact_severity",
        "impact_weight",
        "multiplier",
        "combined_score",
        "rank",
        "risk_level",
    ]

    def __init__(
        self,
        hazard_registry: Optional[HazardRegistry] = None,
        diagnostics: Optional[Diagnostics] = None
    ):
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        self.hazards = hazard_registry or HazardRegistry(diagnostics=self.diagnostics)

    @staticmethod
    def impact_weight(impact_severity):
        """Map impact severity 1-10 onto a weight of 1.0-2.0"""
        return 1.0 + (np.asarray(impact_severity, dtype=float) - 1.0) / 9.0

    @classmethod
    def classify(cls, combined_score: float) -> str:
        for threshold, level in cls.RISK_LEVELS:
            if combined_score >= threshold:
                return level
        return "low"

    def score(
        self,
        location_risk: Mapping[str, Any],
        vulnerability_profile: Mapping[str, Any],
        multipliers: Optional[Mapping[str, float]] = None
    ) -> List[CombinedRiskScore]:
        """
        Score and rank hazards

        Hazards scoring 0 (absent from either profile, zero location risk or
        zero vulnerability) are left out of the result.

        Returns:
            Ranked list, highest combined score first
        """
        frame = self.score_frame(location_risk, vulnerability_profile, multipliers)
        ranked = frame[frame["combined_score"] > 0]

        return [
            CombinedRiskScore(
                hazard=row.hazard,
                location_risk=float(row.location_risk),
                vulnerability=float(row.vulnerability),
                impact_severity=float(row.impact_severity),
                impact_weight=float(row.impact_weight),
                multiplier=float(row.multiplier),
                combined_score=float(row.combined_score),
                rank=int(row.rank),
                risk_level=row.risk_level,
            )
            for row in ranked.itertuples(index=False)
        ]

    def score_frame(
        self,
        location_risk: Mapping[str, Any],
        vulnerability_profile: Mapping[str, Any],
        multipliers: Optional[Mapping[str, float]] = None
    ) -> pd.DataFrame:
        """
        Per-hazard score table over the union of both profiles

        Includes zero-score hazards (rank 0) so callers can show what was
        excluded and why.
        """
        locations = self._location_levels(location_risk)
        vulnerabilities = self._vulnerabilities(vulnerability_profile)
        factors = self._factors(multipliers or {})

        hazards = sorted(set(locations) | set(vulnerabilities))
        if not hazards:
            return pd.DataFrame(columns=self.COLUMNS)

        df = pd.DataFrame({"hazard": hazards})
        df["location_risk"] = [locations.get(h, 0.0) for h in hazards]
        df["vulnerability"] = [vulnerabilities[h][0] if h in vulnerabilities else 0.0 for h in hazards]
        df["impact_severity"] = [vulnerabilities[h][1] if h in vulnerabilities else 1.0 for h in hazards]
        df["multiplier"] = [factors.get(h, 1.0) for h in hazards]

        df["location_risk"] = self._clamp(df, "location_risk", *self.LOCATION_RISK_RANGE)
        df["vulnerability"] = self._clamp(df, "vulnerability", *self.VULNERABILITY_RANGE)
        df["impact_severity"] = self._clamp(df, "impact_severity", *self.IMPACT_SEVERITY_RANGE)
        df["multiplier"] = self._clamp(df, "multiplier", 0.0, np.inf)

        df["impact_weight"] = self.impact_weight(df["impact_severity"])
        raw_score = (
            df["location_risk"] * df["vulnerability"] / 10.0
            * df["impact_weight"]
            * df["multiplier"]
        )
        df["combined_score"] = np.clip(np.round(raw_score, self.SCORE_PRECISION), 0.0, self.SCORE_CEILING)

        df = df.sort_values(
            by=["combined_score", "impact_severity", "hazard"],
            ascending=[False, False, True],
        ).reset_index(drop=True)

        positive = df["combined_score"] > 0
        df["rank"] = np.where(positive, np.arange(1, len(df) + 1), 0)
        df["risk_level"] = [
            self.classify(s) if p else "none"
            for s, p in zip(df["combined_score"], positive)
        ]

        logger.info(f"Scored {len(df)} hazards, {int(positive.sum())} ranked")
        return df[self.COLUMNS]

    # ------------------------------------------------------------------
    # Input coercion
    # ------------------------------------------------------------------

    def _location_levels(self, location_risk: Mapping[str, Any]) -> Dict[str, float]:
        levels: Dict[str, float] = {}
        for raw_key, raw_level in location_risk.items():
            hazard = self.hazards.resolve(raw_key, context="location risk profile")
            if hazard is None:
                continue
            level = self._as_float(raw_level, hazard, "location risk level")
            if hazard in levels:
                self._duplicate(hazard, "location risk profile")
                level = max(level, levels[hazard])
            levels[hazard] = level
        return levels

    def _vulnerabilities(self, profile: Mapping[str, Any]) -> Dict[str, Tuple[float, float]]:
        entries: Dict[str, Tuple[float, float]] = {}
        for raw_key, raw_entry in profile.items():
            hazard = self.hazards.resolve(raw_key, context="vulnerability profile")
            if hazard is None:
                continue

            entry = raw_entry
            if not isinstance(entry, HazardVulnerability):
                try:
                    entry = HazardVulnerability.model_validate(raw_entry)
                except ValidationError as e:
                    self.diagnostics.record(InputDataError(
                        f"Unreadable vulnerability entry for '{hazard}' "
                        f"({e.error_count()} errors); treated as not exposed",
                        hazards=[hazard]
                    ))
                    continue

            values = (
                self._as_float(entry.vulnerability_level, hazard, "vulnerability level"),
                self._as_float(entry.impact_severity, hazard, "impact severity"),
            )
            if hazard in entries:
                self._duplicate(hazard, "vulnerability profile")
                values = max(values, entries[hazard])
            entries[hazard] = values
        return entries

    def _factors(self, multipliers: Mapping[str, float]) -> Dict[str, float]:
        factors: Dict[str, float] = {}
        for raw_key, raw_factor in multipliers.items():
            hazard = self.hazards.resolve(raw_key, context="multiplier factors")
            if hazard is None:
                continue
            factor = self._as_float(raw_factor, hazard, "multiplier", default=1.0)
            factors[hazard] = factors.get(hazard, 1.0) * factor
        return factors

    def _as_float(self, value: Any, hazard: str, label: str, default: float = 0.0) -> float:
        try:
            number = float(value)
        except (TypeError, ValueError):
            number = np.nan
        if isinstance(value, bool) or not np.isfinite(number):
            self.diagnostics.record(InputDataError(
                f"Non-numeric {label} {value!r} for '{hazard}'; using {default}",
                hazards=[hazard]
            ))
            return default
        return number

    def _clamp(self, df: pd.DataFrame, column: str, low: float, high: float) -> pd.Series:
        out_of_range = (df[column] < low) | (df[column] > high)
        if out_of_range.any():
            offenders = df.loc[out_of_range, "hazard"].tolist()
            self.diagnostics.record(InputDataError(
                f"{column} outside [{low:g}, {high:g}] for {offenders}; clamped",
                hazards=offenders
            ))
        return df[column].clip(lower=low, upper=high)

    def _duplicate(self, hazard: str, source: str) -> None:
        self.diagnostics.record(InputDataError(
            f"Hazard '{hazard}' appears more than once in {source}; keeping the highest values",
            hazards=[hazard]
        ))


def score_risks(
    location_risk: Mapping[str, Any],
    vulnerability_profile: Mapping[str, Any],
    multipliers: Optional[Mapping[str, float]] = None,
    diagnostics: Optional[Diagnostics] = None
) -> List[CombinedRiskScore]:
    """Functional form of RiskScorer.score"""
    return RiskScorer(diagnostics=diagnostics).score(location_risk, vulnerability_profile, multipliers)


if __name__ == "__main__":
    print("\n" + "="*60)
    print("RISK SCORING ALGORITHM TEST")
    print("="*60 + "\n")

    scorer = RiskScorer()

    location = {"hurricane": 8, "flood": 3, "earthquake": 6, "power_outage": 7}
    vulnerability = {
        "hurricane": {"vulnerabilityLevel": 7, "impactSeverity": 9},
        "flood": {"vulnerabilityLevel": 2, "impactSeverity": 4},
        "powerOutage": {"vulnerabilityLevel": 9, "impactSeverity": 6},
    }
    factors = {"hurricane": 1.3}

    frame = scorer.score_frame(location, vulnerability, factors)

    print("Combined scores (tourism-dependent business, coastal parish):\n")
    for row in frame.itertuples(index=False):
        print(
            f"  #{row.rank:<2} {row.hazard:<14} "
            f"score {row.combined_score:5.2f}/{RiskScorer.SCORE_CEILING:.0f}  ({row.risk_level})"
        )

    print("\n" + "="*60)
    print("TEST COMPLETE")
    print("="*60)
