"""
Multiplier Resolution

Turns wizard answers (characteristic type -> answer) into per-hazard scaling
factors using the admin-defined multiplier catalog.
"""

import logging
import math
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .exceptions import (
    Diagnostics,
    InputDataError,
    UnknownCharacteristicError,
    UnresolvableMultiplierError,
)
from .hazards import HazardRegistry
from .models import AppliedMultiplier, Multiplier

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class MultiplierResolver:
    """Resolve the winning multiplier per characteristic and its hazard factors"""

    NEUTRAL_FACTOR = 1.0

    def __init__(
        self,
        multipliers: Iterable[Multiplier],
        hazard_registry: Optional[HazardRegistry] = None,
        diagnostics: Optional[Diagnostics] = None
    ):
        """
        Args:
            multipliers: Catalog snapshot; may hold several multipliers per
                characteristic type, active or not.
            hazard_registry: Registry used to canonicalize hazard keys.
            diagnostics: Collector for recovered anomalies.
        """
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        self.hazards = hazard_registry or HazardRegistry(diagnostics=self.diagnostics)
        self.multipliers = list(multipliers)
        self._winners: Optional[Dict[str, Multiplier]] = None

    def select_active(self) -> Dict[str, Multiplier]:
        """
        Pick one multiplier per characteristic type.

        Lowest priority value wins; ties go to the smallest id.
        """
        if self._winners is not None:
            return self._winners

        by_type: Dict[str, List[Multiplier]] = defaultdict(list)
        for multiplier in self.multipliers:
            if multiplier.is_active:
                by_type[multiplier.characteristic_type].append(multiplier)

        winners = {}
        for characteristic_type in sorted(by_type):
            candidates = sorted(by_type[characteristic_type], key=lambda m: (m.priority, m.id))
            winner = candidates[0]
            tied = [m.id for m in candidates if m.priority == winner.priority]
            if len(tied) > 1:
                self.diagnostics.record(UnresolvableMultiplierError(
                    f"Multipliers {tied} for '{characteristic_type}' share priority "
                    f"{winner.priority}; using '{winner.id}'"
                ))
            winners[characteristic_type] = winner

        self._winners = winners
        return winners

    def resolve(self, characteristics: Mapping[str, Any]) -> Dict[str, float]:
        """Return hazard -> combined factor for every hazard touched by an applied multiplier"""
        return combine_factors(self.explain(characteristics))

    def explain(self, characteristics: Mapping[str, Any]) -> List[AppliedMultiplier]:
        """List the multipliers that applied for these answers, in characteristic order"""
        winners = self.select_active()
        known_types = {m.characteristic_type for m in self.multipliers}

        unknown = sorted(str(t) for t in characteristics if t not in known_types)
        if unknown:
            self.diagnostics.record(UnknownCharacteristicError(
                f"No multipliers defined for characteristic types {unknown}; ignored"
            ))

        applied = []
        for characteristic_type, multiplier in winners.items():
            answer = characteristics.get(characteristic_type)
            factor = self._factor_for(multiplier, answer)
            if factor == self.NEUTRAL_FACTOR:
                continue

            hazards = self.hazards.resolve_all(
                multiplier.applies_to_hazards, context=f"multiplier '{multiplier.id}'"
            )
            if not hazards:
                continue

            applied.append(AppliedMultiplier(
                multiplier_id=multiplier.id,
                characteristic_type=characteristic_type,
                answer=answer,
                factor=factor,
                hazards=tuple(sorted(hazards)),
                reasoning=multiplier.reasoning or multiplier.name,
            ))
        return applied

    def _factor_for(self, multiplier: Multiplier, answer: Any) -> float:
        if answer is None:
            return self.NEUTRAL_FACTOR

        condition = multiplier.condition_type
        if condition == "options":
            raw = _lookup_answer(multiplier.answer_options, answer)
        elif condition in ("boolean", "threshold", "range"):
            raw = multiplier.multiplier_factor if _condition_met(multiplier, answer) else None
        else:
            self.diagnostics.record(InputDataError(
                f"Multiplier '{multiplier.id}' has unknown condition type '{condition}'; treated as neutral"
            ))
            return self.NEUTRAL_FACTOR

        if raw is None:
            return self.NEUTRAL_FACTOR

        try:
            factor = float(raw)
        except (TypeError, ValueError):
            factor = math.nan
        if not math.isfinite(factor) or factor < 0:
            self.diagnostics.record(InputDataError(
                f"Multiplier '{multiplier.id}' resolved to invalid factor {raw!r}; treated as neutral"
            ))
            return self.NEUTRAL_FACTOR
        return factor


def answer_key(answer: Any) -> str:
    """Normalize a wizard answer to an answerOptions key"""
    if isinstance(answer, bool):
        return "true" if answer else "false"
    if isinstance(answer, float) and answer.is_integer():
        return str(int(answer))
    return str(answer).strip()


def _lookup_answer(options: Mapping[str, float], answer: Any) -> Optional[float]:
    key = answer_key(answer)
    if key in options:
        return options[key]

    folded = key.lower()
    for option, factor in options.items():
        if option.strip().lower() == folded:
            return factor
    return None


def _is_truthy(answer: Any) -> bool:
    if isinstance(answer, str):
        return answer.strip().lower() in ("true", "yes", "1")
    return answer is True or answer == 1


def _as_number(answer: Any) -> Optional[float]:
    if isinstance(answer, bool):
        return None
    try:
        value = float(answer)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def _condition_met(multiplier: Multiplier, answer: Any) -> bool:
    condition = multiplier.condition_type

    if condition == "boolean":
        return _is_truthy(answer)

    value = _as_number(answer)
    if value is None:
        return False

    if condition == "threshold":
        return multiplier.threshold_value is not None and value >= multiplier.threshold_value

    # range
    if multiplier.min_value is None or multiplier.max_value is None:
        return False
    return multiplier.min_value <= value <= multiplier.max_value


def resolve_multipliers(
    characteristics: Mapping[str, Any],
    multipliers: Iterable[Multiplier],
    diagnostics: Optional[Diagnostics] = None
) -> Dict[str, float]:
    """Functional form of MultiplierResolver.resolve"""
    return MultiplierResolver(multipliers, diagnostics=diagnostics).resolve(characteristics)


def combine_factors(applied: Iterable[AppliedMultiplier]) -> Dict[str, float]:
    """Multiply the factors of all applied multipliers per hazard"""
    factors: Dict[str, float] = {}
    for multiplier in applied:
        for hazard in multiplier.hazards:
            factors[hazard] = factors.get(hazard, MultiplierResolver.NEUTRAL_FACTOR) * multiplier.factor
    return factors


# ---------------------------------------------------------------------------
# Simplified wizard answers
# ---------------------------------------------------------------------------

# customerBase -> (tourism_share, local_customer_share) in percent
CUSTOMER_BASE_SHARES = {
    "mainly_tourists": (80, 15),
    "mix": (40, 50),
    "mainly_locals": (10, 85),
}

# powerDependency / digitalDependency label -> percent of operations affected
POWER_DEPENDENCY_LEVELS = {"cannot_operate": 95, "partially": 50, "can_operate": 10}
DIGITAL_DEPENDENCY_LEVELS = {"essential": 95, "helpful": 50, "not_used": 10}

# Parish flood risk above this level marks the location flood prone
FLOOD_PRONE_ABOVE = 7

SUPPLY_CHAIN_ANSWERS = ("importsFromOverseas", "minimalInventory", "sellsPerishable")


def _labelled_level(levels: Mapping[str, Any], answer: Any, question: str, fallback: str) -> Any:
    label = answer_key(answer).lower()
    if label not in levels:
        logger.warning(f"Unrecognized {question} answer {answer!r}, treating as '{fallback}'")
        label = fallback
    return levels[label]


def convert_simplified_answers(answers: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Convert the short yes/no style wizard answers into characteristic values

    The short wizard asks questions a business owner can answer quickly
    (``customerBase``, ``powerDependency``, ``sellsPerishable`` ...). The
    multiplier catalog is keyed by fact-based characteristics with numeric
    shares and flags (``tourism_share``, ``power_dependency``,
    ``perishable_goods`` ...) which threshold and range multipliers test.

    Only characteristics derived from answers that were given are returned.

    Args:
        answers: Short-wizard answers keyed by question

    Returns:
        Characteristic type -> value, ready for ``MultiplierResolver.resolve``
    """
    characteristics: Dict[str, Any] = {}

    if "isCoastal" in answers:
        characteristics["location_coastal"] = _is_truthy(answers["isCoastal"])
    if "isUrban" in answers:
        characteristics["location_urban"] = _is_truthy(answers["isUrban"])
    if "floodRisk" in answers:
        characteristics["location_flood_prone"] = (_as_number(answers["floodRisk"]) or 0) > FLOOD_PRONE_ABOVE

    if "customerBase" in answers:
        tourism, local = _labelled_level(
            CUSTOMER_BASE_SHARES, answers["customerBase"], "customerBase", "mainly_locals"
        )
        characteristics["tourism_share"] = tourism
        characteristics["local_customer_share"] = local

    if "powerDependency" in answers:
        characteristics["power_dependency"] = _labelled_level(
            POWER_DEPENDENCY_LEVELS, answers["powerDependency"], "powerDependency", "can_operate"
        )
    if "digitalDependency" in answers:
        characteristics["digital_dependency"] = _labelled_level(
            DIGITAL_DEPENDENCY_LEVELS, answers["digitalDependency"], "digitalDependency", "not_used"
        )

    if "sellsPerishable" in answers:
        perishable = _is_truthy(answers["sellsPerishable"])
        characteristics["perishable_goods"] = perishable
        characteristics["water_dependency"] = 90 if perishable else 30
    if "minimalInventory" in answers:
        minimal = _is_truthy(answers["minimalInventory"])
        characteristics["just_in_time_inventory"] = minimal
        characteristics["significant_inventory"] = not minimal
    if any(question in answers for question in SUPPLY_CHAIN_ANSWERS):
        characteristics["supply_chain_complex"] = any(
            _is_truthy(answers.get(question)) for question in SUPPLY_CHAIN_ANSWERS
        )

    if "expensiveEquipment" in answers:
        characteristics["physical_asset_intensive"] = _is_truthy(answers["expensiveEquipment"])

    return characteristics
