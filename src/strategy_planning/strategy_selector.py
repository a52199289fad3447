"""
Strategy Selection

Picks the mitigation strategies that address a business's scored hazards:
every applicable essential strategy, plus a capped, ranked set of
recommended/optional ones.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from src.risk_scoring.exceptions import (
    Diagnostics,
    EmptyCatalogResult,
    InputDataError,
    MissingHazardCoverage,
)
from src.risk_scoring.hazards import HazardRegistry
from src.risk_scoring.models import CombinedRiskScore, SelectedStrategy, Strategy

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


WILDCARD_BUSINESS_TYPE = "all_businesses"

TIER_ESSENTIAL = "essential"
TIER_RECOMMENDED = "recommended"
TIER_OPTIONAL = "optional"
SELECTION_TIERS = (TIER_ESSENTIAL, TIER_RECOMMENDED, TIER_OPTIONAL)

PRIORITY_RANK = {
    "critical": 4,
    "high": 3,
    "medium": 2,
    "low": 1,
}


class StrategySelector:
    """Filter, deduplicate and rank a strategy catalog against scored hazards"""

    DEFAULT_RECOMMENDED_CAP = 8
    DEFAULT_COVERAGE_DEPTH = 5

    def __init__(
        self,
        recommended_cap: int = DEFAULT_RECOMMENDED_CAP,
        coverage_depth: int = DEFAULT_COVERAGE_DEPTH,
        hazard_registry: Optional[HazardRegistry] = None,
        diagnostics: Optional[Diagnostics] = None
    ):
        """
        Args:
            recommended_cap: Maximum number of recommended/optional strategies.
                Essential strategies do not count against it.
            coverage_depth: How many top-ranked hazards must have at least one
                applicable strategy before a coverage warning is raised.
        """
        self.recommended_cap = max(0, int(recommended_cap))
        self.coverage_depth = max(0, int(coverage_depth))
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        self.hazards = hazard_registry or HazardRegistry(diagnostics=self.diagnostics)
        self.uncovered_hazards: List[str] = []

    def select(
        self,
        ranked_risks: Sequence[CombinedRiskScore],
        business_type: str,
        catalog: Iterable[Strategy]
    ) -> List[SelectedStrategy]:
        """
        Select strategies for the given risks and business type

        Returns:
            Selected strategies in selection-rank order: essentials first,
            then the capped recommended/optional remainder.
        """
        self.uncovered_hazards = []
        scores = {r.hazard: r.combined_score for r in ranked_risks if r.combined_score > 0}
        if not scores:
            logger.info("No scored hazards; nothing to select")
            return []

        candidates = self._deduplicated(self._applicable(catalog, business_type, scores))

        essential = [c for c in candidates if c[0].selection_tier == TIER_ESSENTIAL]
        competing = [c for c in candidates if c[0].selection_tier != TIER_ESSENTIAL]

        essential.sort(key=self._sort_key)
        competing.sort(key=self._sort_key)
        if len(competing) > self.recommended_cap:
            logger.info(
                f"Capping {len(competing)} recommended/optional strategies to {self.recommended_cap}"
            )
        chosen = essential + competing[:self.recommended_cap]

        self._check_coverage(ranked_risks, candidates)
        if not chosen:
            self.diagnostics.record(EmptyCatalogResult(
                f"No strategy in the catalog applies to business type '{business_type}' "
                f"for the scored hazards",
                hazards=scores
            ))

        return [
            SelectedStrategy(
                strategy=strategy,
                matched_hazards=tuple(sorted(matched, key=lambda h: (-scores[h], h))),
                max_matched_score=max(scores[h] for h in matched),
                selection_rank=rank,
            )
            for rank, (strategy, matched, _) in enumerate(chosen, start=1)
        ]

    @staticmethod
    def priority_rank(priority: str) -> int:
        """critical > high > medium > low; anything else ranks below low"""
        return PRIORITY_RANK.get(str(priority).strip().lower(), 0)

    def _sort_key(self, candidate: Tuple[Strategy, Set[str], float]):
        strategy, matched, best = candidate
        return (-best, -len(matched), -self.priority_rank(strategy.priority), strategy.strategy_id)

    def _deduplicated(
        self,
        candidates: List[Tuple[Strategy, Set[str], float]]
    ) -> List[Tuple[Strategy, Set[str], float]]:
        seen: Dict[str, Tuple[Strategy, Set[str], float]] = {}
        for candidate in candidates:
            strategy = candidate[0]
            if strategy.strategy_id in seen:
                self.diagnostics.record(InputDataError(
                    f"Strategy '{strategy.strategy_id}' listed more than once; keeping the first applicable entry"
                ))
                continue
            seen[strategy.strategy_id] = candidate
        return list(seen.values())

    def _applicable(
        self,
        catalog: Iterable[Strategy],
        business_type: str,
        scores: Dict[str, float]
    ) -> List[Tuple[Strategy, Set[str], float]]:
        business_type = str(business_type).strip()
        candidates = []
        for strategy in catalog:
            business_types = {str(b).strip() for b in strategy.applicable_business_types}
            if business_type not in business_types and WILDCARD_BUSINESS_TYPE not in business_types:
                continue

            risks = self.hazards.resolve_all(
                strategy.applicable_risks, context=f"strategy '{strategy.strategy_id}'"
            )
            matched = {h for h in risks if h in scores}
            if not matched:
                continue

            tier = str(strategy.selection_tier).strip().lower()
            if tier not in SELECTION_TIERS:
                self.diagnostics.record(InputDataError(
                    f"Strategy '{strategy.strategy_id}' has unknown selection tier "
                    f"'{strategy.selection_tier}'; excluded",
                    hazards=matched
                ))
                continue
            if self.priority_rank(strategy.priority) == 0:
                logger.warning(
                    f"Strategy '{strategy.strategy_id}' has unknown priority "
                    f"'{strategy.priority}'; ranked below low"
                )

            if tier != strategy.selection_tier:
                strategy = strategy.model_copy(update={"selection_tier": tier})
            candidates.append((strategy, matched, max(scores[h] for h in matched)))
        return candidates

    def _check_coverage(
        self,
        ranked_risks: Sequence[CombinedRiskScore],
        candidates: List[Tuple[Strategy, Set[str], float]]
    ) -> None:
        covered = set()
        for _, matched, _ in candidates:
            covered |= matched

        top = [r.hazard for r in ranked_risks if r.combined_score > 0][:self.coverage_depth]
        self.uncovered_hazards = [h for h in top if h not in covered]
        if self.uncovered_hazards:
            self.diagnostics.record(MissingHazardCoverage(
                f"No recommended strategy found for top-ranked hazards {self.uncovered_hazards}",
                hazards=self.uncovered_hazards
            ))


def select_strategies(
    ranked_risks: Sequence[CombinedRiskScore],
    business_type: str,
    catalog: Iterable[Strategy],
    recommended_cap: int = StrategySelector.DEFAULT_RECOMMENDED_CAP,
    diagnostics: Optional[Diagnostics] = None
) -> List[SelectedStrategy]:
    """Functional form of StrategySelector.select"""
    selector = StrategySelector(recommended_cap=recommended_cap, diagnostics=diagnostics)
    return selector.select(ranked_risks, business_type, catalog)
