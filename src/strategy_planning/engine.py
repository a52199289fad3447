"""
Recommendation Engine

Runs the full pipeline for one business:

    wizard answers -> multiplier factors -> ranked hazard scores
                   -> selected strategies -> ordered action plan

Each call reads one snapshot through the provider and returns a new plan;
nothing is cached between calls.
"""

import logging
import os
from typing import Any, Iterable, List, Mapping, Optional, Type, TypeVar

import requests
from pydantic import BaseModel, ValidationError

from src.catalog_connectors.base import SnapshotProvider
from src.risk_scoring.exceptions import DataSourceError, Diagnostics, InputDataError
from src.risk_scoring.hazards import HazardRegistry
from src.risk_scoring.models import (
    EngineNotice,
    Multiplier,
    RecommendationOptions,
    RecommendationPlan,
    Strategy,
)
from src.risk_scoring.multiplier_resolver import MultiplierResolver, combine_factors
from src.risk_scoring.risk_scorer import RiskScorer

from .action_plan import assemble_action_plan
from .strategy_selector import StrategySelector

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"{name}={raw!r} is not an integer, using default {default}")
        return default


class RecommendationEngine:
    """Compute recommendation plans from a snapshot provider"""

    def __init__(
        self,
        provider: SnapshotProvider,
        recommended_cap: Optional[int] = None,
        coverage_depth: Optional[int] = None
    ):
        """
        Args:
            provider: Source of location, vulnerability, multiplier and
                strategy snapshots.
            recommended_cap: Default cap on recommended/optional strategies.
                If None, uses RISK_ENGINE_RECOMMENDED_CAP.
            coverage_depth: Number of top hazards checked for strategy
                coverage. If None, uses RISK_ENGINE_COVERAGE_DEPTH.
        """
        self.provider = provider
        self.recommended_cap = (
            int(recommended_cap) if recommended_cap is not None
            else _env_int("RISK_ENGINE_RECOMMENDED_CAP", StrategySelector.DEFAULT_RECOMMENDED_CAP)
        )
        self.coverage_depth = (
            int(coverage_depth) if coverage_depth is not None
            else _env_int("RISK_ENGINE_COVERAGE_DEPTH", StrategySelector.DEFAULT_COVERAGE_DEPTH)
        )

    def compute_recommendation(
        self,
        admin_unit_id: str,
        business_type_id: str,
        wizard_answers: Optional[Mapping[str, Any]] = None,
        options: Optional[RecommendationOptions] = None
    ) -> RecommendationPlan:
        """
        Build a recommendation plan

        Args:
            admin_unit_id: Parish / admin unit the business is located in
            business_type_id: Business type whose vulnerability profile applies
            wizard_answers: Characteristic type -> answer
            options: Per-call overrides (recommended cap, coverage depth)

        Returns:
            RecommendationPlan with ranked risks, selected strategies,
            the assembled action plan and any notices

        Raises:
            DataSourceError: if the provider cannot supply the snapshot
        """
        wizard_answers = dict(wizard_answers or {})
        options = options or RecommendationOptions()
        cap = options.recommended_cap if options.recommended_cap is not None else self.recommended_cap
        depth = options.coverage_depth if options.coverage_depth is not None else self.coverage_depth

        diagnostics = Diagnostics()
        hazards = HazardRegistry(diagnostics=diagnostics)

        logger.info(
            f"Computing recommendation for business type '{business_type_id}' "
            f"in '{admin_unit_id}' ({len(wizard_answers)} answers)"
        )

        location_risk = self._fetch(self.provider.get_location_risk_profile, admin_unit_id)
        vulnerability = self._fetch(self.provider.get_business_vulnerability, business_type_id)

        raw_multipliers = []
        for characteristic_type in sorted(wizard_answers, key=str):
            raw_multipliers.extend(self._fetch(self.provider.get_multipliers, characteristic_type))
        multipliers = self._validate(raw_multipliers, Multiplier, "multiplier", diagnostics)

        catalog = self._validate(
            self._fetch(self.provider.get_strategy_catalog), Strategy, "strategy", diagnostics
        )

        resolver = MultiplierResolver(multipliers, hazard_registry=hazards, diagnostics=diagnostics)
        applied = resolver.explain(wizard_answers)
        factors = combine_factors(applied)

        scorer = RiskScorer(hazard_registry=hazards, diagnostics=diagnostics)
        ranked_risks = scorer.score(location_risk, vulnerability, factors)

        selector = StrategySelector(
            recommended_cap=cap,
            coverage_depth=depth,
            hazard_registry=hazards,
            diagnostics=diagnostics,
        )
        selected = selector.select(ranked_risks, business_type_id, catalog)

        action_plan = assemble_action_plan(selected, diagnostics=diagnostics)

        logger.info(
            f"Plan ready: {len(ranked_risks)} ranked hazards, {len(selected)} strategies, "
            f"{len(action_plan)} action steps, {len(diagnostics)} notices"
        )

        return RecommendationPlan(
            admin_unit_id=admin_unit_id,
            business_type_id=business_type_id,
            ranked_risks=ranked_risks,
            selected_strategies=selected,
            action_plan=action_plan,
            applied_multipliers=applied,
            uncovered_hazards=selector.uncovered_hazards,
            notices=[
                EngineNotice(
                    category=type(issue).__name__,
                    message=issue.message,
                    hazards=tuple(issue.hazards),
                )
                for issue in diagnostics.issues
            ],
        )

    @staticmethod
    def _fetch(getter, *args):
        try:
            return getter(*args)
        except DataSourceError:
            raise
        except (OSError, requests.exceptions.RequestException) as e:
            logger.error(f"Snapshot provider failed in {getattr(getter, '__name__', getter)}: {e}")
            raise DataSourceError(f"Snapshot provider failed: {e}") from e

    @staticmethod
    def _validate(
        items: Iterable[Any],
        model: Type[ModelT],
        label: str,
        diagnostics: Diagnostics
    ) -> List[ModelT]:
        validated = []
        for position, item in enumerate(items):
            if isinstance(item, model):
                validated.append(item)
                continue
            try:
                validated.append(model.model_validate(item))
            except ValidationError as e:
                diagnostics.record(InputDataError(
                    f"Skipping unreadable {label} #{position} ({e.error_count()} validation errors)"
                ))
        return validated


def compute_recommendation(
    provider: SnapshotProvider,
    admin_unit_id: str,
    business_type_id: str,
    wizard_answers: Optional[Mapping[str, Any]] = None,
    options: Optional[RecommendationOptions] = None
) -> RecommendationPlan:
    """Functional form of RecommendationEngine.compute_recommendation"""
    return RecommendationEngine(provider).compute_recommendation(
        admin_unit_id, business_type_id, wizard_answers, options
    )


if __name__ == "__main__":
    from src.catalog_connectors import InMemorySnapshotProvider

    print("\n" + "="*60)
    print("RECOMMENDATION ENGINE TEST")
    print("="*60 + "\n")

    provider = InMemorySnapshotProvider(
        location_profiles={"portland": {"hurricane": 8, "flood": 3, "landslide": 6}},
        vulnerability_profiles={"restaurant": {
            "hurricane": {"vulnerabilityLevel": 7, "impactSeverity": 9},
            "flood": {"vulnerabilityLevel": 2, "impactSeverity": 4},
            "landslide": {"vulnerabilityLevel": 4, "impactSeverity": 7},
        }},
        multipliers=[{
            "id": "mult_tourism",
            "characteristicType": "tourism_share",
            "priority": 1,
            "answerOptions": {"mainly_tourists": 1.3, "mix": 1.1},
            "appliesToHazards": ["hurricane"],
        }],
        strategies=[
            {
                "strategyId": "hurricane_shutters",
                "applicableRisks": ["hurricane"],
                "applicableBusinessTypes": ["all_businesses"],
                "selectionTier": "essential",
                "priority": "critical",
                "actionSteps": [
                    {"stepId": "s1", "phase": "before", "sortOrder": 1},
                    {"stepId": "s2", "phase": "after", "sortOrder": 1},
                ],
            },
            {
                "strategyId": "drainage_review",
                "applicableRisks": ["flood", "landslide"],
                "applicableBusinessTypes": ["restaurant"],
                "selectionTier": "recommended",
                "priority": "medium",
                "actionSteps": [{"stepId": "d1", "phase": "short_term", "sortOrder": 1}],
            },
        ],
    )

    plan = RecommendationEngine(provider).compute_recommendation(
        "portland", "restaurant", {"tourism_share": "mainly_tourists"}
    )

    print("Ranked risks:")
    for risk in plan.ranked_risks:
        print(f"  #{risk.rank} {risk.hazard:<12} {risk.combined_score:5.2f} ({risk.risk_level})")

    print("\nSelected strategies:")
    for selected in plan.selected_strategies:
        print(f"  {selected.selection_rank}. {selected.strategy_id} -> {', '.join(selected.matched_hazards)}")

    print("\nAction plan:")
    for entry in plan.action_plan:
        print(f"  [{entry.phase_alias:<10}] {entry.strategy_id}: {entry.step.step_id}")

    print("\n" + "="*60)
    print("TEST COMPLETE")
    print("="*60)
