"""
Pytest configuration and shared fixtures for the risk recommendation tests.

Factories build snapshot models with sensible defaults so each test only
spells out the fields it cares about.
"""

import os
from typing import Iterable, Optional

import pytest

from src.catalog_connectors import InMemorySnapshotProvider
from src.risk_scoring.models import (
    ActionStep,
    CombinedRiskScore,
    Multiplier,
    SelectedStrategy,
    Strategy,
)

SAMPLE_SNAPSHOT = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "data", "sample_snapshot.json"
)


# ---------------------------------------------------------------------------
# Model factories
# ---------------------------------------------------------------------------

def make_multiplier(
    id: str = "mult_tourism",
    characteristic_type: str = "tourism_share",
    priority: int = 1,
    is_active: bool = True,
    answer_options: Optional[dict] = None,
    applies_to_hazards: Iterable[str] = ("hurricane",),
    **kwargs
) -> Multiplier:
    return Multiplier(
        id=id,
        characteristic_type=characteristic_type,
        priority=priority,
        is_active=is_active,
        answer_options={"mainly_tourists": 1.3} if answer_options is None else answer_options,
        applies_to_hazards=frozenset(applies_to_hazards),
        **kwargs
    )


def make_step(
    step_id: str,
    phase: str = "before",
    sort_order: int = 1,
    strategy_id: str = ""
) -> ActionStep:
    return ActionStep(step_id=step_id, phase=phase, sort_order=sort_order, strategy_id=strategy_id)


def make_strategy(
    strategy_id: str,
    risks: Iterable[str] = ("hurricane",),
    business_types: Iterable[str] = ("all_businesses",),
    tier: str = "recommended",
    priority: str = "medium",
    steps: Iterable[ActionStep] = ()
) -> Strategy:
    return Strategy(
        strategy_id=strategy_id,
        applicable_risks=frozenset(risks),
        applicable_business_types=frozenset(business_types),
        selection_tier=tier,
        priority=priority,
        action_steps=tuple(steps),
    )


def make_risk(
    hazard: str,
    combined_score: float,
    impact_severity: float = 5.0,
    rank: int = 1
) -> CombinedRiskScore:
    return CombinedRiskScore(
        hazard=hazard,
        location_risk=5.0,
        vulnerability=5.0,
        impact_severity=impact_severity,
        impact_weight=1.0 + (impact_severity - 1.0) / 9.0,
        multiplier=1.0,
        combined_score=combined_score,
        rank=rank,
        risk_level="medium",
    )


def make_selected(
    strategy: Strategy,
    selection_rank: int,
    matched_hazards: Iterable[str] = ("hurricane",),
    max_matched_score: float = 10.0
) -> SelectedStrategy:
    return SelectedStrategy(
        strategy=strategy,
        matched_hazards=tuple(matched_hazards),
        max_matched_score=max_matched_score,
        selection_rank=selection_rank,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def example_location():
    return {"hurricane": 8, "flood": 3}


@pytest.fixture
def example_vulnerability():
    return {
        "hurricane": {"vulnerabilityLevel": 7, "impactSeverity": 9},
        "flood": {"vulnerabilityLevel": 2, "impactSeverity": 4},
    }


@pytest.fixture
def example_provider(example_location, example_vulnerability):
    """Coastal parish / restaurant snapshot with a tourism multiplier on hurricanes"""
    return InMemorySnapshotProvider(
        location_profiles={"portland": example_location},
        vulnerability_profiles={"restaurant": example_vulnerability},
        multipliers=[make_multiplier(answer_options={"mainly_tourists": 1.3, "mix": 1.1})],
        strategies=[
            make_strategy(
                "hurricane_shutters",
                risks=("hurricane",),
                tier="essential",
                priority="critical",
                steps=[make_step("hs_1", "before", 1), make_step("hs_2", "after", 1)],
            ),
            make_strategy(
                "flood_barriers",
                risks=("flood",),
                business_types=("restaurant",),
                steps=[make_step("fb_1", "before", 1)],
            ),
        ],
    )


@pytest.fixture
def sample_snapshot_path():
    return SAMPLE_SNAPSHOT
