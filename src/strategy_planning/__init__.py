"""
Strategy Planning Module

Select mitigation strategies for ranked hazards and assemble their action
steps into one implementation plan.
"""

from .action_plan import assemble_action_plan, group_by_phase, normalize_phase
from .engine import RecommendationEngine, compute_recommendation
from .strategy_selector import StrategySelector, select_strategies

__all__ = [
    "RecommendationEngine",
    "compute_recommendation",
    "StrategySelector",
    "select_strategies",
    "assemble_action_plan",
    "group_by_phase",
    "normalize_phase",
]
