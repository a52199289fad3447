"""
Action Plan Assembly

Flattens the action steps of selected strategies into a single timeline.
Two phase vocabularies exist in the catalogs; ``immediate / short_term /
medium_term / long_term`` is canonical and ``before / during / after`` is
accepted as an alias of the first three.
"""

import logging
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional

from src.risk_scoring.exceptions import Diagnostics, InputDataError
from src.risk_scoring.models import ActionPlanEntry, SelectedStrategy

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


CANONICAL_PHASES = ("immediate", "short_term", "medium_term", "long_term")

PHASE_ORDER = {phase: i for i, phase in enumerate(CANONICAL_PHASES)}

# Incident-timeline vocabulary -> canonical phase
PHASE_ALIASES = {
    "before": "immediate",
    "during": "short_term",
    "after": "medium_term",
}

# Canonical phase -> incident-timeline label used for presentation
PRESENTATION_ALIASES = {
    "immediate": "before",
    "short_term": "during",
    "medium_term": "after",
    "long_term": "long_term",
}


def normalize_phase(phase) -> Optional[str]:
    """Return the canonical phase for a raw phase value, or None if unknown"""
    if not isinstance(phase, str):
        return None
    key = phase.strip().lower().replace("-", "_").replace(" ", "_")
    key = PHASE_ALIASES.get(key, key)
    return key if key in PHASE_ORDER else None


def phase_alias(phase: str) -> str:
    return PRESENTATION_ALIASES.get(phase, phase)


def assemble_action_plan(
    selected_strategies: Iterable[SelectedStrategy],
    diagnostics: Optional[Diagnostics] = None
) -> List[ActionPlanEntry]:
    """
    Build the ordered implementation plan

    Entries are ordered by canonical phase, then by the owning strategy's
    selection rank, then by the step's sort order. A strategy's steps within
    a phase are therefore contiguous.

    Args:
        selected_strategies: Output of the strategy selector
        diagnostics: Collector for steps that had to be skipped or corrected

    Returns:
        List of plan entries, one per schedulable action step
    """
    diagnostics = diagnostics if diagnostics is not None else Diagnostics()

    keyed = []
    for selected in selected_strategies:
        strategy_id = selected.strategy_id
        for position, step in enumerate(selected.strategy.action_steps):
            phase = normalize_phase(step.phase)
            if phase is None:
                diagnostics.record(InputDataError(
                    f"Action step '{step.step_id or position}' of strategy '{strategy_id}' "
                    f"has unknown phase {step.phase!r}; left out of the plan",
                    hazards=selected.matched_hazards
                ))
                continue

            if step.strategy_id != strategy_id:
                if step.strategy_id:
                    diagnostics.record(InputDataError(
                        f"Action step '{step.step_id or position}' names strategy "
                        f"'{step.strategy_id}' but belongs to '{strategy_id}'; reattributed"
                    ))
                step = step.model_copy(update={"strategy_id": strategy_id})

            sort_key = (PHASE_ORDER[phase], selected.selection_rank, step.sort_order, position)
            keyed.append((sort_key, ActionPlanEntry(
                phase=phase,
                phase_alias=phase_alias(phase),
                strategy_id=strategy_id,
                step=step,
            )))

    keyed.sort(key=lambda item: item[0])
    plan = [entry for _, entry in keyed]
    logger.info(f"Assembled action plan with {len(plan)} steps")
    return plan


def group_by_phase(plan: Iterable[ActionPlanEntry]) -> Dict[str, List[ActionPlanEntry]]:
    """Group plan entries by canonical phase, preserving phase and plan order"""
    grouped: Dict[str, List[ActionPlanEntry]] = OrderedDict((p, []) for p in CANONICAL_PHASES)
    for entry in plan:
        grouped[entry.phase].append(entry)
    return OrderedDict((p, entries) for p, entries in grouped.items() if entries)
