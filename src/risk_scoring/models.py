"""
Snapshot and Result Models

Read-only data passed into and returned from the recommendation pipeline.
Models accept the camelCase keys used by upstream catalogs as well as
snake_case field names.
"""

from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SnapshotModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


# ---------------------------------------------------------------------------
# Input snapshots
# ---------------------------------------------------------------------------

class HazardVulnerability(SnapshotModel):
    """How exposed (vulnerability) and how harmed (impact) a business type is by one hazard"""

    vulnerability_level: float = Field(..., alias="vulnerabilityLevel")
    impact_severity: float = Field(1.0, alias="impactSeverity")


class Multiplier(SnapshotModel):
    """Business-characteristic scaling factor for a set of hazards"""

    id: str
    characteristic_type: str = Field(..., alias="characteristicType")
    priority: int = 0
    is_active: bool = Field(True, alias="isActive")
    answer_options: Dict[str, float] = Field(default_factory=dict, alias="answerOptions")
    applies_to_hazards: FrozenSet[str] = Field(default_factory=frozenset, alias="appliesToHazards")

    # Condition-based multipliers (boolean / threshold / range) use a single factor
    condition_type: str = Field("options", alias="conditionType")
    multiplier_factor: Optional[float] = Field(None, alias="multiplierFactor")
    threshold_value: Optional[float] = Field(None, alias="thresholdValue")
    min_value: Optional[float] = Field(None, alias="minValue")
    max_value: Optional[float] = Field(None, alias="maxValue")

    name: str = ""
    reasoning: Optional[str] = None

    @field_validator("answer_options", mode="before")
    @classmethod
    def _stringify_answers(cls, value):
        if isinstance(value, dict):
            return {str(k): v for k, v in value.items()}
        return value

    @field_validator("condition_type", mode="before")
    @classmethod
    def _normalize_condition(cls, value):
        return str(value or "options").strip().lower()


class ActionStep(SnapshotModel):
    step_id: str = Field("", alias="stepId")
    strategy_id: str = Field("", alias="strategyId")
    phase: str
    sort_order: int = Field(0, alias="sortOrder")
    # Display text (multilingual titles, checklists); never inspected
    payload: Dict[str, Any] = Field(default_factory=dict)


class Strategy(SnapshotModel):
    strategy_id: str = Field(..., alias="strategyId")
    applicable_risks: FrozenSet[str] = Field(default_factory=frozenset, alias="applicableRisks")
    applicable_business_types: FrozenSet[str] = Field(
        default_factory=frozenset, alias="applicableBusinessTypes"
    )
    selection_tier: str = Field("recommended", alias="selectionTier")
    priority: str = "medium"
    action_steps: Tuple[ActionStep, ...] = Field(default_factory=tuple, alias="actionSteps")
    payload: Dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

class CombinedRiskScore(SnapshotModel):
    hazard: str
    location_risk: float
    vulnerability: float
    impact_severity: float
    impact_weight: float
    multiplier: float
    combined_score: float
    rank: int
    risk_level: str


class SelectedStrategy(SnapshotModel):
    strategy: Strategy
    matched_hazards: Tuple[str, ...]
    max_matched_score: float
    selection_rank: int

    @property
    def strategy_id(self) -> str:
        return self.strategy.strategy_id


class ActionPlanEntry(SnapshotModel):
    phase: str
    phase_alias: str
    strategy_id: str
    step: ActionStep


class AppliedMultiplier(SnapshotModel):
    multiplier_id: str
    characteristic_type: str
    answer: Any = None
    factor: float
    hazards: Tuple[str, ...]
    reasoning: str = ""


class EngineNotice(SnapshotModel):
    category: str
    message: str
    hazards: Tuple[str, ...] = ()


class RecommendationOptions(SnapshotModel):
    recommended_cap: Optional[int] = Field(None, alias="recommendedCap")
    coverage_depth: Optional[int] = Field(None, alias="coverageDepth")


class RecommendationPlan(SnapshotModel):
    admin_unit_id: str
    business_type_id: str
    ranked_risks: List[CombinedRiskScore]
    selected_strategies: List[SelectedStrategy]
    action_plan: List[ActionPlanEntry]
    applied_multipliers: List[AppliedMultiplier] = Field(default_factory=list)
    uncovered_hazards: List[str] = Field(default_factory=list)
    notices: List[EngineNotice] = Field(default_factory=list)
