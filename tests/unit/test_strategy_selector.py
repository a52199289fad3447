"""
Unit tests for strategy filtering, tiering, deduplication and ranking.
"""

import pytest

from src.risk_scoring.exceptions import (
    Diagnostics,
    EmptyCatalogResult,
    InputDataError,
    MissingHazardCoverage,
)
from src.strategy_planning.strategy_selector import StrategySelector, select_strategies
from tests.conftest import make_risk, make_strategy


@pytest.fixture
def ranked_risks():
    return [
        make_risk("hurricane", 13.75, impact_severity=9, rank=1),
        make_risk("flood", 0.8, impact_severity=4, rank=2),
    ]


def ids(selected):
    return [s.strategy_id for s in selected]


class TestApplicability:

    def test_business_type_filter_and_wildcard(self, ranked_risks):
        catalog = [
            make_strategy("for_everyone", business_types=("all_businesses",)),
            make_strategy("for_restaurants", business_types=("restaurant",)),
            make_strategy("for_hotels", business_types=("hotel",)),
        ]

        assert ids(select_strategies(ranked_risks, "restaurant", catalog)) == ["for_everyone", "for_restaurants"]

    def test_strategy_must_address_a_scored_hazard(self, ranked_risks):
        catalog = [
            make_strategy("quake_bracing", risks=("earthquake",)),
            make_strategy("shutters", risks=("hurricane",)),
        ]

        assert ids(select_strategies(ranked_risks, "restaurant", catalog)) == ["shutters"]

    def test_zero_score_hazards_do_not_match(self):
        risks = [make_risk("hurricane", 0.0)]
        assert select_strategies(risks, "restaurant", [make_strategy("shutters")]) == []

    def test_risk_keys_are_canonicalized(self):
        risks = [make_risk("powerOutage", 9.0)]
        catalog = [make_strategy("generator", risks=("power_outage",))]

        assert ids(select_strategies(risks, "restaurant", catalog)) == ["generator"]


class TestTiers:

    def test_essentials_ignore_cap(self, ranked_risks):
        catalog = [
            make_strategy("essential_a", tier="essential"),
            make_strategy("essential_b", risks=("flood",), tier="essential"),
            make_strategy("recommended_a"),
        ]

        selected = select_strategies(ranked_risks, "restaurant", catalog, recommended_cap=0)

        assert ids(selected) == ["essential_a", "essential_b"]

    def test_essentials_come_first(self, ranked_risks):
        catalog = [
            make_strategy("recommended_big", priority="critical"),
            make_strategy("essential_small", risks=("flood",), tier="essential", priority="low"),
        ]

        selected = select_strategies(ranked_risks, "restaurant", catalog)

        assert ids(selected) == ["essential_small", "recommended_big"]
        assert [s.selection_rank for s in selected] == [1, 2]

    def test_tier_is_case_insensitive(self, ranked_risks):
        catalog = [make_strategy("shouty", tier="ESSENTIAL")]
        selected = select_strategies(ranked_risks, "restaurant", catalog, recommended_cap=0)

        assert ids(selected) == ["shouty"]
        assert selected[0].strategy.selection_tier == "essential"

    def test_unknown_tier_excluded_with_notice(self, ranked_risks):
        diagnostics = Diagnostics()
        catalog = [make_strategy("mystery", tier="mandatory"), make_strategy("known")]

        selected = select_strategies(ranked_risks, "restaurant", catalog, diagnostics=diagnostics)

        assert ids(selected) == ["known"]
        assert len(diagnostics.of_type(InputDataError)) == 1


class TestRanking:

    def test_competing_strategy_order(self, ranked_risks):
        catalog = [
            make_strategy("s_flood_critical", risks=("flood",), priority="critical"),
            make_strategy("s_hurr_low", risks=("hurricane",), priority="low"),
            make_strategy("s_both_low", risks=("hurricane", "flood"), priority="low"),
            make_strategy("s_hurr_high_b", risks=("hurricane",), priority="high"),
            make_strategy("s_hurr_high_a", risks=("hurricane",), priority="high"),
        ]

        selected = select_strategies(ranked_risks, "restaurant", catalog, recommended_cap=10)

        assert ids(selected) == [
            "s_both_low",
            "s_hurr_high_a",
            "s_hurr_high_b",
            "s_hurr_low",
            "s_flood_critical",
        ]

    def test_cap_truncates_competing_strategies(self, ranked_risks):
        catalog = [make_strategy(f"s_{i}") for i in range(6)]

        selected = select_strategies(ranked_risks, "restaurant", catalog, recommended_cap=3)

        assert ids(selected) == ["s_0", "s_1", "s_2"]

    def test_negative_cap_treated_as_zero(self, ranked_risks):
        assert select_strategies(ranked_risks, "restaurant", [make_strategy("s")], recommended_cap=-4) == []

    def test_unknown_priority_ranks_below_low(self, ranked_risks):
        catalog = [
            make_strategy("s_unknown", priority="urgent-ish"),
            make_strategy("s_low", priority="low"),
        ]

        assert ids(select_strategies(ranked_risks, "restaurant", catalog)) == ["s_low", "s_unknown"]

    @pytest.mark.parametrize("priority, rank", [("critical", 4), ("High", 3), ("medium", 2), ("low", 1), ("", 0)])
    def test_priority_rank(self, priority, rank):
        assert StrategySelector.priority_rank(priority) == rank


class TestDeduplication:

    def test_multi_hazard_strategy_listed_once(self, ranked_risks):
        catalog = [make_strategy("storm_plan", risks=("hurricane", "flood"), tier="essential")]

        selected = select_strategies(ranked_risks, "restaurant", catalog)

        assert ids(selected) == ["storm_plan"]
        assert selected[0].matched_hazards == ("hurricane", "flood")
        assert selected[0].max_matched_score == pytest.approx(13.75)

    def test_duplicate_catalog_entries_collapsed(self, ranked_risks):
        diagnostics = Diagnostics()
        catalog = [
            make_strategy("storm_plan", tier="essential"),
            make_strategy("storm_plan", risks=("flood",), tier="essential"),
        ]

        selected = select_strategies(ranked_risks, "restaurant", catalog, diagnostics=diagnostics)

        assert ids(selected) == ["storm_plan"]
        assert selected[0].matched_hazards == ("hurricane",)
        assert len(diagnostics.of_type(InputDataError)) == 1

    def test_non_applicable_duplicate_does_not_hide_applicable_entry(self, ranked_risks):
        diagnostics = Diagnostics()
        catalog = [
            make_strategy("shutters", business_types=("hotel",), tier="essential"),
            make_strategy("shutters", business_types=("restaurant",), tier="essential"),
        ]

        selected = select_strategies(ranked_risks, "restaurant", catalog, diagnostics=diagnostics)

        assert ids(selected) == ["shutters"]
        assert selected[0].strategy.applicable_business_types == frozenset({"restaurant"})
        assert diagnostics.of_type(EmptyCatalogResult) == []
        assert diagnostics.of_type(InputDataError) == []

    def test_duplicate_with_unmatched_risks_does_not_hide_match(self, ranked_risks):
        catalog = [
            make_strategy("storm_plan", risks=("earthquake",)),
            make_strategy("storm_plan", risks=("flood",)),
        ]

        selected = select_strategies(ranked_risks, "restaurant", catalog)

        assert ids(selected) == ["storm_plan"]
        assert selected[0].matched_hazards == ("flood",)


class TestEdgeCases:

    def test_empty_ranked_risks(self):
        diagnostics = Diagnostics()
        assert select_strategies([], "restaurant", [make_strategy("s")], diagnostics=diagnostics) == []
        assert len(diagnostics) == 0

    def test_no_business_type_match_is_empty_not_error(self, ranked_risks):
        diagnostics = Diagnostics()
        catalog = [make_strategy("hotel_only", business_types=("hotel",))]

        selected = select_strategies(ranked_risks, "restaurant", catalog, diagnostics=diagnostics)

        assert selected == []
        assert len(diagnostics.of_type(EmptyCatalogResult)) == 1

    def test_missing_coverage_reported(self, ranked_risks):
        diagnostics = Diagnostics()
        selector = StrategySelector(diagnostics=diagnostics)

        selected = selector.select(ranked_risks, "restaurant", [make_strategy("shutters")])

        assert ids(selected) == ["shutters"]
        assert selector.uncovered_hazards == ["flood"]
        assert diagnostics.of_type(MissingHazardCoverage)[0].hazards == ["flood"]

    def test_coverage_only_checks_top_hazards(self, ranked_risks):
        diagnostics = Diagnostics()
        selector = StrategySelector(coverage_depth=1, diagnostics=diagnostics)

        selector.select(ranked_risks, "restaurant", [make_strategy("shutters")])

        assert selector.uncovered_hazards == []
        assert diagnostics.of_type(MissingHazardCoverage) == []
