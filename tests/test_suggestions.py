"""
Tests for payment timing suggestions and the PaymentOptimizer.

Tests cover risk assessment, delay and advance suggestions, ordering,
what-if application and the optimizer facade.
"""

import pytest
from dataclasses import replace
from datetime import date
from decimal import Decimal

from cashline.data.schemas import Direction, SourceType
from cashline.optimizer.engine import OptimizationResult, PaymentOptimizer
from cashline.optimizer.gaps import CashGap, find_cash_gaps
from cashline.optimizer.suggestions import (
    RiskLevel,
    SuggestionType,
    apply_suggestion,
    assess_risk_level,
    generate_gap_suggestions,
    generate_suggestions,
    rank_suggestions,
)

from conftest import make_event


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def gap_events():
    """A claim, an order and overheads push the balance under 50k; a milestone recovers it."""
    return [
        make_event("claim", 15000, date(2024, 4, 2), description="Steel Co - Harbour"),
        make_event("order", 8000, date(2024, 4, 3), source_type=SourceType.MATERIAL_ORDER),
        make_event("rent", 4000, date(2024, 4, 5), source_type=SourceType.FORECAST_LINE, project_id=None),
        make_event("stage", 40000, date(2024, 4, 20), Direction.INCOME, SourceType.MILESTONE),
    ]


# =============================================================================
# Unit Tests - Risk
# =============================================================================

class TestAssessRiskLevel:
    """Tests for delay risk thresholds."""

    @pytest.mark.parametrize("source_type,days,expected", [
        (SourceType.SUPPLIER_CLAIM, 14, RiskLevel.LOW),
        (SourceType.SUPPLIER_CLAIM, 15, RiskLevel.MEDIUM),
        (SourceType.SUPPLIER_CLAIM, 30, RiskLevel.MEDIUM),
        (SourceType.SUPPLIER_CLAIM, 31, RiskLevel.HIGH),
        (SourceType.MATERIAL_ORDER, 7, RiskLevel.LOW),
        (SourceType.MATERIAL_ORDER, 14, RiskLevel.MEDIUM),
        (SourceType.MATERIAL_ORDER, 15, RiskLevel.HIGH),
        (SourceType.MILESTONE, 90, RiskLevel.LOW),
        (SourceType.FORECAST_LINE, 1, RiskLevel.HIGH),
    ])
    def test_thresholds(self, source_type, days, expected):
        assert assess_risk_level(source_type, days) == expected


# =============================================================================
# Unit Tests - Gap suggestions
# =============================================================================

class TestGenerateGapSuggestions:
    """Tests for generate_gap_suggestions."""

    def test_largest_improvement_first(self):
        small = make_event("small", 1000, date(2024, 4, 1))
        large = make_event("large", 30000, date(2024, 4, 2))
        gap = CashGap(
            start_date=date(2024, 4, 1),
            end_date=date(2024, 4, 2),
            lowest_balance=Decimal("29000"),
            gap_amount=Decimal("21000"),
            events=[small, large],
        )

        suggestions = generate_gap_suggestions(gap, [small, large])

        assert [s.cash_flow_improvement for s in suggestions] == [Decimal("30000"), Decimal("1000")]
        assert [s.event_id for s in suggestions] == ["large", "small"]

    def test_rank_keeps_order_of_ties(self, gap_events):
        gap = find_cash_gaps(gap_events, 60000, 50000)[0]
        suggestions = generate_gap_suggestions(gap, gap_events)
        tied = [replace(s, cash_flow_improvement=Decimal("100")) for s in suggestions]

        assert [s.id for s in rank_suggestions(tied)] == [s.id for s in tied]

    def test_claim_delay_with_default_offset(self, gap_events):
        """A $15,000 claim inside a gap is delayed 30 days at medium risk."""
        gap = find_cash_gaps(gap_events, 60000, 50000)[0]

        suggestions = generate_gap_suggestions(gap, gap_events)
        delay = next(s for s in suggestions if s.event_id == "claim")

        assert delay.id == "delay_claim"
        assert delay.type == SuggestionType.DELAY_PAYMENT
        assert delay.suggested_date == date(2024, 5, 2)
        assert delay.cash_flow_improvement == Decimal("15000")
        assert delay.risk_level == RiskLevel.MEDIUM
        assert delay.entity_name == "Steel Co - Harbour"
        assert "$17,000.00" in delay.reason

    def test_order_delay_is_high_risk_at_default_offset(self, gap_events):
        gap = find_cash_gaps(gap_events, 60000, 50000)[0]

        suggestions = generate_gap_suggestions(gap, gap_events)
        delay = next(s for s in suggestions if s.event_id == "order")

        assert delay.risk_level == RiskLevel.HIGH

    def test_milestone_is_advanced(self, gap_events):
        gap = find_cash_gaps(gap_events, 60000, 50000)[0]

        suggestions = generate_gap_suggestions(gap, gap_events, advance_days=10)
        advance = next(s for s in suggestions if s.event_id == "stage")

        assert advance.type == SuggestionType.ADVANCE_PAYMENT
        assert advance.suggested_date == date(2024, 4, 10)
        assert advance.risk_level == RiskLevel.LOW

    def test_overheads_are_never_moved(self, gap_events):
        gap = find_cash_gaps(gap_events, 60000, 50000)[0]

        suggestions = generate_gap_suggestions(gap, gap_events)

        assert "rent" not in {s.event_id for s in suggestions}

    def test_custom_delay_changes_risk(self, gap_events):
        gap = find_cash_gaps(gap_events, 60000, 50000)[0]

        suggestions = generate_gap_suggestions(gap, gap_events, delay_days=7)
        risks = {s.event_id: s.risk_level for s in suggestions if s.type == SuggestionType.DELAY_PAYMENT}

        assert risks == {"claim": RiskLevel.LOW, "order": RiskLevel.LOW}


# =============================================================================
# Unit Tests - generate_suggestions / apply_suggestion
# =============================================================================

class TestGenerateSuggestions:
    """Tests for window filtering and ordering."""

    def test_sorted_by_improvement(self, gap_events):
        suggestions = generate_suggestions(gap_events, 60000, 50000)

        improvements = [s.cash_flow_improvement for s in suggestions]
        assert improvements == sorted(improvements, reverse=True)
        assert suggestions[0].event_id == "stage"

    def test_window_excludes_outside_events(self, gap_events):
        suggestions = generate_suggestions(
            gap_events, 55000, 50000, start_date=date(2024, 4, 3), end_date=date(2024, 4, 10),
        )

        assert {s.event_id for s in suggestions} == {"order"}

    def test_no_gap_no_suggestions(self, gap_events):
        assert generate_suggestions(gap_events, 500000, 50000) == []

    def test_apply_suggestion_moves_only_target(self, gap_events):
        suggestion = generate_suggestions(gap_events, 60000, 50000)[0]

        moved = apply_suggestion(gap_events, suggestion)

        assert next(e for e in moved if e.id == "stage").date == date(2024, 4, 6)
        assert next(e for e in gap_events if e.id == "stage").date == date(2024, 4, 20)
        assert [e.date for e in moved if e.id != "stage"] == [
            e.date for e in gap_events if e.id != "stage"
        ]

    def test_suggestion_to_dict(self, gap_events):
        suggestion_dict = generate_suggestions(gap_events, 60000, 50000)[0].to_dict()

        assert suggestion_dict["type"] == "advance_payment"
        assert suggestion_dict["impact"]["cash_flow_improvement"] == "40000"
        assert suggestion_dict["impact"]["risk_level"] == "low"


# =============================================================================
# Unit Tests - PaymentOptimizer
# =============================================================================

class TestPaymentOptimizer:
    """Tests for the optimizer facade."""

    def test_optimize(self, gap_events):
        optimizer = PaymentOptimizer(current_balance=60000, minimum_balance=50000)

        result = optimizer.optimize(gap_events, date(2024, 4, 1), date(2024, 4, 30))

        assert isinstance(result, OptimizationResult)
        assert len(result.gaps) == 1
        assert result.total_gap_amount == Decimal("17000")
        assert len(result.suggestions) == 3
        assert result.to_dict()["total_gap_amount"] == "17000"

    def test_defaults(self):
        optimizer = PaymentOptimizer(current_balance="1000.50")

        assert optimizer.current_balance == Decimal("1000.50")
        assert optimizer.minimum_balance == Decimal("50000")
        assert optimizer.delay_days == 30
        assert optimizer.advance_days == 14

    def test_projection_respects_window(self, gap_events):
        optimizer = PaymentOptimizer(current_balance=60000)

        projection = optimizer.get_cash_flow_projection(gap_events, date(2024, 4, 4), date(2024, 4, 30))

        assert [d.date for d in projection.days] == [date(2024, 4, 5), date(2024, 4, 20)]
        assert projection.days[-1].balance == Decimal("96000")
