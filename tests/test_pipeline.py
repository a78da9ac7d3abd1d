"""
Tests for the Projection-Forecast-Optimisation-Reconciliation Pipeline.

Tests cover pipeline configuration, result handling and phase isolation.
"""

import pytest
from datetime import date, datetime
from decimal import Decimal
from unittest.mock import patch

from cashline.alerts.rules import AlertType
from cashline.data.schemas import Basis, Direction
from cashline.engines.pipeline import (
    PipelineConfig,
    PipelineResult,
    run_cashflow_pipeline,
)

from conftest import make_actual


# =============================================================================
# Unit Tests - PipelineConfig
# =============================================================================

class TestPipelineConfig:
    """Tests for PipelineConfig."""

    def test_default_config(self):
        config = PipelineConfig()

        assert config.weeks == 13
        assert config.period_type == "monthly"
        assert config.minimum_balance == Decimal("50000")
        assert config.match_threshold == 0.3
        assert config.basis == Basis.ACCRUAL
        assert config.delay_days == 30
        assert config.advance_days == 14
        assert config.skip_optimization is False
        assert config.skip_alerts is False
        assert len(config.alert_rules) == 4

    def test_resolve_window_from_weeks(self):
        config = PipelineConfig(start_date=date(2024, 1, 1), weeks=4)

        assert config.resolve_window() == (date(2024, 1, 1), date(2024, 1, 29))

    def test_resolve_window_defaults_to_today(self):
        config = PipelineConfig(today=date(2024, 6, 1), end_date=date(2024, 6, 30))

        assert config.resolve_window() == (date(2024, 6, 1), date(2024, 6, 30))


# =============================================================================
# Unit Tests - PipelineResult
# =============================================================================

class TestPipelineResult:
    """Tests for PipelineResult."""

    def test_result_creation(self):
        result = PipelineResult(
            organization_id="org-123",
            run_at=datetime.utcnow(),
            start_date=date(2024, 1, 1),
            end_date=date(2024, 3, 31),
        )

        assert result.events == []
        assert result.optimization is None
        assert result.errors == []

    def test_result_to_dict(self):
        result = PipelineResult(
            organization_id="org-123",
            run_at=datetime(2024, 1, 1, 9, 0),
            start_date=date(2024, 1, 1),
            end_date=date(2024, 3, 31),
            total_duration_ms=150,
            errors=["Optimization error: boom"],
        )

        result_dict = result.to_dict()

        assert result_dict["organization_id"] == "org-123"
        assert result_dict["run_at"] == "2024-01-01T09:00:00"
        assert result_dict["forecast"]["summary"] is None
        assert result_dict["performance"]["total_ms"] == 150
        assert result_dict["errors"] == ["Optimization error: boom"]


# =============================================================================
# Integration Tests - run_cashflow_pipeline
# =============================================================================

class TestRunCashflowPipeline:
    """Tests for the full pipeline over a sample snapshot."""

    def test_full_run(self, sample_snapshot):
        sample_snapshot.actuals = [
            make_actual("bank-1", 118000, date(2024, 1, 19), Direction.OUTGO),
            make_actual("bank-2", 150000, date(2024, 2, 2)),
        ]
        config = PipelineConfig(
            start_date=date(2024, 1, 1),
            end_date=date(2024, 3, 31),
            starting_balance=Decimal("100000"),
            today=date(2024, 3, 1),
        )

        result = run_cashflow_pipeline(sample_snapshot, config)

        assert result.errors == []
        assert len(result.events) == 3
        assert [p.balance for p in result.forecast] == [
            Decimal("-20000"),
            Decimal("110000"),
            Decimal("110000"),
        ]
        assert result.forecast[0].is_historical is True
        assert result.forecast[0].actual_outgo == Decimal("118000")
        assert result.summary.negative_balance_periods == 1

        assert len(result.optimization.gaps) == 1
        assert result.optimization.gaps[0].gap_amount == Decimal("70000")
        assert {s.event_id for s in result.optimization.suggestions} == {
            "supplier_claim_c1",
            "milestone_m1",
        }

        assert result.reconciliation.result.total_matches == 2
        assert result.reconciliation.result.unmatched_forecasts == 1

    def test_skip_flags(self, sample_snapshot):
        sample_snapshot.actuals = [make_actual("bank-1", 150000, date(2024, 2, 1))]
        config = PipelineConfig(
            start_date=date(2024, 1, 1),
            end_date=date(2024, 3, 31),
            skip_optimization=True,
            skip_reconciliation=True,
        )

        result = run_cashflow_pipeline(sample_snapshot, config)

        assert result.optimization is None
        assert result.reconciliation is None
        assert result.forecast

    def test_no_actuals_skips_reconciliation(self, sample_snapshot):
        result = run_cashflow_pipeline(
            sample_snapshot,
            PipelineConfig(start_date=date(2024, 1, 1), end_date=date(2024, 3, 31)),
        )

        assert result.reconciliation is None
        assert result.forecast[0].is_historical is False

    def test_phase_failure_is_recorded(self, sample_snapshot):
        config = PipelineConfig(start_date=date(2024, 1, 1), end_date=date(2024, 3, 31))

        with patch(
            "cashline.engines.pipeline.PaymentOptimizer.optimize",
            side_effect=RuntimeError("boom"),
        ):
            result = run_cashflow_pipeline(sample_snapshot, config)

        assert result.optimization is None
        assert result.errors == ["Optimization error: boom"]
        assert len(result.forecast) == 3

    def test_to_dict_labels_overheads(self, sample_snapshot):
        result = run_cashflow_pipeline(
            sample_snapshot,
            PipelineConfig(start_date=date(2024, 1, 1), end_date=date(2024, 1, 31)),
        )

        result_dict = result.to_dict()

        assert result_dict["forecast"]["events_projected"] == 3
        assert set(result_dict["forecast"]["by_project"]) == {"proj-1"}
        assert result_dict["optimization"] is not None

    def test_idempotent(self, sample_snapshot):
        config = PipelineConfig(
            start_date=date(2024, 1, 1),
            end_date=date(2024, 3, 31),
            starting_balance=Decimal("100000"),
        )

        first = run_cashflow_pipeline(sample_snapshot, config)
        second = run_cashflow_pipeline(sample_snapshot, config)

        assert first.forecast == second.forecast
        assert first.optimization.to_dict() == second.optimization.to_dict()

    def test_alerts_phase(self, sample_snapshot):
        sample_snapshot.actuals = [
            make_actual("bank-1", 118000, date(2024, 1, 19), Direction.OUTGO),
            make_actual("bank-2", 150000, date(2024, 2, 2)),
        ]
        config = PipelineConfig(
            start_date=date(2024, 1, 1),
            end_date=date(2024, 3, 31),
            starting_balance=Decimal("100000"),
            today=date(2024, 3, 1),
        )

        result = run_cashflow_pipeline(sample_snapshot, config)

        assert [a.type for a in result.alerts] == [
            AlertType.LATE_RECEIPT,
            AlertType.NEGATIVE_BALANCE,
        ]
        assert result.to_dict()["alerts"][0]["data"]["overdue_milestones"][0]["project"] == "Harbour Fitout"

    def test_skip_alerts(self, sample_snapshot):
        config = PipelineConfig(
            start_date=date(2024, 1, 1),
            end_date=date(2024, 3, 31),
            today=date(2024, 3, 1),
            skip_alerts=True,
        )

        result = run_cashflow_pipeline(sample_snapshot, config)

        assert result.alerts == []
        assert result.to_dict()["performance"]["alerts_ms"] == 0
