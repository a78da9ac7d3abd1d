"""
Projection → Forecast → Optimisation → Reconciliation → Alerts Pipeline

Orchestrates one full cash-flow run over an organisation snapshot:
1. Project cash events from source records (with scenario shifts)
2. Aggregate them into periods with a running balance
3. Detect cash gaps and generate payment-timing suggestions
4. Reconcile projected events against actual transactions
5. Evaluate alert rules over the results

Each phase is timed, and a failing phase is recorded in the result's
error list rather than aborting the run.
"""

import logging
from typing import Optional, List, Dict, Any
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal

from cashline.alerts.rules import Alert, AlertRule, DEFAULT_RULES, evaluate_rules
from cashline.config import settings
from cashline.data.schemas import Basis, RecordSnapshot
from cashline.forecast.engine import (
    ForecastPeriod,
    ForecastSummary,
    aggregate_forecast,
    integrate_actuals,
    project_breakdown,
    summarize_forecast,
    to_decimal,
)
from cashline.forecast.events import ProjectedCashEvent, project_portfolio
from cashline.forecast.periods import generate_periods
from cashline.optimizer.engine import OptimizationResult, PaymentOptimizer
from cashline.reconciliation.matcher import ReconciliationRun, reconcile

logger = logging.getLogger(__name__)


@dataclass
class PipelineConfig:
    """Configuration for a pipeline run."""
    start_date: Optional[date] = None  # Defaults to today
    end_date: Optional[date] = None    # Defaults to start_date + weeks
    weeks: int = 13
    period_type: str = field(default_factory=lambda: settings.DEFAULT_PERIOD_TYPE)
    starting_balance: Decimal = Decimal("0")
    minimum_balance: Decimal = field(default_factory=lambda: to_decimal(settings.MINIMUM_BALANCE))
    match_threshold: float = field(default_factory=lambda: settings.RECONCILE_MATCH_THRESHOLD)
    basis: Optional[Basis] = field(default_factory=lambda: Basis(settings.DEFAULT_BASIS))
    delay_days: int = field(default_factory=lambda: settings.DEFAULT_DELAY_DAYS)
    advance_days: int = field(default_factory=lambda: settings.DEFAULT_ADVANCE_DAYS)
    skip_optimization: bool = False
    skip_reconciliation: bool = False
    skip_alerts: bool = False
    alert_rules: List[AlertRule] = field(default_factory=lambda: list(DEFAULT_RULES))
    today: Optional[date] = None

    def resolve_window(self) -> tuple:
        start = self.start_date or self.today or date.today()
        end = self.end_date or start + timedelta(weeks=self.weeks)
        return start, end


@dataclass
class PipelineResult:
    """Result of a pipeline execution."""
    organization_id: str
    run_at: datetime
    start_date: date
    end_date: date

    # Projection / forecast
    events: List[ProjectedCashEvent] = field(default_factory=list)
    forecast: List[ForecastPeriod] = field(default_factory=list)
    by_project: Dict[Optional[str], List[ForecastPeriod]] = field(default_factory=dict)
    summary: Optional[ForecastSummary] = None

    # Optimisation
    optimization: Optional[OptimizationResult] = None

    # Reconciliation
    reconciliation: Optional[ReconciliationRun] = None

    # Alerts
    alerts: List[Alert] = field(default_factory=list)

    # Performance
    projection_duration_ms: int = 0
    forecast_duration_ms: int = 0
    optimization_duration_ms: int = 0
    reconciliation_duration_ms: int = 0
    alerts_duration_ms: int = 0
    total_duration_ms: int = 0

    # Errors
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "organization_id": self.organization_id,
            "run_at": self.run_at.isoformat(),
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "forecast": {
                "events_projected": len(self.events),
                "periods": [p.to_dict() for p in self.forecast],
                "by_project": {
                    (project_id or "overhead"): [p.to_dict() for p in periods]
                    for project_id, periods in self.by_project.items()
                },
                "summary": self.summary.to_dict() if self.summary else None,
            },
            "optimization": self.optimization.to_dict() if self.optimization else None,
            "reconciliation": self.reconciliation.to_dict() if self.reconciliation else None,
            "alerts": [a.to_dict() for a in self.alerts],
            "performance": {
                "projection_ms": self.projection_duration_ms,
                "forecast_ms": self.forecast_duration_ms,
                "optimization_ms": self.optimization_duration_ms,
                "reconciliation_ms": self.reconciliation_duration_ms,
                "alerts_ms": self.alerts_duration_ms,
                "total_ms": self.total_duration_ms,
            },
            "errors": self.errors,
        }


def _elapsed_ms(since: datetime) -> int:
    return int((datetime.utcnow() - since).total_seconds() * 1000)


def run_cashflow_pipeline(
    snapshot: RecordSnapshot,
    config: Optional[PipelineConfig] = None,
) -> PipelineResult:
    """
    Run the complete cash-flow cycle for one organisation snapshot.

    Args:
        snapshot: Source records and actuals, already fetched
        config: Optional pipeline configuration

    Returns:
        PipelineResult with forecast, gaps, suggestions and matches
    """
    config = config or PipelineConfig()
    start_time = datetime.utcnow()
    start_date, end_date = config.resolve_window()

    result = PipelineResult(
        organization_id=snapshot.organization_id,
        run_at=start_time,
        start_date=start_date,
        end_date=end_date,
    )
    logger.info(
        f"Starting cash-flow pipeline for {snapshot.organization_id} "
        f"({start_date.isoformat()} to {end_date.isoformat()})"
    )

    # ==========================================================================
    # Phase 1: Projection
    # ==========================================================================
    phase_start = datetime.utcnow()
    try:
        result.events = project_portfolio(
            snapshot.income_records,
            snapshot.cost_records,
            snapshot.forecast_lines,
            snapshot.projects,
            start_date=start_date,
            end_date=end_date,
            shifts=snapshot.scenario_shifts,
        )
    except Exception as e:
        logger.error(f"Projection failed for {snapshot.organization_id}: {e}")
        result.errors.append(f"Projection error: {str(e)}")
    result.projection_duration_ms = _elapsed_ms(phase_start)

    # ==========================================================================
    # Phase 2: Forecast aggregation
    # ==========================================================================
    phase_start = datetime.utcnow()
    try:
        periods = generate_periods(start_date, end_date, config.period_type)
        forecast = aggregate_forecast(result.events, periods, config.starting_balance)
        if snapshot.actuals:
            forecast = integrate_actuals(
                forecast, snapshot.actuals, basis=config.basis, today=config.today
            )
        result.forecast = forecast
        result.by_project = project_breakdown(
            result.events, periods, [p.id for p in snapshot.projects]
        )
        result.summary = summarize_forecast(forecast)
    except Exception as e:
        logger.error(f"Forecast aggregation failed for {snapshot.organization_id}: {e}")
        result.errors.append(f"Forecast error: {str(e)}")
    result.forecast_duration_ms = _elapsed_ms(phase_start)

    # ==========================================================================
    # Phase 3: Gap detection & suggestions
    # ==========================================================================
    if not config.skip_optimization:
        phase_start = datetime.utcnow()
        try:
            optimizer = PaymentOptimizer(
                current_balance=config.starting_balance,
                minimum_balance=config.minimum_balance,
                delay_days=config.delay_days,
                advance_days=config.advance_days,
            )
            result.optimization = optimizer.optimize(result.events, start_date, end_date)
        except Exception as e:
            logger.error(f"Optimisation failed for {snapshot.organization_id}: {e}")
            result.errors.append(f"Optimization error: {str(e)}")
        result.optimization_duration_ms = _elapsed_ms(phase_start)

    # ==========================================================================
    # Phase 4: Reconciliation
    # ==========================================================================
    if not config.skip_reconciliation and snapshot.actuals:
        phase_start = datetime.utcnow()
        try:
            result.reconciliation = reconcile(
                result.events,
                snapshot.actuals,
                threshold=config.match_threshold,
                basis=config.basis,
            )
        except Exception as e:
            logger.error(f"Reconciliation failed for {snapshot.organization_id}: {e}")
            result.errors.append(f"Reconciliation error: {str(e)}")
        result.reconciliation_duration_ms = _elapsed_ms(phase_start)

    # ==========================================================================
    # Phase 5: Alerts
    # ==========================================================================
    if not config.skip_alerts:
        phase_start = datetime.utcnow()
        try:
            result.alerts = evaluate_rules(
                config.alert_rules,
                today=config.today or date.today(),
                income_records=snapshot.income_records,
                events=result.events,
                forecast=result.forecast,
                matches=result.reconciliation.matches if result.reconciliation else [],
                projects=snapshot.projects,
            )
        except Exception as e:
            logger.error(f"Alert evaluation failed for {snapshot.organization_id}: {e}")
            result.errors.append(f"Alerts error: {str(e)}")
        result.alerts_duration_ms = _elapsed_ms(phase_start)

    result.total_duration_ms = _elapsed_ms(start_time)
    logger.info(
        f"Cash-flow pipeline for {snapshot.organization_id} finished: "
        f"{len(result.events)} events, "
        f"{len(result.optimization.gaps) if result.optimization else 0} gaps, "
        f"{result.reconciliation.result.total_matches if result.reconciliation else 0} matches, "
        f"{len(result.alerts)} alerts"
    )

    return result
