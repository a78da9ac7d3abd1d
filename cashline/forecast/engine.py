"""
Forecast Engine - buckets projected cash events into periods.

Computes forecasts on the fly from an already-fetched record snapshot:
1. Projects cash events from milestones, costs and forecast lines
2. Assigns each event to the period containing its date (single pass)
3. Sums income/outgo per period and carries a running balance
4. Optionally annotates past periods with actual transactions

An event dated exactly on a boundary belongs to the period it starts.
Events outside every period are not counted.
"""
from bisect import bisect_right
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from cashline.data.schemas import ActualTransaction, Basis, Direction, RecordSnapshot
from cashline.forecast.events import ProjectedCashEvent, project_portfolio
from cashline.forecast.periods import Period, PeriodType, generate_periods

Number = Union[Decimal, int, float, str]

ZERO = Decimal("0")


def to_decimal(value: Optional[Number]) -> Decimal:
    """Coerce a numeric input to Decimal; None counts as zero."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass
class ForecastPeriod:
    """One bucket of the forecast with its running balance."""
    start: date
    end: date  # exclusive
    income: Decimal = ZERO
    outgo: Decimal = ZERO
    net: Decimal = ZERO
    balance: Decimal = ZERO
    events: List[ProjectedCashEvent] = field(default_factory=list)

    # Actuals (past periods only)
    actual_income: Optional[Decimal] = None
    actual_outgo: Optional[Decimal] = None
    actual_net: Optional[Decimal] = None
    actual_events: List[ActualTransaction] = field(default_factory=list)
    is_historical: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "income": str(self.income),
            "outgo": str(self.outgo),
            "net": str(self.net),
            "balance": str(self.balance),
            "events": [e.to_dict() for e in self.events],
            "actual_income": str(self.actual_income) if self.actual_income is not None else None,
            "actual_outgo": str(self.actual_outgo) if self.actual_outgo is not None else None,
            "actual_net": str(self.actual_net) if self.actual_net is not None else None,
            "is_historical": self.is_historical,
        }


@dataclass
class ForecastSummary:
    """Summary statistics across a forecast."""
    total_income: Decimal
    total_outgo: Decimal
    net_cashflow: Decimal
    lowest_balance: Decimal
    lowest_balance_date: Optional[date]
    negative_balance_periods: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_income": str(self.total_income),
            "total_outgo": str(self.total_outgo),
            "net_cashflow": str(self.net_cashflow),
            "lowest_balance": str(self.lowest_balance),
            "lowest_balance_date": self.lowest_balance_date.isoformat() if self.lowest_balance_date else None,
            "negative_balance_periods": self.negative_balance_periods,
        }


def _period_index(starts: Sequence[date], periods: Sequence[Period], day: date) -> Optional[int]:
    idx = bisect_right(starts, day) - 1
    if idx < 0 or not periods[idx].contains(day):
        return None
    return idx


def aggregate_forecast(
    events: Iterable[ProjectedCashEvent],
    periods: Sequence[Period],
    starting_balance: Number = ZERO,
) -> List[ForecastPeriod]:
    """
    Aggregate events into periods and compute the running balance.

    balance[i] = balance[i-1] + net[i], with balance[-1] = starting_balance.
    """
    if not periods:
        return []

    starts = [p.start for p in periods]
    buckets: List[List[ProjectedCashEvent]] = [[] for _ in periods]

    for event in events:
        idx = _period_index(starts, periods, event.date)
        if idx is not None:
            buckets[idx].append(event)

    forecast = []
    balance = to_decimal(starting_balance)

    for period, period_events in zip(periods, buckets):
        income = sum((e.amount for e in period_events if e.direction == Direction.INCOME), ZERO)
        outgo = sum((e.amount for e in period_events if e.direction == Direction.OUTGO), ZERO)
        net = income - outgo
        balance += net

        forecast.append(ForecastPeriod(
            start=period.start,
            end=period.end,
            income=income,
            outgo=outgo,
            net=net,
            balance=balance,
            events=sorted(period_events, key=lambda e: (e.date, e.id)),
        ))

    return forecast


def project_breakdown(
    events: Iterable[ProjectedCashEvent],
    periods: Sequence[Period],
    project_ids: Iterable[Optional[str]] = (),
) -> Dict[Optional[str], List[ForecastPeriod]]:
    """
    Repeat the bucketing per project, each starting from a zero balance.

    The None key collects events without a project (overheads). Projects
    listed in project_ids appear even when they have no events.
    """
    by_project: Dict[Optional[str], List[ProjectedCashEvent]] = {pid: [] for pid in project_ids}
    for event in events:
        by_project.setdefault(event.project_id, []).append(event)

    return {
        project_id: aggregate_forecast(project_events, periods)
        for project_id, project_events in by_project.items()
    }


def integrate_actuals(
    forecast: Sequence[ForecastPeriod],
    actuals: Iterable[ActualTransaction],
    basis: Optional[Basis] = Basis.ACCRUAL,
    today: Optional[date] = None,
) -> List[ForecastPeriod]:
    """
    Annotate fully elapsed periods with actual income/outgo.

    A period is historical when its exclusive end is on or before today.
    Only actuals on the requested basis are counted; basis=None keeps all.
    """
    today = today or date.today()
    actuals = [a for a in actuals if basis is None or a.basis == basis]

    result = []
    for period in forecast:
        if period.end > today:
            result.append(replace(period, is_historical=False))
            continue

        period_actuals = [a for a in actuals if period.start <= a.occurred_at < period.end]
        actual_income = sum((a.amount for a in period_actuals if a.direction == Direction.INCOME), ZERO)
        actual_outgo = sum((a.amount for a in period_actuals if a.direction == Direction.OUTGO), ZERO)

        result.append(replace(
            period,
            actual_income=actual_income,
            actual_outgo=actual_outgo,
            actual_net=actual_income - actual_outgo,
            actual_events=sorted(period_actuals, key=lambda a: (a.occurred_at, a.id)),
            is_historical=True,
        ))

    return result


def summarize_forecast(forecast: Sequence[ForecastPeriod]) -> ForecastSummary:
    """Totals, lowest balance and the number of periods that end negative."""
    total_income = sum((p.income for p in forecast), ZERO)
    total_outgo = sum((p.outgo for p in forecast), ZERO)

    lowest_balance = ZERO
    lowest_balance_date = None
    negative_periods = 0

    for period in forecast:
        if lowest_balance_date is None or period.balance < lowest_balance:
            lowest_balance = period.balance
            lowest_balance_date = period.start
        if period.balance < 0:
            negative_periods += 1

    return ForecastSummary(
        total_income=total_income,
        total_outgo=total_outgo,
        net_cashflow=total_income - total_outgo,
        lowest_balance=lowest_balance,
        lowest_balance_date=lowest_balance_date,
        negative_balance_periods=negative_periods,
    )


def calculate_forecast(
    snapshot: RecordSnapshot,
    start_date: date,
    end_date: date,
    period_type: str = PeriodType.MONTHLY,
    starting_balance: Number = ZERO,
    basis: Optional[Basis] = Basis.ACCRUAL,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """
    Calculate a forecast for one organisation snapshot.

    Returns a dictionary with the organisation periods, the per-project
    breakdown and summary statistics.
    """
    events = project_portfolio(
        snapshot.income_records,
        snapshot.cost_records,
        snapshot.forecast_lines,
        snapshot.projects,
        start_date=start_date,
        end_date=end_date,
        shifts=snapshot.scenario_shifts,
    )
    periods = generate_periods(start_date, end_date, period_type)

    forecast = aggregate_forecast(events, periods, starting_balance)
    if snapshot.actuals:
        forecast = integrate_actuals(forecast, snapshot.actuals, basis=basis, today=today)

    breakdown = project_breakdown(events, periods, [p.id for p in snapshot.projects])
    summary = summarize_forecast(forecast)

    return {
        "organization_id": snapshot.organization_id,
        "starting_balance": str(to_decimal(starting_balance)),
        "period_type": getattr(period_type, "value", period_type),
        "periods": [p.to_dict() for p in forecast],
        "by_project": {
            (project_id or "overhead"): [p.to_dict() for p in project_periods]
            for project_id, project_periods in breakdown.items()
        },
        "summary": summary.to_dict(),
    }
