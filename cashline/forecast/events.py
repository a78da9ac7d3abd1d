"""
Cash Event Projector - turns source records into dated, signed cash events.

Events are computed on the fly and never stored. Every function here is
pure: records go in, a new list of events comes out.

Rules:
- Income milestone -> one income event at its expected date.
- Single-payment cost -> one outgo event at anchor + offset_days.
- Itemized cost -> one outgo event per line at anchor + line offset.
- The anchor is the parent milestone's expected date. Offsets may be
  negative (cost paid before the income lands) and are never clamped.
- Records missing an amount or a resolvable date are skipped.
"""
from dataclasses import dataclass, replace
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from dateutil.relativedelta import relativedelta

from cashline.data.schemas import (
    CostMode,
    CostRecord,
    Direction,
    ForecastLine,
    Frequency,
    IncomeRecord,
    Project,
    ScenarioShift,
    SourceType,
)


@dataclass(frozen=True)
class ProjectedCashEvent:
    """
    A single projected cash event (computed, not stored).

    Amounts are always non-negative; the direction carries the sign.
    """
    id: str  # Synthetic ID: {source_type}_{source_id}[_{item_id}|_{date}]
    project_id: Optional[str]  # None for organisation overheads
    direction: Direction
    amount: Decimal
    date: date
    source_type: SourceType
    source_id: str
    description: str = ""
    item_id: Optional[str] = None

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.direction == Direction.INCOME else -self.amount

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "direction": self.direction.value,
            "amount": str(self.amount),
            "date": self.date.isoformat(),
            "source_type": self.source_type.value,
            "source_id": self.source_id,
            "item_id": self.item_id,
            "description": self.description,
        }


def _describe(name: Optional[str], project_id: Optional[str], project_names: Dict[str, str]) -> str:
    project_name = project_names.get(project_id, "") if project_id else ""
    if name and project_name:
        return f"{name} - {project_name}"
    return name or project_name or ""


def project_income_events(
    income_records: Iterable[IncomeRecord],
    project_names: Optional[Dict[str, str]] = None,
) -> List[ProjectedCashEvent]:
    """Emit one income event per milestone at its expected date."""
    project_names = project_names or {}
    events = []

    for record in income_records:
        if record.amount is None or record.expected_date is None:
            continue

        events.append(ProjectedCashEvent(
            id=f"{SourceType.MILESTONE.value}_{record.id}",
            project_id=record.project_id,
            direction=Direction.INCOME,
            amount=record.amount,
            date=record.expected_date,
            source_type=SourceType.MILESTONE,
            source_id=record.id,
            description=_describe(record.name, record.project_id, project_names),
        ))

    return events


def resolve_anchor_date(
    cost: CostRecord,
    income_dates: Dict[str, Optional[date]],
) -> Optional[date]:
    """Anchor for a cost: its milestone's expected date, else its own date."""
    if cost.income_id:
        anchor = income_dates.get(cost.income_id)
        if anchor is not None:
            return anchor
    return cost.expected_date


def project_cost_events(
    cost_records: Iterable[CostRecord],
    income_records: Iterable[IncomeRecord],
    project_names: Optional[Dict[str, str]] = None,
) -> List[ProjectedCashEvent]:
    """Emit outgo events for single-payment and itemized cost records."""
    project_names = project_names or {}
    income_dates = {record.id: record.expected_date for record in income_records}
    events = []

    for cost in cost_records:
        anchor = resolve_anchor_date(cost, income_dates)
        if anchor is None:
            continue

        if cost.mode == CostMode.ITEMIZED:
            for item in cost.items:
                if item.amount is None:
                    continue
                events.append(ProjectedCashEvent(
                    id=f"{cost.source_type.value}_{cost.id}_{item.id}",
                    project_id=cost.project_id,
                    direction=Direction.OUTGO,
                    amount=item.amount,
                    date=anchor + timedelta(days=item.offset_days),
                    source_type=cost.source_type,
                    source_id=cost.id,
                    description=_describe(
                        item.description or item.vendor or cost.supplier_name,
                        cost.project_id,
                        project_names,
                    ),
                    item_id=item.id,
                ))
        else:
            if cost.amount is None:
                continue
            events.append(ProjectedCashEvent(
                id=f"{cost.source_type.value}_{cost.id}",
                project_id=cost.project_id,
                direction=Direction.OUTGO,
                amount=cost.amount,
                date=anchor + timedelta(days=cost.offset_days),
                source_type=cost.source_type,
                source_id=cost.id,
                description=_describe(cost.supplier_name, cost.project_id, project_names),
            ))

    return events


def _months_between(start: date, end: date) -> int:
    return (end.year - start.year) * 12 + (end.month - start.month)


def _next_occurrence(current: date, frequency: Frequency) -> date:
    if frequency == Frequency.WEEKLY:
        return current + timedelta(weeks=1)
    elif frequency == Frequency.QUARTERLY:
        return current + relativedelta(months=3)
    return current + relativedelta(months=1)


def apply_inflation(
    base_amount: Decimal,
    months_since_start: int,
    inflation_rate: Optional[Decimal] = None,
    escalation_rate: Optional[Decimal] = None,
) -> Decimal:
    """Compound the annual inflation + escalation rate monthly."""
    if not inflation_rate and not escalation_rate:
        return base_amount

    annual_rate = (inflation_rate or Decimal("0")) + (escalation_rate or Decimal("0"))
    multiplier = (Decimal("1") + annual_rate / Decimal("12")) ** months_since_start
    return (base_amount * multiplier).quantize(Decimal("0.01"))


def project_forecast_lines(
    lines: Iterable[ForecastLine],
    start_date: date,
    end_date: date,
) -> List[ProjectedCashEvent]:
    """
    Expand recurring forecast lines into events within start_date..end_date.

    A line's occurrences begin at its own start date; occurrences before the
    window are skipped but still count towards inflation.
    """
    events = []

    for line in lines:
        horizon = min(end_date, line.end_date) if line.end_date else end_date
        current = line.start_date

        while current <= horizon:
            if current >= start_date:
                months = _months_between(line.start_date, current)
                events.append(ProjectedCashEvent(
                    id=f"{SourceType.FORECAST_LINE.value}_{line.id}_{current.isoformat()}",
                    project_id=line.project_id,
                    direction=line.direction,
                    amount=apply_inflation(
                        line.base_amount, months, line.inflation_rate, line.escalation_rate
                    ),
                    date=current,
                    source_type=SourceType.FORECAST_LINE,
                    source_id=line.id,
                    description=f"{line.name} - {current.strftime('%b %Y')}",
                ))

            if line.frequency == Frequency.ONCE:
                break
            current = _next_occurrence(current, line.frequency)

    return events


def apply_scenario_shifts(
    events: Iterable[ProjectedCashEvent],
    shifts: Iterable[ScenarioShift],
) -> List[ProjectedCashEvent]:
    """
    Return a copy of events with scenario shifts applied.

    A shift moves every event of its (source_type, source_id) by days_shift
    and adds amount_shift. An amount change that would go negative is ignored.
    When several shifts target the same record, the first one applies.
    """
    shift_index: Dict[tuple, ScenarioShift] = {}
    for shift in shifts:
        shift_index.setdefault((shift.source_type, shift.source_id), shift)
    if not shift_index:
        return list(events)

    shifted = []
    for event in events:
        shift = shift_index.get((event.source_type, event.source_id))
        if shift:
            new_amount = event.amount
            if shift.amount_shift is not None and event.amount + shift.amount_shift >= 0:
                new_amount = event.amount + shift.amount_shift
            event = replace(
                event,
                date=event.date + timedelta(days=shift.days_shift),
                amount=new_amount,
            )
        shifted.append(event)

    return shifted


def project_portfolio(
    income_records: Iterable[IncomeRecord],
    cost_records: Iterable[CostRecord],
    forecast_lines: Iterable[ForecastLine] = (),
    projects: Iterable[Project] = (),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    shifts: Iterable[ScenarioShift] = (),
) -> List[ProjectedCashEvent]:
    """
    Project every cash event for an organisation.

    Forecast lines need a window, so they are only expanded when both
    start_date and end_date are supplied.
    """
    income_records = list(income_records)
    project_names = {project.id: project.name for project in projects}

    events = project_income_events(income_records, project_names)
    events.extend(project_cost_events(cost_records, income_records, project_names))

    if start_date is not None and end_date is not None:
        events.extend(project_forecast_lines(forecast_lines, start_date, end_date))

    return apply_scenario_shifts(events, shifts)
