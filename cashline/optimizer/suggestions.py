"""
Payment timing suggestions for cash gaps.

For each gap:
- Supplier claims and material orders paid inside the gap can be delayed.
- Milestone income inside the gap can be invoiced earlier.
- Milestones are never delayed, and overheads are never moved.

Generating suggestions never mutates source data. apply_suggestion returns a
new event list for what-if projections; writing the change back is the host
system's job.
"""
from dataclasses import dataclass, replace
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from cashline.data.schemas import Direction, SourceType
from cashline.forecast.engine import Number
from cashline.forecast.events import ProjectedCashEvent
from cashline.optimizer.gaps import CashGap, events_in_window, find_cash_gaps


class SuggestionType(str, Enum):
    DELAY_PAYMENT = "delay_payment"
    ADVANCE_PAYMENT = "advance_payment"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


DEFAULT_DELAY_DAYS = 30
DEFAULT_ADVANCE_DAYS = 14

DELAYABLE_SOURCES = {SourceType.SUPPLIER_CLAIM, SourceType.MATERIAL_ORDER}
ADVANCEABLE_SOURCES = {SourceType.MILESTONE}

# (low up to, medium up to) delay days; anything longer is high risk
DELAY_RISK_THRESHOLDS = {
    SourceType.SUPPLIER_CLAIM: (14, 30),
    SourceType.MATERIAL_ORDER: (7, 14),
}


@dataclass(frozen=True)
class PaymentSuggestion:
    """A proposed change to the timing of one event inside a gap."""
    id: str
    type: SuggestionType
    event_id: str
    entity_type: SourceType
    entity_id: str
    entity_name: str
    current_date: date
    suggested_date: date
    amount: Decimal
    reason: str
    cash_flow_improvement: Decimal
    risk_level: RiskLevel
    vendor_impact: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "event_id": self.event_id,
            "entity_type": self.entity_type.value,
            "entity_id": self.entity_id,
            "entity_name": self.entity_name,
            "current_date": self.current_date.isoformat(),
            "suggested_date": self.suggested_date.isoformat(),
            "amount": str(self.amount),
            "reason": self.reason,
            "impact": {
                "cash_flow_improvement": str(self.cash_flow_improvement),
                "risk_level": self.risk_level.value,
                "vendor_impact": self.vendor_impact,
            },
        }


def assess_risk_level(source_type: SourceType, delay_days: int) -> RiskLevel:
    """Risk of delaying a payment of the given source type by delay_days."""
    if source_type == SourceType.MILESTONE:
        return RiskLevel.LOW

    thresholds = DELAY_RISK_THRESHOLDS.get(source_type)
    if thresholds is None:
        return RiskLevel.HIGH

    low_limit, medium_limit = thresholds
    if delay_days <= low_limit:
        return RiskLevel.LOW
    elif delay_days <= medium_limit:
        return RiskLevel.MEDIUM
    return RiskLevel.HIGH


def rank_suggestions(suggestions: Iterable[PaymentSuggestion]) -> List[PaymentSuggestion]:
    """Largest cash flow improvement first; ties keep their original order."""
    return sorted(suggestions, key=lambda s: s.cash_flow_improvement, reverse=True)


def generate_gap_suggestions(
    gap: CashGap,
    all_events: Iterable[ProjectedCashEvent],
    delay_days: int = DEFAULT_DELAY_DAYS,
    advance_days: int = DEFAULT_ADVANCE_DAYS,
) -> List[PaymentSuggestion]:
    """
    Propose delays for delayable outgo and advances for milestone income.

    Suggestions are sorted by cash flow improvement, largest first.
    """
    event_index = {e.id: e for e in all_events}
    suggestions = []

    for gap_event in gap.events:
        event = event_index.get(gap_event.id)
        if event is None:
            continue

        if event.direction == Direction.OUTGO and event.source_type in DELAYABLE_SOURCES:
            suggestions.append(PaymentSuggestion(
                id=f"delay_{event.id}",
                type=SuggestionType.DELAY_PAYMENT,
                event_id=event.id,
                entity_type=event.source_type,
                entity_id=event.source_id,
                entity_name=event.description or "Unknown",
                current_date=event.date,
                suggested_date=event.date + timedelta(days=delay_days),
                amount=event.amount,
                reason=f"Delay payment to avoid cash flow gap of ${gap.gap_amount:,.2f}",
                cash_flow_improvement=event.amount,
                risk_level=assess_risk_level(event.source_type, delay_days),
                vendor_impact="May require vendor communication and approval",
            ))

        elif event.direction == Direction.INCOME and event.source_type in ADVANCEABLE_SOURCES:
            suggestions.append(PaymentSuggestion(
                id=f"advance_{event.id}",
                type=SuggestionType.ADVANCE_PAYMENT,
                event_id=event.id,
                entity_type=event.source_type,
                entity_id=event.source_id,
                entity_name=event.description or "Unknown",
                current_date=event.date,
                suggested_date=event.date - timedelta(days=advance_days),
                amount=event.amount,
                reason="Advance payment to improve cash flow during gap period",
                cash_flow_improvement=event.amount,
                risk_level=RiskLevel.LOW,
                vendor_impact="Requires client approval and milestone completion",
            ))

    return rank_suggestions(suggestions)


def generate_suggestions(
    events: Iterable[ProjectedCashEvent],
    current_balance: Number,
    minimum_balance: Number,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    delay_days: int = DEFAULT_DELAY_DAYS,
    advance_days: int = DEFAULT_ADVANCE_DAYS,
) -> List[PaymentSuggestion]:
    """
    Detect gaps within start_date..end_date and suggest timing changes.

    Suggestions are sorted by cash flow improvement, largest first.
    """
    window = events_in_window(events, start_date, end_date)

    suggestions: List[PaymentSuggestion] = []
    for gap in find_cash_gaps(window, current_balance, minimum_balance, end_date):
        suggestions.extend(generate_gap_suggestions(gap, window, delay_days, advance_days))

    return rank_suggestions(suggestions)


def apply_suggestion(
    events: Iterable[ProjectedCashEvent],
    suggestion: PaymentSuggestion,
) -> List[ProjectedCashEvent]:
    """Return a copy of events with the suggested event moved to its new date."""
    return [
        replace(e, date=suggestion.suggested_date) if e.id == suggestion.event_id else e
        for e in events
    ]
