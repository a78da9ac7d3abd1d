"""
Variance Matcher - reconciles projected cash events with actual transactions.

Matching is greedy best-match per forecast event, not a global optimal
assignment. Forecast events are processed one partition at a time
(milestones, supplier claims, material orders, forecast lines), each against
the still-unmatched actuals of the compatible direction. For every event the
highest-scoring candidate strictly above the threshold wins, and both sides
are consumed.

An event with no candidate above the threshold stays unmatched. That is a
normal outcome and is reported as a count, never raised.
"""
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple
from datetime import date
from enum import Enum

from cashline.data.schemas import ActualTransaction, Basis, Direction, SourceType
from cashline.forecast.events import ProjectedCashEvent
from cashline.reconciliation.confidence import (
    ConfidenceLevel,
    DATE_TOLERANCE_DAYS,
    LEDGER_WEIGHTS,
    PROJECT_AWARE_WEIGHTS,
    ScoringWeights,
    confidence_level,
)


class MatchStatus(str, Enum):
    """Review status of a variance match."""
    MATCHED = "matched"
    DISPUTED = "disputed"
    RESOLVED = "resolved"


# Order in which forecast partitions consume actuals
PARTITION_ORDER = [
    SourceType.MILESTONE,
    SourceType.SUPPLIER_CLAIM,
    SourceType.MATERIAL_ORDER,
    SourceType.FORECAST_LINE,
]

# Ledger document type each source type is expected to produce
LEDGER_DOCUMENT_TYPES = {
    SourceType.MILESTONE: "invoice",
    SourceType.SUPPLIER_CLAIM: "bill",
    SourceType.MATERIAL_ORDER: "bill",
}


@dataclass(frozen=True)
class VarianceMatch:
    """Links one projected cash event to one actual transaction."""
    id: str
    cash_event_id: str
    actual_id: str
    actual_type: str
    project_id: Optional[str]
    forecast_amount: Decimal
    actual_amount: Decimal
    forecast_date: date
    actual_date: date
    amount_variance: Decimal  # actual - forecast
    timing_variance: int      # actual date - forecast date, in days
    confidence_score: float
    status: MatchStatus = MatchStatus.MATCHED

    @property
    def confidence_level(self) -> ConfidenceLevel:
        return confidence_level(self.confidence_score)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "cash_event_id": self.cash_event_id,
            "actual_id": self.actual_id,
            "actual_type": self.actual_type,
            "project_id": self.project_id,
            "forecast_amount": str(self.forecast_amount),
            "actual_amount": str(self.actual_amount),
            "forecast_date": self.forecast_date.isoformat(),
            "actual_date": self.actual_date.isoformat(),
            "amount_variance": str(self.amount_variance),
            "timing_variance": self.timing_variance,
            "confidence_score": round(self.confidence_score, 4),
            "confidence_level": self.confidence_level.value,
            "status": self.status.value,
        }


@dataclass
class ReconciliationResult:
    """Summary of a reconciliation run."""
    total_matches: int = 0
    high_confidence_matches: int = 0
    medium_confidence_matches: int = 0
    low_confidence_matches: int = 0
    unmatched_forecasts: int = 0
    unmatched_actuals: int = 0
    average_amount_variance: Decimal = Decimal("0")
    average_timing_variance: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_matches": self.total_matches,
            "high_confidence_matches": self.high_confidence_matches,
            "medium_confidence_matches": self.medium_confidence_matches,
            "low_confidence_matches": self.low_confidence_matches,
            "unmatched_forecasts": self.unmatched_forecasts,
            "unmatched_actuals": self.unmatched_actuals,
            "average_amount_variance": str(self.average_amount_variance),
            "average_timing_variance": self.average_timing_variance,
        }


@dataclass
class ReconciliationRun:
    """Matches plus whatever was left over on each side."""
    matches: List[VarianceMatch] = field(default_factory=list)
    unmatched_events: List[ProjectedCashEvent] = field(default_factory=list)
    unmatched_actuals: List[ActualTransaction] = field(default_factory=list)
    result: ReconciliationResult = field(default_factory=ReconciliationResult)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "matches": [m.to_dict() for m in self.matches],
            "unmatched_event_ids": [e.id for e in self.unmatched_events],
            "unmatched_actual_ids": [a.id for a in self.unmatched_actuals],
            "summary": self.result.to_dict(),
        }


# =============================================================================
# Scoring
# =============================================================================

def amount_similarity(forecast_amount: Decimal, actual_amount: Decimal) -> float:
    """1 - |diff| / max(amounts), floored at 0. Two zero amounts match exactly."""
    largest = max(forecast_amount, actual_amount)
    if largest <= 0:
        return 1.0 if forecast_amount == actual_amount else 0.0
    difference = abs(forecast_amount - actual_amount)
    return max(0.0, 1.0 - float(difference / largest))


def date_proximity(forecast_date: date, actual_date: date) -> float:
    """Linear decay to zero at DATE_TOLERANCE_DAYS apart."""
    days_apart = abs((actual_date - forecast_date).days)
    return max(0.0, 1.0 - days_apart / DATE_TOLERANCE_DAYS)


def project_matches(event: ProjectedCashEvent, actual: ActualTransaction) -> bool:
    """Same project id, or both without a project."""
    return event.project_id == actual.project_id


def type_matches(event: ProjectedCashEvent, actual: ActualTransaction) -> bool:
    """
    Ledger documents must be the document type the source produces
    (milestone -> invoice, claim/order -> bill); anything else must simply
    move cash in the same direction.
    """
    if actual.source_type in LEDGER_DOCUMENT_TYPES.values():
        return LEDGER_DOCUMENT_TYPES.get(event.source_type) == actual.source_type
    return event.direction == actual.direction


def calculate_match_score(
    event: ProjectedCashEvent,
    actual: ActualTransaction,
    weights: ScoringWeights = PROJECT_AWARE_WEIGHTS,
) -> float:
    """Weighted similarity between a forecast event and an actual, in [0, 1]."""
    score = 0.0

    if project_matches(event, actual):
        score += weights.project

    score += amount_similarity(event.amount, actual.amount) * weights.amount
    score += date_proximity(event.date, actual.occurred_at) * weights.date

    if type_matches(event, actual):
        score += weights.type

    return min(1.0, max(0.0, score))


def create_variance_match(
    event: ProjectedCashEvent,
    actual: ActualTransaction,
    confidence_score: float,
) -> VarianceMatch:
    return VarianceMatch(
        id=f"match_{event.id}_{actual.id}",
        cash_event_id=event.id,
        actual_id=actual.id,
        actual_type=actual.source_type,
        project_id=event.project_id,
        forecast_amount=event.amount,
        actual_amount=actual.amount,
        forecast_date=event.date,
        actual_date=actual.occurred_at,
        amount_variance=actual.amount - event.amount,
        timing_variance=(actual.occurred_at - event.date).days,
        confidence_score=confidence_score,
    )


# =============================================================================
# Matching
# =============================================================================

def _partition_direction(source_type: SourceType, events: Sequence[ProjectedCashEvent]) -> Direction:
    if source_type == SourceType.MILESTONE:
        return Direction.INCOME
    elif source_type in (SourceType.SUPPLIER_CLAIM, SourceType.MATERIAL_ORDER):
        return Direction.OUTGO
    return events[0].direction


def match_events(
    events: Iterable[ProjectedCashEvent],
    candidates: Iterable[ActualTransaction],
    threshold: float,
    weights: ScoringWeights = PROJECT_AWARE_WEIGHTS,
    consumed: Optional[Set[str]] = None,
) -> List[VarianceMatch]:
    """
    Greedily pair each event with its best unconsumed candidate.

    consumed holds actual ids already used; it is updated in place so
    successive partitions never reuse an actual.
    """
    consumed = consumed if consumed is not None else set()
    candidates = sorted(candidates, key=lambda a: (a.occurred_at, a.id))
    matches = []

    for event in sorted(events, key=lambda e: (e.date, e.id)):
        best_match = None
        best_score = 0.0

        for actual in candidates:
            if actual.id in consumed:
                continue
            score = calculate_match_score(event, actual, weights)
            if score > threshold and score > best_score:
                best_match = actual
                best_score = score

        if best_match is not None:
            consumed.add(best_match.id)
            matches.append(create_variance_match(event, best_match, best_score))

    return matches


def _run_partitions(
    events: Sequence[ProjectedCashEvent],
    actuals: Sequence[ActualTransaction],
    threshold: float,
    weights: ScoringWeights,
) -> ReconciliationRun:
    consumed: Set[str] = set()
    matches: List[VarianceMatch] = []

    for source_type in PARTITION_ORDER:
        partition = [e for e in events if e.source_type == source_type]
        if not partition:
            continue

        if source_type == SourceType.FORECAST_LINE:
            groups: List[Tuple[Direction, List[ProjectedCashEvent]]] = [
                (direction, [e for e in partition if e.direction == direction])
                for direction in (Direction.INCOME, Direction.OUTGO)
            ]
        else:
            groups = [(_partition_direction(source_type, partition), partition)]

        for direction, group in groups:
            if not group:
                continue
            compatible = [a for a in actuals if a.direction == direction]
            matches.extend(match_events(group, compatible, threshold, weights, consumed))

    matched_event_ids = {m.cash_event_id for m in matches}
    unmatched_events = [e for e in events if e.id not in matched_event_ids]
    unmatched_actuals = [a for a in actuals if a.id not in consumed]

    return ReconciliationRun(
        matches=matches,
        unmatched_events=unmatched_events,
        unmatched_actuals=unmatched_actuals,
        result=summarize_matches(matches, len(unmatched_events), len(unmatched_actuals)),
    )


def _exclude_matched(
    events: Iterable[ProjectedCashEvent],
    actuals: Iterable[ActualTransaction],
    basis: Optional[Basis],
    already_matched_event_ids: Iterable[str],
    already_matched_actual_ids: Iterable[str],
) -> Tuple[List[ProjectedCashEvent], List[ActualTransaction]]:
    skip_events = set(already_matched_event_ids)
    skip_actuals = set(already_matched_actual_ids)

    events = [e for e in events if e.id not in skip_events]
    actuals = [
        a for a in actuals
        if a.id not in skip_actuals and (basis is None or a.basis == basis)
    ]
    return events, actuals


def reconcile(
    events: Iterable[ProjectedCashEvent],
    actuals: Iterable[ActualTransaction],
    threshold: float = 0.3,
    basis: Optional[Basis] = Basis.ACCRUAL,
    already_matched_event_ids: Iterable[str] = (),
    already_matched_actual_ids: Iterable[str] = (),
) -> ReconciliationRun:
    """
    Reconcile projected events against actual transactions.

    Uses PROJECT_AWARE_WEIGHTS. Actuals are restricted to the requested
    basis (None keeps every basis). Events and actuals already matched in an
    earlier run are excluded up front.
    """
    events, actuals = _exclude_matched(
        events, actuals, basis, already_matched_event_ids, already_matched_actual_ids
    )
    return _run_partitions(events, actuals, threshold, PROJECT_AWARE_WEIGHTS)


def reconcile_ledger(
    events: Iterable[ProjectedCashEvent],
    documents: Iterable[ActualTransaction],
    threshold: float = 0.5,
    basis: Optional[Basis] = None,
    already_matched_event_ids: Iterable[str] = (),
    already_matched_actual_ids: Iterable[str] = (),
) -> ReconciliationRun:
    """
    Reconcile projected events against ledger documents (invoices and bills).

    Uses LEDGER_WEIGHTS, where amount and timing dominate and project
    association counts for less. Basis and prior-match exclusions work as
    in reconcile(), except that every basis is kept by default.
    """
    events, documents = _exclude_matched(
        events, documents, basis, already_matched_event_ids, already_matched_actual_ids
    )
    return _run_partitions(events, documents, threshold, LEDGER_WEIGHTS)


# =============================================================================
# Reporting
# =============================================================================

def summarize_matches(
    matches: Sequence[VarianceMatch],
    unmatched_forecasts: int = 0,
    unmatched_actuals: int = 0,
) -> ReconciliationResult:
    """Count matches per confidence bucket and average their variances."""
    result = ReconciliationResult(
        total_matches=len(matches),
        unmatched_forecasts=unmatched_forecasts,
        unmatched_actuals=unmatched_actuals,
    )

    for match in matches:
        level = match.confidence_level
        if level == ConfidenceLevel.HIGH:
            result.high_confidence_matches += 1
        elif level == ConfidenceLevel.MEDIUM:
            result.medium_confidence_matches += 1
        else:
            result.low_confidence_matches += 1

    if matches:
        result.average_amount_variance = (
            sum((m.amount_variance for m in matches), Decimal("0")) / len(matches)
        )
        result.average_timing_variance = sum(m.timing_variance for m in matches) / len(matches)

    return result


def filter_matches(
    matches: Iterable[VarianceMatch],
    project_id: Optional[str] = None,
    min_confidence: Optional[float] = None,
    status: Optional[str] = None,
) -> List[VarianceMatch]:
    """Filter matches by project, minimum confidence and status."""
    result = []
    for match in matches:
        if project_id and match.project_id != project_id:
            continue
        if min_confidence is not None and match.confidence_score < min_confidence:
            continue
        if status and match.status != MatchStatus(status):
            continue
        result.append(match)
    return result


def update_match_status(match: VarianceMatch, status: str) -> VarianceMatch:
    """Return a copy of the match with a new review status."""
    return replace(match, status=MatchStatus(status))
