"""
Alert Rules

Pure checks that turn forecast and reconciliation output into alerts:
1. LATE_RECEIPT - Income milestones still unpaid well after their date
2. UPCOMING_OUTFLOW - Large payments due in the next few days
3. NEGATIVE_BALANCE - Forecast periods closing below zero
4. VARIANCE_THRESHOLD - Confident matches with a large amount or timing variance

Each rule reads its thresholds from the rule's conditions and falls back to
the defaults below. Checks never send anything; delivery is left to the
caller.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from cashline.data.schemas import Direction, IncomeRecord, Project, RecordStatus
from cashline.forecast.engine import ForecastPeriod
from cashline.forecast.events import ProjectedCashEvent
from cashline.reconciliation.matcher import VarianceMatch


class AlertType(str, Enum):
    """Types of alert rules."""
    LATE_RECEIPT = "late_receipt"
    UPCOMING_OUTFLOW = "upcoming_outflow"
    NEGATIVE_BALANCE = "negative_balance"
    VARIANCE_THRESHOLD = "variance_threshold"


class AlertPriority(str, Enum):
    """Priority of a raised alert."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# Matches below this confidence never raise a variance alert
VARIANCE_MIN_CONFIDENCE = 0.6

DEFAULT_CONDITIONS: Dict[AlertType, Dict[str, Any]] = {
    AlertType.LATE_RECEIPT: {"days_overdue": 7},
    AlertType.UPCOMING_OUTFLOW: {"amount_threshold": 10000, "days_ahead": 3},
    AlertType.NEGATIVE_BALANCE: {},
    AlertType.VARIANCE_THRESHOLD: {"amount_threshold": 5000, "timing_threshold": 14},
}

UNPAID_STATUSES = (RecordStatus.PENDING, RecordStatus.INVOICED)


@dataclass
class AlertRule:
    """One configured rule. Missing conditions use the rule's defaults."""
    type: AlertType
    conditions: Dict[str, Any] = field(default_factory=dict)
    is_active: bool = True


@dataclass
class Alert:
    """An alert raised by a rule."""
    type: AlertType
    title: str
    message: str
    priority: AlertPriority
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "title": self.title,
            "message": self.message,
            "priority": self.priority.value,
            "data": self.data,
        }


DEFAULT_RULES: List[AlertRule] = [AlertRule(type=alert_type) for alert_type in AlertType]


def _condition(conditions: Optional[Dict[str, Any]], alert_type: AlertType, key: str):
    return (conditions or {}).get(key, DEFAULT_CONDITIONS[alert_type][key])


def _project_names(projects: Iterable[Project]) -> Dict[str, str]:
    return {p.id: p.name for p in projects}


# =============================================================================
# Rule: LATE_RECEIPT
# =============================================================================

def check_late_receipts(
    income_records: Iterable[IncomeRecord],
    today: date,
    conditions: Optional[Dict[str, Any]] = None,
    projects: Iterable[Project] = (),
) -> Optional[Alert]:
    """Milestones still pending or invoiced more than days_overdue after their expected date."""
    days_overdue = _condition(conditions, AlertType.LATE_RECEIPT, "days_overdue")
    cutoff = today - timedelta(days=days_overdue)
    names = _project_names(projects)

    overdue = [
        r for r in income_records
        if r.status in UNPAID_STATUSES
        and r.expected_date is not None
        and r.expected_date < cutoff
    ]
    if not overdue:
        return None

    return Alert(
        type=AlertType.LATE_RECEIPT,
        title="Overdue Receipts Alert",
        message=f"{len(overdue)} milestone(s) are overdue by more than {days_overdue} days",
        priority=AlertPriority.HIGH,
        data={
            "overdue_milestones": [
                {
                    "id": r.id,
                    "name": r.name,
                    "project": names.get(r.project_id, r.project_id),
                    "expected_date": r.expected_date.isoformat(),
                    "amount": str(r.amount) if r.amount is not None else None,
                    "days_overdue": (today - r.expected_date).days,
                }
                for r in overdue
            ],
        },
    )


# =============================================================================
# Rule: UPCOMING_OUTFLOW
# =============================================================================

def check_upcoming_outflows(
    events: Iterable[ProjectedCashEvent],
    today: date,
    conditions: Optional[Dict[str, Any]] = None,
    projects: Iterable[Project] = (),
) -> Optional[Alert]:
    """Outgo events of at least amount_threshold falling within days_ahead of today."""
    amount_threshold = Decimal(str(_condition(conditions, AlertType.UPCOMING_OUTFLOW, "amount_threshold")))
    days_ahead = _condition(conditions, AlertType.UPCOMING_OUTFLOW, "days_ahead")
    horizon = today + timedelta(days=days_ahead)
    names = _project_names(projects)

    upcoming = [
        e for e in events
        if e.direction == Direction.OUTGO
        and today <= e.date <= horizon
        and e.amount >= amount_threshold
    ]
    if not upcoming:
        return None

    return Alert(
        type=AlertType.UPCOMING_OUTFLOW,
        title="Large Outflows Alert",
        message=f"{len(upcoming)} large payment(s) due within {days_ahead} days",
        priority=AlertPriority.MEDIUM,
        data={
            "upcoming_outflows": [
                {
                    "id": e.id,
                    "amount": str(e.amount),
                    "scheduled_date": e.date.isoformat(),
                    "project": names.get(e.project_id, e.project_id) if e.project_id else "Overhead",
                    "source_type": e.source_type.value,
                }
                for e in upcoming
            ],
        },
    )


# =============================================================================
# Rule: NEGATIVE_BALANCE
# =============================================================================

def check_negative_balance(
    forecast: Iterable[ForecastPeriod],
    conditions: Optional[Dict[str, Any]] = None,
) -> Optional[Alert]:
    """Forecast periods whose closing balance is below zero."""
    negative = [p for p in forecast if p.balance < 0]
    if not negative:
        return None

    return Alert(
        type=AlertType.NEGATIVE_BALANCE,
        title="Negative Balance Warning",
        message=f"Projected negative balance in {len(negative)} period(s)",
        priority=AlertPriority.HIGH,
        data={
            "negative_periods": [
                {
                    "period": p.start.strftime("%b %Y"),
                    "start": p.start.isoformat(),
                    "balance": str(p.balance),
                    "net": str(p.net),
                }
                for p in negative
            ],
        },
    )


# =============================================================================
# Rule: VARIANCE_THRESHOLD
# =============================================================================

def check_variance_threshold(
    matches: Iterable[VarianceMatch],
    conditions: Optional[Dict[str, Any]] = None,
    projects: Iterable[Project] = (),
) -> Optional[Alert]:
    """Matches of at least 0.6 confidence whose amount or timing variance reaches its threshold."""
    amount_threshold = Decimal(str(_condition(conditions, AlertType.VARIANCE_THRESHOLD, "amount_threshold")))
    timing_threshold = _condition(conditions, AlertType.VARIANCE_THRESHOLD, "timing_threshold")
    names = _project_names(projects)

    significant = [
        m for m in matches
        if m.confidence_score >= VARIANCE_MIN_CONFIDENCE
        and (
            abs(m.amount_variance) >= amount_threshold
            or abs(m.timing_variance) >= timing_threshold
        )
    ]
    if not significant:
        return None

    return Alert(
        type=AlertType.VARIANCE_THRESHOLD,
        title="Significant Variance Alert",
        message=f"{len(significant)} item(s) with significant variance",
        priority=AlertPriority.MEDIUM,
        data={
            "significant_variances": [
                {
                    "id": m.id,
                    "amount_variance": str(m.amount_variance),
                    "timing_variance": m.timing_variance,
                    "confidence_score": round(m.confidence_score, 4),
                    "project": names.get(m.project_id, m.project_id) if m.project_id else "No Project",
                }
                for m in significant
            ],
        },
    )


# =============================================================================
# Evaluation
# =============================================================================

def evaluate_rules(
    rules: Iterable[AlertRule],
    *,
    today: date,
    income_records: Iterable[IncomeRecord] = (),
    events: Iterable[ProjectedCashEvent] = (),
    forecast: Iterable[ForecastPeriod] = (),
    matches: Iterable[VarianceMatch] = (),
    projects: Iterable[Project] = (),
) -> List[Alert]:
    """Run every active rule and return the alerts raised, in rule order."""
    income_records = list(income_records)
    events = list(events)
    forecast = list(forecast)
    matches = list(matches)
    projects = list(projects)

    checks = {
        AlertType.LATE_RECEIPT: lambda c: check_late_receipts(income_records, today, c, projects),
        AlertType.UPCOMING_OUTFLOW: lambda c: check_upcoming_outflows(events, today, c, projects),
        AlertType.NEGATIVE_BALANCE: lambda c: check_negative_balance(forecast, c),
        AlertType.VARIANCE_THRESHOLD: lambda c: check_variance_threshold(matches, c, projects),
    }

    alerts = []
    for rule in rules:
        if not rule.is_active:
            continue
        alert = checks[rule.type](rule.conditions)
        if alert is not None:
            alerts.append(alert)
    return alerts
