"""
Cash gap detection.

Walks the event stream day by day with a running balance and reports every
maximal window where the balance sits below the minimum. A gap opens on the
day whose closing balance falls under the minimum and closes on the day that
brings it back to the minimum or above. Every event on those days, and on the
days between them, belongs to the gap.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from itertools import groupby
from typing import Any, Dict, Iterable, List, Optional, Tuple

from cashline.data.schemas import Direction
from cashline.forecast.engine import Number, ZERO, to_decimal
from cashline.forecast.events import ProjectedCashEvent


@dataclass
class CashGap:
    """A window where the running balance is below the minimum."""
    start_date: date
    end_date: date
    lowest_balance: Decimal
    gap_amount: Decimal  # minimum - lowest, always > 0
    events: List[ProjectedCashEvent] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "lowest_balance": str(self.lowest_balance),
            "gap_amount": str(self.gap_amount),
            "events": [e.to_dict() for e in self.events],
        }


@dataclass
class DailyBalance:
    """Net movement and closing balance for one day with events."""
    date: date
    income: Decimal
    outgo: Decimal
    net: Decimal
    balance: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "income": str(self.income),
            "outgo": str(self.outgo),
            "net": str(self.net),
            "balance": str(self.balance),
        }


@dataclass
class DailyProjection:
    """Day-by-day balance projection."""
    days: List[DailyBalance]
    lowest_balance: Decimal
    lowest_balance_date: Optional[date]
    negative_balance_days: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "days": [d.to_dict() for d in self.days],
            "lowest_balance": str(self.lowest_balance),
            "lowest_balance_date": self.lowest_balance_date.isoformat() if self.lowest_balance_date else None,
            "negative_balance_days": self.negative_balance_days,
        }


def events_in_window(
    events: Iterable[ProjectedCashEvent],
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[ProjectedCashEvent]:
    """Events dated within start_date..end_date, both inclusive and optional."""
    return [
        e for e in events
        if (start_date is None or e.date >= start_date)
        and (end_date is None or e.date <= end_date)
    ]


def _day_order(event: ProjectedCashEvent):
    return (event.date, event.direction != Direction.INCOME, event.id)


def _gap_from_days(
    days: List[Tuple[date, List[ProjectedCashEvent]]],
    lowest_balance: Decimal,
    minimum: Decimal,
    end_date: date,
) -> CashGap:
    return CashGap(
        start_date=days[0][0],
        end_date=end_date,
        lowest_balance=lowest_balance,
        gap_amount=minimum - lowest_balance,
        events=[event for _, day_events in days for event in day_events],
    )


def find_cash_gaps(
    events: Iterable[ProjectedCashEvent],
    current_balance: Number,
    minimum_balance: Number,
    end_date: Optional[date] = None,
) -> List[CashGap]:
    """
    Find the windows where the running balance drops below minimum_balance.

    Events on the same day are netted before the balance is compared with
    the minimum, so the order they arrive in never changes the result.

    A gap still open when the stream ends is closed at end_date, or at the
    last event's date if no end_date is given.
    """
    days = [
        (day, list(day_events))
        for day, day_events in groupby(sorted(events, key=_day_order), key=lambda e: e.date)
    ]
    if not days:
        return []

    minimum = to_decimal(minimum_balance)
    running_balance = to_decimal(current_balance)
    gaps: List[CashGap] = []

    gap_start_idx: Optional[int] = None
    lowest_balance = running_balance

    for idx, (day, day_events) in enumerate(days):
        running_balance += sum((e.signed_amount for e in day_events), ZERO)

        if running_balance < minimum:
            if gap_start_idx is None:
                gap_start_idx = idx
                lowest_balance = running_balance
            else:
                lowest_balance = min(lowest_balance, running_balance)
        elif gap_start_idx is not None:
            gaps.append(_gap_from_days(days[gap_start_idx:idx + 1], lowest_balance, minimum, day))
            gap_start_idx = None

    if gap_start_idx is not None:
        last_date = days[-1][0]
        gaps.append(_gap_from_days(
            days[gap_start_idx:],
            lowest_balance,
            minimum,
            max(end_date, last_date) if end_date else last_date,
        ))

    return gaps


def project_daily_balances(
    events: Iterable[ProjectedCashEvent],
    current_balance: Number,
) -> DailyProjection:
    """Group events per day and project the closing balance of each day."""
    by_day: Dict[date, List[ProjectedCashEvent]] = {}
    for event in events:
        by_day.setdefault(event.date, []).append(event)

    running_balance = to_decimal(current_balance)
    lowest_balance = running_balance
    lowest_balance_date = None
    negative_days = 0
    days = []

    for day in sorted(by_day):
        day_events = by_day[day]
        income = sum((e.amount for e in day_events if e.direction == Direction.INCOME), ZERO)
        outgo = sum((e.amount for e in day_events if e.direction == Direction.OUTGO), ZERO)
        net = income - outgo
        running_balance += net

        if running_balance < lowest_balance:
            lowest_balance = running_balance
            lowest_balance_date = day
        if running_balance < 0:
            negative_days += 1

        days.append(DailyBalance(
            date=day,
            income=income,
            outgo=outgo,
            net=net,
            balance=running_balance,
        ))

    return DailyProjection(
        days=days,
        lowest_balance=lowest_balance,
        lowest_balance_date=lowest_balance_date,
        negative_balance_days=negative_days,
    )
