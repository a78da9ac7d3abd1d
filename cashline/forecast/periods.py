"""
Forecast period generation.

Periods are half-open ``[start, end)`` date intervals. The requested end
date is inclusive, so the periods together cover ``[start_date, end_date + 1)``
with no gaps or overlaps.
"""
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import List, Optional

from dateutil.relativedelta import relativedelta


class PeriodType(str, Enum):
    """Bucket granularity for a forecast."""
    MONTHLY = "monthly"
    WEEKLY = "weekly"


@dataclass(frozen=True)
class Period:
    """A half-open date interval."""
    start: date
    end: date  # exclusive

    def contains(self, day: date) -> bool:
        return self.start <= day < self.end

    @property
    def last_day(self) -> date:
        return self.end - timedelta(days=1)


def generate_periods(
    start_date: Optional[date],
    end_date: Optional[date],
    period_type: str = PeriodType.MONTHLY,
) -> List[Period]:
    """
    Build the ordered period sequence spanning start_date..end_date.

    Monthly periods break on calendar month boundaries; the first and last
    month are clipped to the requested span. Weekly periods are fixed 7-day
    windows starting at start_date, with the last one clipped.

    An inverted range or unknown period type yields an empty list.
    """
    if start_date is None or end_date is None or end_date < start_date:
        return []

    stop = end_date + timedelta(days=1)
    periods: List[Period] = []
    current = start_date

    if period_type == PeriodType.MONTHLY:
        while current < stop:
            boundary = current.replace(day=1) + relativedelta(months=1)
            periods.append(Period(start=current, end=min(boundary, stop)))
            current = boundary
    elif period_type == PeriodType.WEEKLY:
        while current < stop:
            boundary = current + timedelta(days=7)
            periods.append(Period(start=current, end=min(boundary, stop)))
            current = boundary

    return periods
