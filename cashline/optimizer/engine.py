"""Payment Optimizer - gap detection and timing suggestions for one balance."""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from cashline.forecast.engine import Number, to_decimal
from cashline.forecast.events import ProjectedCashEvent
from cashline.optimizer.gaps import (
    CashGap,
    DailyProjection,
    events_in_window,
    find_cash_gaps,
    project_daily_balances,
)
from cashline.optimizer.suggestions import (
    DEFAULT_ADVANCE_DAYS,
    DEFAULT_DELAY_DAYS,
    PaymentSuggestion,
    generate_gap_suggestions,
    rank_suggestions,
)


@dataclass
class OptimizationResult:
    """Gaps found in a window and the suggestions that address them."""
    gaps: List[CashGap] = field(default_factory=list)
    suggestions: List[PaymentSuggestion] = field(default_factory=list)

    @property
    def total_gap_amount(self) -> Decimal:
        return sum((g.gap_amount for g in self.gaps), Decimal("0"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "gaps": [g.to_dict() for g in self.gaps],
            "suggestions": [s.to_dict() for s in self.suggestions],
            "total_gap_amount": str(self.total_gap_amount),
        }


class PaymentOptimizer:
    """
    Finds cash shortfalls against a minimum balance and proposes fixes.

    Works on an in-memory event list; nothing here reads or writes storage.
    """

    def __init__(
        self,
        current_balance: Number,
        minimum_balance: Number = 50000,
        delay_days: int = DEFAULT_DELAY_DAYS,
        advance_days: int = DEFAULT_ADVANCE_DAYS,
    ):
        self.current_balance = to_decimal(current_balance)
        self.minimum_balance = to_decimal(minimum_balance)
        self.delay_days = delay_days
        self.advance_days = advance_days

    def optimize(
        self,
        events: Iterable[ProjectedCashEvent],
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> OptimizationResult:
        """Detect gaps in the window and generate sorted suggestions."""
        window = events_in_window(events, start_date, end_date)
        gaps = find_cash_gaps(window, self.current_balance, self.minimum_balance, end_date)

        suggestions: List[PaymentSuggestion] = []
        for gap in gaps:
            suggestions.extend(
                generate_gap_suggestions(gap, window, self.delay_days, self.advance_days)
            )

        return OptimizationResult(gaps=gaps, suggestions=rank_suggestions(suggestions))

    def get_cash_flow_projection(
        self,
        events: Iterable[ProjectedCashEvent],
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> DailyProjection:
        return project_daily_balances(
            events_in_window(events, start_date, end_date), self.current_balance
        )
