"""Forecast request/response schemas."""
from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import date
from decimal import Decimal

from cashline.data.schemas import Basis, RecordSnapshot
from cashline.forecast.periods import PeriodType


class ForecastRequest(BaseModel):
    """Snapshot plus forecast window."""
    snapshot: RecordSnapshot
    start_date: date
    end_date: date
    period_type: PeriodType = PeriodType.MONTHLY
    starting_balance: Decimal = Decimal("0")
    basis: Optional[Basis] = Basis.ACCRUAL
    today: Optional[date] = Field(None, description="Reference date for historical periods")


class ProjectedEventResponse(BaseModel):
    """A projected cash event."""
    id: str
    project_id: Optional[str]
    direction: str
    amount: str
    date: str
    source_type: str
    source_id: str
    item_id: Optional[str]
    description: str


class ForecastPeriodResponse(BaseModel):
    """Forecast for a single period."""
    start: str
    end: str
    income: str
    outgo: str
    net: str
    balance: str
    events: List[ProjectedEventResponse]
    actual_income: Optional[str]
    actual_outgo: Optional[str]
    actual_net: Optional[str]
    is_historical: bool


class ForecastSummaryResponse(BaseModel):
    """Summary statistics for the forecast."""
    total_income: str
    total_outgo: str
    net_cashflow: str
    lowest_balance: str
    lowest_balance_date: Optional[str]
    negative_balance_periods: int


class ForecastResponse(BaseModel):
    """Complete forecast response."""
    organization_id: str
    starting_balance: str
    period_type: str
    periods: List[ForecastPeriodResponse]
    by_project: Dict[str, List[ForecastPeriodResponse]]
    summary: ForecastSummaryResponse


class ProjectedEventsResponse(BaseModel):
    """Projected events for a snapshot."""
    organization_id: str
    events: List[ProjectedEventResponse]
