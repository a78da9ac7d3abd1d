"""Payment optimizer request/response schemas."""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date
from decimal import Decimal

from cashline.data.schemas import RecordSnapshot
from cashline.forecast.schemas import ProjectedEventResponse


class OptimizeRequest(BaseModel):
    """Snapshot, current balance and the window to analyse."""
    snapshot: RecordSnapshot
    start_date: date
    end_date: date
    current_balance: Decimal
    minimum_balance: Optional[Decimal] = None
    delay_days: Optional[int] = Field(None, ge=0)
    advance_days: Optional[int] = Field(None, ge=0)


class CashGapResponse(BaseModel):
    """A window below the minimum balance."""
    start_date: str
    end_date: str
    lowest_balance: str
    gap_amount: str
    events: List[ProjectedEventResponse]


class SuggestionImpactResponse(BaseModel):
    cash_flow_improvement: str
    risk_level: str
    vendor_impact: str


class PaymentSuggestionResponse(BaseModel):
    """A proposed payment timing change."""
    id: str
    type: str
    event_id: str
    entity_type: str
    entity_id: str
    entity_name: str
    current_date: str
    suggested_date: str
    amount: str
    reason: str
    impact: SuggestionImpactResponse


class OptimizeResponse(BaseModel):
    """Gaps and the suggestions addressing them."""
    gaps: List[CashGapResponse]
    suggestions: List[PaymentSuggestionResponse]
    total_gap_amount: str


class DailyBalanceResponse(BaseModel):
    date: str
    income: str
    outgo: str
    net: str
    balance: str


class DailyProjectionResponse(BaseModel):
    """Day-by-day balance projection."""
    days: List[DailyBalanceResponse]
    lowest_balance: str
    lowest_balance_date: Optional[str]
    negative_balance_days: int
