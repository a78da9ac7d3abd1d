"""Reconciliation request/response schemas."""
from pydantic import BaseModel, Field
from typing import List, Literal, Optional
from datetime import date

from cashline.data.schemas import Basis, RecordSnapshot


class ReconcileRequest(BaseModel):
    """Snapshot whose projected events are matched against its actuals."""
    snapshot: RecordSnapshot
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    mode: Literal["actuals", "ledger"] = "actuals"
    threshold: Optional[float] = Field(None, ge=0, le=1)
    basis: Optional[Basis] = Basis.ACCRUAL
    already_matched_event_ids: List[str] = Field(default_factory=list)
    already_matched_actual_ids: List[str] = Field(default_factory=list)


class VarianceMatchResponse(BaseModel):
    """A forecast-to-actual match with its variances."""
    id: str
    cash_event_id: str
    actual_id: str
    actual_type: str
    project_id: Optional[str]
    forecast_amount: str
    actual_amount: str
    forecast_date: str
    actual_date: str
    amount_variance: str
    timing_variance: int
    confidence_score: float
    confidence_level: Literal["high", "medium", "low"]
    status: Literal["matched", "disputed", "resolved"]


class ReconciliationSummaryResponse(BaseModel):
    """Counts and averages for a reconciliation run."""
    total_matches: int
    high_confidence_matches: int
    medium_confidence_matches: int
    low_confidence_matches: int
    unmatched_forecasts: int
    unmatched_actuals: int
    average_amount_variance: str
    average_timing_variance: float


class ReconcileResponse(BaseModel):
    """Complete reconciliation response."""
    matches: List[VarianceMatchResponse]
    unmatched_event_ids: List[str]
    unmatched_actual_ids: List[str]
    summary: ReconciliationSummaryResponse
