"""
API Routes for the cash-flow pipeline.

Provides an endpoint to run projection, forecast, optimisation,
reconciliation and alert rules in one call over a posted snapshot.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from cashline.data.schemas import Basis, RecordSnapshot
from cashline.forecast.periods import PeriodType

from .pipeline import PipelineConfig, run_cashflow_pipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pipeline", tags=["Pipeline"])


# =============================================================================
# Request Schemas
# =============================================================================

class PipelineRunRequest(BaseModel):
    """Request to run the pipeline."""
    snapshot: RecordSnapshot
    start_date: Optional[date] = Field(default=None, description="Defaults to today")
    end_date: Optional[date] = Field(default=None, description="Defaults to start_date + weeks")
    weeks: int = Field(default=13, ge=1, le=104)
    period_type: PeriodType = PeriodType.MONTHLY
    starting_balance: Decimal = Decimal("0")
    minimum_balance: Optional[Decimal] = None
    match_threshold: Optional[float] = Field(default=None, ge=0, le=1)
    basis: Optional[Basis] = Basis.ACCRUAL
    delay_days: Optional[int] = Field(default=None, ge=0)
    advance_days: Optional[int] = Field(default=None, ge=0)
    skip_optimization: bool = False
    skip_reconciliation: bool = False
    skip_alerts: bool = False
    today: Optional[date] = None


# =============================================================================
# Endpoints
# =============================================================================

@router.post("/run")
async def run_pipeline(request: PipelineRunRequest):
    """
    Run the full cash-flow pipeline.

    Phase failures are reported in the response's errors list.
    """
    config = PipelineConfig(
        start_date=request.start_date,
        end_date=request.end_date,
        weeks=request.weeks,
        period_type=request.period_type,
        starting_balance=request.starting_balance,
        basis=request.basis,
        skip_optimization=request.skip_optimization,
        skip_reconciliation=request.skip_reconciliation,
        skip_alerts=request.skip_alerts,
        today=request.today,
    )
    if request.minimum_balance is not None:
        config.minimum_balance = request.minimum_balance
    if request.match_threshold is not None:
        config.match_threshold = request.match_threshold
    if request.delay_days is not None:
        config.delay_days = request.delay_days
    if request.advance_days is not None:
        config.advance_days = request.advance_days

    result = run_cashflow_pipeline(request.snapshot, config)
    if result.errors:
        logger.warning(f"Pipeline for {request.snapshot.organization_id} had errors: {result.errors}")

    return result.to_dict()
