"""Payment optimizer API routes."""
import logging

from fastapi import APIRouter, HTTPException

from cashline.config import settings
from cashline.forecast.events import project_portfolio
from cashline.optimizer.engine import PaymentOptimizer
from cashline.optimizer.schemas import (
    DailyProjectionResponse,
    OptimizeRequest,
    OptimizeResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _build(request: OptimizeRequest):
    snapshot = request.snapshot
    events = project_portfolio(
        snapshot.income_records,
        snapshot.cost_records,
        snapshot.forecast_lines,
        snapshot.projects,
        start_date=request.start_date,
        end_date=request.end_date,
        shifts=snapshot.scenario_shifts,
    )
    optimizer = PaymentOptimizer(
        current_balance=request.current_balance,
        minimum_balance=(
            request.minimum_balance if request.minimum_balance is not None
            else settings.MINIMUM_BALANCE
        ),
        delay_days=request.delay_days if request.delay_days is not None else settings.DEFAULT_DELAY_DAYS,
        advance_days=request.advance_days if request.advance_days is not None else settings.DEFAULT_ADVANCE_DAYS,
    )
    return events, optimizer


@router.post("/suggestions", response_model=OptimizeResponse)
async def get_payment_suggestions(request: OptimizeRequest):
    """Find cash gaps in the window and suggest payment timing changes."""
    try:
        events, optimizer = _build(request)
        result = optimizer.optimize(events, request.start_date, request.end_date)
    except Exception as e:
        logger.error(f"Optimisation failed for {request.snapshot.organization_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error generating suggestions: {str(e)}")

    return result.to_dict()


@router.post("/projection", response_model=DailyProjectionResponse)
async def get_cash_flow_projection(request: OptimizeRequest):
    """Project the closing balance for each day with cash movement."""
    try:
        events, optimizer = _build(request)
        projection = optimizer.get_cash_flow_projection(events, request.start_date, request.end_date)
    except Exception as e:
        logger.error(f"Projection failed for {request.snapshot.organization_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error projecting cash flow: {str(e)}")

    return projection.to_dict()
