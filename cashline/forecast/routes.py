"""Forecast API routes."""
import logging

from fastapi import APIRouter, HTTPException

from cashline.forecast.engine import calculate_forecast
from cashline.forecast.events import project_portfolio
from cashline.forecast.schemas import ForecastRequest, ForecastResponse, ProjectedEventsResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=ForecastResponse)
async def get_forecast(request: ForecastRequest):
    """
    Calculate a cash flow forecast for an organisation snapshot.

    Returns:
        Periods with running balance, per-project breakdown and summary
    """
    try:
        return calculate_forecast(
            request.snapshot,
            start_date=request.start_date,
            end_date=request.end_date,
            period_type=request.period_type,
            starting_balance=request.starting_balance,
            basis=request.basis,
            today=request.today,
        )
    except Exception as e:
        logger.error(f"Forecast failed for {request.snapshot.organization_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error calculating forecast: {str(e)}")


@router.post("/events", response_model=ProjectedEventsResponse)
async def get_projected_events(request: ForecastRequest):
    """Project the dated cash events without bucketing them."""
    snapshot = request.snapshot
    try:
        events = project_portfolio(
            snapshot.income_records,
            snapshot.cost_records,
            snapshot.forecast_lines,
            snapshot.projects,
            start_date=request.start_date,
            end_date=request.end_date,
            shifts=snapshot.scenario_shifts,
        )
    except Exception as e:
        logger.error(f"Projection failed for {snapshot.organization_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error projecting events: {str(e)}")

    return {
        "organization_id": snapshot.organization_id,
        "events": [e.to_dict() for e in sorted(events, key=lambda e: (e.date, e.id))],
    }
