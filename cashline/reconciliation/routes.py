"""Reconciliation API routes."""
import logging

from fastapi import APIRouter, HTTPException

from cashline.config import settings
from cashline.forecast.events import project_portfolio
from cashline.reconciliation.matcher import reconcile, reconcile_ledger
from cashline.reconciliation.schemas import ReconcileRequest, ReconcileResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=ReconcileResponse)
async def reconcile_forecast_with_actuals(request: ReconcileRequest):
    """
    Match projected events against the snapshot's actual transactions.

    mode="actuals" uses project-aware scoring;
    mode="ledger" scores invoices and bills with the ledger weights.
    Both modes honour the basis filter and the already-matched ids.
    """
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

        if request.mode == "ledger":
            threshold = request.threshold if request.threshold is not None else settings.LEDGER_MATCH_THRESHOLD
            matcher = reconcile_ledger
        else:
            threshold = request.threshold if request.threshold is not None else settings.RECONCILE_MATCH_THRESHOLD
            matcher = reconcile

        run = matcher(
            events,
            snapshot.actuals,
            threshold=threshold,
            basis=request.basis,
            already_matched_event_ids=request.already_matched_event_ids,
            already_matched_actual_ids=request.already_matched_actual_ids,
        )
    except Exception as e:
        logger.error(f"Reconciliation failed for {snapshot.organization_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error reconciling forecast: {str(e)}")

    logger.info(
        f"Reconciled {snapshot.organization_id}: {run.result.total_matches} matches, "
        f"{run.result.unmatched_forecasts} unmatched forecasts"
    )
    return run.to_dict()
