"""Shared test fixtures and builders for Cashline tests."""
import pytest
from datetime import date
from decimal import Decimal

from cashline.data.schemas import (
    ActualTransaction,
    Direction,
    Project,
    RecordSnapshot,
    SourceType,
    CostRecord,
    IncomeRecord,
)
from cashline.forecast.events import ProjectedCashEvent


def make_event(
    event_id,
    amount,
    on,
    direction=Direction.OUTGO,
    source_type=SourceType.SUPPLIER_CLAIM,
    project_id="proj-1",
    description="",
):
    """Build a projected event with sensible defaults."""
    return ProjectedCashEvent(
        id=event_id,
        project_id=project_id,
        direction=direction,
        amount=Decimal(str(amount)),
        date=on,
        source_type=source_type,
        source_id=event_id,
        description=description,
    )


def make_actual(
    actual_id,
    amount,
    on,
    direction=Direction.INCOME,
    project_id="proj-1",
    source_type="bank",
    **kwargs,
):
    """Build an actual transaction with sensible defaults."""
    return ActualTransaction(
        id=actual_id,
        project_id=project_id,
        amount=Decimal(str(amount)),
        occurred_at=on,
        direction=direction,
        source_type=source_type,
        **kwargs,
    )


@pytest.fixture
def sample_snapshot():
    """One project with a milestone and two costs anchored on it."""
    return RecordSnapshot(
        organization_id="org-123",
        projects=[Project(id="proj-1", name="Harbour Fitout")],
        income_records=[
            IncomeRecord(
                id="m1",
                project_id="proj-1",
                name="Stage 1",
                amount=Decimal("150000"),
                expected_date=date(2024, 2, 1),
            ),
        ],
        cost_records=[
            CostRecord(
                id="c1",
                project_id="proj-1",
                income_id="m1",
                amount=Decimal("120000"),
                offset_days=-14,
                supplier_name="Steel Co",
            ),
            CostRecord(
                id="o1",
                project_id="proj-1",
                source_type=SourceType.MATERIAL_ORDER,
                income_id="m1",
                amount=Decimal("20000"),
                offset_days=10,
                supplier_name="Timber Yard",
            ),
        ],
    )
