"""Pydantic schemas for the source records read by the forecast core.

Records arrive from the persistence or accounting-sync collaborators as
already-fetched snapshots. Every source type has its own tagged model, so
the engines never work with untyped rows.
"""
from pydantic import BaseModel, Field
from datetime import date
from typing import Optional, List
from decimal import Decimal
from enum import Enum


# ============================================================================
# ENUMS
# ============================================================================

class Direction(str, Enum):
    """Direction of a cash movement."""
    INCOME = "income"
    OUTGO = "outgo"


class SourceType(str, Enum):
    """Origin of a projected cash event."""
    MILESTONE = "milestone"
    SUPPLIER_CLAIM = "supplier_claim"
    MATERIAL_ORDER = "material_order"
    FORECAST_LINE = "forecast_line"


class CostMode(str, Enum):
    """How a cost record is paid."""
    SINGLE = "single"        # One payment at anchor + offset
    ITEMIZED = "itemized"    # One payment per cost line


class RecordStatus(str, Enum):
    """Lifecycle status of a source record."""
    PENDING = "pending"
    INVOICED = "invoiced"
    ORDERED = "ordered"
    PAID = "paid"
    RECEIVED = "received"


class Basis(str, Enum):
    """Accounting basis of an actual transaction."""
    CASH = "cash"
    ACCRUAL = "accrual"


class Frequency(str, Enum):
    """Recurrence of a forecast line."""
    ONCE = "once"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"


# ============================================================================
# SOURCE RECORDS
# ============================================================================

class Project(BaseModel):
    """A project that owns income and cost records."""
    id: str
    name: str


class IncomeRecord(BaseModel):
    """An income milestone. Its expected date anchors the project's costs."""
    id: str
    project_id: str
    name: str = ""
    amount: Optional[Decimal] = Field(None, ge=0)
    expected_date: Optional[date] = None
    status: RecordStatus = RecordStatus.PENDING


class CostItem(BaseModel):
    """A single line of an itemized cost record."""
    id: str
    description: str = ""
    amount: Optional[Decimal] = Field(None, ge=0)
    offset_days: int = Field(0, description="Days relative to the anchor date; negative pays early")
    vendor: Optional[str] = None
    status: RecordStatus = RecordStatus.PENDING


class CostRecord(BaseModel):
    """
    A supplier claim or material order.

    The anchor date is the parent income record's expected date. Records
    without a parent fall back to their own expected date.
    """
    id: str
    project_id: str
    source_type: SourceType = SourceType.SUPPLIER_CLAIM
    income_id: Optional[str] = None
    mode: CostMode = CostMode.SINGLE
    amount: Optional[Decimal] = Field(None, ge=0)
    offset_days: int = 0
    expected_date: Optional[date] = None
    items: List[CostItem] = Field(default_factory=list)
    supplier_name: Optional[str] = None
    status: RecordStatus = RecordStatus.PENDING


class ForecastLine(BaseModel):
    """A recurring forecast line such as an overhead or a retainer."""
    id: str
    project_id: Optional[str] = None  # None for organisation overheads
    name: str
    direction: Direction
    base_amount: Decimal = Field(..., ge=0)
    start_date: date
    end_date: Optional[date] = None
    frequency: Frequency = Frequency.MONTHLY
    inflation_rate: Optional[Decimal] = None     # Annual, e.g. 0.03
    escalation_rate: Optional[Decimal] = None    # Annual, e.g. 0.02


class ActualTransaction(BaseModel):
    """A real transaction pulled from the accounting system."""
    id: str
    project_id: Optional[str] = None
    amount: Decimal = Field(..., ge=0)
    occurred_at: date
    direction: Direction
    source_type: str = Field("bank", description="Provider type, e.g. invoice, bill, payment")
    basis: Basis = Basis.ACCRUAL
    description: Optional[str] = None


class ScenarioShift(BaseModel):
    """A what-if adjustment to one source record's projected events."""
    source_type: SourceType
    source_id: str
    days_shift: int = 0
    amount_shift: Optional[Decimal] = None


class RecordSnapshot(BaseModel):
    """Everything the core needs for one organisation, fetched up front."""
    organization_id: str
    projects: List[Project] = Field(default_factory=list)
    income_records: List[IncomeRecord] = Field(default_factory=list)
    cost_records: List[CostRecord] = Field(default_factory=list)
    forecast_lines: List[ForecastLine] = Field(default_factory=list)
    actuals: List[ActualTransaction] = Field(default_factory=list)
    scenario_shifts: List[ScenarioShift] = Field(default_factory=list)
