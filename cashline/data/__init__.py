"""Data module - typed source records consumed by the engines."""
from cashline.data.schemas import (
    Direction,
    SourceType,
    CostMode,
    RecordStatus,
    Basis,
    Frequency,
    Project,
    IncomeRecord,
    CostItem,
    CostRecord,
    ForecastLine,
    ActualTransaction,
    ScenarioShift,
    RecordSnapshot,
)

__all__ = [
    "Direction",
    "SourceType",
    "CostMode",
    "RecordStatus",
    "Basis",
    "Frequency",
    "Project",
    "IncomeRecord",
    "CostItem",
    "CostRecord",
    "ForecastLine",
    "ActualTransaction",
    "ScenarioShift",
    "RecordSnapshot",
]
