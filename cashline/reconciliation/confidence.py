"""
Confidence scoring for forecast-to-actual matches.

A match's confidence score is a weighted similarity in [0, 1] between a
projected cash event and an actual transaction. Scores are reported in
three buckets:

- HIGH: score >= 0.8
- MEDIUM: 0.6 <= score < 0.8
- LOW: score < 0.6

Two weighting schemes exist. Each match pipeline uses exactly one:

- PROJECT_AWARE_WEIGHTS: actual transactions with a project association
  (project 0.4, amount 0.3, date 0.2, type 0.1)
- LEDGER_WEIGHTS: ledger documents such as invoices and bills
  (amount 0.4, date 0.3, project 0.2, type 0.1)
"""
from enum import Enum
from dataclasses import dataclass


class ConfidenceLevel(str, Enum):
    """Confidence buckets for reporting matches."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


HIGH_CONFIDENCE_THRESHOLD = 0.8
MEDIUM_CONFIDENCE_THRESHOLD = 0.6

# Days apart at which date proximity reaches zero
DATE_TOLERANCE_DAYS = 30


@dataclass(frozen=True)
class ScoringWeights:
    """Weights for each similarity component. They sum to 1.0."""
    project: float
    amount: float
    date: float
    type: float

    @property
    def total(self) -> float:
        return self.project + self.amount + self.date + self.type


PROJECT_AWARE_WEIGHTS = ScoringWeights(project=0.4, amount=0.3, date=0.2, type=0.1)
LEDGER_WEIGHTS = ScoringWeights(project=0.2, amount=0.4, date=0.3, type=0.1)


def confidence_level(score: float) -> ConfidenceLevel:
    """Map a confidence score to its reporting bucket."""
    if score >= HIGH_CONFIDENCE_THRESHOLD:
        return ConfidenceLevel.HIGH
    elif score >= MEDIUM_CONFIDENCE_THRESHOLD:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW
