"""Cashline - project cash forecasting, reconciliation and gap optimisation."""

__version__ = "0.1.0"
