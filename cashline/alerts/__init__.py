"""Alerts module - rule checks over forecast and reconciliation output."""
from cashline.alerts.rules import (
    Alert,
    AlertPriority,
    AlertRule,
    AlertType,
    DEFAULT_RULES,
    evaluate_rules,
)

__all__ = ["Alert", "AlertPriority", "AlertRule", "AlertType", "DEFAULT_RULES", "evaluate_rules"]
