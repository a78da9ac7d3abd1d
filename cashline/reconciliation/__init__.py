"""Reconciliation module - matches forecast events to actual transactions."""
from cashline.reconciliation import confidence, matcher, schemas, routes

__all__ = ["confidence", "matcher", "schemas", "routes"]
