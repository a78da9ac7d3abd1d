"""Forecast module - handles cash flow projection and aggregation."""
from cashline.forecast import periods, events, engine, schemas, routes

__all__ = ["periods", "events", "engine", "schemas", "routes"]
