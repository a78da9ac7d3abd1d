"""Optimizer module - cash gap detection and payment timing suggestions."""
from cashline.optimizer import gaps, suggestions, engine, schemas, routes

__all__ = ["gaps", "suggestions", "engine", "schemas", "routes"]
