"""Engines module - orchestrates the full cash-flow pipeline."""
from cashline.engines.pipeline import (
    PipelineConfig,
    PipelineResult,
    run_cashflow_pipeline,
)

__all__ = ["PipelineConfig", "PipelineResult", "run_cashflow_pipeline"]
