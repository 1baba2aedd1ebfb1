"""End-to-end analysis pipeline."""

from bom_engine.pipeline.orchestrator import AnalysisReport, Orchestrator, to_jsonable

__all__ = ["AnalysisReport", "Orchestrator", "to_jsonable"]
