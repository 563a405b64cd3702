"""Research pipeline entrypoints."""

from .orchestrator import PipelineResult, RunState, run_pipeline, run_pipeline_async
from .session import ResearchSession
from .stages import analyze, gather_findings, plan

__all__ = [
    "PipelineResult",
    "ResearchSession",
    "RunState",
    "analyze",
    "gather_findings",
    "plan",
    "run_pipeline",
    "run_pipeline_async",
]
