from market_signals.clients import GeminiGateway
from market_signals.models import GeminiModels
from market_signals.pipeline import (
    ResearchSession,
    RunState,
    analyze,
    gather_findings,
    plan,
    run_pipeline,
    run_pipeline_async,
)
from market_signals.schemas import ResearchPlan, SignalReport

__all__ = [
    "GeminiGateway",
    "GeminiModels",
    "ResearchPlan",
    "ResearchSession",
    "RunState",
    "SignalReport",
    "analyze",
    "gather_findings",
    "plan",
    "run_pipeline",
    "run_pipeline_async",
]
