"""Research pipeline orchestration."""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from enum import StrEnum
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict

from market_signals.clients import GeminiGateway
from market_signals.errors import RunCancelledError
from market_signals.pipeline.stages import analyze, gather_findings, plan
from market_signals.schemas import ResearchPlan, SignalReport

logger = logging.getLogger(__name__)


class RunState(StrEnum):
    """Explicit state of a research run."""

    IDLE = "idle"
    PLANNING = "planning"
    RESEARCHING = "researching"
    ANALYZING = "analyzing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def in_progress(self) -> bool:
        return self in (RunState.PLANNING, RunState.RESEARCHING, RunState.ANALYZING)

    @property
    def terminal(self) -> bool:
        return self in (RunState.COMPLETED, RunState.FAILED)


StageCallback = Callable[[RunState, str], None]


class PipelineResult(BaseModel):
    """Outputs of a completed run. Raw findings are not retained."""

    model_config = ConfigDict(frozen=True)

    market: str
    plan: ResearchPlan
    report: SignalReport


def _notify(on_stage: StageCallback | None, state: RunState, message: str) -> None:
    logger.info("[%s] %s", state.value, message)
    if on_stage is not None:
        on_stage(state, message)


def _check_cancelled(cancel_event: asyncio.Event | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise RunCancelledError("Research run cancelled before completion.")


def _run_pipeline_in_new_loop(coro: Any) -> PipelineResult:
    """
    Runs a coroutine in a dedicated event loop from a worker thread.

    Args:
        coro (Any): Coroutine to execute.

    Returns:
        PipelineResult: Result returned by the coroutine.
    """
    with ThreadPoolExecutor(max_workers=1) as executor:
        return executor.submit(asyncio.run, coro).result()


async def run_pipeline_async(
    market: str,
    gateway: GeminiGateway | None = None,
    on_stage: StageCallback | None = None,
    cancel_event: asyncio.Event | None = None,
) -> PipelineResult:
    """
    Run plan -> research -> analyze for a market.

    Any stage failure ends the run; nothing is retried or resumed.

    Args:
        market: Free-text market description.
        gateway: Model gateway; a default one is created when omitted.
        on_stage: Called with each state transition and a progress message.
        cancel_event: When set, the run stops before the next stage.

    Returns:
        PipelineResult: Plan and final report.

    Raises:
        ValueError: If market is blank.
        RunCancelledError: If cancel_event was set.
        StageError: If a stage failed.
    """
    if not market or not market.strip():
        raise ValueError("market description must not be empty")
    market = market.strip()
    gateway = gateway or GeminiGateway()

    try:
        _check_cancelled(cancel_event)
        _notify(on_stage, RunState.PLANNING, "Planning your research strategy...")
        research_plan = await plan(gateway, market)

        _check_cancelled(cancel_event)
        _notify(
            on_stage,
            RunState.RESEARCHING,
            f"Scanning {len(research_plan.subreddits)} subreddits and "
            f"{len(research_plan.software_categories)} software categories...",
        )
        findings = await gather_findings(gateway, market, research_plan)

        _check_cancelled(cancel_event)
        _notify(
            on_stage,
            RunState.ANALYZING,
            "Analyzing signals and extracting problem patterns...",
        )
        report = await analyze(gateway, market, findings)
    except Exception as exc:
        _notify(on_stage, RunState.FAILED, str(exc))
        raise

    _notify(
        on_stage,
        RunState.COMPLETED,
        f"Research complete: {len(report.patterns)} patterns found.",
    )
    return PipelineResult(market=market, plan=research_plan, report=report)


def run_pipeline(
    market: str,
    gateway: GeminiGateway | None = None,
    on_stage: StageCallback | None = None,
) -> PipelineResult:
    """
    Run the research pipeline synchronously.

    Args:
        market: Free-text market description.
        gateway: Model gateway; a default one is created when omitted.
        on_stage: Called with each state transition and a progress message.

    Returns:
        PipelineResult: Plan and final report.
    """
    pipeline_coro = run_pipeline_async(
        market=market,
        gateway=gateway,
        on_stage=on_stage,
    )
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(pipeline_coro)
    return _run_pipeline_in_new_loop(pipeline_coro)
