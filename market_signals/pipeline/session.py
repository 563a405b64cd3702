"""Caller-owned run state guarding against overlapping research runs."""

import asyncio
import logging

from market_signals.clients import GeminiGateway
from market_signals.core import normalize_market
from market_signals.errors import RunInProgressError
from market_signals.pipeline.orchestrator import (
    PipelineResult,
    RunState,
    StageCallback,
    run_pipeline_async,
)
from market_signals.schemas import ResearchPlan, SignalReport

logger = logging.getLogger(__name__)


class ResearchSession:
    """Tracks one caller's research runs, allowing at most one in flight.

    Starting the same market again while it runs joins the in-flight run.
    Starting a different market raises RunInProgressError.
    """

    def __init__(
        self,
        gateway: GeminiGateway | None = None,
        on_stage: StageCallback | None = None,
    ) -> None:
        self.gateway = gateway or GeminiGateway()
        self.on_stage = on_stage
        self.state = RunState.IDLE
        self.message = ""
        self.plan: ResearchPlan | None = None
        self.report: SignalReport | None = None
        self.error: BaseException | None = None
        self._task: asyncio.Task[PipelineResult] | None = None
        self._market_key: str | None = None
        self._cancel_event: asyncio.Event | None = None

    @property
    def busy(self) -> bool:
        return self._task is not None and not self._task.done()

    def _on_stage(self, state: RunState, message: str) -> None:
        self.state = state
        self.message = message
        if self.on_stage is not None:
            self.on_stage(state, message)

    async def start(self, market: str) -> PipelineResult:
        """
        Run the pipeline for a market, or join the identical in-flight run.

        Args:
            market (str): Free-text market description.

        Returns:
            PipelineResult: Plan and final report.

        Raises:
            ValueError: If market is blank.
            RunInProgressError: If a run for a different market is in flight.
        """
        if not market or not market.strip():
            raise ValueError("market description must not be empty")

        market_key = normalize_market(market)
        if self.busy:
            if market_key == self._market_key:
                logger.info("Joining in-flight run for market: %s", market)
                return await asyncio.shield(self._task)
            raise RunInProgressError(
                f"A research run is already {self.state.value}; "
                "wait for it to finish or cancel it."
            )

        self.plan = None
        self.report = None
        self.error = None
        self._market_key = market_key
        self._cancel_event = asyncio.Event()
        self._task = asyncio.create_task(
            run_pipeline_async(
                market,
                gateway=self.gateway,
                on_stage=self._on_stage,
                cancel_event=self._cancel_event,
            )
        )
        try:
            result = await self._task
        except asyncio.CancelledError as exc:
            # Owner cancelled: the run must not keep calling the backend.
            self._cancel_event.set()
            if not self._task.done():
                self._task.cancel()
                await asyncio.wait([self._task])
            self.state = RunState.FAILED
            self.message = "Research run cancelled."
            self.error = exc
            raise
        except Exception as exc:
            self.state = RunState.FAILED
            self.error = exc
            raise

        self.plan = result.plan
        self.report = result.report
        return result

    def cancel(self) -> bool:
        """
        Cancel the in-flight run so no further backend calls are made.

        Returns:
            bool: True if a run was cancelled.
        """
        if not self.busy:
            return False
        logger.info("Cancelling research run (state=%s)", self.state.value)
        self._cancel_event.set()
        self._task.cancel()
        self.state = RunState.FAILED
        self.message = "Research run cancelled."
        return True

    def reset(self) -> None:
        """Return to Idle after a completed or failed run."""
        if self.busy:
            raise RunInProgressError("Cannot reset while a run is in flight.")
        self.state = RunState.IDLE
        self.message = ""
        self.plan = None
        self.report = None
        self.error = None
        self._task = None
        self._market_key = None
        self._cancel_event = None
