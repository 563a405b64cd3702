"""Tests for pipeline orchestration and event-loop bridging."""

import asyncio
from typing import Any

import pytest

from market_signals.errors import (
    PlanningError,
    RunCancelledError,
    SignalAnalysisError,
)
from market_signals.pipeline import orchestrator
from market_signals.pipeline.orchestrator import RunState, run_pipeline_async
from market_signals.schemas import Classification


def test_run_pipeline_without_running_loop(monkeypatch: Any) -> None:
    """Runs pipeline with asyncio.run when no event loop is active."""

    async def fake_run_pipeline_async(**_: Any) -> str:
        return "ok-sync"

    monkeypatch.setattr(orchestrator, "run_pipeline_async", fake_run_pipeline_async)

    result = orchestrator.run_pipeline(market="gym owners")

    assert result == "ok-sync"


async def test_run_pipeline_inside_running_loop(monkeypatch: Any) -> None:
    """Runs pipeline in a worker thread when already in an event loop."""

    async def fake_run_pipeline_async(**_: Any) -> str:
        return "ok-async"

    monkeypatch.setattr(orchestrator, "run_pipeline_async", fake_run_pipeline_async)

    result = orchestrator.run_pipeline(market="gym owners")

    assert result == "ok-async"


async def test_gym_owners_end_to_end(
    api_key, gateway, fake_client, plan_json, report_json
) -> None:
    findings = "Owners repeatedly complain about scheduling software losing bookings."
    fake_client.responses.extend([plan_json, findings, report_json])
    transitions: list[RunState] = []

    result = await run_pipeline_async(
        "gym owners",
        gateway=gateway,
        on_stage=lambda state, _message: transitions.append(state),
    )

    report = result.report
    assert len(report.patterns) == 1
    pattern = report.patterns[0]
    assert pattern.classification == Classification.STRONG_SIGNAL
    assert pattern.scores.to_wire() == {
        "frequency": 4,
        "desperation": 4,
        "willingnessToPay": 3,
        "trend": 3,
    }
    assert len(pattern.quotes) == 1
    assert result.plan.subreddits[0].queries == ["software frustrations"]
    assert findings in fake_client.prompt_of(2)
    assert transitions == [
        RunState.PLANNING,
        RunState.RESEARCHING,
        RunState.ANALYZING,
        RunState.COMPLETED,
    ]


async def test_progress_message_counts_plan_targets(
    api_key, gateway, fake_client, plan_json, report_json
) -> None:
    fake_client.responses.extend([plan_json, "findings", report_json])
    messages: dict[RunState, str] = {}

    await run_pipeline_async(
        "gym owners",
        gateway=gateway,
        on_stage=lambda state, message: messages.__setitem__(state, message),
    )

    assert messages[RunState.RESEARCHING] == (
        "Scanning 1 subreddits and 0 software categories..."
    )


async def test_failure_stops_pipeline(api_key, gateway, fake_client) -> None:
    fake_client.responses.append("not json")
    transitions: list[RunState] = []

    with pytest.raises(PlanningError):
        await run_pipeline_async(
            "gym owners",
            gateway=gateway,
            on_stage=lambda state, _message: transitions.append(state),
        )

    assert transitions == [RunState.PLANNING, RunState.FAILED]
    assert len(fake_client.calls) == 1


async def test_analysis_failure_after_research(
    api_key, gateway, fake_client, plan_json
) -> None:
    fake_client.responses.extend([plan_json, "findings", ""])

    with pytest.raises(SignalAnalysisError):
        await run_pipeline_async("gym owners", gateway=gateway)

    assert len(fake_client.calls) == 3


async def test_cancel_event_stops_before_next_stage(
    api_key, gateway, fake_client, plan_json
) -> None:
    cancel_event = asyncio.Event()
    fake_client.responses.extend([plan_json, "findings"])

    def on_stage(state: RunState, _message: str) -> None:
        if state == RunState.RESEARCHING:
            cancel_event.set()

    with pytest.raises(RunCancelledError):
        await run_pipeline_async(
            "gym owners",
            gateway=gateway,
            on_stage=on_stage,
            cancel_event=cancel_event,
        )

    # research call ran; analysis was never attempted
    assert len(fake_client.calls) == 2


async def test_blank_market_rejected(gateway) -> None:
    with pytest.raises(ValueError):
        await run_pipeline_async("", gateway=gateway)
