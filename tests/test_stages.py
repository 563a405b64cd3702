"""Tests for the plan, research and analysis stages."""

import json

import pytest

from market_signals.clients import NO_RESEARCH_DATA
from market_signals.errors import (
    INVALID_API_KEY_MESSAGE,
    RATE_LIMIT_MESSAGE,
    ConfigurationError,
    EmptyResponseError,
    GatewayErrorStatus,
    PlanningError,
    ResearchExecutionError,
    ResponseParseError,
    SchemaViolationError,
    SignalAnalysisError,
    StageError,
)
from market_signals.pipeline.stages import analyze, gather_findings, plan
from market_signals.schemas import ResearchPlan


def _run_stage(name, gateway, plan_payload):
    if name == "plan":
        return plan(gateway, "gym owners")
    if name == "research":
        return gather_findings(
            gateway, "gym owners", ResearchPlan.model_validate(plan_payload)
        )
    return analyze(gateway, "gym owners", "some findings")


STAGE_ERRORS = {
    "plan": PlanningError,
    "research": ResearchExecutionError,
    "analyze": SignalAnalysisError,
}


@pytest.mark.parametrize("stage", list(STAGE_ERRORS))
async def test_missing_credential_is_configuration_error(
    stage, monkeypatch, gateway, fake_client, plan_payload
) -> None:
    monkeypatch.setenv("GEMINI_API_KEY", "undefined")

    with pytest.raises(STAGE_ERRORS[stage]) as excinfo:
        await _run_stage(stage, gateway, plan_payload)

    assert isinstance(excinfo.value.cause, ConfigurationError)
    assert "GEMINI_API_KEY" in str(excinfo.value)
    assert fake_client.calls == []


@pytest.mark.parametrize("stage", list(STAGE_ERRORS))
@pytest.mark.parametrize("marker", ["401", "403"])
async def test_credential_markers_reported_as_invalid_key(
    stage, marker, api_key, gateway, fake_client, plan_payload
) -> None:
    fake_client.responses.append(RuntimeError(f"{marker} Forbidden"))

    with pytest.raises(STAGE_ERRORS[stage]) as excinfo:
        await _run_stage(stage, gateway, plan_payload)

    assert INVALID_API_KEY_MESSAGE in str(excinfo.value)
    assert excinfo.value.status == GatewayErrorStatus.UNAUTHORIZED


@pytest.mark.parametrize("stage", list(STAGE_ERRORS))
async def test_rate_limit_marker_reported(
    stage, api_key, gateway, fake_client, plan_payload
) -> None:
    fake_client.responses.append(RuntimeError("429 Resource exhausted"))

    with pytest.raises(STAGE_ERRORS[stage]) as excinfo:
        await _run_stage(stage, gateway, plan_payload)

    assert RATE_LIMIT_MESSAGE in str(excinfo.value)
    assert excinfo.value.status == GatewayErrorStatus.RATE_LIMITED


@pytest.mark.parametrize("stage", ["plan", "analyze"])
async def test_empty_structured_response_fails_stage(
    stage, api_key, gateway, fake_client, plan_payload
) -> None:
    fake_client.responses.append("")

    with pytest.raises(STAGE_ERRORS[stage]) as excinfo:
        await _run_stage(stage, gateway, plan_payload)

    assert isinstance(excinfo.value.cause, EmptyResponseError)
    assert excinfo.value.status == GatewayErrorStatus.EMPTY


async def test_empty_search_response_flows_as_sentinel(
    api_key, gateway, fake_client, plan_payload
) -> None:
    fake_client.responses.append(None)

    findings = await _run_stage("research", gateway, plan_payload)

    assert findings == NO_RESEARCH_DATA


@pytest.mark.parametrize("stage", ["plan", "analyze"])
@pytest.mark.parametrize("raw", ["{not json", "```json\n{\"a\": \n```", "[1, 2"])
async def test_malformed_json_wrapped_in_stage_error(
    stage, raw, api_key, gateway, fake_client, plan_payload
) -> None:
    fake_client.responses.append(raw)

    with pytest.raises(STAGE_ERRORS[stage]) as excinfo:
        await _run_stage(stage, gateway, plan_payload)

    assert isinstance(excinfo.value.cause, ResponseParseError)
    assert str(excinfo.value).startswith(STAGE_ERRORS[stage].stage)


async def test_plan_schema_violation(api_key, gateway, fake_client, plan_payload) -> None:
    del plan_payload["nicheForums"]
    fake_client.responses.append(json.dumps(plan_payload))

    with pytest.raises(PlanningError) as excinfo:
        await plan(gateway, "gym owners")

    assert isinstance(excinfo.value.cause, SchemaViolationError)


async def test_plan_round_trip_identity(
    api_key, gateway, fake_client, plan_payload, plan_json
) -> None:
    fake_client.responses.append(plan_json)

    research_plan = await plan(gateway, "gym owners")

    assert research_plan.to_wire() == plan_payload
    assert research_plan.subreddits[0].name == "r/gymowners"
    assert "gym owners" in fake_client.prompt_of(0)


async def test_plan_accepts_fenced_json(api_key, gateway, fake_client, plan_json) -> None:
    fake_client.responses.append(f"Here is the plan:\n```json\n{plan_json}\n```")

    research_plan = await plan(gateway, "gym owners")

    assert research_plan.software_categories == []


async def test_gather_findings_embeds_plan(
    api_key, gateway, fake_client, plan_payload
) -> None:
    fake_client.responses.append("Owners complain a lot.")

    findings = await _run_stage("research", gateway, plan_payload)

    prompt = fake_client.prompt_of(0)
    assert findings == "Owners complain a lot."
    assert json.dumps(plan_payload, indent=2) in prompt
    assert "desperation language" in prompt


async def test_analyze_prompt_embeds_findings_and_rubric(
    api_key, gateway, fake_client, report_json
) -> None:
    fake_client.responses.append(report_json)

    report = await analyze(gateway, "gym owners", NO_RESEARCH_DATA)

    prompt = fake_client.prompt_of(0)
    assert NO_RESEARCH_DATA in prompt
    assert "implied or explicit desired alternative" in prompt
    assert "Willingness to Pay (1-5)" in prompt
    assert len(report.patterns) == 1


async def test_blank_market_rejected_before_backend(gateway, fake_client) -> None:
    with pytest.raises(ValueError):
        await plan(gateway, "   ")
    assert fake_client.calls == []


def test_stage_errors_share_base() -> None:
    assert issubclass(PlanningError, StageError)
    assert issubclass(ResearchExecutionError, StageError)
    assert issubclass(SignalAnalysisError, StageError)
