"""The three research pipeline stages: plan, gather findings, analyze."""

import logging

from market_signals.clients import GeminiGateway
from market_signals.core import parse_structured
from market_signals.errors import (
    MarketSignalsError,
    PlanningError,
    ResearchExecutionError,
    SignalAnalysisError,
)
from market_signals.prompts import (
    get_analyst_prompt,
    get_planner_prompt,
    get_researcher_prompt,
)
from market_signals.schemas import (
    RESEARCH_PLAN_SCHEMA,
    SIGNAL_REPORT_SCHEMA,
    ResearchPlan,
    SignalReport,
)

logger = logging.getLogger(__name__)


def _require_market(market: str) -> str:
    if not market or not market.strip():
        raise ValueError("market description must not be empty")
    return market.strip()


async def plan(gateway: GeminiGateway, market: str) -> ResearchPlan:
    """
    Stage 1: generate a structured research plan for a market.

    Args:
        gateway (GeminiGateway): Model gateway.
        market (str): Free-text market description.

    Returns:
        ResearchPlan: Validated plan.

    Raises:
        ValueError: If market is blank.
        PlanningError: On configuration, backend, parse or schema failure.
    """
    market = _require_market(market)
    logger.info("Planning research for market: %s", market)
    try:
        raw = await gateway.generate_structured(
            get_planner_prompt(market), RESEARCH_PLAN_SCHEMA
        )
        research_plan = parse_structured(raw, ResearchPlan)
    except MarketSignalsError as exc:
        logger.error("Detailed planning error: %r", exc)
        raise PlanningError(exc) from exc

    logger.info(
        "Research plan ready: %d subreddits, %d software categories",
        len(research_plan.subreddits),
        len(research_plan.software_categories),
    )
    return research_plan


async def gather_findings(
    gateway: GeminiGateway, market: str, research_plan: ResearchPlan
) -> str:
    """
    Stage 2: run search-augmented research grounded in the plan.

    Empty backend output yields the no-data sentinel rather than an error.

    Args:
        gateway (GeminiGateway): Model gateway.
        market (str): Free-text market description.
        research_plan (ResearchPlan): Plan from stage 1.

    Returns:
        str: Raw findings text.

    Raises:
        ResearchExecutionError: On configuration or hard backend failure.
    """
    market = _require_market(market)
    logger.info("Gathering findings for market: %s", market)
    try:
        findings = await gateway.generate_with_search(
            get_researcher_prompt(market, research_plan)
        )
    except MarketSignalsError as exc:
        logger.error("Error in gather_findings: %r", exc)
        raise ResearchExecutionError(exc) from exc

    logger.info("Findings gathered (%d chars)", len(findings))
    return findings


async def analyze(gateway: GeminiGateway, market: str, findings: str) -> SignalReport:
    """
    Stage 3: extract and classify problem patterns from raw findings.

    Args:
        gateway (GeminiGateway): Model gateway.
        market (str): Free-text market description.
        findings (str): Raw findings from stage 2, possibly the no-data sentinel.

    Returns:
        SignalReport: Validated report.

    Raises:
        SignalAnalysisError: On configuration, backend, parse or schema failure.
    """
    market = _require_market(market)
    logger.info("Analyzing signals for market: %s", market)
    try:
        raw = await gateway.analyze_structured(
            get_analyst_prompt(market, findings), SIGNAL_REPORT_SCHEMA
        )
        report = parse_structured(raw, SignalReport)
    except MarketSignalsError as exc:
        logger.error("Error in analyze: %r", exc)
        raise SignalAnalysisError(exc) from exc

    logger.info(
        "Signal report ready: %d patterns (%d signals)",
        len(report.patterns),
        len(report.signals()),
    )
    return report
