"""Prompt builders for the three pipeline stages."""

from market_signals.prompts.analyst import get_analyst_prompt
from market_signals.prompts.planner import get_planner_prompt
from market_signals.prompts.researcher import get_researcher_prompt

__all__ = [
    "get_analyst_prompt",
    "get_planner_prompt",
    "get_researcher_prompt",
]
