from typing import Callable

from market_signals.prompts.analyst import get_analyst_prompt
from market_signals.prompts.planner import get_planner_prompt
from market_signals.prompts.researcher import get_researcher_prompt

_PROMPTS: dict[str, Callable[..., str]] = {
    "planner": get_planner_prompt,
    "researcher": get_researcher_prompt,
    "analyst": get_analyst_prompt,
}


def resolve(name: str, **kwargs) -> str:
    """Resolve prompt by name."""
    return _PROMPTS[name](**kwargs)


def list_all() -> list[str]:
    """List all prompt names."""
    return sorted(_PROMPTS.keys())
