"""Prompt for the evidence gathering stage."""

import json

from market_signals.schemas import ResearchPlan


def get_researcher_prompt(market: str, plan: ResearchPlan) -> str:
    """
    Generate the search-augmented research prompt.

    The plan is embedded verbatim so searches stay grounded in it.

    Args:
        market (str): Free-text market description.
        plan (ResearchPlan): Plan from the planning stage.

    Returns:
        str: The formatted prompt string.
    """
    plan_json = json.dumps(plan.to_wire(), indent=2)

    return f"""Perform deep market research for "{market}" based on this plan:
{plan_json}

Search for:
1. Reddit threads with complaints and frustrations.
2. Negative reviews on G2, Capterra, and App Store.
3. Discussions in niche forums.

Extract specific quotes, dates, and URLs. Look for "desperation language" (e.g., "nothing works", "losing money", "I hate that").
Focus on recurring patterns of frustration.

Return a detailed summary of your findings, including raw text snippets and their sources."""
