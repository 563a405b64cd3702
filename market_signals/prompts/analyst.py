"""Prompt for the signal analysis stage."""

from market_signals.schemas import Classification

SCORING_RUBRIC = {
    "Frequency": "How widespread is this? 1 = a single mention, 5 = raised across many sources.",
    "Desperation": "How intense is the language? 1 = mild annoyance, 5 = acute frustration or desperation.",
    "Willingness to Pay": "Are they losing money or paying for workarounds? 1 = no cost signal, 5 = clear spend.",
    "Trend": "Is this a recent and growing problem? 1 = old or fading, 5 = recent and growing.",
}


def get_analyst_prompt(market: str, findings: str) -> str:
    """
    Generate the signal analysis prompt.

    Args:
        market (str): Free-text market description.
        findings (str): Raw findings from the research stage.

    Returns:
        str: The formatted prompt string.
    """
    rubric = "\n".join(
        f"- Score {name} (1-5): {description}"
        for name, description in SCORING_RUBRIC.items()
    )
    classifications = ", ".join(f'"{c.value}"' for c in Classification)

    return f"""Analyze the following market research data for "{market}" and extract Problem Patterns.

Research Data:
{findings}

For each pattern:
{rubric}

Classify as {classifications}.
A complaint only qualifies as signal if there is an implied or explicit desired alternative.

Provide 3-5 direct quotes per pattern with source links.
Use only quotes present in the research data. If the data contains no evidence, return an empty patterns list.
Give every pattern a unique id.
Include an executive summary and next steps."""
