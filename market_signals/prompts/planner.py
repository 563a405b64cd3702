"""Prompt for the research planning stage."""


def get_planner_prompt(market: str) -> str:
    """
    Generate the planner prompt for a target market.

    Args:
        market (str): Free-text market description.

    Returns:
        str: The formatted prompt string.
    """
    return f"""You are a world-class market research planner.
Create a structured research plan for the following market: "{market}".
Focus on finding real, validated problems and complaints.

The plan must include:
- subreddits: communities where this market discusses its problems, each with the search queries to run there.
- softwareCategories: review-platform categories to scan on G2 and Capterra (e.g. "CRM software").
- competitorApps: existing apps whose App Store reviews should be read.
- searchStrings: generic web search queries that surface complaints and frustrations.
- nicheForums: industry forums and communities outside Reddit.

Prefer specific, high-signal sources over generic ones. Do not repeat the same subreddit twice."""
