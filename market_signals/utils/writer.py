"""Markdown rendering for signal reports."""

from market_signals.schemas import (
    Classification,
    ProblemPattern,
    ResearchPlan,
    SignalReport,
)

SCORE_LABELS = {
    "frequency": "Frequency",
    "desperation": "Desperation",
    "willingness_to_pay": "Willingness to Pay",
    "trend": "Trend",
}


def build_report_title(market: str) -> str:
    """
    Build a report title from the market description.

    Args:
        market (str): Market description.

    Returns:
        str: Report title.
    """
    return f"Signal Report: {market.strip()}"


def format_score(value: float) -> str:
    """Format a score without a trailing .0 for whole numbers."""
    return str(int(value)) if float(value).is_integer() else f"{value:.1f}"


def format_signal_matrix(patterns: list[ProblemPattern]) -> str:
    """
    Format the pattern scores as a markdown table.

    Args:
        patterns (list[ProblemPattern]): Patterns in report order.

    Returns:
        str: Markdown table, or a placeholder line when there are no patterns.
    """
    if not patterns:
        return "_No problem patterns were found._\n"

    header = "| Pattern | Classification | " + " | ".join(SCORE_LABELS.values()) + " |"
    divider = "|" + " --- |" * (len(SCORE_LABELS) + 2)
    rows = []
    for pattern in patterns:
        scores = [
            format_score(getattr(pattern.scores, field)) for field in SCORE_LABELS
        ]
        rows.append(
            f"| {pattern.title} | {pattern.classification.value} | "
            + " | ".join(scores)
            + " |"
        )
    return "\n".join([header, divider, *rows]) + "\n"


def format_pattern_evidence(pattern: ProblemPattern) -> str:
    """
    Format one pattern's description and quotes.

    Args:
        pattern (ProblemPattern): Pattern to render.

    Returns:
        str: Markdown section.
    """
    lines = [
        f"### {pattern.title}",
        "",
        f"**{pattern.classification.value}**",
        "",
        pattern.description.strip(),
        "",
    ]
    for quote in pattern.quotes:
        lines.append(f'> "{quote.text.strip()}"')
        lines.append(f"> -- {quote.source}, {quote.date} ([link]({quote.url}))")
        lines.append("")
    return "\n".join(lines)


def format_research_plan(research_plan: ResearchPlan) -> str:
    """Format the research plan as a markdown appendix."""
    lines = ["## Research Plan", ""]
    for subreddit in research_plan.subreddits:
        queries = ", ".join(subreddit.queries) or "-"
        lines.append(f"- **{subreddit.name}**: {queries}")
    groups = (
        ("Software categories", research_plan.software_categories),
        ("Competitor apps", research_plan.competitor_apps),
        ("Search strings", research_plan.search_strings),
        ("Niche forums", research_plan.niche_forums),
    )
    for label, values in groups:
        lines.append(f"- {label}: {', '.join(values) if values else '-'}")
    return "\n".join(lines) + "\n"


def render_report_markdown(
    market: str,
    report: SignalReport,
    research_plan: ResearchPlan | None = None,
) -> str:
    """
    Render a full signal report as markdown.

    Strong signals are listed first, then weak signals, then noise.

    Args:
        market (str): Market description.
        report (SignalReport): Final report.
        research_plan (ResearchPlan | None): Optional plan to append.

    Returns:
        str: Markdown document.
    """
    order = {
        Classification.STRONG_SIGNAL: 0,
        Classification.WEAK_SIGNAL: 1,
        Classification.NOISE: 2,
    }
    patterns = sorted(report.patterns, key=lambda p: order[p.classification])

    parts = [
        f"# {build_report_title(market)}\n",
        "## Executive Summary\n",
        report.executive_summary.strip() + "\n",
        "## Signal Matrix\n",
        format_signal_matrix(patterns),
    ]
    if patterns:
        parts.append("## Detailed Evidence\n")
        parts.extend(format_pattern_evidence(pattern) for pattern in patterns)
    if report.next_steps:
        parts.append("## Next Steps\n")
        parts.append(
            "\n".join(
                f"{index + 1}. {step}" for index, step in enumerate(report.next_steps)
            )
            + "\n"
        )
    if research_plan is not None:
        parts.append(format_research_plan(research_plan))
    return "\n".join(parts)
