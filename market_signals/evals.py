"""Evaluation utilities for signal reports."""

from typing import Any

from market_signals.schemas import Classification, SignalReport

MIN_QUOTES_PER_PATTERN = 3
MAX_QUOTES_PER_PATTERN = 5


def _compute_classification_counts(report: SignalReport) -> dict[str, int]:
    """
    Count patterns per classification.

    Args:
        report (SignalReport): Report to evaluate.

    Returns:
        dict[str, int]: Classification -> count, including zero counts.
    """
    counts = {classification.value: 0 for classification in Classification}
    for pattern in report.patterns:
        counts[pattern.classification.value] += 1
    return counts


def _compute_quote_coverage(report: SignalReport) -> dict[str, Any]:
    """
    Check the 3-5 quotes-per-pattern convention.

    Args:
        report (SignalReport): Report to evaluate.

    Returns:
        dict[str, Any]: Quote totals and ids of patterns outside the range.
    """
    outside_range = [
        pattern.id
        for pattern in report.patterns
        if not MIN_QUOTES_PER_PATTERN <= len(pattern.quotes) <= MAX_QUOTES_PER_PATTERN
    ]
    unbacked_signals = [
        pattern.id for pattern in report.signals() if not pattern.quotes
    ]
    return {
        "total_quotes": sum(len(pattern.quotes) for pattern in report.patterns),
        "patterns_outside_quote_range": outside_range,
        "signals_without_quotes": unbacked_signals,
    }


def _compute_source_diversity(report: SignalReport) -> dict[str, Any]:
    """
    Compute source diversity metrics from pattern quotes.

    Args:
        report (SignalReport): Report to evaluate.

    Returns:
        dict[str, Any]: Source diversity metrics.
    """
    overall_sources: set[str] = set()
    per_pattern: dict[str, int] = {}

    for pattern in report.patterns:
        sources = {quote.source.strip() for quote in pattern.quotes if quote.source}
        overall_sources.update(sources)
        per_pattern[pattern.id] = len(sources)

    return {
        "overall_unique_sources": len(overall_sources),
        "per_pattern": per_pattern,
    }


def _compute_average_scores(report: SignalReport) -> dict[str, float]:
    if not report.patterns:
        return {}
    fields = ("frequency", "desperation", "willingness_to_pay", "trend")
    count = len(report.patterns)
    return {
        field: round(
            sum(getattr(pattern.scores, field) for pattern in report.patterns) / count,
            2,
        )
        for field in fields
    }


def report_eval(report: SignalReport) -> dict[str, Any]:
    """
    Build evaluation metrics for a signal report.

    Args:
        report (SignalReport): Report to evaluate.

    Returns:
        dict[str, Any]: Evaluation metrics.
    """
    return {
        "pattern_count": len(report.patterns),
        "classification_counts": _compute_classification_counts(report),
        "average_scores": _compute_average_scores(report),
        "quote_coverage": _compute_quote_coverage(report),
        "source_diversity": _compute_source_diversity(report),
    }
