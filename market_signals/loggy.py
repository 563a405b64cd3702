"""Logging configuration for the application."""

import logging
import warnings


def setup_logging(level: int | str = logging.INFO) -> logging.Logger:
    """Setup basic logging and return the package logger."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # Suppress specific warnings
    warnings.filterwarnings(
        "ignore",
        message=".*EXPERIMENTAL.*",
        category=UserWarning,
    )
    # Suppress noisy client logs
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("google_genai").setLevel(logging.WARNING)
    logging.getLogger("google_genai.models").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.CRITICAL)
    return logging.getLogger("market_signals")
