"""Pydantic schemas and backend response schemas for the research pipeline."""

import logging
import math
from datetime import datetime
from enum import StrEnum
from pathlib import Path
from typing import Any

from google.genai import types
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

SCORE_MIN = 1.0
SCORE_MAX = 5.0


class WireModel(BaseModel):
    """Immutable model with camelCase wire aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump to the camelCase JSON shape used by the backend."""
        return self.model_dump(by_alias=True, mode="json")


class SubredditTarget(WireModel):
    """A community to search and the queries to run against it."""

    name: str = Field(..., description="Subreddit name, e.g. 'r/gymowners'.")
    queries: list[str] = Field(..., description="Search queries for this subreddit.")


class ResearchPlan(WireModel):
    """Stage 1 output: where and what to search."""

    subreddits: list[SubredditTarget]
    software_categories: list[str] = Field(
        ..., description="Review-platform categories, e.g. 'CRM software'."
    )
    competitor_apps: list[str]
    search_strings: list[str]
    niche_forums: list[str]


class Classification(StrEnum):
    STRONG_SIGNAL = "Strong Signal"
    WEAK_SIGNAL = "Weak Signal"
    NOISE = "Noise"


class PatternScores(WireModel):
    """1-5 scores for a problem pattern; out-of-range values are clamped."""

    frequency: float
    desperation: float
    willingness_to_pay: float
    trend: float

    @field_validator("frequency", "desperation", "willingness_to_pay", "trend")
    @classmethod
    def clamp_score(cls, value: float) -> float:
        """Clamp scores into the 1-5 rubric range."""
        if not math.isfinite(value):
            raise ValueError(f"score must be a finite number, got {value}")
        clamped = min(max(value, SCORE_MIN), SCORE_MAX)
        if clamped != value:
            logger.warning("Score %s outside 1-5, clamped to %s", value, clamped)
        return clamped


class Quote(WireModel):
    """Direct quote backing a problem pattern."""

    text: str
    source: str
    date: str
    url: str


class ProblemPattern(WireModel):
    """A recurring complaint pattern with scores and evidence."""

    id: str
    title: str
    description: str
    scores: PatternScores
    classification: Classification
    quotes: list[Quote]

    @property
    def is_signal(self) -> bool:
        return self.classification != Classification.NOISE


class SignalReport(WireModel):
    """Stage 3 output: the final signal report."""

    executive_summary: str
    patterns: list[ProblemPattern]
    next_steps: list[str]

    @model_validator(mode="after")
    def check_unique_pattern_ids(self) -> "SignalReport":
        """Pattern ids must be unique within a report."""
        seen: set[str] = set()
        for pattern in self.patterns:
            if pattern.id in seen:
                raise ValueError(f"Duplicate pattern id: {pattern.id}")
            seen.add(pattern.id)
        return self

    def signals(self) -> list[ProblemPattern]:
        """Patterns classified as strong or weak signal, in report order."""
        return [pattern for pattern in self.patterns if pattern.is_signal]

    def noise(self) -> list[ProblemPattern]:
        """Patterns classified as noise, in report order."""
        return [pattern for pattern in self.patterns if not pattern.is_signal]


class UserProfile(BaseModel):
    """Profile row from the profile store."""

    model_config = ConfigDict(extra="ignore")

    id: str
    first_name: str | None = None
    last_name: str | None = None
    email: str = ""
    credits_used: int = 0
    is_pro: bool = False
    created_at: datetime | None = None


class AuthSession(BaseModel):
    """Signed-in session returned by the profile store."""

    access_token: str
    user_id: str
    email: str | None = None


class CliArgs(BaseModel):
    """CLI arguments."""

    market: str
    model: str | None = None
    output: Path | None = None
    user_id: str | None = None
    timeout: float | None = Field(default=None, gt=0)

    @field_validator("market")
    @classmethod
    def require_market(cls, value: str) -> str:
        """Reject blank market descriptions."""
        value = value.strip()
        if not value:
            raise ValueError("market description must not be empty")
        return value


def _string_array() -> dict[str, Any]:
    return {"type": types.Type.ARRAY, "items": {"type": types.Type.STRING}}


RESEARCH_PLAN_SCHEMA: dict[str, Any] = {
    "type": types.Type.OBJECT,
    "properties": {
        "subreddits": {
            "type": types.Type.ARRAY,
            "items": {
                "type": types.Type.OBJECT,
                "properties": {
                    "name": {"type": types.Type.STRING},
                    "queries": _string_array(),
                },
                "required": ["name", "queries"],
            },
        },
        "softwareCategories": _string_array(),
        "competitorApps": _string_array(),
        "searchStrings": _string_array(),
        "nicheForums": _string_array(),
    },
    "required": [
        "subreddits",
        "softwareCategories",
        "competitorApps",
        "searchStrings",
        "nicheForums",
    ],
}

SIGNAL_REPORT_SCHEMA: dict[str, Any] = {
    "type": types.Type.OBJECT,
    "properties": {
        "executiveSummary": {"type": types.Type.STRING},
        "patterns": {
            "type": types.Type.ARRAY,
            "items": {
                "type": types.Type.OBJECT,
                "properties": {
                    "id": {"type": types.Type.STRING},
                    "title": {"type": types.Type.STRING},
                    "description": {"type": types.Type.STRING},
                    "scores": {
                        "type": types.Type.OBJECT,
                        "properties": {
                            "frequency": {"type": types.Type.NUMBER},
                            "desperation": {"type": types.Type.NUMBER},
                            "willingnessToPay": {"type": types.Type.NUMBER},
                            "trend": {"type": types.Type.NUMBER},
                        },
                        "required": [
                            "frequency",
                            "desperation",
                            "willingnessToPay",
                            "trend",
                        ],
                    },
                    "classification": {"type": types.Type.STRING},
                    "quotes": {
                        "type": types.Type.ARRAY,
                        "items": {
                            "type": types.Type.OBJECT,
                            "properties": {
                                "text": {"type": types.Type.STRING},
                                "source": {"type": types.Type.STRING},
                                "date": {"type": types.Type.STRING},
                                "url": {"type": types.Type.STRING},
                            },
                            "required": ["text", "source", "date", "url"],
                        },
                    },
                },
                "required": [
                    "id",
                    "title",
                    "description",
                    "scores",
                    "classification",
                    "quotes",
                ],
            },
        },
        "nextSteps": _string_array(),
    },
    "required": ["executiveSummary", "patterns", "nextSteps"],
}
