"""Core utilities for the market signals pipeline."""

import json
import re
import uuid
from datetime import datetime
from pathlib import Path
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from market_signals.errors import ResponseParseError, SchemaViolationError

ModelT = TypeVar("ModelT", bound=BaseModel)

OUTPUTS_DIR = Path("outputs")


def extract_json_payload(raw_text: str) -> str:
    """
    Extract a JSON payload from text that may include prose or fenced code.

    Args:
        raw_text (str): Raw text possibly containing a JSON block.

    Returns:
        str: Extracted JSON payload as a string.
    """
    text = raw_text.strip()
    if not text:
        return text

    fence_start = text.find("```")
    if fence_start != -1:
        fence_end = text.find("```", fence_start + 3)
        if fence_end != -1:
            fenced = text[fence_start + 3 : fence_end]
            return fenced.strip().removeprefix("json").strip()

    return text


def parse_structured(raw_text: str, model_class: type[ModelT]) -> ModelT:
    """
    Parse backend JSON output and validate it against a model.

    Args:
        raw_text (str): Raw backend text.
        model_class (type[ModelT]): Pydantic model the payload must satisfy.

    Returns:
        ModelT: Validated model instance.

    Raises:
        ResponseParseError: If the text is not valid JSON.
        SchemaViolationError: If the JSON does not match the model.
    """
    payload = extract_json_payload(raw_text)
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise ResponseParseError(
            f"Could not parse {model_class.__name__} JSON: {exc}"
        ) from exc

    try:
        return model_class.model_validate(data)
    except ValidationError as exc:
        raise SchemaViolationError(
            f"{model_class.__name__} does not match schema: "
            f"{exc.error_count()} validation error(s): {exc.errors()[0]['msg']}"
        ) from exc


def normalize_market(market: str) -> str:
    """
    Normalize a market description for comparison.

    Args:
        market (str): Free-text market description.

    Returns:
        str: Casefolded text with collapsed whitespace.
    """
    return " ".join(market.split()).casefold()


def _slugify(value: str, max_length: int = 48) -> str:
    slug = re.sub(r"[^a-z0-9]+", "_", normalize_market(value)).strip("_")
    return slug[:max_length].rstrip("_") or "market"


def get_output_path(market: str, outputs_dir: Path | None = None) -> Path:
    """
    Create and return the output directory for a pipeline run.

    Args:
        market (str): Market description used to namespace outputs.
        outputs_dir (Path | None): Root directory; defaults to ./outputs.

    Returns:
        Path: Path to the output directory for this run.
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    run_id = f"{timestamp}_{uuid.uuid4().hex[:8]}"
    output_dir = (outputs_dir or OUTPUTS_DIR) / _slugify(market) / run_id
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir
