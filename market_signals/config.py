"""Process configuration loaded from the environment and an optional .env file."""

import logging
import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from market_signals.errors import ConfigurationError
from market_signals.models import DEFAULT_MODEL, GeminiModels, resolve_model

logger = logging.getLogger(__name__)

GEMINI_API_KEY_ENV = "GEMINI_API_KEY"
GEMINI_API_KEY_PLACEHOLDER = "MY_GEMINI_API_KEY"
SUPABASE_PLACEHOLDER_URL = "https://placeholder.supabase.co"


def _first_env(*names: str) -> str:
    """Return the first non-empty environment value among names."""
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return ""


def resolve_gemini_api_key() -> str:
    """
    Resolve the Gemini API key from the process environment.

    Read on every call so a rotated key is picked up without a restart.

    Returns:
        str: The API key.

    Raises:
        ConfigurationError: If the key is absent, empty, the placeholder value,
            or the literal string "undefined".
    """
    api_key = os.getenv(GEMINI_API_KEY_ENV)
    stripped = api_key.strip() if api_key is not None else None

    if not stripped or stripped in (GEMINI_API_KEY_PLACEHOLDER, "undefined"):
        details = {
            "has_key": api_key is not None,
            "is_placeholder": stripped == GEMINI_API_KEY_PLACEHOLDER,
            "is_empty": api_key is not None and not stripped,
            "is_undefined_string": stripped == "undefined",
        }
        logger.error("Gemini auth check failed: %s", details)
        raise ConfigurationError(GEMINI_API_KEY_ENV)

    return stripped


class Settings(BaseModel):
    """Application settings."""

    gemini_model: GeminiModels = DEFAULT_MODEL
    request_timeout_s: float = Field(default=120.0, gt=0)
    supabase_url: str = ""
    supabase_anon_key: str = ""
    free_tier_credit_limit: int = Field(default=3, ge=0)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            dotenv (bool): Load a .env file from the working directory first.

        Returns:
            Settings: Populated settings.
        """
        if dotenv:
            load_dotenv()

        values: dict[str, object] = {
            "gemini_model": resolve_model(os.getenv("GEMINI_MODEL")),
            "supabase_url": _first_env("SUPABASE_URL", "VITE_SUPABASE_URL"),
            "supabase_anon_key": _first_env(
                "SUPABASE_ANON_KEY", "VITE_SUPABASE_ANON_KEY"
            ),
            "log_level": os.getenv("LOG_LEVEL", "INFO").upper(),
        }
        timeout = os.getenv("MARKET_SIGNALS_TIMEOUT_S")
        if timeout:
            values["request_timeout_s"] = float(timeout)
        credit_limit = os.getenv("FREE_TIER_CREDIT_LIMIT")
        if credit_limit:
            values["free_tier_credit_limit"] = int(credit_limit)
        return cls.model_validate(values)

    @property
    def profile_store_configured(self) -> bool:
        return bool(
            self.supabase_url
            and self.supabase_anon_key
            and self.supabase_url != SUPABASE_PLACEHOLDER_URL
        )

    def missing_secrets(self) -> list[str]:
        """
        List the required secrets that are not configured.

        Returns:
            list[str]: Names of missing secrets, empty when fully configured.
        """
        missing = []
        try:
            resolve_gemini_api_key()
        except ConfigurationError:
            missing.append(GEMINI_API_KEY_ENV)
        if not self.supabase_url or self.supabase_url == SUPABASE_PLACEHOLDER_URL:
            missing.append("SUPABASE_URL")
        if not self.supabase_anon_key:
            missing.append("SUPABASE_ANON_KEY")
        return missing
