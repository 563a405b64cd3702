"""Tests for settings and credential resolution."""

import pytest

from market_signals.config import Settings, resolve_gemini_api_key
from market_signals.errors import ConfigurationError
from market_signals.models import DEFAULT_MODEL, GeminiModels, resolve_model


def test_resolve_key_strips_whitespace(monkeypatch) -> None:
    monkeypatch.setenv("GEMINI_API_KEY", "  real-key ")
    assert resolve_gemini_api_key() == "real-key"


def test_configuration_error_names_secret(monkeypatch) -> None:
    monkeypatch.setenv("GEMINI_API_KEY", "MY_GEMINI_API_KEY")
    with pytest.raises(ConfigurationError) as excinfo:
        resolve_gemini_api_key()
    assert excinfo.value.secret == "GEMINI_API_KEY"


def test_from_env_reads_vite_fallbacks(monkeypatch) -> None:
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_ANON_KEY", raising=False)
    monkeypatch.setenv("VITE_SUPABASE_URL", "https://project.supabase.co")
    monkeypatch.setenv("VITE_SUPABASE_ANON_KEY", "anon")
    monkeypatch.setenv("MARKET_SIGNALS_TIMEOUT_S", "30")
    monkeypatch.setenv("GEMINI_MODEL", "gemini-2.5-pro")

    settings = Settings.from_env(dotenv=False)

    assert settings.supabase_url == "https://project.supabase.co"
    assert settings.supabase_anon_key == "anon"
    assert settings.request_timeout_s == 30
    assert settings.gemini_model == GeminiModels.GEMINI_25_PRO
    assert settings.profile_store_configured


def test_missing_secrets(monkeypatch) -> None:
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    settings = Settings(supabase_url="https://placeholder.supabase.co")

    assert settings.missing_secrets() == [
        "GEMINI_API_KEY",
        "SUPABASE_URL",
        "SUPABASE_ANON_KEY",
    ]
    assert not settings.profile_store_configured


def test_missing_secrets_empty_when_configured(monkeypatch) -> None:
    monkeypatch.setenv("GEMINI_API_KEY", "key")
    settings = Settings(supabase_url="https://project.supabase.co", supabase_anon_key="a")

    assert settings.missing_secrets() == []


def test_resolve_model_defaults_for_unknown_names() -> None:
    assert resolve_model("models/gemini-2.5-flash") == GeminiModels.GEMINI_25_FLASH
    assert resolve_model("GEMINI-2.5-FLASH") == GeminiModels.GEMINI_25_FLASH
    assert resolve_model("gpt-4o") == DEFAULT_MODEL
    assert resolve_model(None) == DEFAULT_MODEL
