"""Environment-driven runtime settings.

Environment variables:
    GEMINI_API_KEY, GEMINI_MODEL, GEMINI_API_URL
    RECEIPTFLOW_AI_TIMEOUT: seconds allowed for the AI call (default 30)
    RECEIPTFLOW_AI_TEMPERATURE: sampling temperature (default 0.1)
    RECEIPTFLOW_DISABLE_AI: "1" forces the rule-based path
    OCR_PROVIDER: "google" (default) or "ocrspace"
    GOOGLE_VISION_API_KEY, OCRSPACE_API_KEY
    RECEIPTFLOW_OCR_TIMEOUT: seconds allowed for the OCR call (default 60)
    DATABASE_URL: SQLAlchemy URL (default: SQLite file under data/)
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from receiptflow.runtime.paths import get_paths

DEFAULT_GEMINI_MODEL = "gemini-1.5-flash"
DEFAULT_GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_AI_TIMEOUT = 30.0
DEFAULT_AI_TEMPERATURE = 0.1
DEFAULT_OCR_TIMEOUT = 60.0


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


@dataclass(frozen=True)
class Settings:
    """Resolved runtime configuration."""

    gemini_api_key: str | None
    gemini_model: str
    gemini_api_url: str
    ai_timeout: float
    ai_temperature: float
    ai_enabled: bool
    ocr_provider: str
    google_vision_api_key: str | None
    ocrspace_api_key: str | None
    ocr_timeout: float
    database_url: str


def load_settings() -> Settings:
    """Build Settings from the current environment."""
    database_url = os.environ.get("DATABASE_URL") or f"sqlite:///{get_paths().database}"
    return Settings(
        gemini_api_key=os.environ.get("GEMINI_API_KEY") or None,
        gemini_model=os.environ.get("GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
        gemini_api_url=os.environ.get("GEMINI_API_URL", DEFAULT_GEMINI_API_URL).rstrip("/"),
        ai_timeout=_float_env("RECEIPTFLOW_AI_TIMEOUT", DEFAULT_AI_TIMEOUT),
        ai_temperature=_float_env("RECEIPTFLOW_AI_TEMPERATURE", DEFAULT_AI_TEMPERATURE),
        ai_enabled=os.environ.get("RECEIPTFLOW_DISABLE_AI", "0") != "1",
        ocr_provider=os.environ.get("OCR_PROVIDER", "google").strip().lower(),
        google_vision_api_key=os.environ.get("GOOGLE_VISION_API_KEY") or None,
        ocrspace_api_key=os.environ.get("OCRSPACE_API_KEY") or None,
        ocr_timeout=_float_env("RECEIPTFLOW_OCR_TIMEOUT", DEFAULT_OCR_TIMEOUT),
        database_url=database_url,
    )


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the process-wide Settings, loading them on first use."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Clear cached settings so the next get_settings() re-reads the environment."""
    global _settings
    _settings = None
