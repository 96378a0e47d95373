"""Process-wide settings pulled from the environment (and an optional .env)."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List

from dotenv import load_dotenv

from app.logs import get_logger

# Load .env file if present
load_dotenv()

logger = get_logger(__name__)


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r; using %s", name, raw, default)
        return default


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r; using %s", name, raw, default)
        return default


def _origins_env(name: str) -> List[str]:
    raw = os.getenv(name) or "*"
    origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    return origins or ["*"]


@dataclass(frozen=True)
class Settings:
    mapbox_token: str = ""
    openai_api_key: str = ""
    model: str = "gpt-4o-mini"
    temperature: float = 0.7
    max_output_tokens: int = 8192
    geocode_timeout: float = 10.0
    generation_timeout: float = 60.0
    allowed_origins: List[str] = field(default_factory=lambda: ["*"])
    api_url: str = "http://localhost:8000"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Read settings once per process. Missing secrets are left empty."""
    return Settings(
        mapbox_token=os.getenv("MAPBOX_ACCESS_TOKEN") or "",
        openai_api_key=os.getenv("OPENAI_API_KEY") or "",
        model=os.getenv("TRIP_PLANNER_MODEL") or "gpt-4o-mini",
        temperature=_float_env("TRIP_PLANNER_TEMPERATURE", 0.7),
        max_output_tokens=_int_env("TRIP_PLANNER_MAX_OUTPUT_TOKENS", 8192),
        geocode_timeout=_float_env("TRIP_PLANNER_GEOCODE_TIMEOUT", 10.0),
        generation_timeout=_float_env("TRIP_PLANNER_GENERATION_TIMEOUT", 60.0),
        allowed_origins=_origins_env("TRIP_PLANNER_ALLOWED_ORIGINS"),
        api_url=(os.getenv("TRIP_PLANNER_API_URL") or "http://localhost:8000").rstrip("/"),
    )
