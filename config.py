"""
Runtime configuration for the MediGuardia hospital locator
Values come from the environment (optionally a local .env file)
"""

import os
from dataclasses import dataclass
from typing import List, Optional

from dotenv import load_dotenv

DEFAULT_OVERPASS_URL = "https://overpass-api.de/api/interpreter"
DEFAULT_FRONTEND_URL = "https://mediguardia.vercel.app"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass
class Settings:
    """Service configuration resolved from environment variables."""
    overpass_url: str = DEFAULT_OVERPASS_URL
    overpass_timeout: float = 30.0
    overpass_min_interval: float = 0.5
    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None
    frontend_url: str = DEFAULT_FRONTEND_URL
    hospital_api_base_url: Optional[str] = None
    log_level: str = "INFO"
    log_json: bool = True
    port: int = 3001

    @property
    def cors_origins(self) -> List[str]:
        origins = ["http://localhost:3000", "http://localhost:5173", self.frontend_url]
        return [origin for origin in origins if origin]

    @property
    def identity_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)


def get_settings() -> Settings:
    """Load settings from the environment, reading a local .env if present."""
    load_dotenv()

    overpass_url = (os.getenv("OVERPASS_URL") or "").strip() or DEFAULT_OVERPASS_URL
    port_raw = os.getenv("PORT", "3001")
    try:
        port = int(port_raw)
    except ValueError:
        port = 3001

    return Settings(
        overpass_url=overpass_url,
        overpass_timeout=_env_float("OVERPASS_TIMEOUT", 30.0),
        overpass_min_interval=_env_float("OVERPASS_MIN_INTERVAL", 0.5),
        supabase_url=(os.getenv("SUPABASE_URL") or "").strip() or None,
        supabase_anon_key=(os.getenv("SUPABASE_ANON_KEY") or "").strip() or None,
        frontend_url=(os.getenv("FRONTEND_URL") or "").strip() or DEFAULT_FRONTEND_URL,
        hospital_api_base_url=(os.getenv("HOSPITAL_API_BASE_URL") or "").strip() or None,
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_json=_env_bool("LOG_JSON", True),
        port=port,
    )
