from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

import streamlit as st

CONFIG_FILE_NAME = "settings.json"
ENV_DATA_DIR = "PGVMS_DATA_DIR"
ENV_PREFIX = "PGVMS_"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    currency_symbol: str = "₹"
    expiring_soon_days: int = 3
    forecast_model: str = "gemini-2.5-flash"
    forecast_api_key: Optional[str] = None
    forecast_timeout_s: float = 30.0
    log_level: str = "INFO"


def _default_data_dir() -> Path:
    return Path.home() / ".pgvms"


def _load_persisted_settings(data_dir: Path) -> dict:
    cfg = data_dir / CONFIG_FILE_NAME
    if cfg.exists():
        try:
            return json.loads(cfg.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Ignoring unreadable settings file %s", cfg)
            return {}
    return {}


def persist_settings(data_dir: Path, **values) -> Path:
    """
    Writes (merges) values into <data_dir>/settings.json and returns its path.
    The API key is never written to disk.
    """
    data_dir = Path(data_dir).expanduser().resolve()
    data_dir.mkdir(parents=True, exist_ok=True)

    payload = _load_persisted_settings(data_dir)
    payload.update({k: v for k, v in values.items() if k != "forecast_api_key"})

    cfg = data_dir / CONFIG_FILE_NAME
    cfg.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return cfg


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    # Priority order:
    # 1) Environment variables (PGVMS_*)
    # 2) Persisted settings.json in the data directory
    # 3) Defaults
    env = os.environ if env is None else env

    if env.get(ENV_DATA_DIR):
        data_dir = Path(env[ENV_DATA_DIR]).expanduser().resolve()
    else:
        data_dir = _default_data_dir()

    persisted = _load_persisted_settings(data_dir)

    def pick(name: str, default):
        raw = env.get(ENV_PREFIX + name.upper())
        if raw is not None and raw != "":
            return raw
        return persisted.get(name, default)

    api_key = env.get("PGVMS_FORECAST_API_KEY") or env.get("GEMINI_API_KEY") or None

    try:
        expiring_soon_days = int(pick("expiring_soon_days", 3))
        forecast_timeout_s = float(pick("forecast_timeout_s", 30.0))
    except (TypeError, ValueError):
        raise ValueError("expiring_soon_days and forecast_timeout_s must be numbers.")
    if expiring_soon_days < 0:
        raise ValueError("expiring_soon_days must be >= 0.")

    return Settings(
        data_dir=data_dir,
        currency_symbol=str(pick("currency_symbol", "₹")),
        expiring_soon_days=expiring_soon_days,
        forecast_model=str(pick("forecast_model", "gemini-2.5-flash")),
        forecast_api_key=api_key,
        forecast_timeout_s=forecast_timeout_s,
        log_level=str(pick("log_level", "INFO")).upper(),
    )


@st.cache_resource
def get_settings() -> Settings:
    return load_settings()
