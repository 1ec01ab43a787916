"""
Environment configuration for the crawler and the enrichment job.

The two jobs read the same variables but treat missing database settings
differently:
    - crawler:    POSTGRES_HOST / _DATABASE / _USER / _PASSWORD are required;
                  anything missing is a ConfigError naming every gap.
    - enrichment: missing values fall back to the local development database.

A `.env` file in the working directory is loaded first (python-dotenv).
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_NUTRITION_API = "https://dataportal.livsmedelsverket.se/api/v1"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

REQUIRED_DB_VARS = ("POSTGRES_HOST", "POSTGRES_DATABASE", "POSTGRES_USER", "POSTGRES_PASSWORD")

LOCAL_DB_DEFAULTS = {
    "POSTGRES_HOST": "localhost",
    "POSTGRES_DATABASE": "mealplanner_dev",
    "POSTGRES_USER": "mealplanner",
    "POSTGRES_PASSWORD": "dev_password_123",
}


class ConfigError(RuntimeError):
    """Missing or malformed configuration; fatal at startup."""


@dataclass
class Settings:
    db_host: str
    db_name: str
    db_user: str
    db_password: str
    db_port: int = 5432
    db_ssl: bool = False
    crawl_min_delay: float = 1.5
    http_timeout: float = 15.0
    enrich_delay: float = 0.2
    match_threshold: float = 30.0
    nutrition_api_url: str = DEFAULT_NUTRITION_API
    log_level: str = "INFO"
    log_json: bool = False


def _number(env: Dict[str, str], key: str, default, cast=float):
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw.strip())
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {raw!r}")


def _log_level(env: Dict[str, str]) -> str:
    level = (env.get("LOG_LEVEL") or "").strip().upper() or "INFO"
    if level not in LOG_LEVELS:
        raise ConfigError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {env.get('LOG_LEVEL')!r}")
    return level


def _build(env: Dict[str, str], db: Dict[str, str]) -> Settings:
    return Settings(
        db_host=db["POSTGRES_HOST"],
        db_name=db["POSTGRES_DATABASE"],
        db_user=db["POSTGRES_USER"],
        db_password=db["POSTGRES_PASSWORD"],
        db_port=_number(env, "POSTGRES_PORT", 5432, int),
        db_ssl=env.get("POSTGRES_SSL", "").strip().lower() == "true",
        crawl_min_delay=_number(env, "CRAWL_MIN_DELAY", 1.5),
        http_timeout=_number(env, "HTTP_TIMEOUT", 15.0),
        enrich_delay=_number(env, "ENRICH_DELAY", 0.2),
        match_threshold=_number(env, "MATCH_THRESHOLD", 30.0),
        nutrition_api_url=(env.get("LIVSMEDELSVERKET_API") or DEFAULT_NUTRITION_API).rstrip("/"),
        log_level=_log_level(env),
        log_json=(env.get("LOG_FORMAT") or "").strip().lower() == "json",
    )


def load_crawler_settings(env: Optional[Dict[str, str]] = None) -> Settings:
    env = dict(os.environ if env is None else env)
    missing = [k for k in REQUIRED_DB_VARS if not env.get(k)]
    if missing:
        raise ConfigError(
            "Missing database configuration: " + ", ".join(missing)
            + ". Set POSTGRES_HOST, POSTGRES_PORT, POSTGRES_DATABASE, POSTGRES_USER and POSTGRES_PASSWORD."
        )
    return _build(env, {k: env[k] for k in REQUIRED_DB_VARS})


def load_enrichment_settings(env: Optional[Dict[str, str]] = None) -> Settings:
    env = dict(os.environ if env is None else env)
    db = {k: env.get(k) or default for k, default in LOCAL_DB_DEFAULTS.items()}
    return _build(env, db)
