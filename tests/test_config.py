from __future__ import annotations

import pytest

from recipe_ingest.config import (
    DEFAULT_NUTRITION_API,
    ConfigError,
    load_crawler_settings,
    load_enrichment_settings,
)

DB_ENV = {
    "POSTGRES_HOST": "db.internal",
    "POSTGRES_DATABASE": "mealplanner",
    "POSTGRES_USER": "crawler",
    "POSTGRES_PASSWORD": "hemligt",
}


def test_crawler_requires_every_db_var():
    with pytest.raises(ConfigError) as exc:
        load_crawler_settings({"POSTGRES_HOST": "db.internal"})
    msg = str(exc.value)
    for key in ("POSTGRES_DATABASE", "POSTGRES_USER", "POSTGRES_PASSWORD"):
        assert key in msg


def test_crawler_defaults():
    s = load_crawler_settings(DB_ENV)
    assert (s.db_host, s.db_name, s.db_user, s.db_password) == ("db.internal", "mealplanner", "crawler", "hemligt")
    assert s.db_port == 5432
    assert s.db_ssl is False
    assert s.crawl_min_delay == 1.5
    assert s.match_threshold == 30.0
    assert s.nutrition_api_url == DEFAULT_NUTRITION_API
    assert s.log_json is False


def test_overrides():
    s = load_crawler_settings({
        **DB_ENV,
        "POSTGRES_PORT": "6543",
        "POSTGRES_SSL": "TRUE",
        "CRAWL_MIN_DELAY": "3",
        "MATCH_THRESHOLD": "45.5",
        "LIVSMEDELSVERKET_API": "http://localhost:9000/api/",
        "LOG_LEVEL": "debug",
        "LOG_FORMAT": "json",
    })
    assert s.db_port == 6543
    assert s.db_ssl is True
    assert s.crawl_min_delay == 3.0
    assert s.match_threshold == 45.5
    assert s.nutrition_api_url == "http://localhost:9000/api"
    assert s.log_level == "DEBUG"
    assert s.log_json is True


def test_bad_number_is_config_error():
    with pytest.raises(ConfigError, match="POSTGRES_PORT"):
        load_crawler_settings({**DB_ENV, "POSTGRES_PORT": "femtio"})


def test_enrichment_falls_back_to_local_database():
    s = load_enrichment_settings({})
    assert (s.db_host, s.db_name, s.db_user, s.db_password) == (
        "localhost", "mealplanner_dev", "mealplanner", "dev_password_123",
    )


def test_enrichment_uses_env_when_present():
    s = load_enrichment_settings({"POSTGRES_HOST": "db.internal", "ENRICH_DELAY": "0"})
    assert s.db_host == "db.internal"
    assert s.db_name == "mealplanner_dev"
    assert s.enrich_delay == 0.0


def test_unknown_log_level_is_config_error():
    with pytest.raises(ConfigError, match="LOG_LEVEL"):
        load_crawler_settings({**DB_ENV, "LOG_LEVEL": "verbose"})
    with pytest.raises(ConfigError, match="LOG_LEVEL"):
        load_enrichment_settings({"LOG_LEVEL": "loud"})


def test_blank_log_level_defaults_to_info():
    assert load_enrichment_settings({"LOG_LEVEL": "  "}).log_level == "INFO"
