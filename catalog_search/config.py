"""Application configuration and constants."""
from __future__ import annotations

import os
from dataclasses import dataclass


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value is not None else default


@dataclass(frozen=True)
class Settings:
    """Simple settings container with environment variable overrides."""

    es_host: str = _get_env("ES_HOST", "http://localhost:9200")
    es_index: str = _get_env("ES_INDEX", "products_current")
    es_request_timeout: float = float(_get_env("ES_REQUEST_TIMEOUT", "5"))
    es_search_timeout: str = _get_env("ES_SEARCH_TIMEOUT", "15s")
    es_health_timeout: int = int(_get_env("ES_HEALTH_TIMEOUT", "2"))
    health_ttl_healthy: float = float(_get_env("HEALTH_TTL_HEALTHY", "60"))
    health_ttl_unhealthy: float = float(_get_env("HEALTH_TTL_UNHEALTHY", "10"))
    health_backoff_threshold: int = int(_get_env("HEALTH_BACKOFF_THRESHOLD", "5"))
    health_backoff_interval: float = float(_get_env("HEALTH_BACKOFF_INTERVAL", "50"))
    database_url: str = _get_env("DATABASE_URL", "sqlite:///catalog.db")
    redis_host: str = _get_env("REDIS_HOST", "localhost")
    redis_port: int = int(_get_env("REDIS_PORT", "6379"))
    cache_ttl_seconds: int = int(_get_env("CACHE_TTL_SECONDS", "60"))
    default_limit: int = int(_get_env("DEFAULT_LIMIT", "20"))
    max_limit: int = int(_get_env("MAX_LIMIT", "100"))
    log_level: str = _get_env("LOG_LEVEL", "INFO")


settings = Settings()
