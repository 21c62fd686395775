"""
Configuration settings for the IKEA Lookup Proxy.
"""

import os
from typing import List


def _csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings:
    """Application configuration settings"""

    PORT: int = int(os.getenv("PORT", "8080"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Defaults (can be overridden per-request by query params)
    DEFAULT_MARKET: str = os.getenv("DEFAULT_MARKET", "au").lower()
    DEFAULT_LANG: str = os.getenv("DEFAULT_LANG", "en").lower()
    DEFAULT_STORE: str = os.getenv("DEFAULT_STORE", "556")

    # Upstream cache
    CACHE_TTL_SECONDS: float = float(os.getenv("CACHE_TTL_SECONDS", "60"))
    CACHE_MAX_ENTRIES: int = int(os.getenv("CACHE_MAX_ENTRIES", "500"))
    STORE_HOURS_TTL_SECONDS: float = float(os.getenv("STORE_HOURS_TTL_SECONDS", str(6 * 60 * 60)))

    # Upstream HTTP
    UPSTREAM_TIMEOUT_SECONDS: float = float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "10"))
    ERROR_EXCERPT_LENGTH: int = 400
    USER_AGENT: str = os.getenv("USER_AGENT", "ikea-lookup/1.0 (+https://localhost)")
    SHOP_API_BASE_URL: str = os.getenv("SHOP_API_BASE_URL", "https://shop.api.ingka.ikea.com")
    AVAILABILITY_API_BASE_URL: str = os.getenv("AVAILABILITY_API_BASE_URL", "https://api.ingka.ikea.com")
    WEB_BASE_URL: str = os.getenv("WEB_BASE_URL", "https://www.ikea.com")

    # Client identity for the buying-options API; leaving it empty disables that resource
    IKEA_CLIENT_ID: str = os.getenv("IKEA_CLIENT_ID", "")

    # Redis (upstream statistics and article popularity only)
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    REDIS_SOCKET_TIMEOUT_SECONDS: float = float(os.getenv("REDIS_SOCKET_TIMEOUT_SECONDS", "0.25"))

    # Rate Limiting Configuration
    RATE_LIMIT: str = os.getenv("RATE_LIMIT", "60/minute")

    # Circuit Breaker Configuration (buying-options resource)
    CIRCUIT_FAILURE_THRESHOLD: int = int(os.getenv("CIRCUIT_FAILURE_THRESHOLD", "3"))
    CIRCUIT_COOLDOWN_SECONDS: int = int(os.getenv("CIRCUIT_COOLDOWN_SECONDS", "30"))

    # Background Job Configuration
    # Capped at CACHE_TTL_SECONDS when the scheduler starts
    PREWARM_INTERVAL_SECONDS: float = float(os.getenv("PREWARM_INTERVAL_SECONDS", str(CACHE_TTL_SECONDS)))
    PERFORMANCE_LOG_INTERVAL_MINUTES: int = int(os.getenv("PERFORMANCE_LOG_INTERVAL_MINUTES", "5"))
    WATCHED_ARTICLES: List[str] = _csv(os.getenv("WATCHED_ARTICLES", ""))
    POPULAR_ARTICLES_LIMIT: int = int(os.getenv("POPULAR_ARTICLES_LIMIT", "10"))


settings = Settings()
