"""
TOKEN PULSE — Central Configuration
All settings are loaded from environment variables with sensible defaults.
"""
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional


class DataSourceSettings(BaseSettings):
    """Upstream price source endpoints and HTTP retry policy."""
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    dexscreener_base_url: str = Field(
        default="https://api.dexscreener.com",
        validation_alias=AliasChoices("DEXSCREENER_BASE_URL", "dexscreener_base_url"),
    )
    jupiter_search_url: str = Field(
        default="https://lite-api.jup.ag/tokens/v2/search",
        validation_alias=AliasChoices("JUPITER_SEARCH_URL", "jupiter_search_url"),
    )
    jupiter_price_url: str = Field(
        default="https://api.jup.ag/price/v2",
        validation_alias=AliasChoices("JUPITER_PRICE_URL", "jupiter_price_url"),
    )
    chain_id: str = Field(default="solana", validation_alias=AliasChoices("CHAIN_ID", "chain_id"))

    request_timeout_seconds: float = Field(
        default=10.0,
        validation_alias=AliasChoices("REQUEST_TIMEOUT_SECONDS", "request_timeout_seconds"),
    )
    max_retries: int = Field(default=3, validation_alias=AliasChoices("HTTP_MAX_RETRIES", "max_retries"))
    retry_backoff_seconds: float = Field(
        default=1.0,
        validation_alias=AliasChoices("HTTP_RETRY_BACKOFF", "retry_backoff_seconds"),
    )
    jupiter_max_tokens: int = Field(
        default=20,
        validation_alias=AliasChoices("JUPITER_MAX_TOKENS", "jupiter_max_tokens"),
    )


class CacheSettings(BaseSettings):
    """Distributed cache (Redis) and in-process fallback configuration."""
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    redis_url: str = Field(
        default="redis://127.0.0.1:6379/0",
        validation_alias=AliasChoices("REDIS_URL", "redis_url"),
    )
    redis_enabled: bool = Field(default=True, validation_alias=AliasChoices("REDIS_ENABLED", "redis_enabled"))
    socket_timeout_seconds: float = Field(
        default=1.0,
        validation_alias=AliasChoices("REDIS_SOCKET_TIMEOUT", "socket_timeout_seconds"),
    )

    # Snapshot TTL outlives one missed tick
    snapshot_ttl_seconds: int = Field(
        default=30,
        validation_alias=AliasChoices("SNAPSHOT_TTL_SECONDS", "snapshot_ttl_seconds"),
    )
    token_ttl_seconds: int = Field(
        default=60,
        validation_alias=AliasChoices("TOKEN_TTL_SECONDS", "token_ttl_seconds"),
    )
    search_ttl_seconds: int = Field(
        default=60,
        validation_alias=AliasChoices("SEARCH_TTL_SECONDS", "search_ttl_seconds"),
    )
    max_memory_entries: int = Field(
        default=10_000,
        validation_alias=AliasChoices("MEMORY_CACHE_MAX_ENTRIES", "max_memory_entries"),
    )


class SchedulerSettings(BaseSettings):
    """Refresh loop cadence and the curated worker query list."""
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    refresh_interval_seconds: float = Field(
        default=15.0,
        validation_alias=AliasChoices("REFRESH_INTERVAL", "refresh_interval_seconds"),
    )
    worker_queries: List[str] = Field(
        default=["SOL", "BONK", "WIF", "JUP", "RAY", "POPCAT", "MEW"],
        validation_alias=AliasChoices("WORKER_QUERIES", "worker_queries"),
    )
    default_query: str = Field(default="SOL", validation_alias=AliasChoices("DEFAULT_QUERY", "default_query"))
    run_initial_tick: bool = Field(
        default=True,
        validation_alias=AliasChoices("RUN_INITIAL_TICK", "run_initial_tick"),
    )


class AppSettings(BaseSettings):
    """Top-level application settings."""
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    app_name: str = "TOKEN PULSE"
    version: str = "1.0.0"
    debug: bool = Field(default=False, validation_alias=AliasChoices("DEBUG", "debug"))
    log_level: str = Field(default="INFO", validation_alias=AliasChoices("LOG_LEVEL", "log_level"))
    host: str = Field(default="0.0.0.0", validation_alias=AliasChoices("HOST", "host"))
    port: int = Field(default=3000, validation_alias=AliasChoices("PORT", "port"))
    default_page_size: int = Field(default=10, validation_alias=AliasChoices("DEFAULT_PAGE_SIZE", "default_page_size"))
    # A subscriber that cannot take a message within this window is dropped
    ws_send_timeout_seconds: float = Field(
        default=5.0,
        validation_alias=AliasChoices("WS_SEND_TIMEOUT_SECONDS", "ws_send_timeout_seconds"),
    )

    data: DataSourceSettings = Field(default_factory=DataSourceSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)


# Singleton
_settings: Optional[AppSettings] = None


def get_settings() -> AppSettings:
    global _settings
    if _settings is None:
        _settings = AppSettings()
    return _settings
