"""Environment-driven settings.

Each concern is its own ``BaseSettings`` section with its own prefix
(``STORE_``, ``REDIS_``, ``POSTGRES_``, ``RANKING_``, ``EVENT_``). Only the
section for the configured store backend is actually used at runtime; the
others are still parsed so a bad value fails fast at startup.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreSettings(BaseSettings):
    """Event store selection, chosen once at process start."""

    model_config = SettingsConfigDict(env_prefix="STORE_", extra="ignore")

    backend: Literal["file", "redis", "postgres"] = Field(
        default="file", description="Which event store backend to use"
    )
    data_dir: str = Field(default="data", description="Directory for the JSON file store")
    file_name: str = Field(default="events.json", description="JSON file holding all events")

    @field_validator("backend", mode="before")
    @classmethod
    def normalize_backend(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v


class RedisSettings(BaseSettings):
    """Redis client pool and event key layout (STORE_BACKEND=redis)."""

    model_config = SettingsConfigDict(env_prefix="REDIS_", extra="ignore")

    host: str = Field(default="redis", description="Redis host")
    port: int = Field(default=6379, description="Redis port")
    password: str = Field(default="", description="Redis password")
    max_connections: int = Field(default=50, description="Maximum pool connections")
    pool_timeout_sec: float = Field(default=5.0, description="Pool timeout in seconds")
    health_check_interval: int = Field(default=30, description="Health check interval in seconds")
    retry_on_timeout: bool = Field(default=True, description="Retry on timeout")
    socket_timeout: float = Field(default=5.0, description="Socket timeout in seconds")
    socket_connect_timeout: float = Field(default=5.0, description="Socket connect timeout in seconds")
    key_prefix: str = Field(default="meetgrid:event:", description="Key prefix for event records")
    max_update_retries: int = Field(
        default=5, description="Optimistic transaction attempts before giving up"
    )


class PostgresSettings(BaseSettings):
    """PostgreSQL connection and pool sizing (STORE_BACKEND=postgres)."""

    model_config = SettingsConfigDict(
        env_prefix="POSTGRES_",
        extra="ignore",
        populate_by_name=True,
    )

    host: str = Field(default="postgres", description="PostgreSQL host")
    port: int = Field(default=5432, description="PostgreSQL port")
    user: str = Field(default="meetgrid", description="PostgreSQL user")
    password: str = Field(default="", description="PostgreSQL password")
    database: str = Field(
        default="meetgrid",
        validation_alias="POSTGRES_DB",
        description="Database name",
    )
    pool_min_size: int = Field(default=1, description="Minimum pool size")
    pool_max_size: int = Field(default=10, description="Maximum pool size")
    pool_timeout: int = Field(default=30, description="Timeout for acquiring connections")
    pool_max_lifetime: int = Field(
        default=1800, description="Maximum connection lifetime in seconds"
    )
    pool_max_idle: int = Field(
        default=300, description="Maximum idle time before closing connection"
    )

    def get_dsn(self) -> str:
        """Generate PostgreSQL DSN connection string."""
        return (
            f"host={self.host} port={self.port} user={self.user} "
            f"password={self.password} dbname={self.database} sslmode=disable"
        )


class CorsSettings(BaseSettings):
    """CORS configuration."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    origins_raw: str = Field(
        default="http://localhost:3000",
        validation_alias="CORS_ORIGINS",
    )
    origins_regex: str = Field(
        default="",
        validation_alias="CORS_ORIGINS_REGEX",
        description="Regex pattern for origins",
    )

    @property
    def origins(self) -> list[str]:
        """Parse comma-separated origins into list."""
        return [o.strip() for o in self.origins_raw.split(",") if o.strip()]

    @property
    def allow_credentials(self) -> bool:
        """Credentials not allowed with wildcard origins."""
        return self.origins != ["*"] and not self.origins_regex


class DebugSettings(BaseSettings):
    """REQUEST_DEBUG and REDIS_DEBUG switches."""

    model_config = SettingsConfigDict(extra="ignore")

    request: bool = Field(default=False, alias="request_debug")
    redis: bool = Field(default=False, alias="redis_debug")

    @field_validator("*", mode="before")
    @classmethod
    def parse_bool(cls, v):
        if isinstance(v, str):
            return v.lower() in ("1", "true", "yes")
        return bool(v)


class RankingSettings(BaseSettings):
    """Recommended-times panel configuration."""

    model_config = SettingsConfigDict(env_prefix="RANKING_", extra="ignore")

    default_top_n: int = Field(default=3, ge=0, description="Slots returned when top_n is omitted")
    max_top_n: int = Field(default=50, ge=0, description="Upper bound accepted for top_n")


class EventLimits(BaseSettings):
    """Limits applied when creating events and accepting responses."""

    model_config = SettingsConfigDict(env_prefix="EVENT_", extra="ignore")

    max_dates: int = Field(default=62, description="Maximum number of dates per event")
    name_max_length: int = Field(default=200, description="Maximum event name length")
    participant_name_max_length: int = Field(default=100, description="Maximum participant name length")
    note_max_length: int = Field(default=1000, description="Maximum other-availability note length")


class Settings:
    """All sections, each read from the environment with its own prefix."""

    def __init__(self) -> None:
        self.store = StoreSettings()
        self.redis = RedisSettings()
        self.postgres = PostgresSettings()
        self.cors = CorsSettings()
        self.debug = DebugSettings()
        self.ranking = RankingSettings()
        self.limits = EventLimits()


@lru_cache
def get_settings() -> Settings:
    return Settings()


def clear_settings_cache() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    get_settings.cache_clear()
