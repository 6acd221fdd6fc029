from functools import lru_cache
from pathlib import Path
from typing import Annotated, List

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_name: str = Field(default="Inkwell API", env="APP_NAME", description="Human readable service name")
    environment: str = Field(default="development", env="ENVIRONMENT", description="Deployment environment name")
    debug: bool = Field(default=False, env="DEBUG", description="Enable debug mode")

    cors_origins: Annotated[List[AnyHttpUrl], NoDecode] = Field(
        default_factory=lambda: [
            "http://localhost",
            "http://localhost:3000",
            "http://localhost:5173",
            "http://127.0.0.1",
            "http://127.0.0.1:3000",
        ],
        env="CORS_ORIGINS",
        description="List of allowed CORS origins",
    )

    database_user: str = Field(default="inkwell", env="DB_USER")
    database_password: str = Field(default="inkwell", env="DB_PASSWORD")
    database_host: str = Field(default="db", env="DB_HOST")
    database_port: int = Field(default=3306, env="DB_PORT")
    database_name: str = Field(default="inkwell", env="DB_NAME")
    database_url_override: str | None = Field(
        default=None,
        validation_alias="DATABASE_URL",
        description="Full SQLAlchemy URL; takes precedence over the DB_* fields.",
    )

    jwt_secret_key: str = Field(default="changeme", env="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", env="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=60 * 24, env="ACCESS_TOKEN_EXPIRE_MINUTES")

    realtime_heartbeat_interval_seconds: float = Field(
        default=30.0,
        env="REALTIME_HEARTBEAT_INTERVAL_SECONDS",
        description="Cadence of the liveness probe cycle.",
    )
    realtime_max_missed_probes: int = Field(
        default=5,
        env="REALTIME_MAX_MISSED_PROBES",
        description="Missed probe cycles tolerated before a connection is terminated.",
    )
    realtime_backoff_base_seconds: float = Field(
        default=1.0,
        env="REALTIME_BACKOFF_BASE_SECONDS",
        description="Initial delay of the per-user reconnect backoff.",
    )
    realtime_backoff_max_seconds: float = Field(
        default=10.0,
        env="REALTIME_BACKOFF_MAX_SECONDS",
        description="Upper bound of the per-user reconnect backoff.",
    )
    realtime_presence_broadcast_enabled: bool = Field(
        default=True,
        env="REALTIME_PRESENCE_BROADCAST_ENABLED",
        description="Push ONLINE_USERS snapshots when users connect or disconnect.",
    )

    notifications_default_page_size: int = Field(default=20, env="NOTIFICATIONS_DEFAULT_PAGE_SIZE")
    notifications_max_page_size: int = Field(default=100, env="NOTIFICATIONS_MAX_PAGE_SIZE")

    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parents[2] / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return (
            f"mysql+pymysql://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v):  # type: ignore[override]
        if v in (None, "", Ellipsis):
            return v
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        if isinstance(v, (list, tuple, set)):
            return list(v)
        return v

    @field_validator("realtime_max_missed_probes")
    @classmethod
    def ensure_positive_ceiling(cls, value: int) -> int:
        if value < 1:
            raise ValueError("realtime_max_missed_probes must be at least 1")
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings()
