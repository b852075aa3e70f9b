"""Runtime configuration for the learntrack API.

Every value can be overridden through an environment variable of the same
name (case-insensitive) or a local ``.env`` file.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEV_JWT_SECRET = "dev-jwt-secret-key-change-in-production-32chars!"

Environment = Literal["development", "staging", "production", "testing"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "learntrack"
    app_version: str = "0.1.0"
    environment: Environment = "development"

    # HTTP server (python -m learntrack)
    server_host: str = Field(default="127.0.0.1", description="Bind address")
    server_port: int = Field(default=8000, ge=1, le=65535)
    server_reload: bool = Field(default=False, description="Reload on code change")

    # Tokens
    jwt_secret: str = Field(default=DEV_JWT_SECRET, min_length=32)
    jwt_algorithm: str = "HS256"
    jwt_ttl_minutes: int = Field(default=60, gt=0, description="Access token lifetime")

    # Cassandra
    cassandra_hosts: list[str] = ["localhost"]
    cassandra_port: int = 9042
    cassandra_keyspace: str = "learntrack"
    cassandra_username: str | None = None
    cassandra_password: str | None = None
    cassandra_protocol_version: int = 4
    cassandra_connect_timeout: float = 10.0

    # Redis cache, optional at runtime
    redis_url: str = "redis://localhost:6379/0"
    redis_max_connections: int = 10
    redis_socket_timeout: float = 5.0
    redis_socket_connect_timeout: float = 5.0
    redis_retry_on_timeout: bool = True
    redis_health_check_interval: int = 30

    # Logging
    log_level: LogLevel = "DEBUG"
    log_format: Literal["json", "console"] = "console"
    log_include_caller_info: bool = True
    log_dir: str = Field(default="logs", description="Rotating log file directory")
    log_file_max_bytes: int = 10 * 1024 * 1024
    log_file_backup_count: int = 5
    log_requests: bool = True
    log_exclude_paths: list[str] = ["/health", "/health/live", "/health/ready"]

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]
    cors_max_age: int = 600

    # Learning rules
    module_default_max_attempts: int = Field(
        default=3, ge=1, description="Attempts allowed per content item"
    )
    quiz_max_questions: int = Field(default=10, ge=1)
    progress_study_warrior_minutes: int = Field(
        default=600, description="Total study time for the study_warrior badge"
    )
    analytics_cache_ttl_seconds: int = Field(
        default=300, description="Redis TTL for cached learning analytics"
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value

    @model_validator(mode="after")
    def _require_real_secret(self) -> "Settings":
        if self.environment == "production" and self.jwt_secret == DEV_JWT_SECRET:
            msg = "JWT_SECRET must be set in production"
            raise ValueError(msg)
        return self

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_testing(self) -> bool:
        return self.environment == "testing"

    @property
    def docs_enabled(self) -> bool:
        """Interactive API docs are served outside production only."""
        return not self.is_production


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings, read once."""
    return Settings()
