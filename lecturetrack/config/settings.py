"""Application settings using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="lecturetrack", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: Literal["development", "staging", "production", "testing"] = Field(
        default="development", description="Environment name"
    )
    debug: bool = Field(default=True, description="Debug mode")

    # Document store
    store_backend: Literal["memory", "cassandra"] = Field(
        default="memory", description="Document store implementation"
    )
    cassandra_hosts: list[str] = Field(
        default=["localhost"], description="Cassandra contact points"
    )
    cassandra_port: int = Field(default=9042, description="Cassandra port")
    cassandra_keyspace: str = Field(
        default="lecturetrack", description="Cassandra keyspace"
    )
    cassandra_username: str | None = Field(default=None, description="Cassandra user")
    cassandra_password: str | None = Field(
        default=None, description="Cassandra password"
    )
    cassandra_protocol_version: int = Field(default=4, description="Protocol version")
    cassandra_connect_timeout: float = Field(
        default=10.0, description="Connection timeout (seconds)"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", description="Log output format"
    )
    log_include_caller_info: bool = Field(
        default=False, description="Include file/line/function in log events"
    )
    log_dir: str = Field(default="logs", description="Directory for log files")
    log_file_max_bytes: int = Field(
        default=10 * 1024 * 1024, description="Max size of a log file before rotation"
    )
    log_file_backup_count: int = Field(
        default=5, description="Number of rotated log files to keep"
    )
    log_requests: bool = Field(
        default=True, description="Log request start/finish events"
    )
    log_exclude_paths: list[str] = Field(
        default=["/health", "/health/live", "/health/ready"],
        description="Paths excluded from request logging",
    )

    # CORS
    cors_origins: list[str] = Field(default=["*"], description="CORS origins")
    cors_allow_credentials: bool = Field(default=True, description="Allow credentials")
    cors_allow_methods: list[str] = Field(default=["*"], description="Allowed methods")
    cors_allow_headers: list[str] = Field(default=["*"], description="Allowed headers")

    # Course catalog cache
    catalog_cache_ttl_seconds: float = Field(
        default=60.0, description="Course document cache TTL"
    )
    catalog_cache_max_size: int = Field(
        default=500, description="Max cached course documents"
    )

    # Learning progress
    progress_completion_threshold: float = Field(
        default=0.9,
        gt=0,
        le=1,
        description="Fraction of a lecture that counts as watched",
    )
    progress_sync_interval_seconds: float = Field(
        default=10.0, description="Periodic progress write cadence during playback"
    )
    progress_sync_min_delta_seconds: float = Field(
        default=5.0, description="Minimum position change for a periodic write"
    )

    # Video transcoding
    transcode_status_api_base_url: str = Field(
        default="http://localhost:4000/api/status",
        description="Job status endpoint base (GET {base}/{job_id})",
    )
    video_public_base_url: str = Field(
        default="http://localhost:4000/media",
        description="Public base URL where HLS output is served",
    )
    transcode_poll_max_attempts: int = Field(
        default=60, ge=1, description="Poll attempts before a job times out"
    )
    transcode_poll_interval_seconds: float = Field(
        default=5.0, ge=0, description="Sleep between poll attempts"
    )
    transcode_request_timeout_seconds: float = Field(
        default=10.0, description="Timeout of a single job status request"
    )

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.environment == "testing"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
