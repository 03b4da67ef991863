"""Configuration management for the document engine."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageConfig(BaseModel):
    """Storage configuration."""

    document_path: Path = Field(
        default=Path("data/database.json"), description="Persisted document path"
    )
    persist_mode: Literal["per_operation", "per_plan"] = Field(
        default="per_plan", description="When mutations are written back to storage"
    )
    fsync: bool = Field(default=True, description="fsync the document before replacing it")


class EngineConfig(BaseModel):
    """Engine behaviour configuration."""

    admin_role: str = Field(
        default="admin", min_length=1, description="Role holding every privilege"
    )
    history_size: int = Field(
        default=500, ge=0, description="Number of executed operations kept in history"
    )
    digest_sample_rows: int = Field(
        default=2, ge=0, description="Sample rows per table in the planner digest"
    )


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, ge=1, le=65535, description="Server port")


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(default="json", description="Log format")
    otel_endpoint: str | None = Field(
        default=None, description="OpenTelemetry collector endpoint"
    )
    otel_service_name: str = Field(default="filedb_engine", description="Service name for tracing")
    metrics_port: int = Field(default=8001, ge=1, le=65535, description="Prometheus metrics port")


class Config(BaseSettings):
    """Main configuration for the document engine."""

    model_config = SettingsConfigDict(
        env_prefix="FILEDB_ENGINE_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    storage: StorageConfig = Field(default_factory=StorageConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    def ensure_directories(self) -> None:
        """Ensure the directory holding the document exists."""
        self.storage.document_path.parent.mkdir(parents=True, exist_ok=True)


@lru_cache
def get_config() -> Config:
    """Get the global configuration instance."""
    config = Config()
    config.ensure_directories()
    return config
